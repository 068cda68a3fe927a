# models/user.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from .base import Base


class User(Base):
     """
     User model - staff accounts that record payments and run billing jobs.
     Maps to existing 'users' table in the database.
     """
     __tablename__ = "users"

     id = Column(Integer, primary_key=True, autoincrement=True)
     email = Column(String(255), unique=True, nullable=False, index=True)
     first_name = Column(String(100), nullable=False)
     last_name = Column(String(100), nullable=False)
     role = Column(String(50), nullable=False)  # admin, manager, owner, tenant, agent
     is_active = Column(Boolean, default=True, nullable=False)
     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     
     def __repr__(self):
          return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
