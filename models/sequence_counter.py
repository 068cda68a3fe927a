# models/sequence_counter.py
from sqlalchemy import BigInteger, Column, Integer, String
from .base import Base


class SequenceCounter(Base):
     """
     Durable counter row for one year-scoped number sequence.

     ``name`` is ``<kind>-<year>`` (e.g. ``invoice-2025``); ``current_value``
     is the last number handed out. Rows are only touched under a row lock.
     """
     __tablename__ = "sequence_counters"

     id = Column(Integer, primary_key=True, autoincrement=True)
     name = Column(String(50), nullable=False, unique=True)
     current_value = Column(BigInteger, nullable=False, default=0)
     
     def __repr__(self):
          return f"<SequenceCounter(name='{self.name}', current_value={self.current_value})>"
