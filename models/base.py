# models/base.py
from sqlalchemy import Boolean, Column, DateTime, event, false
from sqlalchemy.orm import DeclarativeBase, Session, declared_attr, with_loader_criteria


class Base(DeclarativeBase):
     """
     Base class for all SQLAlchemy models.
     Provides common configuration and mixins.
     """

     @declared_attr.directive
     def __tablename__(cls) -> str:
          """
          Automatically generate table name from class name.
          Example: PropertyUnit -> property_units
          """
          import re
          name = re.sub(r'(?<!^)(?=[A-Z])', '_', cls.__name__).lower()
          # Pluralize (simple version)
          if name.endswith('y'):
               return name[:-1] + 'ies'
          elif name.endswith('s'):
               return name + 'es'
          return name + 's'


class SoftDeleteMixin:
     """
     Rows are never physically removed; they are flagged and hidden.

     Every ORM SELECT in every session filters out flagged rows. Audit reads
     opt out with ``.execution_options(include_deleted=True)``.
     """

     is_deleted = Column(Boolean, default=False, server_default=false(), nullable=False, index=True)
     deleted_at = Column(DateTime, nullable=True)


@event.listens_for(Session, "do_orm_execute")
def _exclude_soft_deleted(execute_state):
     if (
          execute_state.is_select
          and not execute_state.is_column_load
          and not execute_state.is_relationship_load
          and not execute_state.execution_options.get("include_deleted", False)
     ):
          execute_state.statement = execute_state.statement.options(
               with_loader_criteria(
                    SoftDeleteMixin,
                    lambda cls: cls.is_deleted.is_(False),
                    include_aliases=True,
               )
          )
