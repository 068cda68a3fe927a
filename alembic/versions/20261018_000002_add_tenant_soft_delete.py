"""Add soft delete columns to tenants

Revision ID: 20261018_000002
Revises: 20261018_000001
Create Date: 2026-10-18

Billing hides deleted tenants from every query, so the shared tenants
table needs the is_deleted / deleted_at pair.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018_000002'
down_revision: Union[str, None] = '20261018_000001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        'tenants',
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.add_column('tenants', sa.Column('deleted_at', sa.DateTime(), nullable=True))
    op.create_index('ix_tenants_is_deleted', 'tenants', ['is_deleted'])


def downgrade() -> None:
    op.drop_index('ix_tenants_is_deleted', table_name='tenants')
    op.drop_column('tenants', 'deleted_at')
    op.drop_column('tenants', 'is_deleted')
