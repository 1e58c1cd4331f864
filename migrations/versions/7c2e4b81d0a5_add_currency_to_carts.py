"""add currency to carts

Revision ID: 7c2e4b81d0a5
Revises: 3a1f0c9d2b7e
Create Date: 2026-10-19 09:41:02.517330

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7c2e4b81d0a5'
down_revision: Union[str, Sequence[str], None] = '3a1f0c9d2b7e'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.add_column(
        "carts",
        sa.Column("currency", sa.String(length=3), nullable=True),
    )


def downgrade():
    with op.batch_alter_table("carts") as batch_op:
        batch_op.drop_column("currency")
