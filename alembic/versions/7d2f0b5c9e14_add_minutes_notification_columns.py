"""add_minutes_notification_columns

Revision ID: 7d2f0b5c9e14
Revises: 4c1e7a9b2d30
Create Date: 2026-10-18 16:40:02.731995

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7d2f0b5c9e14'
down_revision: Union[str, Sequence[str], None] = '4c1e7a9b2d30'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column(
        'tenants',
        sa.Column('minutes_notified_bucket', sa.Integer(), server_default='0', nullable=False),
    )
    op.add_column(
        'tenants',
        sa.Column('minutes_notified_period_start', sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_column('tenants', 'minutes_notified_period_start')
    op.drop_column('tenants', 'minutes_notified_bucket')
