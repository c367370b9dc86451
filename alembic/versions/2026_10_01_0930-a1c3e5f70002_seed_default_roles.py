"""Seed the Admin, Agent and User roles

Revision ID: a1c3e5f70002
Revises: a1c3e5f70001
Create Date: 2026-10-01 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.sql import table, column
from sqlalchemy import String, Text
import uuid
from datetime import datetime, timezone

# revision identifiers, used by Alembic.
revision: str = "a1c3e5f70002"
down_revision: Union[str, None] = "a1c3e5f70001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DEFAULT_ROLES = [
    ("Admin", "Full access including user administration"),
    ("Agent", "Manages properties and visit requests"),
    ("User", "Browses properties and requests visits"),
]


def upgrade() -> None:
    """Insert the default roles"""
    roles_table = table('roles',
        column('id', sa.Uuid),
        column('name', String),
        column('description', Text),
        column('created_at', sa.DateTime)
    )
    
    now = datetime.now(timezone.utc)
    op.bulk_insert(roles_table, [
        {
            'id': uuid.uuid4(),
            'name': name,
            'description': description,
            'created_at': now
        }
        for name, description in DEFAULT_ROLES
    ])


def downgrade() -> None:
    """Remove the default roles"""
    op.execute(
        sa.text("DELETE FROM roles WHERE name IN ('Admin', 'Agent', 'User')")
    )
