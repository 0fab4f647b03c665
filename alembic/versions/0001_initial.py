"""Initial schema

Creates every table, including the partial unique indexes on active
applications and open interview rounds, from the SQLAlchemy metadata.

Revision ID: 0001_initial
Revises: None
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    from ats.extensions import db
    import ats.models  # noqa: F401

    db.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    from ats.extensions import db
    import ats.models  # noqa: F401

    db.metadata.drop_all(bind=op.get_bind())
