"""create session_snapshot table

Revision ID: 5c2e9a71b0d4
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e9a71b0d4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)

    # Tables created by `flask db-reset` already exist; nothing to do then
    if 'session_snapshot' in set(insp.get_table_names()):
        return

    op.create_table(
        'session_snapshot',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'session_snapshot' in set(insp.get_table_names()):
        op.drop_table('session_snapshot')
