"""members and refresh records

Revision ID: 4b1d2f6a9c03
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '4b1d2f6a9c03'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('password_hash', sa.String(length=254), nullable=False),
        sa.Column(
            'role',
            sa.Enum('USER', 'ADMIN', name='member_role', native_enum=False),
            nullable=False,
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_members')),
        sa.UniqueConstraint('username', name='uq_members_username'),
    )
    with op.batch_alter_table('members', schema=None) as batch_op:
        batch_op.create_index('ix_members_username', ['username'], unique=False)

    op.create_table(
        'refresh_records',
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('token', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('username', name=op.f('pk_refresh_records')),
    )


def downgrade():
    op.drop_table('refresh_records')
    with op.batch_alter_table('members', schema=None) as batch_op:
        batch_op.drop_index('ix_members_username')

    op.drop_table('members')
