"""Initial schema - users, plants, plant images

Revision ID: 0001
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Principals (provisioned out-of-band)
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Plant submissions
    op.create_table(
        'plants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('scientific_name', sa.String(255), nullable=True),
        sa.Column('family', sa.String(255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('accepted_by', sa.Uuid(), nullable=True),
        sa.Column('rejected_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_plants'),
        sa.ForeignKeyConstraint(
            ['accepted_by'], ['users.id'],
            name='fk_plants_accepted_by_users', ondelete='SET NULL',
        ),
        sa.ForeignKeyConstraint(
            ['rejected_by'], ['users.id'],
            name='fk_plants_rejected_by_users', ondelete='SET NULL',
        ),
        sa.CheckConstraint("status IN ('pending', 'accepted', 'rejected')", name='ck_plants_status'),
    )
    op.create_index('ix_plants_family', 'plants', ['family'])
    op.create_index('ix_plants_status_created_at', 'plants', ['status', 'created_at'])

    # One optional photo per plant
    op.create_table(
        'plant_images',
        sa.Column('plant_id', sa.Uuid(), nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=False),
        sa.Column('data', sa.LargeBinary(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('plant_id', name='pk_plant_images'),
        sa.ForeignKeyConstraint(
            ['plant_id'], ['plants.id'],
            name='fk_plant_images_plant_id_plants', ondelete='CASCADE',
        ),
    )


def downgrade() -> None:
    op.drop_table('plant_images')
    op.drop_index('ix_plants_status_created_at', table_name='plants')
    op.drop_index('ix_plants_family', table_name='plants')
    op.drop_table('plants')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
