"""Initial schema: users, notes, note versions, shares, refresh tokens

Revision ID: 6f1c2a9d4b10
Revises:
Create Date: 2025-10-02 09:12:31.402118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from notekeeper.core.models.types import GUID


# revision identifiers, used by Alembic.
revision: str = '6f1c2a9d4b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', GUID(), primary_key=True),
        sa.Column('username', sa.String(length=50), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('length(username) <= 50', name='ck_users_username_len'),
        sa.CheckConstraint('full_name IS NULL OR length(full_name) <= 100', name='ck_users_full_name_len'),
    )
    op.create_index('idx_users_username', 'users', ['username'])

    op.create_table(
        'notes',
        sa.Column('id', GUID(), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        sa.Column('owner_id', GUID(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('version >= 1', name='ck_notes_version_positive'),
        sa.CheckConstraint('length(title) <= 200', name='ck_notes_title_len'),
    )
    op.create_index('idx_notes_owner_id', 'notes', ['owner_id'])
    op.create_index('idx_notes_owner_deleted_updated', 'notes', ['owner_id', 'is_deleted', 'updated_at'])

    op.create_table(
        'note_versions',
        sa.Column('id', GUID(), primary_key=True),
        sa.Column('note_id', GUID(), sa.ForeignKey('notes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_by', GUID(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('change_type', sa.String(length=20), nullable=False),
        sa.Column('reverted_from', sa.Integer(), nullable=True),
        sa.Column('resolution_strategy', sa.String(length=20), nullable=True),
        sa.Column('resolved_from_version', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('note_id', 'version', name='uq_note_versions_note_version'),
        sa.CheckConstraint('version >= 1', name='ck_note_versions_version_positive'),
    )
    op.create_index('idx_note_versions_note_id', 'note_versions', ['note_id'])

    op.create_table(
        'shares',
        sa.Column('id', GUID(), primary_key=True),
        sa.Column('note_id', GUID(), sa.ForeignKey('notes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('shared_by_user_id', GUID(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('shared_with_user_id', GUID(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('permission', sa.String(length=20), nullable=False, server_default='read'),
        *_timestamps(),
        sa.UniqueConstraint('note_id', 'shared_with_user_id', name='uq_shares_note_recipient'),
        sa.CheckConstraint("permission IN ('read', 'write')", name='ck_shares_permission'),
    )
    op.create_index('idx_shares_note_id', 'shares', ['note_id'])
    op.create_index('idx_shares_shared_with', 'shares', ['shared_with_user_id'])

    op.create_table(
        'refresh_tokens',
        sa.Column('id', GUID(), primary_key=True),
        sa.Column('token', sa.String(length=255), nullable=False, unique=True),
        sa.Column('user_id', GUID(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_refresh_tokens_user_active', 'refresh_tokens', ['user_id', 'is_active'])


def downgrade() -> None:
    op.drop_table('refresh_tokens')
    op.drop_table('shares')
    op.drop_table('note_versions')
    op.drop_table('notes')
    op.drop_table('users')
