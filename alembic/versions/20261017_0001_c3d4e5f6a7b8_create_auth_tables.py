"""create auth tables

Revision ID: c3d4e5f6a7b8
Revises:
Create Date: 2026-10-17

Creates the tables behind phone OTP login:
  users             : one row per phone number (E.164), created on first verification
  otp_verifications : bcrypt-hashed one-time codes with attempt counter and status
  refresh_tokens    : SHA-256 digests of live refresh tokens (rotation allow-list)
"""
from alembic import op
import sqlalchemy as sa

revision = 'c3d4e5f6a7b8'
down_revision = None
branch_labels = None
depends_on = None

OTP_STATUSES = ('PENDING', 'VERIFIED', 'EXHAUSTED', 'EXPIRED')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_users_phone', 'users', ['phone'], unique=True)

    op.create_table(
        'otp_verifications',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('code_hash', sa.String(), nullable=False),
        sa.Column('status', sa.Enum(*OTP_STATUSES, name='otp_status'), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_otp_verifications_phone', 'otp_verifications', ['phone'])
    op.create_index('ix_otp_verifications_expires_at', 'otp_verifications', ['expires_at'])
    op.create_index('ix_otp_verifications_phone_status', 'otp_verifications', ['phone', 'status'])

    op.create_table(
        'refresh_tokens',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            'user_id',
            sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('token_hash', sa.String(64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_refresh_tokens_user_id', 'refresh_tokens', ['user_id'])
    op.create_index('ix_refresh_tokens_token_hash', 'refresh_tokens', ['token_hash'], unique=True)
    op.create_index('ix_refresh_tokens_expires_at', 'refresh_tokens', ['expires_at'])


def downgrade() -> None:
    op.drop_table('refresh_tokens')
    op.drop_table('otp_verifications')
    op.drop_table('users')
    sa.Enum(name='otp_status').drop(op.get_bind(), checkfirst=True)
