"""initial_portal_schema

Revision ID: 5c1e7a2b9d40
Revises:
Create Date: 2026-10-12 09:30:41.218377
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# Revision identifiers, used by Alembic
revision: str = '5c1e7a2b9d40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Apply migration: initial_portal_schema"""
    op.create_table('users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=120), nullable=True),
        sa.Column('last_name', sa.String(length=120), nullable=True),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('temporary_password', sa.String(length=255), nullable=True),
        sa.Column('must_change_password', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('login_notifications', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('azure_id', sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('azure_id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_email_active', 'users', ['email', 'is_active'], unique=False)

    op.create_table('organisations',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )

    membership_role = sa.Enum('member', 'owner', name='membership_role_enum')
    op.create_table('organisation_memberships',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('organisation_id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('role', membership_role, nullable=False, server_default='member'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organisation_id'], ['organisations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organisation_id', 'user_id', name='uq_membership_org_user'),
    )
    op.create_index('ix_membership_user', 'organisation_memberships', ['user_id'], unique=False)

    op.create_table('cases',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('account_number', sa.String(length=50), nullable=False),
        sa.Column('debtor_name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='active'),
        sa.Column('organisation_id', sa.UUID(), nullable=False),
        sa.Column('assigned_to', sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organisation_id'], ['organisations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('account_number'),
    )
    op.create_index('ix_cases_organisation', 'cases', ['organisation_id'], unique=False)

    # user_id / case_id carry no foreign keys: orphaned rows are filtered on read
    op.create_table('case_access_restrictions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('organisation_id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('case_id', sa.UUID(), nullable=False),
        sa.Column('restricted', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organisation_id'], ['organisations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organisation_id', 'user_id', 'case_id', name='uq_restriction_org_user_case'),
    )
    op.create_index('ix_restriction_org_restricted', 'case_access_restrictions', ['organisation_id', 'restricted'], unique=False)

    op.create_table('login_attempts',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False, comment='Email address used in login attempt'),
        sa.Column('user_id', sa.UUID(), nullable=True, comment='User ID if user exists (null for non-existent users)'),
        sa.Column('ip_address', sa.String(length=45), nullable=False, comment='IP address of the login attempt (supports IPv6)'),
        sa.Column('user_agent', sa.String(length=512), nullable=False),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('failure_reason', sa.String(length=255), nullable=True),
        sa.Column('attempted_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_login_attempts_email', 'login_attempts', ['email'], unique=False)
    op.create_index('ix_login_attempts_user_id', 'login_attempts', ['user_id'], unique=False)
    op.create_index('ix_login_attempts_success', 'login_attempts', ['success'], unique=False)
    op.create_index('ix_login_attempts_attempted_at', 'login_attempts', ['attempted_at'], unique=False)
    op.create_index('ix_login_attempt_email_time', 'login_attempts', ['email', 'attempted_at'], unique=False)
    op.create_index('ix_login_attempt_history', 'login_attempts', ['email', 'success', 'ip_address', 'user_agent'], unique=False)

    op.create_table('user_activity_logs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('action', sa.String(length=80), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_activity_logs_user_id', 'user_activity_logs', ['user_id'], unique=False)
    op.create_index('ix_user_activity_user_time', 'user_activity_logs', ['user_id', 'timestamp'], unique=False)

    op.create_table('audit_logs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('table_name', sa.String(length=80), nullable=False),
        sa.Column('record_id', sa.String(length=255), nullable=False),
        sa.Column('operation', sa.String(length=40), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('user_id', sa.UUID(), nullable=True),
        sa.Column('user_email', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_timestamp', 'audit_logs', ['timestamp'], unique=False)

    op.create_table('token_blacklists',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('jti', sa.String(length=255), nullable=False, comment='JWT ID (unique token identifier)'),
        sa.Column('token_hash', sa.String(length=64), nullable=False, comment='SHA256 hash of the full token'),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False, comment='When the token naturally expires (from JWT exp claim)'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_token_blacklists_jti', 'token_blacklists', ['jti'], unique=True)
    op.create_index('ix_token_blacklists_user_id', 'token_blacklists', ['user_id'], unique=False)
    op.create_index('ix_token_blacklist_expires', 'token_blacklists', ['expires_at'], unique=False)


def downgrade() -> None:
    """Revert migration: initial_portal_schema"""
    op.drop_table('token_blacklists')
    op.drop_table('audit_logs')
    op.drop_table('user_activity_logs')
    op.drop_table('login_attempts')
    op.drop_table('case_access_restrictions')
    op.drop_table('cases')
    op.drop_table('organisation_memberships')
    sa.Enum(name='membership_role_enum').drop(op.get_bind(), checkfirst=True)
    op.drop_table('organisations')
    op.drop_table('users')
