"""Initial schema migration.

Revision ID: initial_schema
Revises:
Create Date: 2026-10-01 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create initial database schema."""
    # Accounts and profiles
    op.create_table('accounts',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('email_confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_accounts_email'), 'accounts', ['email'], unique=True)

    op.create_table('profiles',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('avatar_url', sa.String(1000), nullable=True),
        sa.Column('role', sa.String(100), nullable=True),
        sa.Column('location', sa.String(500), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('interests', sa.JSON(), nullable=True),
        sa.Column('organization_type', sa.String(100), nullable=True),
        sa.Column('organization_choice', sa.String(20), nullable=True),
        sa.Column('selected_organization_id', sa.String(36), nullable=True),
        sa.Column('onboarding_completed', sa.Boolean(), nullable=False),
        sa.Column('is_omega_admin', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['id'], ['accounts.id']),
        sa.PrimaryKeyConstraint('id')
    )

    # Organizations
    op.create_table('organizations',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(500), nullable=False),
        sa.Column('slug', sa.String(255), nullable=True),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('tagline', sa.String(500), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('website', sa.String(500), nullable=True),
        sa.Column('location', sa.String(500), nullable=True),
        sa.Column('image_url', sa.String(1000), nullable=True),
        sa.Column('focus_areas', sa.JSON(), nullable=True),
        sa.Column('taxonomy_code', sa.String(100), nullable=True),
        sa.Column('budget', sa.String(100), nullable=True),
        sa.Column('total_funding_annually', sa.String(100), nullable=True),
        sa.Column('staff_count', sa.Integer(), nullable=True),
        sa.Column('grants_offered', sa.Integer(), nullable=True),
        sa.Column('year_founded', sa.Integer(), nullable=True),
        sa.Column('funding_locations', sa.JSON(), nullable=True),
        sa.Column('grant_types', sa.JSON(), nullable=True),
        sa.Column('funder_type', sa.String(100), nullable=True),
        sa.Column('created_by', sa.String(36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['created_by'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_organizations_slug'), 'organizations', ['slug'], unique=True)
    op.create_index(op.f('ix_organizations_type'), 'organizations', ['type'], unique=False)
    op.create_index(op.f('ix_organizations_taxonomy_code'), 'organizations', ['taxonomy_code'], unique=False)

    op.create_table('organization_memberships',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('profile_id', sa.String(36), nullable=False),
        sa.Column('organization_id', sa.String(36), nullable=False),
        sa.Column('organization_type', sa.String(50), nullable=True),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('profile_id', 'organization_id', name='uq_membership_profile_org')
    )
    op.create_index(op.f('ix_organization_memberships_profile_id'), 'organization_memberships', ['profile_id'], unique=False)
    op.create_index(op.f('ix_organization_memberships_organization_id'), 'organization_memberships', ['organization_id'], unique=False)

    op.create_table('organization_taxonomies',
        sa.Column('code', sa.String(100), nullable=False),
        sa.Column('parent_code', sa.String(100), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('organization_type', sa.String(50), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('code')
    )
    op.create_index(op.f('ix_organization_taxonomies_parent_code'), 'organization_taxonomies', ['parent_code'], unique=False)
    op.create_index(op.f('ix_organization_taxonomies_organization_type'), 'organization_taxonomies', ['organization_type'], unique=False)

    # Grants
    op.create_table('grants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('foundation_name', sa.String(500), nullable=True),
        sa.Column('funder_slug', sa.String(255), nullable=True),
        sa.Column('funding_amount', sa.String(255), nullable=True),
        sa.Column('funding_min', sa.Float(), nullable=False),
        sa.Column('funding_max', sa.Float(), nullable=False),
        sa.Column('funding_currency', sa.String(3), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('grant_type', sa.String(100), nullable=True),
        sa.Column('categories', sa.JSON(), nullable=True),
        sa.Column('locations', sa.JSON(), nullable=True),
        sa.Column('eligible_organization_types', sa.JSON(), nullable=True),
        sa.Column('keywords', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_grants_funder_slug'), 'grants', ['funder_slug'], unique=False)
    op.create_index(op.f('ix_grants_due_date'), 'grants', ['due_date'], unique=False)

    op.create_table('saved_grants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('profile_id', sa.String(36), nullable=False),
        sa.Column('grant_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['grant_id'], ['grants.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('profile_id', 'grant_id', name='uq_saved_grant_profile_grant')
    )
    op.create_index(op.f('ix_saved_grants_profile_id'), 'saved_grants', ['profile_id'], unique=False)
    op.create_index(op.f('ix_saved_grants_grant_id'), 'saved_grants', ['grant_id'], unique=False)

    # Community
    op.create_table('followers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('follower_id', sa.String(36), nullable=False),
        sa.Column('following_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['follower_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['following_id'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('follower_id', 'following_id', name='uq_follower_following')
    )
    op.create_index(op.f('ix_followers_follower_id'), 'followers', ['follower_id'], unique=False)
    op.create_index(op.f('ix_followers_following_id'), 'followers', ['following_id'], unique=False)

    op.create_table('rss_articles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(1000), nullable=False),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('url', sa.String(2000), nullable=False),
        sa.Column('image_url', sa.String(2000), nullable=True),
        sa.Column('source_name', sa.String(255), nullable=True),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('url')
    )
    op.create_index(op.f('ix_rss_articles_category'), 'rss_articles', ['category'], unique=False)
    op.create_index(op.f('ix_rss_articles_published_at'), 'rss_articles', ['published_at'], unique=False)

    op.create_table('posts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('profile_id', sa.String(36), nullable=False),
        sa.Column('organization_id', sa.String(36), nullable=True),
        sa.Column('channel', sa.String(100), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('image_url', sa.String(1000), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_posts_profile_id'), 'posts', ['profile_id'], unique=False)
    op.create_index(op.f('ix_posts_organization_id'), 'posts', ['organization_id'], unique=False)
    op.create_index(op.f('ix_posts_channel'), 'posts', ['channel'], unique=False)
    op.create_index(op.f('ix_posts_created_at'), 'posts', ['created_at'], unique=False)


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('posts')
    op.drop_table('rss_articles')
    op.drop_table('followers')
    op.drop_table('saved_grants')
    op.drop_table('grants')
    op.drop_table('organization_taxonomies')
    op.drop_table('organization_memberships')
    op.drop_table('organizations')
    op.drop_table('profiles')
    op.drop_table('accounts')
