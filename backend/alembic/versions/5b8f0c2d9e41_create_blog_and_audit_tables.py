"""create_blog_and_audit_tables

Revision ID: 5b8f0c2d9e41
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b8f0c2d9e41'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'blog_posts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('slug', sa.Text(), nullable=False, unique=True),
        sa.Column('excerpt', sa.Text(), nullable=True),
        sa.Column('body_html', sa.Text(), nullable=False),
        sa.Column('body_text', sa.Text(), nullable=False),
        sa.Column('cover_image', sa.Text(), nullable=True),
        sa.Column('cover_image_alt', sa.Text(), nullable=True),
        sa.Column('author_name', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='draft'),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('first_published_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "status IN ('draft','pending','published','archived')",
            name='blog_posts_status_check',
        ),
    )
    op.create_index(
        'idx_blog_posts_status_published',
        'blog_posts',
        ['status', sa.text('published_at DESC')],
    )
    op.create_index('idx_blog_posts_updated', 'blog_posts', [sa.text('updated_at DESC')])

    op.create_table(
        'blog_tags',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('slug', sa.Text(), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'blog_post_tags',
        sa.Column(
            'post_id', sa.Integer(),
            sa.ForeignKey('blog_posts.id', ondelete='CASCADE'), primary_key=True,
        ),
        sa.Column(
            'tag_id', sa.Integer(),
            sa.ForeignKey('blog_tags.id', ondelete='CASCADE'), primary_key=True,
        ),
    )
    op.create_index('idx_blog_post_tags_tag', 'blog_post_tags', ['tag_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('entity_type', sa.Text(), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('idx_audit_logs_entity', 'audit_logs', ['entity_type', 'entity_id'])

    op.create_table(
        'token_blacklist',
        sa.Column('jti', sa.Text(), primary_key=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_blacklist_expires', 'token_blacklist', ['expires_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_blacklist_expires', table_name='token_blacklist')
    op.drop_table('token_blacklist')
    op.drop_index('idx_audit_logs_entity', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index('idx_blog_post_tags_tag', table_name='blog_post_tags')
    op.drop_table('blog_post_tags')
    op.drop_table('blog_tags')
    op.drop_index('idx_blog_posts_updated', table_name='blog_posts')
    op.drop_index('idx_blog_posts_status_published', table_name='blog_posts')
    op.drop_table('blog_posts')
