"""
Database ORM models.
Blog posts, tags, post-tag links, audit trail and revoked tokens.
"""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, Text, DateTime,
    ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from siteadmin.database import Base

POST_STATUSES = ("draft", "pending", "published", "archived")


class BlogPost(Base):
    __tablename__ = "blog_posts"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft','pending','published','archived')",
            name="blog_posts_status_check",
        ),
    )

    id = Column(Integer, primary_key=True)
    title = Column(Text, nullable=False)
    slug = Column(Text, unique=True, nullable=False)
    excerpt = Column(Text)
    body_html = Column(Text, nullable=False)
    body_text = Column(Text, nullable=False)  # Plain projection for search
    cover_image = Column(Text)
    cover_image_alt = Column(Text)
    author_name = Column(Text)
    status = Column(Text, nullable=False, default="draft")
    published_at = Column(DateTime)
    first_published_at = Column(DateTime)  # Never cleared
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    # Links are rewritten by the tag synchronizer, never through this relationship
    tags = relationship(
        "BlogTag",
        secondary="blog_post_tags",
        order_by="BlogTag.name",
        viewonly=True,
    )


Index("idx_blog_posts_status_published", BlogPost.status, BlogPost.published_at.desc())
Index("idx_blog_posts_updated", BlogPost.updated_at.desc())


class BlogTag(Base):
    __tablename__ = "blog_tags"

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    slug = Column(Text, unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class BlogPostTag(Base):
    __tablename__ = "blog_post_tags"

    post_id = Column(Integer, ForeignKey("blog_posts.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(Integer, ForeignKey("blog_tags.id", ondelete="CASCADE"), primary_key=True)


Index("idx_blog_post_tags_tag", BlogPostTag.tag_id)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    actor_id = Column(Integer)
    action = Column(Text, nullable=False)
    entity_type = Column(Text)
    entity_id = Column(Integer)
    description = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)


Index("idx_audit_logs_entity", AuditLog.entity_type, AuditLog.entity_id)


class TokenBlacklist(Base):
    __tablename__ = "token_blacklist"

    jti = Column(Text, primary_key=True)
    expires_at = Column(DateTime, nullable=False)


Index("idx_blacklist_expires", TokenBlacklist.expires_at)
