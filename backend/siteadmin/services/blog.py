"""
Blog post repository.
Save, publish and archive posts, plus the public read queries.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple, Union

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from siteadmin.context import SYSTEM_ACTOR, ActorContext
from siteadmin.database import transaction
from siteadmin.models import BlogPost, BlogPostTag, BlogTag
from siteadmin.schemas import PostInput
from siteadmin.services.audit import log_action
from siteadmin.services.covers import generate_placeholder_cover, is_acceptable_cover
from siteadmin.services.html_sanitizer import extract_plain_text, sanitize_html
from siteadmin.services.slugs import has_slug_content, slugify
from siteadmin.services.tags import sync_tags

logger = logging.getLogger(__name__)

# Length of excerpts derived from the body
EXCERPT_LENGTH = 240

ENTITY_TYPE = "blog_post"


class BlogError(Exception):
    """Base error for blog operations."""
    pass


class ValidationError(BlogError):
    """Input the user has to correct (missing title or body)."""
    pass


class DuplicateSlugError(BlogError):
    """Another post already uses this slug."""

    def __init__(self, slug: str):
        super().__init__(f"The slug '{slug}' is already in use. Choose a different slug.")
        self.slug = slug


class NotFoundError(BlogError):
    """No post with the given id."""

    def __init__(self, post_id: int):
        super().__init__(f"Post {post_id} not found.")
        self.post_id = post_id


SEED_POSTS = [
    {
        "title": "How Rooftop Solar Cuts Your Electricity Bill",
        "excerpt": "A practical look at how a rooftop system offsets daytime consumption.",
        "body": (
            "<p>A rooftop system produces most of its energy when households and shops "
            "draw the most power. Every unit generated on the roof is a unit not bought "
            "from the grid.</p>"
            "<h2>Sizing the system</h2>"
            "<p>Start from twelve months of bills and size for the average daytime load.</p>"
        ),
        "author_name": "Dakshayani Team",
        "status": "published",
        "tags": ["Solar", "Savings"],
    },
    {
        "title": "Understanding Net Metering",
        "excerpt": "What happens to the surplus energy your panels export.",
        "body": (
            "<p>With net metering, surplus units flow back to the grid and are credited "
            "against what you import at night.</p>"
            "<ul><li>Bidirectional meter</li><li>Monthly settlement</li></ul>"
        ),
        "author_name": "Dakshayani Team",
        "status": "published",
        "tags": ["Solar", "Net Metering"],
    },
    {
        "title": "Keeping Panels Efficient Through the Monsoon",
        "excerpt": "Simple maintenance habits that protect generation in wet months.",
        "body": (
            "<p>Dust and debris settle quickly once the rains ease. A monthly rinse and an "
            "inspection of the mounting structure keep output steady.</p>"
        ),
        "author_name": "Dakshayani Team",
        "status": "published",
        "tags": ["Maintenance"],
    },
]


def render_excerpt(body_text: str, excerpt: str = "") -> str:
    """Explicit excerpt, or the first characters of the body text."""
    if excerpt.strip():
        return excerpt.strip()
    return body_text[:EXCERPT_LENGTH].strip()


def _is_slug_conflict(error: IntegrityError) -> bool:
    return "blog_posts.slug" in str(error.orig)


class PostRepository:
    """
    Blog posts over a SQLAlchemy session.

    Every mutating operation runs as one unit of work (see
    database.transaction): post row, tag links and audit entry are committed
    together, or not at all.

    Args:
        db: Database session
        clock: Returns the current (naive UTC) time
        keep_original_publish_date: When a post comes back from draft to
            published, reuse its first publication time instead of stamping
            a new one
    """

    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = datetime.utcnow,
        keep_original_publish_date: bool = False,
    ):
        self.db = db
        self._clock = clock
        self.keep_original_publish_date = keep_original_publish_date

    # --- state transitions ---

    def _apply_status(self, post: BlogPost, status: str, now: datetime) -> None:
        """
        Set status and keep published_at consistent with it.

        published_at is kept while a post stays published, stamped when it
        enters published, and cleared for every other status.
        """
        if status != "published":
            post.published_at = None
        elif post.published_at is None:
            if self.keep_original_publish_date and post.first_published_at is not None:
                post.published_at = post.first_published_at
            else:
                post.published_at = now

        if post.published_at is not None and post.first_published_at is None:
            post.first_published_at = post.published_at

        post.status = status

    def save(
        self, data: Union[PostInput, dict], actor: ActorContext = SYSTEM_ACTOR
    ) -> BlogPost:
        """
        Create a post, or update it when data.id is set.

        Raises:
            ValidationError: Missing title, or a body with no text
            DuplicateSlugError: Slug taken by another post
            NotFoundError: data.id does not exist
        """
        if not isinstance(data, PostInput):
            data = PostInput.model_validate(data)

        if not data.title:
            raise ValidationError("Title is required.")

        body_html = sanitize_html(data.body)
        body_text = extract_plain_text(body_html)
        if not body_text:
            raise ValidationError("Body is required.")

        slug = slugify(data.slug or data.title)
        excerpt = render_excerpt(body_text, data.excerpt)

        cover_image, cover_alt = data.cover_image, data.cover_image_alt
        if not is_acceptable_cover(cover_image):
            if cover_image:
                logger.info(f"Discarding unsupported cover image for '{data.title}'")
            cover_image, cover_alt = generate_placeholder_cover(data.title, excerpt)

        now = self._clock()

        try:
            with transaction(self.db):
                if data.id is not None:
                    post = self._get(data.id)
                else:
                    post = BlogPost(created_at=now)
                    self.db.add(post)

                post.title = data.title
                post.slug = slug
                post.excerpt = excerpt
                post.body_html = body_html
                post.body_text = body_text
                post.cover_image = cover_image
                post.cover_image_alt = cover_alt
                post.author_name = data.author_name or "Administrator"
                post.updated_at = now
                self._apply_status(post, data.status, now)

                self.db.flush()

                sync_tags(self.db, post.id, data.tags)
                log_action(
                    self.db,
                    actor.actor_id,
                    "blog.save",
                    ENTITY_TYPE,
                    post.id,
                    f"Saved blog post '{post.title}' ({post.status})",
                )
                self.db.expire(post, ["tags"])
        except IntegrityError as e:
            if _is_slug_conflict(e):
                raise DuplicateSlugError(slug) from e
            raise

        logger.info(f"Blog post {post.id} saved as {post.status}")
        return post

    def publish(
        self, post_id: int, publish: bool = True, actor: ActorContext = SYSTEM_ACTOR
    ) -> BlogPost:
        """
        Publish a post, or move it back to draft.

        Publishing a post without a cover generates a placeholder; the alt
        text is only filled in when blank.
        """
        with transaction(self.db):
            post = self._get(post_id)
            now = self._clock()

            if publish and not post.cover_image:
                cover_image, cover_alt = generate_placeholder_cover(
                    post.title, post.excerpt or ""
                )
                post.cover_image = cover_image
                if not (post.cover_image_alt or "").strip():
                    post.cover_image_alt = cover_alt

            self._apply_status(post, "published" if publish else "draft", now)
            post.updated_at = now

            log_action(
                self.db,
                actor.actor_id,
                "blog.publish" if publish else "blog.unpublish",
                ENTITY_TYPE,
                post.id,
                f"{'Published' if publish else 'Unpublished'} blog post '{post.title}'",
            )

        logger.info(f"Blog post {post_id} {'published' if publish else 'moved to draft'}")
        return self.get_by_id(post_id)

    def archive(self, post_id: int, actor: ActorContext = SYSTEM_ACTOR) -> BlogPost:
        """Archive a post. Clears published_at unconditionally."""
        with transaction(self.db):
            count = (
                self.db.query(BlogPost)
                .filter(BlogPost.id == post_id)
                .update(
                    {
                        "status": "archived",
                        "published_at": None,
                        "updated_at": self._clock(),
                    },
                    synchronize_session="fetch",
                )
            )
            if count == 0:
                raise NotFoundError(post_id)

            log_action(
                self.db,
                actor.actor_id,
                "blog.archive",
                ENTITY_TYPE,
                post_id,
                f"Archived blog post {post_id}",
            )

        logger.info(f"Blog post {post_id} archived")
        return self.get_by_id(post_id)

    def seed_default(self) -> int:
        """
        Insert the sample posts when the blog is empty.

        Returns:
            Number of posts inserted
        """
        if self.db.query(BlogPost).count() > 0:
            return 0

        with transaction(self.db):
            for sample in SEED_POSTS:
                self.save(sample, SYSTEM_ACTOR)

        logger.info(f"Seeded {len(SEED_POSTS)} blog posts")
        return len(SEED_POSTS)

    # --- reads ---

    def _get(self, post_id: int) -> BlogPost:
        post = self.db.query(BlogPost).filter(BlogPost.id == post_id).first()
        if post is None:
            raise NotFoundError(post_id)
        return post

    def _published(self) -> Query:
        return self.db.query(BlogPost).filter(BlogPost.status == "published")

    @staticmethod
    def _newest_first(query: Query) -> Query:
        return query.order_by(BlogPost.published_at.desc(), BlogPost.id.desc())

    def get_by_id(self, post_id: int) -> BlogPost:
        """Fetch a post of any status. Raises NotFoundError."""
        return self._get(post_id)

    def get_by_slug(self, slug: str, include_drafts: bool = False) -> Optional[BlogPost]:
        """Published post by slug; any status when include_drafts is set."""
        slug = (slug or "").strip()
        if not slug:
            return None

        query = self.db.query(BlogPost) if include_drafts else self._published()
        return query.filter(BlogPost.slug == slug).first()

    def list_published(
        self,
        search: str = "",
        tag: str = "",
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[int, List[BlogPost]]:
        """
        Page of published posts, newest first.

        Args:
            search: Case-insensitive substring of title, excerpt or body text
            tag: Tag name or slug
            limit: Page size
            offset: Rows to skip

        Returns:
            Tuple of (total matching, page)
        """
        query = self._published()

        search = (search or "").strip()
        if search:
            needle = search.lower()
            query = query.filter(
                or_(
                    func.lower(BlogPost.title).contains(needle, autoescape=True),
                    func.lower(func.coalesce(BlogPost.excerpt, "")).contains(
                        needle, autoescape=True
                    ),
                    func.lower(BlogPost.body_text).contains(needle, autoescape=True),
                )
            )

        tag = (tag or "").strip()
        if tag:
            tag_match = func.lower(BlogTag.name) == tag.lower()
            if has_slug_content(tag):
                tag_match = or_(tag_match, BlogTag.slug == slugify(tag))
            query = query.filter(BlogPost.tags.any(tag_match))

        total = query.count()
        posts = self._newest_first(query).offset(offset).limit(limit).all()

        return total, posts

    def list_all(self) -> List[BlogPost]:
        """Every post, most recently updated first (admin view)."""
        return (
            self.db.query(BlogPost)
            .order_by(BlogPost.updated_at.desc(), BlogPost.id.desc())
            .all()
        )

    def adjacent(self, post_id: int) -> Tuple[Optional[BlogPost], Optional[BlogPost]]:
        """
        Published neighbours of a post by publication time.

        Returns:
            Tuple of (previous = next older, next = next newer)
        """
        post = self._get(post_id)
        if post.status != "published" or post.published_at is None:
            return None, None

        previous = (
            self._newest_first(
                self._published().filter(
                    or_(
                        BlogPost.published_at < post.published_at,
                        and_(
                            BlogPost.published_at == post.published_at,
                            BlogPost.id < post.id,
                        ),
                    )
                )
            )
            .first()
        )

        following = (
            self._published()
            .filter(
                or_(
                    BlogPost.published_at > post.published_at,
                    and_(
                        BlogPost.published_at == post.published_at,
                        BlogPost.id > post.id,
                    ),
                )
            )
            .order_by(BlogPost.published_at.asc(), BlogPost.id.asc())
            .first()
        )

        return previous, following

    def related(self, post_id: int, limit: int = 3) -> List[BlogPost]:
        """
        Published posts sharing a tag with this one, newest first.
        Falls back to the latest other posts when nothing shares a tag.
        """
        post = self._get(post_id)
        others = self._published().filter(BlogPost.id != post.id)

        tag_ids = [t.id for t in post.tags]
        if tag_ids:
            related = (
                self._newest_first(others.filter(BlogPost.tags.any(BlogTag.id.in_(tag_ids))))
                .limit(limit)
                .all()
            )
            if related:
                return related

        return self._newest_first(others).limit(limit).all()

    def tag_summary(self) -> List[dict]:
        """Tags used by published posts with their post counts."""
        post_count = func.count(BlogPost.id).label("post_count")
        rows = (
            self.db.query(BlogTag, post_count)
            .join(BlogPostTag, BlogPostTag.tag_id == BlogTag.id)
            .join(BlogPost, BlogPost.id == BlogPostTag.post_id)
            .filter(BlogPost.status == "published")
            .group_by(BlogTag.id)
            .order_by(post_count.desc(), func.lower(BlogTag.name))
            .all()
        )
        return [
            {"name": tag.name, "slug": tag.slug, "post_count": count}
            for tag, count in rows
        ]

    def latest_update(self) -> Optional[datetime]:
        """Most recent modification among published posts."""
        return (
            self.db.query(func.max(BlogPost.updated_at))
            .filter(BlogPost.status == "published")
            .scalar()
        )
