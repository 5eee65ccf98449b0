"""
Tag management for blog posts.
Reconciles a post's tags against the tag table and rewrites its links.
"""

import logging
import re
from typing import Iterable, List, Tuple, Union

from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from siteadmin.database import transaction
from siteadmin.models import BlogPostTag, BlogTag
from siteadmin.services.slugs import has_slug_content, normalize_tag, slugify

logger = logging.getLogger(__name__)

_TAG_SEPARATORS = re.compile(r"[,\n]+")


def split_tag_input(raw: Union[str, Iterable[str], None]) -> List[str]:
    """Accept a list of tags or a comma/newline separated string."""
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = _TAG_SEPARATORS.split(raw)
    return [normalize_tag(str(t)) for t in raw if normalize_tag(str(t))]


def resolve_tags(tag_names: Iterable[str]) -> List[Tuple[str, str]]:
    """
    Normalize names and dedupe them by slug, keeping the first spelling seen.

    Names without any alphanumeric character are dropped, since they would
    get a new random slug on every save.

    Returns:
        List of (display_name, slug) in input order
    """
    resolved = []
    seen = set()
    for raw in tag_names:
        name = normalize_tag(raw)
        if not name or not has_slug_content(name):
            continue
        slug = slugify(name)
        if slug in seen:
            continue
        seen.add(slug)
        resolved.append((name, slug))
    return resolved


def sync_tags(db: Session, post_id: int, tag_names: Iterable[str]) -> List[str]:
    """
    Replace the tags of a post.

    Missing tags are created; all existing links of the post are deleted and
    fresh ones inserted. Joins the caller's transaction if one is open,
    otherwise commits on its own and rolls back on failure.

    Args:
        db: Database session
        post_id: The post whose tags are replaced
        tag_names: Raw tag names (any case/spacing, duplicates allowed)

    Returns:
        Normalized, deduplicated display names
    """
    resolved = resolve_tags(tag_names)

    with transaction(db):
        tag_ids = []
        for name, slug in resolved:
            db.execute(
                sqlite_insert(BlogTag)
                .values(name=name, slug=slug)
                .on_conflict_do_nothing(index_elements=["slug"])
            )
            tag_id = db.query(BlogTag.id).filter(BlogTag.slug == slug).scalar()
            tag_ids.append(tag_id)

        # Links are replaced wholesale, never diffed
        db.query(BlogPostTag).filter(BlogPostTag.post_id == post_id).delete(
            synchronize_session=False
        )

        if tag_ids:
            db.execute(
                sqlite_insert(BlogPostTag)
                .values([{"post_id": post_id, "tag_id": tag_id} for tag_id in tag_ids])
                .on_conflict_do_nothing()
            )

    logger.debug(f"Post {post_id} tagged with {len(resolved)} tags")
    return [name for name, _ in resolved]
