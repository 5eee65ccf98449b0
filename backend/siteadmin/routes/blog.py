"""
Public blog routes.
Published posts only; no authentication.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from siteadmin.config import settings
from siteadmin.dependencies import get_post_repository
from siteadmin.schemas import (
    AdjacentPosts,
    PostDetail,
    PostListResponse,
    PostSummary,
    PublicPostResponse,
    TagSummary,
)
from siteadmin.services.blog import PostRepository

router = APIRouter(prefix="/blog", tags=["blog"])


@router.get("/posts", response_model=PostListResponse)
def list_posts(
    search: str = Query("", description="Search in title, excerpt and body"),
    tag: str = Query("", description="Tag name or slug"),
    limit: int = Query(settings.blog_page_size, ge=1, le=50, description="Page size"),
    offset: int = Query(0, ge=0, description="Offset for pagination"),
    repo: PostRepository = Depends(get_post_repository),
):
    """
    List published posts, newest first.
    """
    total, posts = repo.list_published(search=search, tag=tag, limit=limit, offset=offset)

    return PostListResponse(
        posts=[PostSummary.model_validate(p) for p in posts],
        total=total,
        has_more=offset + len(posts) < total,
    )


@router.get("/tags", response_model=List[TagSummary])
def list_tags(repo: PostRepository = Depends(get_post_repository)):
    """Tags of published posts with their post counts."""
    return [TagSummary(**row) for row in repo.tag_summary()]


@router.get("/posts/{slug}", response_model=PublicPostResponse)
def get_post(slug: str, repo: PostRepository = Depends(get_post_repository)):
    """
    Published post by slug, with its neighbours and related posts.
    """
    post = repo.get_by_slug(slug)
    if post is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        )

    previous, following = repo.adjacent(post.id)
    related = repo.related(post.id, limit=settings.blog_related_limit)

    return PublicPostResponse(
        post=PostDetail.model_validate(post),
        adjacent=AdjacentPosts(
            previous=PostSummary.model_validate(previous) if previous else None,
            next=PostSummary.model_validate(following) if following else None,
        ),
        related=[PostSummary.model_validate(p) for p in related],
    )
