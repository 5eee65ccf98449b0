"""
Admin blog routes.
Create, edit, publish and archive posts, plus AI draft generation.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from siteadmin.config import settings
from siteadmin.context import ActorContext
from siteadmin.dependencies import get_ai_settings_store, get_current_user, get_post_repository
from siteadmin.rate_limiter import limiter
from siteadmin.schemas import DraftRequest, PostDetail, PostInput, PostSummary, PublishRequest
from siteadmin.services.ai_settings import AISettingsStore
from siteadmin.services.blog import (
    BlogError,
    DuplicateSlugError,
    NotFoundError,
    PostRepository,
    ValidationError,
)
from siteadmin.services.drafts import generate_blog_draft
from siteadmin.services.gemini import AIDisabledError, GeminiError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/blog", tags=["admin-blog"])


def blog_http_error(e: BlogError) -> HTTPException:
    """Map a blog error to its HTTP status."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, DuplicateSlugError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/posts", response_model=List[PostSummary])
def list_all_posts(
    repo: PostRepository = Depends(get_post_repository),
    actor: ActorContext = Depends(get_current_user),
):
    """Every post regardless of status, most recently updated first."""
    return [PostSummary.model_validate(p) for p in repo.list_all()]


@router.get("/posts/{post_id}", response_model=PostDetail)
def get_post(
    post_id: int,
    repo: PostRepository = Depends(get_post_repository),
    actor: ActorContext = Depends(get_current_user),
):
    try:
        return PostDetail.model_validate(repo.get_by_id(post_id))
    except BlogError as e:
        raise blog_http_error(e)


@router.post("/posts", response_model=PostDetail)
def save_post(
    data: PostInput,
    repo: PostRepository = Depends(get_post_repository),
    actor: ActorContext = Depends(get_current_user),
):
    """
    Create a post, or update it when `id` is set.
    """
    try:
        post = repo.save(data, actor)
    except BlogError as e:
        raise blog_http_error(e)

    return PostDetail.model_validate(post)


@router.post("/posts/{post_id}/publish", response_model=PostDetail)
def publish_post(
    post_id: int,
    request: PublishRequest,
    repo: PostRepository = Depends(get_post_repository),
    actor: ActorContext = Depends(get_current_user),
):
    """Publish a post, or move it back to draft with `publish: false`."""
    try:
        post = repo.publish(post_id, request.publish, actor)
    except BlogError as e:
        raise blog_http_error(e)

    return PostDetail.model_validate(post)


@router.post("/posts/{post_id}/archive", response_model=PostDetail)
def archive_post(
    post_id: int,
    repo: PostRepository = Depends(get_post_repository),
    actor: ActorContext = Depends(get_current_user),
):
    try:
        post = repo.archive(post_id, actor)
    except BlogError as e:
        raise blog_http_error(e)

    return PostDetail.model_validate(post)


@router.post("/drafts", response_model=PostDetail)
@limiter.limit(settings.ai_rate_limit)
async def generate_draft(
    request: Request,
    body: DraftRequest,
    repo: PostRepository = Depends(get_post_repository),
    store: AISettingsStore = Depends(get_ai_settings_store),
    actor: ActorContext = Depends(get_current_user),
):
    """
    Generate a draft with Gemini and save it as a draft post.
    """
    try:
        draft = await generate_blog_draft(store.load(), body.prompt, author_name="Dakshayani AI")
    except ValidationError as e:
        raise blog_http_error(e)
    except AIDisabledError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except GeminiError as e:
        logger.error(f"Draft generation failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    try:
        post = repo.save(draft.as_post_input(status="draft"), actor)
    except BlogError as e:
        raise blog_http_error(e)

    return PostDetail.model_validate(post)
