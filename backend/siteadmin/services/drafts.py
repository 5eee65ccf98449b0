"""
AI-assisted blog drafts.
Asks Gemini for a structured draft that is then handed to PostRepository.save().
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from siteadmin.config import prompts
from siteadmin.services.ai_settings import AISettings
from siteadmin.services.blog import ValidationError
from siteadmin.services.gemini import PermanentError, generate_text
from siteadmin.services.tags import split_tag_input

logger = logging.getLogger(__name__)

DEFAULT_DRAFT_PROMPT = (
    "Write a blog post for a clean-energy business about: {prompt}\n"
    "Reply with a JSON object with the keys title, excerpt, body_html, tags."
)

# Tags kept from a generated draft
MAX_DRAFT_TAGS = 6


@dataclass
class GeneratedDraft:
    """Draft produced by the model."""
    title: str
    body_html: str
    excerpt: str = ""
    author_name: str = ""
    tags: List[str] = field(default_factory=list)

    def as_post_input(self, status: str = "draft") -> dict:
        return {
            "title": self.title,
            "body_html": self.body_html,
            "excerpt": self.excerpt,
            "author_name": self.author_name,
            "tags": self.tags,
            "status": status,
        }


def build_draft_prompt(prompt: str) -> str:
    template = prompts.get("blog_draft_prompt", DEFAULT_DRAFT_PROMPT)
    return template.format(prompt=prompt)


def _parse_json_object(content: str) -> dict:
    """
    Parse the model's JSON reply.
    Handles markdown code blocks and text around the object.
    """
    code_block_match = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", content)
    if code_block_match:
        content = code_block_match.group(1)

    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass

    json_start = content.find("{")
    json_end = content.rfind("}") + 1
    if json_start < 0 or json_end <= json_start:
        raise ValueError("No JSON object in response")

    return json.loads(content[json_start:json_end])


def parse_draft_response(content: str, author_name: str = "") -> GeneratedDraft:
    """
    Turn the model reply into a GeneratedDraft.

    Raises:
        PermanentError: Reply is not a JSON object with title and body_html
    """
    try:
        data = _parse_json_object(content)
    except ValueError as e:
        logger.error(f"Unparseable draft response: {content[:300]}")
        raise PermanentError(f"Invalid draft response: {e}")

    if not isinstance(data, dict):
        raise PermanentError("Invalid draft response: expected a JSON object")

    title = str(data.get("title") or "").strip()
    body_html = str(data.get("body_html") or data.get("body") or "").strip()
    if not title or not body_html:
        raise PermanentError("Invalid draft response: title and body_html are required")

    return GeneratedDraft(
        title=title,
        body_html=body_html,
        excerpt=str(data.get("excerpt") or "").strip(),
        author_name=author_name,
        tags=split_tag_input(data.get("tags") or [])[:MAX_DRAFT_TAGS],
    )


async def generate_blog_draft(
    ai_settings: AISettings,
    prompt: str,
    author_name: str = "",
    client: Optional[httpx.AsyncClient] = None,
) -> GeneratedDraft:
    """
    Generate a draft from a free-text prompt.

    Must complete before the caller opens the save transaction.

    Raises:
        ValidationError: Empty prompt
        GeminiError: Provider failure (see services.gemini)
    """
    prompt = re.sub(r"\s+", " ", prompt or "").strip()
    if not prompt:
        raise ValidationError("Enter a prompt for the blog draft.")

    reply = await generate_text(ai_settings, [build_draft_prompt(prompt)], client=client)
    draft = parse_draft_response(reply, author_name=author_name)
    logger.info(f"Generated blog draft '{draft.title}'")
    return draft
