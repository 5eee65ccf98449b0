"""Tests for AI blog draft generation."""

import asyncio
import json

import httpx
import pytest

from siteadmin.services.ai_settings import AISettings
from siteadmin.services.blog import ValidationError
from siteadmin.services.drafts import (
    MAX_DRAFT_TAGS,
    build_draft_prompt,
    generate_blog_draft,
    parse_draft_response,
)
from siteadmin.services.gemini import PermanentError

READY = AISettings(enabled=True, api_key="test-key-1234")

DRAFT_JSON = json.dumps({
    "title": "Solar for Small Shops",
    "excerpt": "Why daytime businesses benefit most.",
    "body_html": "<p>Shops use power while the sun is up.</p>",
    "tags": ["Solar", "Business"],
})


class TestBuildDraftPrompt:
    def test_includes_request(self):
        prompt = build_draft_prompt("net metering for apartments")
        assert "net metering for apartments" in prompt
        assert "JSON" in prompt


class TestParseDraftResponse:
    def test_plain_json(self):
        draft = parse_draft_response(DRAFT_JSON, author_name="AI")

        assert draft.title == "Solar for Small Shops"
        assert draft.body_html.startswith("<p>")
        assert draft.tags == ["Solar", "Business"]
        assert draft.author_name == "AI"

    def test_code_fenced_json(self):
        draft = parse_draft_response(f"```json\n{DRAFT_JSON}\n```")
        assert draft.excerpt == "Why daytime businesses benefit most."

    def test_json_with_surrounding_text(self):
        draft = parse_draft_response(f"Here is your draft:\n{DRAFT_JSON}\nEnjoy!")
        assert draft.title == "Solar for Small Shops"

    def test_tags_as_string_are_split_and_capped(self):
        data = json.loads(DRAFT_JSON)
        data["tags"] = ", ".join(f"Tag {i}" for i in range(10))

        draft = parse_draft_response(json.dumps(data))

        assert len(draft.tags) == MAX_DRAFT_TAGS
        assert draft.tags[0] == "Tag 0"

    def test_missing_body_rejected(self):
        with pytest.raises(PermanentError):
            parse_draft_response(json.dumps({"title": "Only a title"}))

    def test_not_json_rejected(self):
        with pytest.raises(PermanentError):
            parse_draft_response("I cannot help with that.")

    def test_json_array_rejected(self):
        with pytest.raises(PermanentError):
            parse_draft_response('[{"title": "x"}]')

    def test_as_post_input(self):
        post_input = parse_draft_response(DRAFT_JSON).as_post_input()
        assert post_input["status"] == "draft"
        assert post_input["tags"] == ["Solar", "Business"]


class TestGenerateBlogDraft:
    def _run(self, prompt: str, handler):
        async def main():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await generate_blog_draft(READY, prompt, author_name="AI", client=client)

        return asyncio.run(main())

    def test_empty_prompt_rejected_before_calling_model(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        with pytest.raises(ValidationError):
            self._run("   \n ", handler)
        assert calls == []

    def test_generates_and_saves_as_draft(self, repo):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"candidates": [{"content": {"parts": [{"text": DRAFT_JSON}]}}]},
            )

        draft = self._run("solar   for\nshops", handler)
        post = repo.save(draft.as_post_input())

        prompt_text = seen["body"]["contents"][0]["parts"][0]["text"]
        assert "solar for shops" in prompt_text
        assert post.status == "draft"
        assert post.slug == "solar-for-small-shops"
        assert post.author_name == "AI"
        assert [t.name for t in post.tags] == ["Business", "Solar"]
