"""
HTML sanitization for blog post bodies.
Keeps a small whitelist of tags, unwraps everything else and neutralizes links.
"""

import html
import logging
import re

import bleach
from bleach import html5lib_shim

logger = logging.getLogger(__name__)

# Allowed tags
ALLOWED_TAGS = [
    "p",
    "br",
    "h2",
    "h3",
    "h4",
    "ul",
    "ol",
    "li",
    "blockquote",
    "pre",
    "code",
    "a",
    "strong",
    "em",
    "figure",
    "figcaption",
]

# Allowed attributes per tag
ALLOWED_ATTRIBUTES = {
    "a": ["href", "title"],
    "figure": ["class"],
    "code": ["class"],
    "pre": ["class"],
}

# Schemes an href may use
SAFE_HREF = re.compile(r"^(https?:|mailto:)", re.IGNORECASE)

# Elements dropped together with their content
_SCRIPT_STYLE = re.compile(
    r"<(script|style)\b[^>]*>.*?</\1\s*>", re.DOTALL | re.IGNORECASE
)

# Block boundaries that must not glue words together in plain text
_BLOCK_END = re.compile(
    r"(</(?:p|li|h[1-6]|blockquote|pre|figcaption|div)\s*>|<br\s*/?>)", re.IGNORECASE
)

_TAG = re.compile(r"<[^>]*>")

# An unclosed <script>/<style> swallows the rest of the input
_UNCLOSED_SCRIPT_STYLE = re.compile(r"<(?:script|style)\b.*\Z", re.DOTALL | re.IGNORECASE)


def _drop_script_style(raw: str) -> str:
    return _UNCLOSED_SCRIPT_STYLE.sub("", _SCRIPT_STYLE.sub("", raw))


def _is_safe_href(url: str) -> bool:
    """Only http:, https: and mailto: links survive."""
    if not url:
        return False
    return bool(SAFE_HREF.match(url.strip()))


def _filter_attributes(tag: str, name: str, value: str) -> bool:
    """
    Custom filter for attributes.
    Only whitelisted attributes for the tag, and safe hrefs.
    """
    if name not in ALLOWED_ATTRIBUTES.get(tag, []):
        return False

    if name == "href":
        return _is_safe_href(value)

    return True


class NoopenerFilter(html5lib_shim.Filter):
    """Force rel="noopener" on every anchor that kept its href."""

    def __iter__(self):
        for token in super().__iter__():
            if token["type"] == "StartTag" and token["name"] == "a":
                attrs = token.get("data") or {}
                if (None, "href") in attrs:
                    attrs[(None, "rel")] = "noopener"
                    token["data"] = attrs
            yield token


def _build_cleaner() -> bleach.Cleaner:
    return bleach.Cleaner(
        tags=ALLOWED_TAGS,
        attributes=_filter_attributes,
        strip=True,
        strip_comments=True,
        filters=[NoopenerFilter],
    )


def plain_text_fallback(raw: str) -> str:
    """
    Safe rendition used when the parser cannot handle the input.
    Strips tags, decodes entities, re-escapes and turns newlines into <br>.
    """
    text = _drop_script_style(raw or "")
    text = html.unescape(_TAG.sub("", text))
    lines = html.escape(text.strip(), quote=True).splitlines()
    return "<br>\n".join(lines)


def sanitize_html(raw: str) -> str:
    """
    Sanitize untrusted rich text.

    Rules:
    - Remove <script>/<style> blocks and comments entirely
    - Unwrap disallowed tags (children stay in place)
    - Keep only whitelisted attributes per tag
    - Drop hrefs that are not http(s): or mailto:
    - Add rel="noopener" to links that keep an href

    Args:
        raw: HTML fragment

    Returns:
        Sanitized HTML (empty string if nothing is left)
    """
    if not raw:
        return ""

    stripped = _drop_script_style(raw)

    try:
        sanitized = _build_cleaner().clean(stripped)
    except Exception as e:
        logger.warning(f"HTML parsing failed, falling back to plain text: {e}")
        return plain_text_fallback(raw)

    return sanitized.strip()


def extract_plain_text(raw: str) -> str:
    """
    Extract plain text from HTML (removes all tags, decodes entities).

    Args:
        raw: HTML to extract text from

    Returns:
        Whitespace-collapsed text, possibly empty
    """
    if not raw:
        return ""

    text = _drop_script_style(raw)
    text = _BLOCK_END.sub(r"\1 ", text)

    # Remove all tags
    text = bleach.clean(text, tags=[], strip=True)
    text = html.unescape(text)

    return re.sub(r"\s+", " ", text).strip()
