"""
Slug and tag normalization.
Turns arbitrary text into URL-safe identifiers and tidy tag names.
"""
import re
import secrets
import unicodedata

# Length in hex characters of the fallback slug
FALLBACK_SLUG_LENGTH = 12

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")


def random_slug() -> str:
    """Random hex slug used when the text carries nothing to slugify."""
    return secrets.token_hex(FALLBACK_SLUG_LENGTH // 2)


def _ascii_fold(text: str) -> str:
    """Transliterate to ASCII by dropping combining marks (é -> e)."""
    decomposed = unicodedata.normalize("NFKD", text)
    return decomposed.encode("ascii", "ignore").decode("ascii")


def slugify(text: str) -> str:
    """
    Convert text to a URL-safe slug.

    - Transliterates to ASCII and lowercases
    - Collapses runs of non-alphanumerics into a single hyphen
    - Strips leading/trailing hyphens

    Blank or punctuation-only input yields a random 12-hex slug.

    Args:
        text: Text to convert (usually a title)

    Returns:
        Slug containing only [a-z0-9-]
    """
    text = (text or "").strip()
    if not text:
        return random_slug()

    text = _ascii_fold(text).lower()
    text = _NON_ALNUM.sub("-", text).strip("-")

    return text or random_slug()


def has_slug_content(text: str) -> bool:
    """True if slugify() would be deterministic for this text."""
    return bool(_NON_ALNUM.sub("", _ascii_fold(text or "").lower()))


def normalize_tag(text: str) -> str:
    """Trim and collapse inner whitespace. Case is preserved."""
    return _WHITESPACE.sub(" ", (text or "").strip())
