"""
Cover images for blog posts.
Validates user-supplied cover URIs and renders placeholder SVG covers.
"""
import base64
import html
import re
from typing import Tuple

DEFAULT_TITLE = "Dakshayani Blog"
DEFAULT_PROMPT = "Clean energy insights"

# Characters of title/prompt rendered on the placeholder
MAX_COVER_TEXT = 64

# http(s)://..., root-relative /... (not protocol-relative //...), data:image/...
_ACCEPTED_COVER = re.compile(r"^(https?://|/(?!/)|data:image/)", re.IGNORECASE)

_SVG_TEMPLATE = """<svg xmlns='http://www.w3.org/2000/svg' viewBox='0 0 1200 630' role='img'>
  <defs>
    <linearGradient id='g' x1='0%' y1='0%' x2='100%' y2='100%'>
      <stop offset='0%' stop-color='#1d4ed8'/>
      <stop offset='100%' stop-color='#0ea5e9'/>
    </linearGradient>
  </defs>
  <rect fill='url(#g)' width='1200' height='630'/>
  <g fill='#ffffff'>
    <text x='50%' y='45%' font-size='64' font-family='Inter, Arial, sans-serif' text-anchor='middle' font-weight='600'>{primary}</text>
    <text x='50%' y='70%' font-size='32' font-family='Inter, Arial, sans-serif' text-anchor='middle' opacity='0.85'>Dakshayani Insights · {secondary}</text>
  </g>
</svg>"""


def is_acceptable_cover(uri: str) -> bool:
    """True for http(s) URLs, root-relative paths and inline image data URIs."""
    return bool(uri) and bool(_ACCEPTED_COVER.match(uri.strip()))


def generate_placeholder_cover(title: str, prompt: str = "") -> Tuple[str, str]:
    """
    Render a placeholder cover encoding the title and a secondary line.

    Deterministic: the same inputs always produce the same data URI.

    Returns:
        Tuple of (data_uri, alt_text)
    """
    base_title = title.strip() if title and title.strip() else DEFAULT_TITLE
    prompt_text = prompt.strip() if prompt and prompt.strip() else DEFAULT_PROMPT

    svg = _SVG_TEMPLATE.format(
        primary=html.escape(base_title[:MAX_COVER_TEXT], quote=True),
        secondary=html.escape(prompt_text[:MAX_COVER_TEXT], quote=True),
    )

    data_uri = "data:image/svg+xml;base64," + base64.b64encode(svg.encode("utf-8")).decode("ascii")
    alt = f"Illustrative cover for {base_title}"

    return data_uri, alt
