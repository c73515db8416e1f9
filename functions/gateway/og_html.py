"""
Rendering of Open Graph / Twitter Card preview documents.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DESCRIPTION_LIMIT = 200

_ESCAPES = (
    ("&", "&amp;"),
    ('"', "&quot;"),
    ("<", "&lt;"),
    (">", "&gt;"),
)


def escape_html(text: str) -> str:
    for raw, entity in _ESCAPES:
        text = text.replace(raw, entity)
    return text


def truncate_description(text: str, limit: int = DESCRIPTION_LIMIT) -> str:
    return text[:limit]


@dataclass(frozen=True)
class OgPage:
    """Metadata for one preview document."""

    title: str
    description: str
    url: str
    image: Optional[str] = None
    og_type: str = "website"


def render_og_html(page: OgPage, *, site_name: str, default_image: str) -> str:
    """
    Render a standalone HTML document carrying the preview metadata.

    The document also redirects to ``page.url`` so clients that ignore the
    meta tags still land on the live page.
    """
    title = escape_html(page.title)
    description = escape_html(page.description)
    image = escape_html(page.image or default_image)
    url = escape_html(page.url)
    og_type = escape_html(page.og_type or "website")
    site = escape_html(site_name)
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
<meta property="og:title" content="{title}" />
<meta property="og:description" content="{description}" />
<meta property="og:image" content="{image}" />
<meta property="og:url" content="{url}" />
<meta property="og:type" content="{og_type}" />
<meta property="og:site_name" content="{site}" />
<meta name="twitter:card" content="summary_large_image" />
<meta name="twitter:title" content="{title}" />
<meta name="twitter:description" content="{description}" />
<meta name="twitter:image" content="{image}" />
<meta http-equiv="refresh" content="0;url={url}" />
</head>
<body>
<p>Redirecting to <a href="{url}">{title}</a>...</p>
</body>
</html>"""
