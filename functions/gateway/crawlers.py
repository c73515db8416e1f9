"""
User-agent classification for link-preview crawlers.
"""

from __future__ import annotations

import re
from typing import Optional

CRAWLER_TOKENS = (
    "facebookexternalhit",
    "Facebot",
    "Twitterbot",
    "LinkedInBot",
    "Slackbot",
    "TelegramBot",
    "WhatsApp",
    "Discordbot",
    "Googlebot",
    "bingbot",
    "Applebot",
    "iMessageBot",
)

CRAWLER_PATTERN = re.compile(
    "|".join(re.escape(token) for token in CRAWLER_TOKENS), re.IGNORECASE
)


def is_crawler(user_agent: Optional[str]) -> bool:
    """Return True when the user agent belongs to a known preview crawler."""
    if not user_agent:
        return False
    return CRAWLER_PATTERN.search(user_agent) is not None
