"""
Render the crawler preview for a site path against the configured store.

Example:
    python scripts/preview_url.py "/post?id=abc123"
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from urllib.parse import parse_qsl, urlsplit

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from gateway.config import get_settings
from gateway.dependencies import get_document_store
from gateway.og_html import render_og_html
from gateway.previews import PreviewBuilder

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Render a crawler preview")
    parser.add_argument(
        "target",
        type=str,
        help="Site path with query string, or a full URL on the site",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log store lookups",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    settings = get_settings()
    builder = PreviewBuilder(get_document_store(), settings)
    parts = urlsplit(args.target)
    page = builder.build(parts.path or "/", dict(parse_qsl(parts.query)))
    if page is None:
        logger.info("No preview for %s; request would pass through", args.target)
        return 1

    print(
        render_og_html(
            page,
            site_name=settings.site_name,
            default_image=settings.default_image_url,
        )
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
