from __future__ import annotations

import re
from urllib.parse import urlencode, urljoin

DEFAULT_BASE_URL = "https://books.google.se"

# Pivot used for the first neighbour query (front cover / first page).
SEED_PAGE_ID = "PP1"

LARGE_IMAGE_WIDTH = 1280

_INVALID_FILENAME_CHARS = re.compile(r"[<>:\"/\\|?*\x00-\x1F]")


def landing_url(base_url: str, document_id: str) -> str:
    query = urlencode({"id": document_id, "printsec": "frontcover", "hl": "en"})
    return urljoin(base_url, f"/books?{query}")


def neighbours_url(base_url: str, document_id: str, pivot: str) -> str:
    query = urlencode(
        {
            "id": document_id,
            "lpg": SEED_PAGE_ID,
            "hl": "sv",
            "pg": pivot,
            "jscmd": "click3",
        }
    )
    return urljoin(base_url, f"/books?{query}")


def large_image_url(url: str, *, width: int = LARGE_IMAGE_WIDTH) -> str:
    """Ask for the wide rendition of a page image.

    Page URLs from the viewer always carry a query string already.
    """

    sep = "&" if "?" in url else "?"
    return f"{url}{sep}w={width}"


def safe_filename_component(text: str, *, fallback: str = "book") -> str:
    cleaned = _INVALID_FILENAME_CHARS.sub("-", (text or "").strip())
    cleaned = cleaned.strip(". ")
    cleaned = re.sub(r"\s+", " ", cleaned)
    if not cleaned:
        cleaned = fallback
    return cleaned[:150]
