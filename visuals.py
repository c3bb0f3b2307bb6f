# ABOUTME: Giphy and Unsplash search clients returning visual assets for scene queries
# ABOUTME: One request per query; rate limits and non-2xx responses raise to the caller
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

import httpx

logger = logging.getLogger("reading-companion.visuals")

GIPHY_SEARCH_URL = "https://api.giphy.com/v1/gifs/search"
UNSPLASH_SEARCH_URL = "https://api.unsplash.com/search/photos"
REQUEST_TIMEOUT = 10.0


class VisualSearchError(RuntimeError):
    pass


@dataclass(frozen=True)
class VisualAsset:
    url: str
    type: str    # "gif" | "image"
    source: str  # "giphy" | "unsplash"
    alt: str     # Accessibility description

    def to_dict(self) -> dict:
        return asdict(self)


def _check(resp: httpx.Response, service: str):
    if resp.status_code == 429:
        raise VisualSearchError(f"{service} API rate limit exceeded")
    if resp.is_error:
        raise VisualSearchError(f"{service} API error: {resp.status_code} {resp.reason_phrase}")


async def search_gifs(
    query: str,
    api_key: str,
    limit: int = 2,
    client: httpx.AsyncClient | None = None,
) -> list[VisualAsset]:
    """Search Giphy (rating g)."""
    if not api_key:
        raise VisualSearchError("Giphy API key is required")

    params = {"api_key": api_key, "q": query, "limit": limit, "rating": "g"}
    if client is None:
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as own:
            resp = await own.get(GIPHY_SEARCH_URL, params=params)
    else:
        resp = await client.get(GIPHY_SEARCH_URL, params=params)
    _check(resp, "Giphy")

    assets = []
    for gif in resp.json().get("data", [])[:limit]:
        images = gif.get("images", {})
        url = images.get("fixed_height", {}).get("url") or images.get("original", {}).get("url")
        if url:
            assets.append(VisualAsset(url=url, type="gif", source="giphy", alt=gif.get("title") or "GIF"))
    logger.debug("Giphy %r: %d results", query, len(assets))
    return assets


async def search_images(
    query: str,
    access_key: str,
    limit: int = 1,
    client: httpx.AsyncClient | None = None,
) -> list[VisualAsset]:
    """Search Unsplash photos."""
    if not access_key:
        raise VisualSearchError("Unsplash access key is required")

    params = {"query": query, "per_page": limit, "client_id": access_key}
    if client is None:
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as own:
            resp = await own.get(UNSPLASH_SEARCH_URL, params=params)
    else:
        resp = await client.get(UNSPLASH_SEARCH_URL, params=params)
    _check(resp, "Unsplash")

    assets = []
    for photo in resp.json().get("results", [])[:limit]:
        urls = photo.get("urls", {})
        url = urls.get("regular") or urls.get("small")
        if url:
            alt = photo.get("alt_description") or photo.get("description") or "Image"
            assets.append(VisualAsset(url=url, type="image", source="unsplash", alt=alt))
    logger.debug("Unsplash %r: %d results", query, len(assets))
    return assets
