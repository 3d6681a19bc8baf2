import re
from typing import List, Optional

import httpx

from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)

USER_AGENT = "DesiA11y-Bot/1.0"

_LOC_PATTERN = re.compile(r"<loc>\s*(.*?)\s*</loc>", re.IGNORECASE | re.DOTALL)


def sitemap_url_for(site_url: str) -> str:
    return f"{site_url.rstrip('/')}/sitemap.xml"


def extract_locations(sitemap_xml: str, max_urls: int) -> List[str]:
    urls = []
    for match in _LOC_PATTERN.finditer(sitemap_xml):
        loc = match.group(1).strip()
        if loc.startswith("http"):
            urls.append(loc)
        if len(urls) >= max_urls:
            break
    return urls


async def fetch_page_urls(site_url: str, max_urls: Optional[int] = None) -> List[str]:
    """
    Page URLs listed in the site's sitemap.xml, capped at ``max_urls``.

    Falls back to ``[site_url]`` when the sitemap cannot be fetched or lists
    nothing usable.
    """
    max_urls = max_urls or settings.SITEMAP_MAX_URLS
    sitemap_url = sitemap_url_for(site_url)

    try:
        async with httpx.AsyncClient(
            timeout=settings.SITEMAP_TIMEOUT_SECONDS,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        ) as client:
            response = await client.get(sitemap_url)
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Sitemap fetch failed for {site_url}: {e}")
        return [site_url]

    urls = extract_locations(response.text, max_urls)
    if not urls:
        logger.info(f"No page URLs in {sitemap_url}, scanning the base URL only")
        return [site_url]

    logger.info(f"Found {len(urls)} page URL(s) in {sitemap_url}")
    return urls
