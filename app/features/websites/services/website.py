from typing import List

from fastapi import HTTPException, status

from app.features.websites.models.website import Website
from app.features.websites.schemas.website import WebsiteCreate
from app.platform.logger import get_logger
from app.platform.utils.url_validator import validate_url

logger = get_logger(__name__)


async def create_website(store, data: WebsiteCreate) -> Website:
    is_valid, url, error_message = validate_url(data.url)
    if not is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid URL: {error_message}"
        )

    website = await store.create_website(url=url, name=data.name)
    logger.info(f"Registered website {website.id} ({url})")
    return website


async def get_website_or_404(store, website_id: str) -> Website:
    website = await store.get_website(website_id)
    if website is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Website not found"
        )
    return website


async def list_websites(store) -> List[Website]:
    return await store.list_websites()
