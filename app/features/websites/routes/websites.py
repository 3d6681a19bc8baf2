from fastapi import APIRouter, Depends, status

from app.features.scan.dependencies.scan import get_scan_store
from app.features.websites.schemas.website import WebsiteCreate, WebsiteResponse
from app.features.websites.services.website import create_website, get_website_or_404, list_websites
from app.platform.response import api_response

router = APIRouter(prefix="/websites", tags=["Websites"])


@router.post(
    "",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Register a website",
)
async def create_website_route(request: WebsiteCreate, store=Depends(get_scan_store)):
    website = await create_website(store, request)
    return api_response(
        data=WebsiteResponse.model_validate(website),
        message="Website created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("", response_model=dict, summary="List registered websites")
async def list_websites_route(store=Depends(get_scan_store)):
    websites = await list_websites(store)
    return api_response(
        data=[WebsiteResponse.model_validate(w) for w in websites],
        message="Websites retrieved successfully",
    )


@router.get("/{website_id}", response_model=dict, summary="Get website details")
async def get_website_route(website_id: str, store=Depends(get_scan_store)):
    website = await get_website_or_404(store, website_id)
    return api_response(
        data=WebsiteResponse.model_validate(website),
        message="Website retrieved successfully",
    )
