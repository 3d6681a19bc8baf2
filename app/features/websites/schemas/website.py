from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class WebsiteCreate(BaseModel):
    url: str
    name: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "url": "https://example.gov.in",
                "name": "Example Department"
            }
        }


class WebsiteResponse(BaseModel):
    id: str
    url: str
    name: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
