"""URL extraction route: POST /api/scrape."""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from repurpose.core.auth import get_current_account_id
from repurpose.features.scrape.service import scrape_url

router = APIRouter(prefix="/api", tags=["scrape"])


class ScrapeRequest(BaseModel):
    url: Optional[str] = None


@router.post("/scrape")
def scrape_route(body: ScrapeRequest, account_id: str = Depends(get_current_account_id)):
    result = scrape_url(body.url)
    return {"success": True, "content": result.content, "title": result.title, "url": result.url}
