from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_search_service
from app.schemas.search import SearchResponse
from app.services.search import SearchService

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=SearchResponse)
def search(
    q: str = Query(min_length=1, max_length=200),
    db: Session = Depends(get_db),
    service: SearchService = Depends(get_search_service),
):
    return service.search(db, q)
