"""
HTTP роуты семантического поиска.

- POST /v1/search  {query, top_k?, media_type?}
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from apps.api_gateway.deps import get_search_service, http_error
from media_vector_agent.common.errors import AppError
from media_vector_agent.contracts.http_api import SearchHit, SearchRequest, SearchResponse
from media_vector_agent.services.search_service import SearchService

router = APIRouter()


@router.post("/search", response_model=SearchResponse)
def search(
    req: SearchRequest, service: SearchService = Depends(get_search_service)
) -> SearchResponse:
    try:
        hits = service.search(req.query, top_k=req.top_k, media_type=req.media_type)
    except AppError as e:
        raise http_error(e) from e
    return SearchResponse(query=req.query, results=[SearchHit(**h) for h in hits])
