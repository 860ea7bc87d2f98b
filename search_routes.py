from fastapi import APIRouter, Depends, Query
from typing import Optional, Tuple
import logging
import re

from search_service import (
    InternalError,
    InvalidTypeError,
    SearchError,
    SearchService,
    ValidationError,
    get_search_service,
)
from search_utils.search_models import (
    AnswerResponse,
    ImageSearchResponse,
    VideoSearchResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Search"])

ENDPOINTS = ["/search", "/searchAnswers", "/searchImages", "/searchVideos"]
ALLOWED_TYPES = ["web", "answers", "images", "videos"]

DEFAULT_MAX_RESULTS = 10
MIN_MAX_RESULTS = 1
MAX_MAX_RESULTS = 20

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def parse_max_results(raw: Optional[str]) -> int:
    """Parse ``max_results`` from its leading integer and clamp it to [1, 20].

    Missing, empty or non-numeric values fall back to the default of 10.
    """
    match = _LEADING_INT_RE.match(raw or "")
    value = int(match.group(1)) if match else DEFAULT_MAX_RESULTS
    return max(MIN_MAX_RESULTS, min(MAX_MAX_RESULTS, value))


def get_params(q: Optional[str], max_results: Optional[str]) -> Tuple[str, int]:
    query = (q or "").strip()
    if not query:
        raise ValidationError("Missing required parameter: q")
    return query, parse_max_results(max_results)


async def dispatch(
    search_type: str,
    service: SearchService,
    q: Optional[str],
    max_results: Optional[str] = None,
    engine: Optional[str] = None,
):
    """Validate parameters and run one search of the given type"""
    if search_type not in ALLOWED_TYPES:
        raise InvalidTypeError(ALLOWED_TYPES)

    query, limit = get_params(q, max_results)

    try:
        if search_type == "answers":
            return await service.search_answers(query)
        if search_type == "images":
            return await service.search_images(query, limit)
        if search_type == "videos":
            return await service.search_videos(query, limit)
        return await service.search(query, limit, engine)
    except SearchError:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error during {search_type} search for '{query}'")
        raise InternalError(str(e)) from e


@router.get("/search")
async def search(
    q: Optional[str] = Query(None, description="Search query"),
    max_results: Optional[str] = Query(None, description="Number of results (1-20)"),
    engine: Optional[str] = Query(None, description="duckduckgo, google or bing"),
    search_type: str = Query("web", alias="type", description="web, answers, images or videos"),
    service: SearchService = Depends(get_search_service),
):
    """
    Search the web, or dispatch to another search type with ``type``.
    """
    return await dispatch(search_type, service, q, max_results, engine)


@router.get("/searchAnswers", response_model=AnswerResponse)
async def search_answers(
    q: Optional[str] = Query(None, description="Search query"),
    service: SearchService = Depends(get_search_service),
):
    """Instant answer with related topics"""
    return await dispatch("answers", service, q)


@router.get("/searchImages", response_model=ImageSearchResponse)
async def search_images(
    q: Optional[str] = Query(None, description="Search query"),
    max_results: Optional[str] = Query(None, description="Number of results (1-20)"),
    service: SearchService = Depends(get_search_service),
):
    return await dispatch("images", service, q, max_results)


@router.get("/searchVideos", response_model=VideoSearchResponse)
async def search_videos(
    q: Optional[str] = Query(None, description="Search query"),
    max_results: Optional[str] = Query(None, description="Number of results (1-20)"),
    service: SearchService = Depends(get_search_service),
):
    return await dispatch("videos", service, q, max_results)
