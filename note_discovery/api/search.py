"""Search API endpoints."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Path, Query

from ..config import get_settings
from ..core.errors import ConfigurationError
from ..models.content import ContentItem, SearchFilters
from ..models.request import SearchRequest
from ..models.response import CorpusReloadResponse, SearchResponse

router = APIRouter(prefix="/api/v1", tags=["search"])
settings = get_settings()

# Import the global search engine instance
from ..engine_instance import search_engine


def _run_search(
    query: str,
    filters: SearchFilters,
    fuzzy_threshold: Optional[float],
    max_results: Optional[int],
    include_suggestions: bool,
) -> SearchResponse:
    if len(query) > settings.max_query_length:
        raise HTTPException(
            status_code=400,
            detail=f"Query too long. Maximum length is {settings.max_query_length} characters"
        )

    try:
        return search_engine.search(
            query=query,
            filters=filters,
            fuzzy_threshold=fuzzy_threshold,
            max_results=max_results or settings.max_results,
            include_suggestions=include_suggestions,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get(
    "/search",
    response_model=SearchResponse,
    summary="Search notes and premium summaries",
    description="Fuzzy search over free notes and premium summaries with optional facet filters"
)
def search_items(
    q: str = Query("", max_length=500, description="Free-text query; empty lists everything"),
    subject_id: Optional[str] = Query(None, description="Restrict to one subject"),
    university: Optional[str] = Query(None, description="Case-insensitive university substring"),
    file_kind: Optional[str] = Query(None, description="pdf, docx, pptx, image or other"),
    min_rating: Optional[float] = Query(None, description="Minimum average rating (0-5)"),
    fuzzy_threshold: Optional[float] = Query(
        None,
        gt=0.0,
        le=1.0,
        description="Custom fuzzy matching threshold (0 = exact, 1 = anything)"
    ),
    max_results: Optional[int] = Query(
        None,
        ge=1,
        le=500,
        description="Maximum number of results to return"
    ),
    include_suggestions: bool = Query(
        True,
        description="Whether to include suggestions for no-match queries"
    )
) -> SearchResponse:
    """
    Search free notes and premium summaries.

    Results from both tiers are interleaved by relevance. Premium results
    carry their credit price so the client can render an unlock button.
    """
    try:
        filters = SearchFilters.from_params(
            subject_id=subject_id,
            university=university,
            file_kind=file_kind,
            min_rating=min_rating,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _run_search(q.strip(), filters, fuzzy_threshold, max_results, include_suggestions)


@router.post(
    "/search",
    response_model=SearchResponse,
    summary="Search with request body",
    description="Search using a structured request body"
)
def search_with_body(request: SearchRequest) -> SearchResponse:
    """Search using a JSON request body instead of query parameters."""
    return _run_search(
        request.query,
        request.to_filters(),
        request.fuzzy_threshold,
        request.max_results,
        request.include_suggestions,
    )


@router.get(
    "/suggestions/{query}",
    response_model=list[str],
    summary="Get search suggestions",
    description="Get title and tag suggestions for a partial or misspelled query"
)
def get_suggestions(
    query: str = Path(..., description="The query to get suggestions for", min_length=1),
    max_suggestions: int = Query(5, ge=1, le=20, description="Maximum number of suggestions")
) -> list[str]:
    """
    Get suggestions for a query.

    Useful for autocomplete and for "did you mean" hints.
    """
    snapshot = search_engine.snapshot()
    return search_engine.fuzzy_matcher.suggest(query, snapshot.items, max_suggestions)


@router.get(
    "/subjects",
    response_model=dict[str, str],
    summary="List subjects",
    description="Subjects that can be used as the subject filter"
)
def list_subjects() -> dict[str, str]:
    """Get the subject id -> name map of the current corpus."""
    return dict(sorted(search_engine.snapshot().subjects.items(), key=lambda kv: kv[1]))


@router.get(
    "/items/{item_id}",
    response_model=ContentItem,
    summary="Get one item",
    description="Get a single note or premium summary from the current corpus"
)
def get_item(
    item_id: str = Path(..., description="Item identity")
) -> ContentItem:
    item = search_engine.get_item(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Item '{item_id}' not found")
    return item


@router.post(
    "/corpus/reload",
    response_model=CorpusReloadResponse,
    summary="Reload corpus",
    description="Rebuild the searchable corpus from the content source"
)
def reload_corpus() -> CorpusReloadResponse:
    """
    Rebuild the corpus now instead of waiting for the snapshot to expire.

    Source failures are reported in the response, not as an HTTP error.
    """
    snapshot = search_engine.load_corpus()
    return CorpusReloadResponse(
        total_items=len(snapshot),
        free_items=len(snapshot.free_items),
        premium_items=len(snapshot.premium_items),
        subjects=len(snapshot.subjects),
        warnings=snapshot.warning_dicts(),
        error=snapshot.error.to_dict() if snapshot.error else None,
        loaded_at=snapshot.loaded_at,
    )
