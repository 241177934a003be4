"""Search endpoints - full query runs, per-source searches, regex and validation."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from twmt_search.api.models import (
    SearchListResponse,
    SearchPageResponse,
    SearchResultResponse,
    ValidateQueryRequest,
)
from twmt_search.api.utils import split_csv, unwrap_or_raise
from twmt_search.models import (
    RegexTarget,
    SearchFilter,
    SearchOperator,
    SearchOptions,
    SearchQuery,
    SearchResult,
    SearchResultType,
    SearchScope,
)
import twmt_search.api.dependencies as deps


router = APIRouter()


def search_filter_params(
    projects: str | None = Query(None, description="Comma-separated project ids"),
    languages: str | None = Query(None, description="Comma-separated language codes"),
    statuses: str | None = Query(None, description="Comma-separated translation statuses"),
    files: str | None = Query(None, description="Comma-separated source file names"),
    types: str | None = Query(
        None,
        description="Comma-separated result types: translation_unit, translation_version, "
        "translation_memory, glossary_entry",
    ),
    min_relevance: float | None = Query(None, description="Minimum relevance score"),
) -> SearchFilter | None:
    """Collect the shared filter query parameters into a ``SearchFilter``."""
    try:
        result_types = [SearchResultType(t) for t in split_csv(types) or []] or None
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid result type: {exc}") from exc

    search_filter = SearchFilter(
        project_ids=split_csv(projects),
        language_codes=split_csv(languages),
        statuses=split_csv(statuses),
        file_names=split_csv(files),
        types=result_types,
        min_relevance_score=min_relevance,
    )
    return None if search_filter.is_empty else search_filter


def _list_response(results: list[SearchResult]) -> SearchListResponse:
    return SearchListResponse(
        results=[SearchResultResponse.from_result(r) for r in results],
        total=len(results),
    )


@router.get("/search", response_model=SearchPageResponse)
async def run_search(
    q: str = Query(..., description="Search text or regex pattern"),
    scope: SearchScope = Query(SearchScope.ALL, description="source, target, both, key or all"),
    operator: SearchOperator = Query(SearchOperator.AND, description="How plain terms combine"),
    regex: bool = Query(False, description="Treat q as a regular expression"),
    case_sensitive: bool = Query(False),
    whole_word: bool = Query(False),
    phrase: bool = Query(False, description="Match q as one exact phrase"),
    prefix: bool = Query(False, description="Prefix-match the last term"),
    include_obsolete: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, description="25, 50, 100 or 200"),
    search_filter: SearchFilter | None = Depends(search_filter_params),
):
    """Run a complete search query and return one page of results."""
    try:
        options = SearchOptions(
            case_sensitive=case_sensitive,
            whole_word=whole_word,
            use_regex=regex,
            phrase_search=phrase,
            prefix_search=prefix,
            include_obsolete=include_obsolete,
            results_per_page=page_size,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    query = SearchQuery(
        text=q,
        scope=scope,
        operator=operator,
        filter=search_filter,
        options=options,
    )
    service = deps.get_search_service()
    page_model = await service.run_query(query, page)
    return SearchPageResponse.from_model(page_model)


@router.get("/search/units", response_model=SearchListResponse)
async def search_units(
    q: str = Query(...),
    operator: SearchOperator = Query(SearchOperator.AND),
    key_only: bool = Query(False, description="Match translation keys only"),
    include_obsolete: bool = Query(False),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    search_filter: SearchFilter | None = Depends(search_filter_params),
):
    """Search translation unit keys and source text."""
    service = deps.get_search_service()
    outcome = await service.search_units(
        q,
        search_filter,
        operator=operator,
        options=SearchOptions(include_obsolete=include_obsolete),
        limit=limit,
        offset=offset,
        key_only=key_only,
    )
    return _list_response(unwrap_or_raise(outcome))


@router.get("/search/versions", response_model=SearchListResponse)
async def search_versions(
    q: str = Query(...),
    operator: SearchOperator = Query(SearchOperator.AND),
    include_obsolete: bool = Query(False),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    search_filter: SearchFilter | None = Depends(search_filter_params),
):
    """Search translated text."""
    service = deps.get_search_service()
    outcome = await service.search_versions(
        q,
        search_filter,
        operator=operator,
        options=SearchOptions(include_obsolete=include_obsolete),
        limit=limit,
        offset=offset,
    )
    return _list_response(unwrap_or_raise(outcome))


@router.get("/search/memory", response_model=SearchListResponse)
async def search_memory(
    q: str = Query(...),
    operator: SearchOperator = Query(SearchOperator.AND),
    source_language: str | None = Query(None),
    target_language: str | None = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    search_filter: SearchFilter | None = Depends(search_filter_params),
):
    """Search translation memory source and target text."""
    service = deps.get_search_service()
    outcome = await service.search_memory(
        q,
        search_filter,
        operator=operator,
        source_language=source_language,
        target_language=target_language,
        limit=limit,
        offset=offset,
    )
    return _list_response(unwrap_or_raise(outcome))


@router.get("/search/glossary", response_model=SearchListResponse)
async def search_glossary(
    q: str = Query(...),
    glossary_id: str | None = Query(None),
    category: str | None = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    """Substring search over glossary terms, translations and notes."""
    service = deps.get_search_service()
    outcome = await service.search_glossary(
        q,
        glossary_id=glossary_id,
        category=category,
        limit=limit,
        offset=offset,
    )
    return _list_response(unwrap_or_raise(outcome))


@router.get("/search/all", response_model=SearchListResponse)
async def search_all(
    q: str = Query(...),
    operator: SearchOperator = Query(SearchOperator.AND),
    include_obsolete: bool = Query(False),
    limit: int = Query(100, ge=1, le=1000),
    search_filter: SearchFilter | None = Depends(search_filter_params),
):
    """Search units, versions and memory together, best matches first."""
    service = deps.get_search_service()
    outcome = await service.search_all(
        q,
        search_filter,
        operator=operator,
        options=SearchOptions(include_obsolete=include_obsolete),
        limit=limit,
    )
    return _list_response(unwrap_or_raise(outcome))


@router.get("/search/regex", response_model=SearchListResponse)
async def search_regex(
    pattern: str = Query(..., description="Regular expression"),
    search_in: RegexTarget = Query(RegexTarget.BOTH, description="source, target or both"),
    case_sensitive: bool = Query(True),
    whole_word: bool = Query(False),
    include_obsolete: bool = Query(False),
    limit: int = Query(100, ge=1, le=1000),
    search_filter: SearchFilter | None = Depends(search_filter_params),
):
    """Search source and translated text with a regular expression."""
    service = deps.get_search_service()
    outcome = await service.search_with_regex(
        pattern,
        search_in,
        search_filter,
        limit=limit,
        case_sensitive=case_sensitive,
        whole_word=whole_word,
        include_obsolete=include_obsolete,
    )
    return _list_response(unwrap_or_raise(outcome))


@router.post("/search/validate")
async def validate_query(request: ValidateQueryRequest):
    """Check a query without running it and show the MATCH expression it becomes."""
    try:
        operator = SearchOperator(request.operator.lower())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid operator: {request.operator}") from exc

    service = deps.get_search_service()
    outcome = service.validate_query(
        request.query,
        operator,
        SearchOptions(phrase_search=request.phrase_search, prefix_search=request.prefix_search),
    )
    if not outcome.ok:
        return {
            "valid": False,
            "error": outcome.error.kind,
            "message": str(outcome.error),
        }
    parsed = outcome.value
    return {
        "valid": True,
        "expression": parsed.expression,
        "terms": parsed.terms,
        "phrases": parsed.phrases,
    }
