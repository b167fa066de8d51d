"""Semantic search and generation-assisted routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from media_library.api.dependencies import get_assistant, get_explanation_enricher, get_query_service
from media_library.core.errors import EmptyLibraryError, GenerationError, SearchUnavailableError
from media_library.core.logging import get_logger
from media_library.llm.assistants import LibraryAssistant
from media_library.models.dto import (
    AutofillRequest,
    AutofillResponse,
    EnhanceQueryRequest,
    EnhanceQueryResponse,
    ItemResponse,
    PickRequest,
    PickResponse,
    SearchRequest,
    SearchResult,
)
from media_library.retrieval import ExplanationEnricher, QueryService

logger = get_logger(__name__)

router = APIRouter()


@router.post("/search", response_model=list[SearchResult], summary="Semantic search over the library")
def search(
    request: SearchRequest,
    service: QueryService = Depends(get_query_service),
    enricher: ExplanationEnricher = Depends(get_explanation_enricher),
) -> list[SearchResult]:
    try:
        matches = service.search(request.query, max_results=request.max_results)
    except SearchUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    explanations = enricher.explain(request.query, [match.record for match in matches])
    return [
        SearchResult(
            **ItemResponse.from_record(match.record).model_dump(),
            explanation=explanation,
            relevance_score=match.distance,
        )
        for match, explanation in zip(matches, explanations)
    ]


@router.post("/enhance-query", response_model=EnhanceQueryResponse, summary="Rewrite a query into search keywords")
def enhance_query(
    request: EnhanceQueryRequest,
    assistant: LibraryAssistant = Depends(get_assistant),
) -> EnhanceQueryResponse:
    try:
        enhanced = assistant.enhance_query(request.query)
    except GenerationError as exc:
        raise HTTPException(status_code=502, detail="Failed to enhance query") from exc
    return EnhanceQueryResponse(original=request.query, enhanced=enhanced)


@router.post("/autofill", response_model=AutofillResponse, summary="Suggest synopsis, keywords and metadata")
def autofill(
    request: AutofillRequest,
    assistant: LibraryAssistant = Depends(get_assistant),
) -> AutofillResponse:
    try:
        suggestion = assistant.autofill(request.title, request.type)
    except GenerationError as exc:
        raise HTTPException(status_code=502, detail="Failed to autofill item details") from exc
    return AutofillResponse(**suggestion)


@router.post("/random", response_model=PickResponse, summary="Pick an item, optionally matching a prompt")
def random_pick(
    request: PickRequest,
    assistant: LibraryAssistant = Depends(get_assistant),
) -> PickResponse:
    try:
        pick = assistant.pick(request.prompt)
    except EmptyLibraryError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SearchUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return PickResponse(item=ItemResponse.from_record(pick.record), reason=pick.reason)
