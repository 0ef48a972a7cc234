# gfrecipes/app/routers/ingest.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from starlette.concurrency import run_in_threadpool

from gfrecipes.app.deps import CurrentUser, get_current_user, get_pipeline
from gfrecipes.app.domain.errors import RecipePipelineError
from gfrecipes.app.routers.errors import to_http_exception
from gfrecipes.app.schemas.ingest import IngestRequest, IngestResponse
from gfrecipes.app.services.recipe_pipeline import RecipePipeline

log = logging.getLogger("ingest")
router = APIRouter(prefix="/recipes", tags=["ingest"])


@router.post("/ingest", response_model=IngestResponse, status_code=status.HTTP_201_CREATED)
async def ingest_recipe(
    body: IngestRequest,
    current_user: CurrentUser = Depends(get_current_user),
    pipeline: RecipePipeline = Depends(get_pipeline),
) -> IngestResponse:
    """
    Extract, parse and persist a recipe document.

    Runs the whole ingestion job synchronously and returns the new recipe id.
    """
    if body.userId and body.userId != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "userId does not match the authenticated user", "stage": "auth", "recipeId": None},
        )

    try:
        result = await run_in_threadpool(pipeline.ingest, body.documentReference, current_user.id)
    except RecipePipelineError as error:
        raise to_http_exception(error) from error

    log.info("Ingested recipe %s for user %s", result.recipe_id, current_user.id)
    return IngestResponse(recipeId=result.recipe_id, jobId=result.job_id, warnings=result.warnings)
