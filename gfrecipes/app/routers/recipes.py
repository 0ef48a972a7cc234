# gfrecipes/app/routers/recipes.py
from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from starlette.concurrency import run_in_threadpool

from gfrecipes.app.deps import CurrentUser, get_current_user, get_pipeline
from gfrecipes.app.domain.errors import RecipePipelineError
from gfrecipes.app.routers.errors import to_http_exception
from gfrecipes.app.schemas.ingest import (
    ConvertRequest,
    ConvertResponse,
    SubstitutionItem,
    SubstitutionListResponse,
    VersionResponse,
)
from gfrecipes.app.services.recipe_pipeline import RecipePipeline

log = logging.getLogger("recipes")
router = APIRouter(prefix="/recipes", tags=["recipes"])


def _ensure_owner(pipeline: RecipePipeline, recipe_id: str, user: CurrentUser) -> None:
    try:
        recipe = pipeline.recipes.get_recipe(recipe_id)
    except RecipePipelineError as error:
        raise to_http_exception(error.with_context(recipe_id=recipe_id)) from error

    if recipe is None or recipe.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Recipe not found", "stage": "lookup", "recipeId": recipe_id},
        )


@router.post("/convert", response_model=ConvertResponse)
async def convert_recipe(
    body: ConvertRequest,
    current_user: CurrentUser = Depends(get_current_user),
    pipeline: RecipePipeline = Depends(get_pipeline),
) -> ConvertResponse:
    """
    Convert the latest parsed version of a recipe to gluten-free.

    Every call appends a new converted version; it never overwrites.
    """
    await run_in_threadpool(_ensure_owner, pipeline, body.recipeId, current_user)

    try:
        outcome = await run_in_threadpool(pipeline.convert_recipe, body.recipeId)
    except RecipePipelineError as error:
        raise to_http_exception(error) from error

    return ConvertResponse(
        success=True,
        recipeId=outcome.recipe_id,
        versionId=outcome.version_id,
        substitutions=[SubstitutionItem.from_domain(sub) for sub in outcome.substitutions],
    )


@router.get("/{recipe_id}/versions/latest", response_model=VersionResponse)
async def get_latest_version(
    recipe_id: str,
    kind: Literal["raw", "parsed", "converted"] = Query(default="parsed"),
    current_user: CurrentUser = Depends(get_current_user),
    pipeline: RecipePipeline = Depends(get_pipeline),
) -> VersionResponse:
    await run_in_threadpool(_ensure_owner, pipeline, recipe_id, current_user)

    try:
        version = await run_in_threadpool(pipeline.versions.latest_version, recipe_id, kind)
    except RecipePipelineError as error:
        raise to_http_exception(error.with_context(recipe_id=recipe_id)) from error

    if version is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": f"No {kind} version found", "stage": "lookup", "recipeId": recipe_id},
        )
    return VersionResponse.from_domain(version)


@router.get("/{recipe_id}/substitutions", response_model=SubstitutionListResponse)
async def list_substitutions(
    recipe_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    pipeline: RecipePipeline = Depends(get_pipeline),
) -> SubstitutionListResponse:
    await run_in_threadpool(_ensure_owner, pipeline, recipe_id, current_user)

    try:
        substitutions = await run_in_threadpool(pipeline.substitutions.list_for_recipe, recipe_id)
    except RecipePipelineError as error:
        raise to_http_exception(error.with_context(recipe_id=recipe_id)) from error

    return SubstitutionListResponse(
        recipeId=recipe_id,
        substitutions=[SubstitutionItem.from_domain(sub) for sub in substitutions],
    )
