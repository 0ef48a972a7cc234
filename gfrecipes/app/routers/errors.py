from __future__ import annotations

import logging

from fastapi import HTTPException, status

from gfrecipes.app.domain.errors import (
    CatalogError,
    ConversionNotFound,
    ExtractionFailure,
    InvalidJobTransition,
    ParseFailure,
    PersistenceFailure,
    RecipePipelineError,
)

log = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[RecipePipelineError], int], ...] = (
    (ExtractionFailure, status.HTTP_502_BAD_GATEWAY),
    (ParseFailure, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ConversionNotFound, status.HTTP_404_NOT_FOUND),
    (PersistenceFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
    (InvalidJobTransition, status.HTTP_409_CONFLICT),
    (CatalogError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def to_http_exception(error: RecipePipelineError) -> HTTPException:
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            status_code = code
            break

    log.warning("Request failed: status=%d, stage=%s, error=%s", status_code, error.stage, error)
    return HTTPException(status_code=status_code, detail=error.to_payload())
