"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.schemas import AnalyticsResponse, ErrorResponse
from app.validation import validate_analytics_request
from services.analytics import AnalyticsService
from services.errors import InvalidRequestError, MethodNotAllowedError, RepositoryError
from settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()

# Every verb is routed here so the validator, not the router, answers 405.
_ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def get_service(request: Request) -> AnalyticsService:
    return request.app.state.analytics_service


def _error(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=headers,
    )


@router.api_route(
    "/api/moisture/analytics",
    methods=_ROUTED_METHODS,
    response_model=AnalyticsResponse,
    responses={
        400: {"model": ErrorResponse},
        405: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Analyze moisture readings for a job over a time window.",
)
async def analyze_readings(
    request: Request,
    service: AnalyticsService = Depends(get_service),
) -> AnalyticsResponse | JSONResponse:
    settings = get_settings()
    try:
        query = validate_analytics_request(
            request.method,
            request.headers.get("content-type"),
            await request.body(),
            max_range=timedelta(days=settings.max_range_days),
        )
    except MethodNotAllowedError as exc:
        return _error(
            status.HTTP_405_METHOD_NOT_ALLOWED,
            str(exc),
            headers={"Allow": ", ".join(exc.allowed)},
        )
    except InvalidRequestError as exc:
        logger.info("Rejected analytics request", extra={"error": str(exc), "status": 400})
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    try:
        readings = await run_in_threadpool(service.load_readings, query)
    except RepositoryError as exc:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Database error: {exc}")

    result = service.analyze(readings)
    logger.info(
        "Analytics request served",
        extra={
            "job_id": query.job_id,
            "location": query.location,
            "reading_count": result.reading_count,
            "status": 200,
        },
    )
    return AnalyticsResponse.from_result(result, query)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
