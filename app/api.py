"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from app.schemas import (
    AggregateSnapshot,
    ApiResponse,
    DailyAggregate,
    DailyList,
    PurgeResult,
    ReadingList,
    ReadingOut,
)
from datastore.base import StoreError
from services.normalizer import ReadingRejected
from services.telemetry import TelemetryService, UnauthorizedError, build_default_service

logger = logging.getLogger(__name__)

router = APIRouter()

_SERVER_ERROR = "Server error"


def get_service() -> TelemetryService:
    return build_default_service()


def _store_failure(exc: StoreError, action: str) -> HTTPException:
    logger.error("Failed to %s: %s", action, exc, exc_info=exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=_SERVER_ERROR,
    )


@router.get(
    "/api/data",
    response_model=ApiResponse[ReadingList],
    response_model_exclude_none=True,
    summary="List stored readings, oldest first.",
)
def list_readings(
    service: TelemetryService = Depends(get_service),
) -> ApiResponse[ReadingList]:
    try:
        readings = service.list_readings()
    except StoreError as exc:
        raise _store_failure(exc, "fetch readings") from exc
    return ApiResponse(data=[ReadingOut.from_record(reading) for reading in readings])


@router.post(
    "/api/data",
    response_model=ApiResponse[ReadingOut],
    response_model_exclude_none=True,
    summary="Ingest one reading from the device.",
)
async def post_reading(
    payload: Any = Body(..., description="{steps, power, voltage, current, timestamp?}"),
    service: TelemetryService = Depends(get_service),
) -> ApiResponse[ReadingOut]:
    try:
        stored = await service.ingest(payload)
    except ReadingRejected as exc:
        logger.info(
            "Rejected reading",
            extra={"reason": exc.reason.value, "field": exc.field},
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except StoreError as exc:
        raise _store_failure(exc, "save reading") from exc
    return ApiResponse(data=ReadingOut.from_record(stored))


@router.get(
    "/api/totals",
    response_model=ApiResponse[AggregateSnapshot],
    response_model_exclude_none=True,
    summary="Totals and averages over the retained readings.",
)
def get_totals(
    service: TelemetryService = Depends(get_service),
) -> ApiResponse[AggregateSnapshot]:
    try:
        summary = service.totals()
    except StoreError as exc:
        raise _store_failure(exc, "fetch totals") from exc
    return ApiResponse(data=AggregateSnapshot.from_summary(summary))


@router.get(
    "/api/daily",
    response_model=ApiResponse[DailyList],
    response_model_exclude_none=True,
    summary="Per-day rollups keyed by UTC date, ascending.",
)
def get_daily(
    service: TelemetryService = Depends(get_service),
) -> ApiResponse[DailyList]:
    try:
        days = service.daily_breakdown()
    except StoreError as exc:
        raise _store_failure(exc, "fetch daily breakdown") from exc
    return ApiResponse(data=[DailyAggregate.from_daily(day) for day in days])


@router.delete(
    "/api/delete-all",
    response_model=ApiResponse[PurgeResult],
    response_model_exclude_none=True,
    summary="Delete every stored reading (requires the admin key).",
)
async def delete_all(
    key: Optional[str] = Query(None, description="Administrative secret."),
    service: TelemetryService = Depends(get_service),
) -> ApiResponse[PurgeResult]:
    try:
        deleted = await service.purge(key)
    except UnauthorizedError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized",
        ) from exc
    except StoreError as exc:
        raise _store_failure(exc, "delete readings") from exc
    return ApiResponse(
        data=PurgeResult(deleted=deleted),
        message=f"Deleted {deleted} readings",
    )


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
