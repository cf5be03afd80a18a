"""FastAPI endpoints for the scheduler and health checks.

This module exposes the reconciliation trigger called once a day by an external scheduler. The endpoint is
idempotent per calendar day, so scheduler retries are safe.
"""

import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.dependencies import get_reconciler, require_service_key
from app.core.errors import ReconcileFetchError
from app.core.models import ReconcileReport
from app.core.utils import get_logger
from app.workers.reconciler import Reconciler

router = APIRouter()
logger = get_logger("routine-ledger.api")


@router.post(
    "/reconcile",
    response_model=ReconcileReport,
    dependencies=[Depends(require_service_key)],
    summary="Run the daily routine job payout reconciliation",
    description=(
        "Evaluate every active routine job for one day. Due jobs get today's completion logged; jobs reaching their "
        "threshold get an income record and a reset completion log.\n\n"
        "**Headers:**\n"
        "- `Authorization: Bearer <service key>`\n\n"
        "**Query parameter:**\n"
        "- `run_date` (optional): back-fill a missed day instead of today.\n\n"
        "**Response:**\n"
        "- 200 OK: one outcome per active job (`skipped`, `accrued`, `paid_out` or `failed`).\n"
        "- 401 Unauthorized: missing or wrong service key.\n"
        "- 500 Internal Server Error: the active job list could not be fetched; nothing was changed."
    ),
    response_description="Per-job reconciliation outcomes.",
    responses={
        200: {
            "description": "Run completed.",
            "content": {
                "application/json": {
                    "example": {
                        "run_date": "2025-03-21",
                        "outcomes": [
                            {
                                "job_id": "123e4567-e89b-12d3-a456-426614174000",
                                "job_name": "تدریس",
                                "status": "paid_out",
                                "reason": None,
                                "completed": 0,
                                "required": 1,
                                "financial_record_id": "0f8fad5b-d9cb-469f-a165-70867728950e",
                                "error": None,
                            }
                        ],
                        "accrued": 0,
                        "paid_out": 1,
                        "skipped": 0,
                        "failed": 0,
                    }
                }
            },
        },
        401: {"description": "Invalid service key."},
        500: {"description": "Active routine jobs could not be fetched."},
    },
)
def reconcile(
    run_date: dt.date | None = Query(default=None),
    reconciler: Reconciler = Depends(get_reconciler),
) -> ReconcileReport:
    """Run one reconciliation pass."""
    try:
        report = reconciler.run(run_date)
    except ReconcileFetchError as exc:
        raise HTTPException(500, str(exc)) from exc
    if report.failed:
        logger.warning(f"Reconciliation finished with {report.failed} failed job(s)")
    return report


@router.get(
    "/health",
    summary="Health check",
    description="Simple health check endpoint. Returns status ok.",
    response_description="Status ok.",
    responses={200: {"description": "API is healthy.", "content": {"application/json": {"example": {"status": "ok"}}}}},
)
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
