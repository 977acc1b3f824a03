"""
Sync controller handling HTTP requests/responses only.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from envoice.exceptions import SyncAlreadyRunningError
from envoice.models.document import DocumentKind
from envoice.models.run import RunSummary
from envoice_api.models.responses import (
    ErrorResponse,
    PendingRecord,
    PendingRecordsResponse,
)

router = APIRouter(
    prefix="/sync",
    tags=["sync"],
)


def _conflict(error: SyncAlreadyRunningError) -> JSONResponse:
    body = ErrorResponse(
        error="SyncAlreadyRunning", message=error.message, details=error.details
    )
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT, content=body.model_dump(mode="json")
    )


@router.post(
    "/run",
    response_model=RunSummary,
    summary="Run one sync pass",
    description="Run one pass over every active account now and return its summary. Requires X-API-Token header.",
    responses={
        401: {"description": "Invalid or missing X-API-Token header"},
        409: {"description": "A sync pass is already running", "model": ErrorResponse},
    },
)
async def run_sync(
    request: Request,
    kind: Optional[DocumentKind] = Query(None, description="Restrict the pass to one kind"),
):
    """Trigger a sync pass."""
    orchestrator = request.app.state.orchestrator
    if orchestrator.is_running:
        return _conflict(SyncAlreadyRunningError(orchestrator.current_run_id))
    try:
        return await orchestrator.run_once([kind] if kind else None)
    except SyncAlreadyRunningError as e:
        return _conflict(e)


@router.get(
    "/last",
    response_model=RunSummary,
    summary="Last run summary",
    description="Summary of the last completed sync pass. Requires X-API-Token header.",
    responses={404: {"description": "No run has completed yet"}},
)
def last_run(request: Request):
    summary = request.app.state.orchestrator.last_summary
    if summary is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No sync run has completed yet"
        )
    return summary


@router.get(
    "/pending",
    response_model=PendingRecordsResponse,
    summary="Pending records",
    description="Stored records whose process state is incomplete; they re-enter the next run. Requires X-API-Token header.",
)
def pending_records(
    request: Request,
    kind: Optional[DocumentKind] = Query(None, description="Filter by record kind"),
):
    store = request.app.state.orchestrator.store
    records = store.list_incomplete(kind.value if kind else None)
    items = [
        PendingRecord(
            id=record.id,
            kind=record.kind,
            account_id=record.account_id,
            global_id=record.global_id,
            request_state=record.request_state,
            process_state=record.process_state,
            external_code=record.external_code,
            updated_at=record.updated_at,
        )
        for record in records
    ]
    return PendingRecordsResponse(records=items, count=len(items))
