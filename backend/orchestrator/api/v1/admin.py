"""Worker-authenticated read-outs over stored executions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from orchestrator.api.deps import get_recorder, require_worker_auth
from orchestrator.pipeline.recorder import ExecutionRecorder

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/stats")
async def execution_stats(
    days: int = Query(default=7, ge=1, le=90),
    worker_id: str = Depends(require_worker_auth),
    recorder: ExecutionRecorder = Depends(get_recorder),
):
    stats = await recorder.stats(days=days)
    return {"status": "ok", "requested_by": worker_id, "stats": stats}
