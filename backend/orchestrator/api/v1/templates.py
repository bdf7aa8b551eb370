"""Template discovery endpoint (public)."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from orchestrator.api.deps import get_template_store
from orchestrator.pipeline.stores import TemplateStore

router = APIRouter(tags=["Templates"])


@router.get("/templates")
async def list_templates(template_store: TemplateStore = Depends(get_template_store)):
    """All active templates with display metadata."""
    templates = await template_store.list_templates()
    return {
        "status": "ok",
        "templates": [t.to_summary_dict() for t in templates],
        "total": len(templates),
    }
