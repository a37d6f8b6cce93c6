"""POST /api/markup/resolve — which markup applies to a cost line."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from ..models.requests import MarkupContextSchema
from ..services import markup_resolver

router = APIRouter(prefix="/api")


@router.post("/markup/resolve")
async def resolve(req: MarkupContextSchema) -> dict[str, Any]:
    resolved = markup_resolver.resolve_markup(req.to_context())
    response: dict[str, Any] = {
        "percentage": resolved.percentage,
        "source": resolved.source,
        "source_name": resolved.source_name,
    }
    if req.cost_price:
        response["selling_price"] = round(
            markup_resolver.apply_markup(req.cost_price, resolved.percentage), 2
        )
    return response
