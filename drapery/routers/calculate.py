"""POST /api/calculate — curtain fabric quantities and costs."""
from __future__ import annotations

import logging
from typing import Any

import httpx
from fastapi import APIRouter, HTTPException

from ..models.requests import CalculateRequest, LibraryCalculateRequest
from ..services import fabric_calculator, library_client, markup_resolver
from ..services.curtain_model import FabricSelection
from ..services.errors import CalculationError, LayoutConsistencyError

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)


def error_status(e: CalculationError) -> int:
    if isinstance(e, LayoutConsistencyError):
        return 500
    return 400


@router.post("/calculate")
async def calculate(req: CalculateRequest) -> dict[str, Any]:
    """
    Calculate from fully resolved values. When a markup context is sent the
    response also carries selling prices.
    """
    try:
        result = fabric_calculator.calculate(req.to_input())
    except CalculationError as e:
        logger.warning(f"Calculation rejected: {e}")
        raise HTTPException(status_code=error_status(e), detail=str(e))

    response: dict[str, Any] = {"result": result.to_dict()}
    if req.markup is not None:
        response["pricing"] = markup_resolver.price_with_markup(result.costs, req.markup.to_context())
    return response


@router.post("/calculate/library")
async def calculate_from_library(req: LibraryCalculateRequest) -> dict[str, Any]:
    """
    Calculate from library ids.

    Flow:
      1. Fetch template, heading options, fabric row and markup settings
      2. Resolve the heading against the template and calculate
      3. Resolve markup for the fabric row and price the result
    """
    if not req.template_id or not req.heading_id:
        raise HTTPException(
            status_code=400,
            detail="Please select a product template and heading type",
        )

    # Step 1: Reference data
    try:
        template = await library_client.fetch_template(req.template_id)
        headings = await library_client.fetch_heading_options()
        fabric_item = await library_client.fetch_fabric_item(req.fabric_id)
        settings = await library_client.fetch_markup_settings()
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except httpx.HTTPError as e:
        logger.warning(f"Library fetch failed: {e}")
        raise HTTPException(status_code=502, detail=f"Library unavailable: {e}")

    fabric = FabricSelection.from_dict(fabric_item)

    # Step 2: Calculate
    try:
        result = fabric_calculator.calculate_for_template(
            template,
            req.heading_id,
            headings,
            rail_width_cm=req.rail_width_cm,
            curtain_drop_cm=req.curtain_drop_cm,
            fabric=fabric,
            lining_value=req.lining,
        )
    except CalculationError as e:
        logger.warning(f"Calculation rejected: {e}")
        raise HTTPException(status_code=error_status(e), detail=str(e))

    # Step 3: Markup
    ctx = markup_resolver.context_for_item(
        fabric_item,
        settings,
        category=template.product_type,
        quote_markup=req.quote_markup,
    )
    return {
        "template": template.name,
        "fabric": fabric.name,
        "result": result.to_dict(),
        "pricing": markup_resolver.price_with_markup(result.costs, ctx),
        "breakdown": fabric_calculator.format_breakdown(result, fabric),
    }
