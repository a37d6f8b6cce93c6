"""POST /api/grids — pricing grid validation and lookup."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException

from ..models.requests import GridPriceRequest, GridRequest
from ..services import pricing_grid
from ..services.errors import UnrecognizedGridFormatError

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)


def _ingest(payload: dict[str, Any]) -> pricing_grid.PricingGrid:
    try:
        return pricing_grid.ingest_grid(payload)
    except UnrecognizedGridFormatError as e:
        logger.warning(str(e))
        raise HTTPException(
            status_code=422,
            detail={"message": str(e), "present_keys": e.present_keys},
        )


@router.post("/grids/validate")
async def validate_grid(req: GridRequest) -> dict[str, Any]:
    grid = _ingest(req.grid)
    validation = pricing_grid.validate_pricing_grid(grid)
    return {
        "format": grid.format.value,
        "valid": validation.valid,
        "errors": validation.errors,
    }


@router.post("/grids/price")
async def grid_price(req: GridPriceRequest) -> dict[str, Any]:
    grid = _ingest(req.grid)
    validation = pricing_grid.validate_pricing_grid(grid)
    if not validation.valid:
        raise HTTPException(status_code=400, detail={"errors": validation.errors})

    standard = pricing_grid.normalize_grid(grid)
    price = pricing_grid.get_grid_price(standard, req.width, req.drop, unit=req.unit)
    if price is None:
        raise HTTPException(status_code=404, detail="No price for that size")
    return {"price": price, "grid_unit": standard.unit, "format": grid.format.value}
