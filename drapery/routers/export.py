"""POST /api/export — download a calculation breakdown as CSV."""
from __future__ import annotations

import csv
import io
import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from ..models.requests import CalculateRequest
from ..services import fabric_calculator
from ..services.errors import CalculationError
from .calculate import error_status

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)


@router.post("/export/csv")
async def export_csv(req: CalculateRequest) -> StreamingResponse:
    try:
        inp = req.to_input()
        result = fabric_calculator.calculate(inp)
    except CalculationError as e:
        raise HTTPException(status_code=error_status(e), detail=str(e))

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["Item", "Value"])
    writer.writerow(["Fabric", inp.fabric.name])
    writer.writerow(["Heading", inp.heading.name or inp.heading.id])
    writer.writerow(["Lining", inp.lining.label if inp.lining else "No Lining"])
    for key, value in result.to_dict().items():
        if isinstance(value, float):
            value = round(value, 2)
        writer.writerow([key, value])

    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="curtain-calculation.csv"'},
    )
