"""
Library Client — reads reference data from the hosted REST backend.

The backend exposes PostgREST-style tables:
    product_templates, heading_options, fabrics, business_settings
Rows are converted to plain value records here so the calculator never
talks to the store itself.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any

import httpx

from .curtain_model import FabricSelection, HeadingOption, ProductTemplate
from .markup_resolver import MarkupSettings

LIBRARY_BASE = os.environ.get("LIBRARY_URL", "http://localhost:54321/rest/v1")
LIBRARY_API_KEY = os.environ.get("LIBRARY_API_KEY", "")
LIBRARY_TIMEOUT = float(os.environ.get("LIBRARY_TIMEOUT", "10"))

logger = logging.getLogger(__name__)


def _headers() -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if LIBRARY_API_KEY:
        headers["apikey"] = LIBRARY_API_KEY
        headers["Authorization"] = f"Bearer {LIBRARY_API_KEY}"
    return headers


async def _select(table: str, params: dict[str, str] | None = None) -> list[dict[str, Any]]:
    query = {"select": "*", **(params or {})}
    async with httpx.AsyncClient(timeout=LIBRARY_TIMEOUT) as client:
        resp = await client.get(f"{LIBRARY_BASE}/{table}", params=query, headers=_headers())
        resp.raise_for_status()
        return resp.json()


async def _select_one(table: str, row_id: str) -> dict[str, Any]:
    rows = await _select(table, {"id": f"eq.{row_id}"})
    if not rows:
        raise LookupError(f"No {table} row with id '{row_id}'")
    return rows[0]


async def fetch_template(template_id: str) -> ProductTemplate:
    return ProductTemplate.from_dict(await _select_one("product_templates", template_id))


async def fetch_heading_options() -> list[HeadingOption]:
    rows = await _select("heading_options", {"active": "eq.true"})
    return [HeadingOption.from_dict(r) for r in rows]


async def fetch_fabric_item(fabric_id: str) -> dict[str, Any]:
    """Raw library row; keeps pricing_grid_data and markup fields for the resolver."""
    return await _select_one("fabrics", fabric_id)


async def fetch_fabric(fabric_id: str) -> FabricSelection:
    return FabricSelection.from_dict(await fetch_fabric_item(fabric_id))


async def fetch_markup_settings() -> MarkupSettings:
    """
    Markup settings live in business_settings.pricing_settings, stored as a
    JSON string. Missing settings fall back to the defaults.
    """
    rows = await _select("business_settings", {"limit": "1"})
    if not rows:
        return MarkupSettings()
    raw = rows[0].get("pricing_settings") or {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("pricing_settings is not valid JSON, using default markups")
            raw = {}
    return MarkupSettings.from_dict(raw)


async def check_health() -> bool:
    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            resp = await client.get(f"{LIBRARY_BASE}/", headers=_headers())
            return resp.status_code < 500
    except httpx.HTTPError:
        return False
