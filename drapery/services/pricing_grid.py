"""
Pricing Grid — width × drop price tables stored on fabric/product records.

Four historical JSON shapes exist in stored data. The shape is decided once,
when the payload is ingested, and carried as a ``GridFormat`` tag so later
validation and lookup never re-probe keys.

    width_columns   {widthColumns: [...], dropRows: [{drop, prices}] | [drop, ...] + prices{}}
    ranges          {widthRanges|widths: [...], dropRanges: [...], prices: [[...]]}
    widths_heights  {widths: [...], heights: [...], prices: [[...]]}
    legacy_rows     {rows: [{height|drop: n, <width>: price, ...}]}
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .errors import UnrecognizedGridFormatError

logger = logging.getLogger(__name__)

MM_THRESHOLD = 500  # a max dimension at or above this is taken to be mm

KNOWN_KEYS = (
    "widthColumns", "dropRows", "widthRanges", "dropRanges",
    "widths", "heights", "prices", "rows", "unit",
)


class GridFormat(str, Enum):
    WIDTH_COLUMNS = "width_columns"
    RANGES = "ranges"
    WIDTHS_HEIGHTS = "widths_heights"
    LEGACY_ROWS = "legacy_rows"


@dataclass(frozen=True)
class PricingGrid:
    format: GridFormat
    data: dict


@dataclass
class GridValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class StandardGrid:
    width_columns: list[float]
    drop_rows: list[tuple[float, list[float]]]
    unit: str = "cm"


# ------------------------------------------------------------------ #
# Ingestion                                                            #
# ------------------------------------------------------------------ #

def detect_grid_format(payload: Any) -> GridFormat:
    if not isinstance(payload, dict):
        raise UnrecognizedGridFormatError([])

    def is_list(key: str) -> bool:
        return isinstance(payload.get(key), list)

    if is_list("widthColumns") and is_list("dropRows"):
        return GridFormat.WIDTH_COLUMNS
    if is_list("dropRanges") and (is_list("widthRanges") or is_list("widths")) and "prices" in payload:
        return GridFormat.RANGES
    if is_list("widths") and is_list("heights") and "prices" in payload:
        return GridFormat.WIDTHS_HEIGHTS
    if is_list("rows"):
        return GridFormat.LEGACY_ROWS

    raise UnrecognizedGridFormatError([k for k in KNOWN_KEYS if k in payload])


def ingest_grid(payload: Any) -> PricingGrid:
    return PricingGrid(format=detect_grid_format(payload), data=payload)


# ------------------------------------------------------------------ #
# Validation                                                           #
# ------------------------------------------------------------------ #

def validate_pricing_grid(grid: PricingGrid) -> GridValidation:
    validator = _VALIDATORS[grid.format]
    errors = validator(grid.data)
    return GridValidation(valid=not errors, errors=errors)


def has_valid_pricing_grid(payload: Any) -> bool:
    """True when the payload is a recognizable, internally consistent grid."""
    if not payload:
        return False
    try:
        grid = ingest_grid(payload)
    except UnrecognizedGridFormatError as e:
        logger.warning(f"Treating item as not grid-priced: {e}")
        return False
    return validate_pricing_grid(grid).valid


def _validate_width_columns(data: dict) -> list[str]:
    errors: list[str] = []
    widths = data["widthColumns"]
    rows = data["dropRows"]
    if not widths:
        errors.append("widthColumns array is empty")
    if not rows:
        errors.append("dropRows array is empty")
    if errors:
        return errors

    if isinstance(rows[0], dict):
        drops = []
        for i, row in enumerate(rows):
            if not isinstance(row, dict):
                errors.append(f"dropRows[{i}] is not an object")
                continue
            drops.append(row.get("drop"))
            if "drop" not in row or not isinstance(row.get("prices"), list):
                errors.append(f"dropRows[{i}] needs 'drop' and a 'prices' array")
            elif len(row["prices"]) != len(widths):
                errors.append(
                    f"dropRows[{i}] (drop {row['drop']}) has {len(row['prices'])} prices "
                    f"but expected {len(widths)}"
                )
        errors.extend(_check_positive("dropRows", drops))
    else:
        for i, row in enumerate(rows):
            if isinstance(row, (dict, list)):
                errors.append(f"dropRows[{i}] is not a drop value")
        if not isinstance(data.get("prices"), dict):
            errors.append("flat dropRows need a 'prices' object keyed by width_drop")

    errors.extend(_check_positive("widthColumns", widths))
    return errors


def _validate_matrix(width_key: str, drop_key: str):
    def validate(data: dict) -> list[str]:
        errors: list[str] = []
        widths = data.get(width_key) or []
        drops = data.get(drop_key) or []
        prices = data.get("prices")
        if not widths:
            errors.append(f"{width_key} array is empty")
        if not drops:
            errors.append(f"{drop_key} array is empty")
        if not isinstance(prices, list) or not prices:
            errors.append("prices must be a non-empty 2D array")
            return errors
        if len(prices) != len(drops):
            errors.append(f"prices has {len(prices)} rows but {drop_key} has {len(drops)}")
        for i, row in enumerate(prices):
            if not isinstance(row, list):
                errors.append(f"prices[{i}] is not an array")
            elif widths and len(row) != len(widths):
                errors.append(f"prices[{i}] has {len(row)} prices but expected {len(widths)}")
        errors.extend(_check_positive(width_key, widths))
        errors.extend(_check_positive(drop_key, drops))
        return errors
    return validate


def _validate_legacy_rows(data: dict) -> list[str]:
    rows = data["rows"]
    if not rows:
        return ["rows array is empty"]
    errors: list[str] = []
    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            errors.append(f"rows[{i}] is not an object")
            continue
        if "height" not in row and "drop" not in row:
            errors.append(f"rows[{i}] has no 'height' or 'drop'")
        if not _legacy_price_keys(row):
            errors.append(f"rows[{i}] has no width price columns")
    return errors


def _check_positive(name: str, values: list) -> list[str]:
    if any(to_number(v) <= 0 for v in values):
        return [f"{name} values must be positive"]
    return []


def _ranges_width_key(data: dict) -> str:
    return "widthRanges" if isinstance(data.get("widthRanges"), list) else "widths"


_VALIDATORS = {
    GridFormat.WIDTH_COLUMNS: _validate_width_columns,
    GridFormat.RANGES: lambda data: _validate_matrix(_ranges_width_key(data), "dropRanges")(data),
    GridFormat.WIDTHS_HEIGHTS: _validate_matrix("widths", "heights"),
    GridFormat.LEGACY_ROWS: _validate_legacy_rows,
}


# ------------------------------------------------------------------ #
# Normalization + lookup                                               #
# ------------------------------------------------------------------ #

def to_number(value: Any) -> float:
    """Parse grid cells like ``"£1,250"`` or ``"120cm"``; junk becomes 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = re.sub(r"[^0-9.\-]", "", value)
        try:
            return float(cleaned)
        except ValueError:
            return 0.0
    return 0.0


def infer_unit(data: dict, dimensions: list[float]) -> str:
    if data.get("unit") in ("cm", "mm"):
        return data["unit"]
    return "mm" if dimensions and max(dimensions) >= MM_THRESHOLD else "cm"


def normalize_grid(grid: PricingGrid) -> StandardGrid:
    data = grid.data
    if grid.format is GridFormat.WIDTH_COLUMNS:
        widths = [to_number(w) for w in data["widthColumns"]]
        rows = data["dropRows"]
        if rows and isinstance(rows[0], dict):
            drop_rows = [
                (to_number(r.get("drop")), [to_number(p) for p in r.get("prices", [])])
                for r in rows
            ]
        else:
            prices = data.get("prices") or {}
            drop_rows = []
            for drop in rows:
                d = to_number(drop)
                drop_rows.append((d, [
                    to_number(_flat_price(prices, w, d)) for w in widths
                ]))
    elif grid.format in (GridFormat.RANGES, GridFormat.WIDTHS_HEIGHTS):
        width_key = _ranges_width_key(data) if grid.format is GridFormat.RANGES else "widths"
        drop_key = "dropRanges" if grid.format is GridFormat.RANGES else "heights"
        widths = [to_number(w) for w in data[width_key]]
        prices = data.get("prices") or []
        drop_rows = [
            (to_number(d), [to_number(p) for p in (prices[i] if i < len(prices) else [])])
            for i, d in enumerate(data[drop_key])
        ]
    else:
        widths, drop_rows = _normalize_legacy_rows(data["rows"])

    # Keep price columns aligned with their width when sorting
    order = sorted(range(len(widths)), key=lambda i: widths[i])
    widths = [widths[i] for i in order]
    drop_rows = sorted(
        ((d, [p[i] for i in order if i < len(p)]) for d, p in drop_rows),
        key=lambda r: r[0],
    )
    unit = infer_unit(data, widths + [d for d, _ in drop_rows])
    return StandardGrid(width_columns=widths, drop_rows=drop_rows, unit=unit)


def get_grid_price(grid: StandardGrid, width: float, drop: float, unit: str = "cm") -> Optional[float]:
    """
    Price for a finished size. Each dimension rounds up to the next grid
    point; sizes past the largest point use the largest.
    """
    if not grid.width_columns or not grid.drop_rows:
        return None

    w, d = width, drop
    if unit != grid.unit:
        factor = 0.1 if unit == "mm" else 10.0
        w, d = width * factor, drop * factor

    width_idx = next(
        (i for i, col in enumerate(grid.width_columns) if col >= w),
        len(grid.width_columns) - 1,
    )
    _, prices = next(
        (row for row in grid.drop_rows if row[0] >= d),
        grid.drop_rows[-1],
    )
    if width_idx >= len(prices):
        return None
    return prices[width_idx]


def get_grid_markup(item: dict) -> float:
    """An explicit grid markup wins, 0 included; then the item's own markup."""
    grid_markup = item.get("pricing_grid_markup")
    if grid_markup is not None and grid_markup != "":
        return float(grid_markup)
    return float(item.get("markup_percentage") or 0)


def _flat_price(prices: dict, width: float, drop: float) -> Any:
    for key in (f"{width:g}_{drop:g}", f"{width:g}-{drop:g}", f"{drop:g}_{width:g}"):
        if key in prices:
            return prices[key]
    return 0


def _legacy_price_keys(row: dict) -> list[str]:
    return [k for k in row if k not in ("height", "drop") and to_number(k) > 0]


def _normalize_legacy_rows(rows: list[dict]) -> tuple[list[float], list[tuple[float, list[float]]]]:
    width_keys: list[str] = []
    for row in rows:
        for key in _legacy_price_keys(row):
            if key not in width_keys:
                width_keys.append(key)
    widths = [to_number(k) for k in width_keys]
    drop_rows = [
        (
            to_number(row.get("height", row.get("drop"))),
            [to_number(row.get(k, 0)) for k in width_keys],
        )
        for row in rows
    ]
    return widths, drop_rows
