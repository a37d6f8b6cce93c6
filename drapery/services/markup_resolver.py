"""
Markup Resolver — picks the markup percentage that turns a cost price into a
selling price.

Markup can be configured at many levels. Resolvers are tried in order and the
most specific one that answers wins:

    quote → product → implied (cost vs selling) → pricing grid →
    subcategory → category → material/labor → global → minimum

A pricing grid is the one level where an explicit 0 is an answer: on a
grid-priced item "0" means "no markup", not "unset".
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from .curtain_model import CostBreakdown
from .pricing_grid import get_grid_markup, has_valid_pricing_grid

logger = logging.getLogger(__name__)

# Manufacturing keys fall back to the material category they belong to
MAKING_PARENT_CATEGORY = {
    "curtain_making": "curtains",
    "roman_making": "blinds",
    "blind_making": "blinds",
    "shutter_making": "shutters",
}

LABOR_KEYWORDS = ("making", "labor", "labour", "install", "fitting", "service")
MATERIAL_KEYWORDS = (
    "fabric", "material", "lining", "hardware", "track", "pole",
    "blind", "curtain", "shutter",
)


@dataclass(frozen=True)
class MarkupSettings:
    default_markup_percentage: float = 50.0
    material_markup_percentage: float = 0.0
    labor_markup_percentage: float = 0.0
    minimum_markup_percentage: float = 0.0
    category_markups: dict[str, float] = field(default_factory=dict)
    subcategory_markups: dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "MarkupSettings":
        data = data or {}
        return cls(
            default_markup_percentage=float(data.get("default_markup_percentage", 50.0) or 0),
            material_markup_percentage=float(data.get("material_markup_percentage") or 0),
            labor_markup_percentage=float(data.get("labor_markup_percentage") or 0),
            minimum_markup_percentage=float(data.get("minimum_markup_percentage") or 0),
            category_markups={k: float(v or 0) for k, v in (data.get("category_markups") or {}).items()},
            subcategory_markups={
                k: float(v or 0) for k, v in (data.get("subcategory_markups") or {}).items()
            },
        )


@dataclass(frozen=True)
class MarkupContext:
    quote_markup: Optional[float] = None
    product_markup: Optional[float] = None
    cost_price: Optional[float] = None
    selling_price: Optional[float] = None
    uses_pricing_grid: bool = False
    grid_markup: Optional[float] = None
    subcategory: Optional[str] = None
    category: Optional[str] = None
    settings: MarkupSettings = field(default_factory=MarkupSettings)


@dataclass(frozen=True)
class ResolvedMarkup:
    percentage: float
    source: str
    source_name: str = ""


Resolver = Callable[[MarkupContext], Optional[ResolvedMarkup]]


# ------------------------------------------------------------------ #
# Resolvers, most specific first                                       #
# ------------------------------------------------------------------ #

def _positive(value: Optional[float]) -> bool:
    return value is not None and value > 0


def resolve_quote(ctx: MarkupContext) -> Optional[ResolvedMarkup]:
    if _positive(ctx.quote_markup):
        return ResolvedMarkup(ctx.quote_markup, "quote", "Quote override")
    return None


def resolve_product(ctx: MarkupContext) -> Optional[ResolvedMarkup]:
    if _positive(ctx.product_markup):
        return ResolvedMarkup(ctx.product_markup, "product", "Product markup")
    return None


def resolve_implied(ctx: MarkupContext) -> Optional[ResolvedMarkup]:
    implied = implied_markup(ctx.cost_price, ctx.selling_price)
    if _positive(implied):
        return ResolvedMarkup(implied, "implied", "Cost vs selling price")
    return None


def resolve_grid(ctx: MarkupContext) -> Optional[ResolvedMarkup]:
    if ctx.uses_pricing_grid and ctx.grid_markup is not None and ctx.grid_markup >= 0:
        return ResolvedMarkup(ctx.grid_markup, "grid", "Pricing grid")
    if _positive(ctx.grid_markup):
        return ResolvedMarkup(ctx.grid_markup, "grid", "Pricing grid")
    return None


def resolve_subcategory(ctx: MarkupContext) -> Optional[ResolvedMarkup]:
    key = _normalize_key(ctx.subcategory)
    if not key:
        return None
    value = ctx.settings.subcategory_markups.get(key)
    if _positive(value):
        return ResolvedMarkup(value, "subcategory", key)
    return None


def resolve_category(ctx: MarkupContext) -> Optional[ResolvedMarkup]:
    key = _normalize_key(ctx.category)
    if not key:
        return None
    value = ctx.settings.category_markups.get(key)
    if _positive(value):
        return ResolvedMarkup(value, "category", key)

    parent = MAKING_PARENT_CATEGORY.get(key)
    if parent:
        value = ctx.settings.category_markups.get(parent)
        if _positive(value):
            return ResolvedMarkup(value, "category", parent)
    return None


def resolve_material_or_labor(ctx: MarkupContext) -> Optional[ResolvedMarkup]:
    key = _normalize_key(ctx.category)
    if not key:
        return None
    settings = ctx.settings
    if any(word in key for word in LABOR_KEYWORDS):
        if _positive(settings.labor_markup_percentage):
            return ResolvedMarkup(settings.labor_markup_percentage, "labor", key)
        return None
    if any(word in key for word in MATERIAL_KEYWORDS):
        if _positive(settings.material_markup_percentage):
            return ResolvedMarkup(settings.material_markup_percentage, "material", key)
    return None


def resolve_global(ctx: MarkupContext) -> Optional[ResolvedMarkup]:
    if _positive(ctx.settings.default_markup_percentage):
        return ResolvedMarkup(ctx.settings.default_markup_percentage, "global", "Default markup")
    return None


def resolve_minimum(ctx: MarkupContext) -> ResolvedMarkup:
    return ResolvedMarkup(ctx.settings.minimum_markup_percentage, "minimum", "Minimum markup")


RESOLVERS: tuple[Resolver, ...] = (
    resolve_quote,
    resolve_product,
    resolve_implied,
    resolve_grid,
    resolve_subcategory,
    resolve_category,
    resolve_material_or_labor,
    resolve_global,
    resolve_minimum,
)


def resolve_markup(ctx: MarkupContext, resolvers: tuple[Resolver, ...] = RESOLVERS) -> ResolvedMarkup:
    for resolver in resolvers:
        resolved = resolver(ctx)
        if resolved is not None:
            logger.debug(f"Markup {resolved.percentage}% from {resolved.source} ({resolved.source_name})")
            return resolved
    return resolve_minimum(ctx)


# ------------------------------------------------------------------ #
# Helpers                                                              #
# ------------------------------------------------------------------ #

def implied_markup(cost_price: Optional[float], selling_price: Optional[float]) -> Optional[float]:
    if not cost_price or not selling_price or cost_price <= 0:
        return None
    return (selling_price - cost_price) / cost_price * 100


def apply_markup(cost: float, percentage: float) -> float:
    return cost * (1 + percentage / 100)


def price_with_markup(costs: CostBreakdown, ctx: MarkupContext) -> dict:
    """Selling prices for each cost line, all at the resolved percentage."""
    markup = resolve_markup(ctx)
    fabric = round(apply_markup(costs.fabric_cost, markup.percentage), 2)
    lining = round(apply_markup(costs.lining_cost, markup.percentage), 2)
    making = round(apply_markup(costs.manufacturing_cost, markup.percentage), 2)
    total = round(apply_markup(costs.total, markup.percentage), 2)
    return {
        "fabric_selling": fabric,
        "lining_selling": lining,
        "manufacturing_selling": making,
        "total_selling": total,
        "markup_percentage": markup.percentage,
        "markup_source": markup.source,
        "markup_source_name": markup.source_name,
        "markup_amount": round(total - costs.total, 2),
    }


def context_for_item(
    item: dict,
    settings: MarkupSettings,
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    quote_markup: Optional[float] = None,
) -> MarkupContext:
    """Build a context from a fabric/inventory library record."""
    uses_grid = has_valid_pricing_grid(item.get("pricing_grid_data"))
    grid_markup: Optional[float] = None
    if uses_grid or item.get("pricing_grid_markup") is not None:
        grid_markup = get_grid_markup(item)

    return MarkupContext(
        quote_markup=quote_markup,
        product_markup=_optional_float(item.get("markup_percentage")) if not uses_grid else None,
        cost_price=_optional_float(item.get("cost_price")),
        selling_price=_optional_float(item.get("selling_price")),
        uses_pricing_grid=uses_grid,
        grid_markup=grid_markup,
        subcategory=subcategory or item.get("subcategory"),
        category=category or item.get("category"),
        settings=settings,
    )


def _normalize_key(name: Optional[str]) -> str:
    if not name:
        return ""
    return name.strip().lower().replace(" ", "_").replace("-", "_")


def _optional_float(value) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)
