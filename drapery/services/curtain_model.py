"""
Curtain Model — value records consumed and produced by the fabric calculator.

Everything here is immutable for the life of one calculation. Reference data
(templates, headings, fabrics) arrives already resolved; nothing in this
module reads from a store.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from .errors import InvalidInputError

HEM_ALLOWANCE_CM = 20.0       # hems + heading, added to every drop
BASE_HEIGHT_LIMIT_CM = 240.0  # drops above this pay the height surcharge


@dataclass(frozen=True)
class FabricSelection:
    name: str
    width_cm: float
    price_per_meter: float
    pattern_repeat_cm: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "FabricSelection":
        """Accept both library rows (snake_case) and form state (camelCase)."""
        return cls(
            name=data.get("name", "Custom Fabric"),
            width_cm=float(_first(data, "width_cm", "fabric_width", "width", default=0.0)),
            price_per_meter=float(
                _first(data, "price_per_meter", "pricePerMeter", "cost_price", default=0.0)
            ),
            pattern_repeat_cm=float(
                _first(data, "pattern_repeat_cm", "pattern_repeat_vertical",
                       "patternRepeat", "pattern_repeat", default=0.0)
            ),
        )


@dataclass(frozen=True)
class HeadingOption:
    id: str
    name: str
    fullness: float
    price: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "HeadingOption":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            fullness=float(data.get("fullness") or 1.0),
            price=float(data.get("price") or 0.0),
        )


@dataclass(frozen=True)
class LiningOption:
    value: str
    label: str
    price: float


LINING_OPTIONS: tuple[LiningOption, ...] = (
    LiningOption("none", "No Lining", 0.0),
    LiningOption("standard", "Standard Lining", 8.50),
    LiningOption("blackout", "Blackout Lining", 12.00),
    LiningOption("thermal", "Thermal Lining", 15.00),
)


def lining_by_value(value: Optional[str]) -> Optional[LiningOption]:
    """Look up a lining option. Empty selection means no lining."""
    if not value:
        return None
    for option in LINING_OPTIONS:
        if option.value == value:
            return option
    raise InvalidInputError(f"Unknown lining option '{value}'")


@dataclass(frozen=True)
class CalculationRules:
    base_making_cost: float = 0.0
    base_height_limit: float = BASE_HEIGHT_LIMIT_CM
    height_surcharge: float = 0.0
    hem_allowance: float = HEM_ALLOWANCE_CM

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "CalculationRules":
        """Build from a template's stored ``calculation_rules`` JSON."""
        data = data or {}
        return cls(
            base_making_cost=float(_first(data, "baseMakingCost", "base_making_cost", default=0.0)),
            # A stored limit of 0 means "not set"
            base_height_limit=float(
                _first(data, "baseHeightLimit", "base_height_limit") or BASE_HEIGHT_LIMIT_CM
            ),
            height_surcharge=float(
                _first(data, "heightSurcharge1", "height_surcharge", default=0.0)
            ),
            hem_allowance=float(
                _first(data, "hemAllowance", "hem_allowance", default=HEM_ALLOWANCE_CM)
            ),
        )


@dataclass(frozen=True)
class ProductTemplate:
    id: str
    name: str
    product_type: str = "curtains"
    active: bool = True
    headings: dict[str, bool] = field(default_factory=dict)
    calculation_rules: CalculationRules = field(default_factory=CalculationRules)

    def available_headings(self, options: list[HeadingOption]) -> list[HeadingOption]:
        """Heading options this template has switched on."""
        return [h for h in options if self.headings.get(h.id) is True]

    @classmethod
    def from_dict(cls, data: dict) -> "ProductTemplate":
        components = data.get("components") or {}
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            product_type=data.get("product_type", "curtains"),
            active=bool(data.get("active", True)),
            headings=dict(components.get("headings") or data.get("headings") or {}),
            calculation_rules=CalculationRules.from_dict(data.get("calculation_rules")),
        )


@dataclass(frozen=True)
class CalculationInput:
    rail_width_cm: float
    curtain_drop_cm: float
    heading: HeadingOption
    fabric: FabricSelection
    lining: Optional[LiningOption] = None
    rules: CalculationRules = field(default_factory=CalculationRules)

    def validate(self) -> None:
        """Reject dimensions that would divide by zero or make no sense, and
        any NaN/infinite value before it reaches the arithmetic."""
        positive = (
            ("rail width", self.rail_width_cm),
            ("curtain drop", self.curtain_drop_cm),
            ("fabric width", self.fabric.width_cm),
            ("heading fullness", self.heading.fullness),
        )
        for label, value in positive:
            if not math.isfinite(value) or value <= 0:
                raise InvalidInputError(f"{label} must be greater than zero (got {value})")

        finite = (
            ("pattern repeat", self.fabric.pattern_repeat_cm),
            ("fabric price", self.fabric.price_per_meter),
            ("heading price", self.heading.price),
            ("lining price", self.lining.price if self.lining else 0.0),
            ("base making cost", self.rules.base_making_cost),
            ("base height limit", self.rules.base_height_limit),
            ("height surcharge", self.rules.height_surcharge),
            ("hem allowance", self.rules.hem_allowance),
        )
        for label, value in finite:
            if not math.isfinite(value):
                raise InvalidInputError(f"{label} must be a finite number (got {value})")


# ------------------------------------------------------------------ #
# Results                                                              #
# ------------------------------------------------------------------ #

@dataclass(frozen=True)
class LayoutPlan:
    required_width_cm: float
    widths_required: int
    drops_per_width: int


@dataclass(frozen=True)
class CostBreakdown:
    fabric_cost: float
    lining_cost: float
    manufacturing_cost: float

    @property
    def total(self) -> float:
        return self.fabric_cost + self.lining_cost + self.manufacturing_cost


@dataclass(frozen=True)
class Leftovers:
    vertical_cm: float
    horizontal_cm: float


@dataclass(frozen=True)
class CalculationResult:
    layout: LayoutPlan
    raw_drop_cm: float
    adjusted_drop_cm: float
    total_fabric_length_cm: float
    total_fabric_meters: float
    costs: CostBreakdown
    leftovers: Leftovers

    def to_dict(self) -> dict:
        return {
            "required_width_cm": self.layout.required_width_cm,
            "widths_required": self.layout.widths_required,
            "drops_per_width": self.layout.drops_per_width,
            "raw_drop_cm": self.raw_drop_cm,
            "adjusted_drop_cm": self.adjusted_drop_cm,
            "total_fabric_length_cm": self.total_fabric_length_cm,
            "total_fabric_meters": self.total_fabric_meters,
            "fabric_cost": self.costs.fabric_cost,
            "lining_cost": self.costs.lining_cost,
            "manufacturing_cost": self.costs.manufacturing_cost,
            "total_cost": self.costs.total,
            "leftover_vertical_cm": self.leftovers.vertical_cm,
            "leftover_horizontal_cm": self.leftovers.horizontal_cm,
        }


def _first(data: dict, *keys: str, default=None):
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default
