"""
Fabric Calculator — curtain fabric quantity and cost math.

Pipeline: layout plan → pattern-repeat adjusted drop → costs → offcuts.
Widths and repeat-aligned drops are always rounded UP, never down.
"""
from __future__ import annotations

import logging
import math
from typing import Optional

from .curtain_model import (
    CalculationInput,
    CalculationResult,
    CalculationRules,
    CostBreakdown,
    FabricSelection,
    HeadingOption,
    LayoutPlan,
    Leftovers,
    LiningOption,
    ProductTemplate,
    lining_by_value,
)
from .errors import InvalidInputError, LayoutConsistencyError, MissingSelectionError

logger = logging.getLogger(__name__)

FLOAT_TOLERANCE_CM = 1e-9


def _ceil(quotient: float) -> int:
    # Float noise around a whole quotient must not add an extra width or repeat
    return math.ceil(round(quotient, 9))


def _snap_zero(value: float) -> float:
    return 0.0 if abs(value) < FLOAT_TOLERANCE_CM else value


def plan_layout(rail_width_cm: float, fullness: float, fabric_width_cm: float) -> LayoutPlan:
    """
    Work out how many fabric widths (panels) are needed to gather
    ``rail_width_cm`` at the heading's fullness.
    """
    if fabric_width_cm <= 0:
        raise InvalidInputError(f"fabric width must be greater than zero (got {fabric_width_cm})")
    if rail_width_cm <= 0:
        raise InvalidInputError(f"rail width must be greater than zero (got {rail_width_cm})")

    required_width = rail_width_cm * fullness
    widths_required = _ceil(required_width / fabric_width_cm)
    # Display only: single width per drop
    drops_per_width = math.floor(fabric_width_cm / rail_width_cm)

    return LayoutPlan(
        required_width_cm=required_width,
        widths_required=widths_required,
        drops_per_width=drops_per_width,
    )


def adjust_drop(curtain_drop_cm: float, hem_allowance_cm: float, pattern_repeat_cm: float) -> float:
    """
    Cut length per drop. With a pattern repeat the cut is rounded up to the
    next whole repeat so the design lines up across every drop.
    """
    if hem_allowance_cm < 0:
        raise InvalidInputError(f"hem allowance cannot be negative (got {hem_allowance_cm})")

    raw_drop = curtain_drop_cm + hem_allowance_cm
    if pattern_repeat_cm > 0:
        adjusted = _ceil(raw_drop / pattern_repeat_cm) * pattern_repeat_cm
        return max(adjusted, raw_drop)
    return raw_drop


def aggregate_costs(
    widths_required: int,
    adjusted_drop_cm: float,
    fabric: FabricSelection,
    lining: Optional[LiningOption],
    rules: CalculationRules,
    *,
    rail_width_cm: float,
    curtain_drop_cm: float,
    heading_price: float,
) -> CostBreakdown:
    """
    Fabric and lining are priced per meter of cut fabric. Making is priced
    per meter of rail, with a flat surcharge once the drop passes the
    template's height limit.
    """
    total_fabric_meters = widths_required * adjusted_drop_cm / 100

    fabric_cost = total_fabric_meters * fabric.price_per_meter
    # Lining is consumed at the same rate as the face fabric
    lining_cost = lining.price * total_fabric_meters if lining else 0.0

    surcharge = rules.height_surcharge if curtain_drop_cm > rules.base_height_limit else 0.0
    manufacturing_cost = (rules.base_making_cost + heading_price + surcharge) * (rail_width_cm / 100)

    return CostBreakdown(
        fabric_cost=fabric_cost,
        lining_cost=lining_cost,
        manufacturing_cost=manufacturing_cost,
    )


def compute_leftovers(
    adjusted_drop_cm: float,
    raw_drop_cm: float,
    widths_required: int,
    fabric_width_cm: float,
    required_width_cm: float,
) -> Leftovers:
    vertical = _snap_zero(adjusted_drop_cm - raw_drop_cm)
    horizontal = _snap_zero(widths_required * fabric_width_cm - required_width_cm)

    if vertical < 0 or horizontal < 0:
        raise LayoutConsistencyError(
            f"Negative offcut (vertical={vertical}, horizontal={horizontal}); "
            f"drop or width count was not rounded up"
        )
    return Leftovers(vertical_cm=vertical, horizontal_cm=horizontal)


def calculate(inp: CalculationInput) -> CalculationResult:
    """Run the full pipeline for one curtain."""
    inp.validate()

    layout = plan_layout(inp.rail_width_cm, inp.heading.fullness, inp.fabric.width_cm)
    raw_drop = inp.curtain_drop_cm + inp.rules.hem_allowance
    adjusted_drop = adjust_drop(
        inp.curtain_drop_cm, inp.rules.hem_allowance, inp.fabric.pattern_repeat_cm
    )

    total_length = layout.widths_required * adjusted_drop
    costs = aggregate_costs(
        layout.widths_required,
        adjusted_drop,
        inp.fabric,
        inp.lining,
        inp.rules,
        rail_width_cm=inp.rail_width_cm,
        curtain_drop_cm=inp.curtain_drop_cm,
        heading_price=inp.heading.price,
    )
    leftovers = compute_leftovers(
        adjusted_drop,
        raw_drop,
        layout.widths_required,
        inp.fabric.width_cm,
        layout.required_width_cm,
    )

    logger.debug(
        f"Calculated {inp.fabric.name}: {layout.widths_required} widths × "
        f"{adjusted_drop} cm, total {costs.total:.2f}"
    )
    return CalculationResult(
        layout=layout,
        raw_drop_cm=raw_drop,
        adjusted_drop_cm=adjusted_drop,
        total_fabric_length_cm=total_length,
        total_fabric_meters=total_length / 100,
        costs=costs,
        leftovers=leftovers,
    )


def calculate_for_template(
    template: Optional[ProductTemplate],
    heading_id: Optional[str],
    heading_options: list[HeadingOption],
    rail_width_cm: float,
    curtain_drop_cm: float,
    fabric: FabricSelection,
    lining_value: Optional[str] = None,
) -> CalculationResult:
    """
    Resolve the template's heading and lining, then calculate. The heading
    must be one the template has enabled.
    """
    if template is None or not heading_id:
        raise MissingSelectionError("Please select a product template and heading type")

    heading = next(
        (h for h in template.available_headings(heading_options) if h.id == heading_id),
        None,
    )
    if heading is None:
        raise MissingSelectionError(
            f"Heading '{heading_id}' is not available for template '{template.name}'"
        )

    return calculate(CalculationInput(
        rail_width_cm=rail_width_cm,
        curtain_drop_cm=curtain_drop_cm,
        heading=heading,
        fabric=fabric,
        lining=lining_by_value(lining_value),
        rules=template.calculation_rules,
    ))


def format_breakdown(result: CalculationResult, fabric: FabricSelection) -> list[str]:
    """Plain-text summary lines, in the order a maker cuts and costs."""
    layout = result.layout
    lines = [
        f"### {fabric.name} ({fabric.width_cm:g} cm wide)",
        f"Required width: {layout.required_width_cm:.0f} cm "
        f"→ {layout.widths_required} width{'s' if layout.widths_required != 1 else ''}",
        f"Cut drop: {result.adjusted_drop_cm:g} cm (raw {result.raw_drop_cm:g} cm)",
        f"Total fabric: {result.total_fabric_length_cm:g} cm ({result.total_fabric_meters:.2f} m)",
        f"Offcuts: {result.leftovers.vertical_cm:.2f} cm vertical, "
        f"{result.leftovers.horizontal_cm:.2f} cm horizontal",
        f"Fabric: {result.costs.fabric_cost:.2f}",
        f"Lining: {result.costs.lining_cost:.2f}",
        f"Making: {result.costs.manufacturing_cost:.2f}",
        f"Total: {result.costs.total:.2f}",
    ]
    return lines
