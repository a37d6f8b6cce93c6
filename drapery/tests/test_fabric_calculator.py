"""Unit tests for fabric_calculator.py — widths, repeats, costs and offcuts."""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

import math
import pytest

from drapery.services.curtain_model import (
    CalculationInput,
    CalculationRules,
    FabricSelection,
    HeadingOption,
    LINING_OPTIONS,
    ProductTemplate,
)
from drapery.services.errors import (
    InvalidInputError,
    LayoutConsistencyError,
    MissingSelectionError,
)
from drapery.services.fabric_calculator import (
    plan_layout,
    adjust_drop,
    aggregate_costs,
    compute_leftovers,
    calculate,
    calculate_for_template,
    format_breakdown,
)

PENCIL = HeadingOption(id="pencil", name="Pencil Pleat", fullness=2.0, price=0.0)
COTTON = FabricSelection(name="Premium Cotton", width_cm=137, price_per_meter=25.50)
VELVET = FabricSelection(name="Luxury Velvet", width_cm=137, price_per_meter=25.50, pattern_repeat_cm=32)
STANDARD_LINING = LINING_OPTIONS[1]


def _input(fabric: FabricSelection = COTTON, **overrides) -> CalculationInput:
    values = dict(
        rail_width_cm=300,
        curtain_drop_cm=225,
        heading=PENCIL,
        fabric=fabric,
        lining=None,
        rules=CalculationRules(),
    )
    values.update(overrides)
    return CalculationInput(**values)


# ─────────────────────────────────────────────────────────────────────────────
# Tests: plan_layout
# ─────────────────────────────────────────────────────────────────────────────

class TestPlanLayout:
    def test_required_width_is_rail_times_fullness(self):
        plan = plan_layout(300, 2.0, 137)
        assert plan.required_width_cm == 600

    def test_widths_rounded_up(self):
        # 600 / 137 = 4.38 → 5
        assert plan_layout(300, 2.0, 137).widths_required == 5

    def test_exact_fit_not_rounded_further(self):
        assert plan_layout(300, 2.0, 150).widths_required == 4

    def test_exact_decimal_fit_not_rounded_further(self):
        # 642 × 1.5 = 963 = 45 × 21.4
        assert plan_layout(642, 1.5, 21.4).widths_required == 45

    @pytest.mark.parametrize("rail,fullness,fabric_width", [
        (120, 1.5, 140), (300, 2.5, 137), (451, 2.2, 110), (75, 3.0, 300), (999, 1.0, 1),
    ])
    def test_ceiling_invariant(self, rail, fullness, fabric_width):
        plan = plan_layout(rail, fullness, fabric_width)
        assert plan.widths_required == math.ceil(plan.required_width_cm / fabric_width)
        assert plan.widths_required * fabric_width >= plan.required_width_cm

    def test_drops_per_width_is_display_figure(self):
        assert plan_layout(100, 2.0, 300).drops_per_width == 3
        assert plan_layout(300, 2.0, 137).drops_per_width == 0

    def test_fullness_below_one_not_rejected(self):
        plan = plan_layout(300, 0.5, 137)
        assert plan.required_width_cm == 150
        assert plan.widths_required == 2

    @pytest.mark.parametrize("fabric_width", [0, -137])
    def test_non_positive_fabric_width_raises(self, fabric_width):
        with pytest.raises(InvalidInputError):
            plan_layout(300, 2.0, fabric_width)


# ─────────────────────────────────────────────────────────────────────────────
# Tests: adjust_drop
# ─────────────────────────────────────────────────────────────────────────────

class TestAdjustDrop:
    def test_no_repeat_adds_hem_only(self):
        assert adjust_drop(225, 20, 0) == 245

    def test_negative_repeat_treated_as_none(self):
        assert adjust_drop(225, 20, -5) == 245

    def test_rounds_up_to_next_repeat(self):
        # ceil(245 / 32) = 8 → 256
        assert adjust_drop(225, 20, 32) == 256

    def test_already_aligned_unchanged(self):
        assert adjust_drop(236, 20, 32) == 256

    @pytest.mark.parametrize("drop,repeat", [(225, 32), (180, 64), (260, 27), (99, 10), (300, 91)])
    def test_repeat_invariant(self, drop, repeat):
        adjusted = adjust_drop(drop, 20, repeat)
        assert adjusted % repeat == 0
        assert adjusted >= drop + 20

    @pytest.mark.parametrize("drop,repeat,expected", [
        (81.7, 33.9, 101.7), (14.2, 11.4, 34.2), (47.5, 22.5, 67.5), (81.8, 33.9, 135.6),
    ])
    def test_decimal_drop_and_repeat(self, drop, repeat, expected):
        adjusted = adjust_drop(drop, 20, repeat)
        assert adjusted >= drop + 20
        assert adjusted == pytest.approx(expected)

    def test_hem_allowance_configurable(self):
        assert adjust_drop(225, 30, 0) == 255
        assert adjust_drop(225, 0, 0) == 225

    def test_negative_hem_allowance_raises(self):
        with pytest.raises(InvalidInputError):
            adjust_drop(225, -1, 0)


# ─────────────────────────────────────────────────────────────────────────────
# Tests: aggregate_costs
# ─────────────────────────────────────────────────────────────────────────────

class TestAggregateCosts:
    def _costs(self, lining=None, rules=CalculationRules(), drop=225, heading_price=0.0):
        return aggregate_costs(
            5, 245, COTTON, lining, rules,
            rail_width_cm=300, curtain_drop_cm=drop, heading_price=heading_price,
        )

    def test_fabric_cost(self):
        # 5 × 245 cm = 12.25 m at 25.50
        assert self._costs().fabric_cost == pytest.approx(312.375)

    def test_lining_priced_per_fabric_meter(self):
        assert self._costs(lining=STANDARD_LINING).lining_cost == pytest.approx(12.25 * 8.50)

    def test_no_lining_costs_nothing(self):
        assert self._costs().lining_cost == 0

    def test_making_cost_per_rail_meter(self):
        rules = CalculationRules(base_making_cost=30)
        costs = self._costs(rules=rules, heading_price=10)
        assert costs.manufacturing_cost == pytest.approx((30 + 10) * 3)

    def test_height_surcharge_only_above_limit(self):
        rules = CalculationRules(base_making_cost=30, height_surcharge=15)
        assert self._costs(rules=rules, drop=240).manufacturing_cost == pytest.approx(90)
        assert self._costs(rules=rules, drop=250).manufacturing_cost == pytest.approx(135)

    def test_custom_height_limit(self):
        rules = CalculationRules(base_making_cost=10, base_height_limit=200, height_surcharge=5)
        assert self._costs(rules=rules, drop=225).manufacturing_cost == pytest.approx(45)

    def test_total(self):
        costs = self._costs(lining=STANDARD_LINING, rules=CalculationRules(base_making_cost=20))
        assert costs.total == pytest.approx(312.375 + 104.125 + 60)


# ─────────────────────────────────────────────────────────────────────────────
# Tests: compute_leftovers
# ─────────────────────────────────────────────────────────────────────────────

class TestComputeLeftovers:
    def test_values(self):
        left = compute_leftovers(256, 245, 5, 137, 600)
        assert left.vertical_cm == 11
        assert left.horizontal_cm == 85

    def test_zero_vertical_without_repeat(self):
        assert compute_leftovers(245, 245, 5, 137, 600).vertical_cm == 0

    def test_negative_vertical_is_consistency_error(self):
        with pytest.raises(LayoutConsistencyError):
            compute_leftovers(240, 245, 5, 137, 600)

    def test_negative_horizontal_is_consistency_error(self):
        with pytest.raises(LayoutConsistencyError):
            compute_leftovers(245, 245, 4, 137, 600)

    def test_float_noise_is_zero(self):
        left = compute_leftovers(101.69999999999999, 101.7, 45, 21.4, 963)
        assert left.vertical_cm == 0
        assert left.horizontal_cm == 0


# ─────────────────────────────────────────────────────────────────────────────
# Tests: calculate (full pipeline)
# ─────────────────────────────────────────────────────────────────────────────

class TestCalculate:
    def test_plain_fabric(self):
        result = calculate(_input())
        assert result.layout.required_width_cm == 600
        assert result.layout.widths_required == 5
        assert result.adjusted_drop_cm == 245
        assert result.total_fabric_length_cm == 1225
        assert result.total_fabric_meters == pytest.approx(12.25)
        assert result.costs.fabric_cost == pytest.approx(312.375)
        assert result.leftovers.vertical_cm == 0
        assert result.leftovers.horizontal_cm == 85

    def test_patterned_fabric(self):
        result = calculate(_input(VELVET))
        assert result.raw_drop_cm == 245
        assert result.adjusted_drop_cm == 256
        assert result.leftovers.vertical_cm == 11
        assert result.total_fabric_meters == pytest.approx(12.8)

    def test_zero_fabric_width_raises(self):
        fabric = FabricSelection(name="Broken", width_cm=0, price_per_meter=10)
        with pytest.raises(InvalidInputError):
            calculate(_input(fabric))

    @pytest.mark.parametrize("field", ["rail_width_cm", "curtain_drop_cm"])
    def test_non_positive_dimensions_raise(self, field):
        with pytest.raises(InvalidInputError):
            calculate(_input(**{field: 0}))

    def test_nan_rejected_before_arithmetic(self):
        with pytest.raises(InvalidInputError):
            calculate(_input(rail_width_cm=float("nan")))

    def test_nan_fullness_rejected(self):
        heading = HeadingOption(id="pencil", name="Pencil Pleat", fullness=float("nan"))
        with pytest.raises(InvalidInputError, match="fullness"):
            calculate(_input(heading=heading))

    @pytest.mark.parametrize("overrides", [
        {"fabric": FabricSelection("F", 137, 25.5, pattern_repeat_cm=float("inf"))},
        {"fabric": FabricSelection("F", 137, float("nan"))},
        {"heading": HeadingOption("pencil", "Pencil Pleat", 2.0, price=float("inf"))},
        {"rules": CalculationRules(height_surcharge=float("inf"))},
        {"rules": CalculationRules(hem_allowance=float("nan"))},
    ])
    def test_non_finite_values_rejected(self, overrides):
        with pytest.raises(InvalidInputError, match="finite"):
            calculate(_input(**overrides))

    def test_decimal_repeat_boundary(self):
        fabric = FabricSelection(name="F", width_cm=137, price_per_meter=20, pattern_repeat_cm=33.9)
        result = calculate(_input(fabric, curtain_drop_cm=81.7))
        assert result.adjusted_drop_cm == pytest.approx(101.7)
        assert result.leftovers.vertical_cm == 0

    def test_decimal_width_boundary(self):
        fabric = FabricSelection(name="F", width_cm=21.4, price_per_meter=20)
        heading = HeadingOption(id="pencil", name="Pencil Pleat", fullness=1.5)
        result = calculate(_input(fabric, heading=heading, rail_width_cm=642))
        assert result.layout.widths_required == 45
        assert result.leftovers.horizontal_cm == 0

    @pytest.mark.parametrize("rail,drop,repeat", [(100, 100, 0), (250, 275, 27), (480, 310, 64)])
    def test_leftovers_never_negative(self, rail, drop, repeat):
        fabric = FabricSelection(name="F", width_cm=140, price_per_meter=20, pattern_repeat_cm=repeat)
        result = calculate(_input(fabric, rail_width_cm=rail, curtain_drop_cm=drop))
        assert result.leftovers.vertical_cm >= 0
        assert result.leftovers.horizontal_cm >= 0

    def test_to_dict_keys(self):
        data = calculate(_input()).to_dict()
        assert data["widths_required"] == 5
        assert data["total_cost"] == pytest.approx(312.375)
        assert "leftover_horizontal_cm" in data


# ─────────────────────────────────────────────────────────────────────────────
# Tests: calculate_for_template
# ─────────────────────────────────────────────────────────────────────────────

class TestCalculateForTemplate:
    def _template(self) -> ProductTemplate:
        return ProductTemplate(
            id="t1", name="Curtains",
            headings={"pencil": True, "eyelet": False},
            calculation_rules=CalculationRules(base_making_cost=20),
        )

    def _headings(self) -> list[HeadingOption]:
        return [PENCIL, HeadingOption(id="eyelet", name="Eyelet", fullness=1.5, price=5)]

    def test_uses_template_rules_and_lining(self):
        result = calculate_for_template(
            self._template(), "pencil", self._headings(), 300, 225, COTTON, "standard",
        )
        assert result.costs.manufacturing_cost == pytest.approx(60)
        assert result.costs.lining_cost == pytest.approx(104.125)

    def test_missing_template(self):
        with pytest.raises(MissingSelectionError):
            calculate_for_template(None, "pencil", self._headings(), 300, 225, COTTON)

    def test_missing_heading(self):
        with pytest.raises(MissingSelectionError):
            calculate_for_template(self._template(), "", self._headings(), 300, 225, COTTON)

    def test_heading_disabled_for_template(self):
        with pytest.raises(MissingSelectionError):
            calculate_for_template(self._template(), "eyelet", self._headings(), 300, 225, COTTON)

    def test_unknown_lining(self):
        with pytest.raises(InvalidInputError):
            calculate_for_template(
                self._template(), "pencil", self._headings(), 300, 225, COTTON, "silk",
            )


# ─────────────────────────────────────────────────────────────────────────────
# Tests: format_breakdown
# ─────────────────────────────────────────────────────────────────────────────

class TestFormatBreakdown:
    def test_contains_key_figures(self):
        lines = format_breakdown(calculate(_input(VELVET)), VELVET)
        text = "\n".join(lines)
        assert "Luxury Velvet" in text
        assert "5 widths" in text
        assert "256 cm" in text
        assert "11.00 cm vertical" in text


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
