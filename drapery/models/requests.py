from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional

from ..services.curtain_model import (
    CalculationInput,
    CalculationRules,
    FabricSelection,
    HeadingOption,
    lining_by_value,
)
from ..services.markup_resolver import MarkupContext, MarkupSettings


class FiniteModel(BaseModel):
    """Numbers must be real: "NaN" and "Infinity" fail validation."""
    model_config = ConfigDict(allow_inf_nan=False)


class FabricSchema(FiniteModel):
    name: str = "Custom Fabric"
    width_cm: float
    price_per_meter: float = Field(default=0.0, ge=0)
    pattern_repeat_cm: float = 0.0

    def to_selection(self) -> FabricSelection:
        return FabricSelection(
            name=self.name,
            width_cm=self.width_cm,
            price_per_meter=self.price_per_meter,
            pattern_repeat_cm=self.pattern_repeat_cm,
        )


class HeadingSchema(FiniteModel):
    id: str
    name: str = ""
    fullness: float = 2.0
    price: float = 0.0


class RulesSchema(FiniteModel):
    base_making_cost: float = 0.0
    base_height_limit: float = 240.0
    height_surcharge: float = 0.0
    hem_allowance: float = 20.0


class MarkupSettingsSchema(FiniteModel):
    default_markup_percentage: float = 50.0
    material_markup_percentage: float = 0.0
    labor_markup_percentage: float = 0.0
    minimum_markup_percentage: float = 0.0
    category_markups: dict[str, float] = {}
    subcategory_markups: dict[str, float] = {}


class MarkupContextSchema(FiniteModel):
    quote_markup: Optional[float] = None
    product_markup: Optional[float] = None
    cost_price: Optional[float] = None
    selling_price: Optional[float] = None
    uses_pricing_grid: bool = False
    grid_markup: Optional[float] = None
    subcategory: Optional[str] = None
    category: Optional[str] = None
    settings: MarkupSettingsSchema = Field(default_factory=MarkupSettingsSchema)

    def to_context(self) -> MarkupContext:
        data = self.model_dump()
        data["settings"] = MarkupSettings(**data["settings"])
        return MarkupContext(**data)


class CalculateRequest(FiniteModel):
    rail_width_cm: float = Field(default=300.0)
    curtain_drop_cm: float = Field(default=225.0)
    heading: HeadingSchema
    fabric: FabricSchema
    lining: Optional[str] = None
    rules: RulesSchema = Field(default_factory=RulesSchema)
    markup: Optional[MarkupContextSchema] = None

    def to_input(self) -> CalculationInput:
        return CalculationInput(
            rail_width_cm=self.rail_width_cm,
            curtain_drop_cm=self.curtain_drop_cm,
            heading=HeadingOption(**self.heading.model_dump()),
            fabric=self.fabric.to_selection(),
            lining=lining_by_value(self.lining),
            rules=CalculationRules(**self.rules.model_dump()),
        )


class LibraryCalculateRequest(FiniteModel):
    template_id: Optional[str] = None
    heading_id: Optional[str] = None
    fabric_id: str
    rail_width_cm: float = Field(default=300.0)
    curtain_drop_cm: float = Field(default=225.0)
    lining: Optional[str] = None
    quote_markup: Optional[float] = None


class GridRequest(FiniteModel):
    grid: dict[str, Any]


class GridPriceRequest(FiniteModel):
    grid: dict[str, Any]
    width: float = Field(gt=0)
    drop: float = Field(gt=0)
    unit: str = Field(default="cm", pattern="^(cm|mm)$")
