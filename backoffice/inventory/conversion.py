"""
backoffice.inventory.conversion — Recipe-unit to purchase-unit conversion.

When a menu item sells, each recipe ingredient is deducted from stock in the
unit the product was purchased in.  Conversions are tried in order:

    1. identical units                      -> 1:1
    2. individual items from a container    -> count_to_container
    3. volume recipe, volume package        -> volume_to_volume (via ml)
    4. weight recipe, weight package        -> weight_to_weight (via g)
    5. cup/tbsp/tsp recipe, weight package  -> density_to_weight
    6. anything else                        -> fallback_1:1 with a warning
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from backoffice.core.constants import (
    CONTAINER_UNITS,
    INDIVIDUAL_UNITS,
    INGREDIENT_DENSITIES,
    VOLUME_UNITS,
    WEIGHT_UNITS,
)
from backoffice.core.utils import safe_div
from backoffice.domain.enums import ConversionMethod

logger = logging.getLogger(__name__)

DENSITY_RECIPE_UNITS = ("cup", "tsp", "tbsp")


@dataclass
class IngredientInfo:
    recipe_quantity: float
    recipe_unit: str
    product_name: str
    purchase_unit: str
    size_value: Optional[float] = None
    size_unit: Optional[str] = None
    cost_per_unit: float = 0.0


@dataclass
class ConversionResult:
    purchase_unit_deduction: float
    cost_per_recipe_unit: float
    conversion_method: ConversionMethod
    success: bool = True
    warning: Optional[str] = None


def _norm(unit: Optional[str]) -> str:
    return (unit or "").lower().strip()


def get_unit_domain(unit: str) -> str:
    """'volume', 'weight', 'each' or 'unknown'."""
    unit = _norm(unit)
    if unit in VOLUME_UNITS:
        return "volume"
    if unit in WEIGHT_UNITS:
        return "weight"
    if unit in ("each", "unit", "ea"):
        return "each"
    return "unknown"


def is_volume_unit(unit: str) -> bool:
    return get_unit_domain(unit) == "volume"


def is_weight_unit(unit: str) -> bool:
    return get_unit_domain(unit) == "weight"


def to_milliliters(amount: float, unit: str) -> Optional[float]:
    factor = VOLUME_UNITS.get(_norm(unit))
    return None if factor is None else amount * factor


def to_grams(amount: float, unit: str) -> Optional[float]:
    factor = WEIGHT_UNITS.get(_norm(unit))
    return None if factor is None else amount * factor


def get_density_factor(product_name: str, recipe_unit: str) -> Optional[float]:
    """Grams per cup for products whose name contains a known ingredient.

    Only cup-based recipes have density data.
    """
    if _norm(recipe_unit) != "cup":
        return None
    name = (product_name or "").lower()
    for ingredient, grams_per_cup in INGREDIENT_DENSITIES.items():
        if ingredient in name:
            return grams_per_cup
    return None


def _scaled(ingredient: IngredientInfo, amount: float, recipe_base: float,
            package_base: float, method: ConversionMethod) -> ConversionResult:
    return ConversionResult(
        purchase_unit_deduction=recipe_base / package_base,
        cost_per_recipe_unit=(ingredient.cost_per_unit / package_base) * safe_div(recipe_base, amount),
        conversion_method=method,
    )


def calculate_deduction(ingredient: IngredientInfo, quantity_sold: float) -> ConversionResult:
    """How much of the purchase unit to remove from stock for *quantity_sold* portions.

    Parameters
    ----------
    ingredient : IngredientInfo
        Recipe line joined with its product's purchase and package units.
    quantity_sold : float
        Number of recipe portions sold.

    Returns
    -------
    ConversionResult
        ``success`` is False only for the 1:1 fallback, which also carries
        a ``warning``.
    """
    amount = ingredient.recipe_quantity * quantity_sold
    recipe_unit = _norm(ingredient.recipe_unit)
    purchase_unit = _norm(ingredient.purchase_unit)
    size_unit = _norm(ingredient.size_unit)
    size_value = ingredient.size_value or 0

    if recipe_unit == purchase_unit:
        return ConversionResult(amount, ingredient.cost_per_unit, ConversionMethod.ONE_TO_ONE)

    if (recipe_unit in INDIVIDUAL_UNITS and purchase_unit in CONTAINER_UNITS
            and size_value > 0 and size_unit in INDIVIDUAL_UNITS):
        return ConversionResult(
            purchase_unit_deduction=amount / size_value,
            cost_per_recipe_unit=ingredient.cost_per_unit / size_value,
            conversion_method=ConversionMethod.COUNT_TO_CONTAINER,
        )

    if size_value > 0:
        if is_volume_unit(recipe_unit) and is_volume_unit(size_unit):
            package_ml = to_milliliters(size_value, size_unit)
            if package_ml:
                return _scaled(ingredient, amount, to_milliliters(amount, recipe_unit), package_ml,
                               ConversionMethod.VOLUME_TO_VOLUME)

        if is_weight_unit(recipe_unit) and is_weight_unit(size_unit):
            package_g = to_grams(size_value, size_unit)
            if package_g:
                return _scaled(ingredient, amount, to_grams(amount, recipe_unit), package_g,
                               ConversionMethod.WEIGHT_TO_WEIGHT)

        if recipe_unit in DENSITY_RECIPE_UNITS and is_weight_unit(size_unit):
            density = get_density_factor(ingredient.product_name, recipe_unit)
            package_g = to_grams(size_value, size_unit)
            if density is not None and package_g:
                return _scaled(ingredient, amount, amount * density, package_g,
                               ConversionMethod.DENSITY_TO_WEIGHT)

    warning = (
        f"Could not convert {amount:g} {recipe_unit} to {purchase_unit} "
        f"(package unit: {size_unit}). Using 1:1 ratio."
    )
    logger.warning("%s [%s]", warning, ingredient.product_name)
    return ConversionResult(
        purchase_unit_deduction=amount,
        cost_per_recipe_unit=ingredient.cost_per_unit,
        conversion_method=ConversionMethod.FALLBACK,
        success=False,
        warning=warning,
    )


def calculate_total_cost(recipe_quantity: float, quantity_sold: float, cost_per_recipe_unit: float) -> float:
    return recipe_quantity * quantity_sold * cost_per_recipe_unit


def generate_reference_id(pos_item_name: str, sale_date: str, external_order_id: Optional[str] = None) -> str:
    """Idempotency key for a POS sale line."""
    if external_order_id:
        return f"{external_order_id}_{pos_item_name}_{sale_date}"
    return f"{pos_item_name}_{sale_date}"
