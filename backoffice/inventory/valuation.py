"""
backoffice.inventory.valuation — What the stock on hand is worth.

Cost value is simply ``stock × cost_per_unit``.  Retail value is estimated
one of two ways:

* ``recipe``: the product feeds at least one priced menu item.  Each recipe
  contributes the revenue one purchase unit generates, with the menu price
  apportioned across the recipe's ingredients by cost.  Contributions are
  averaged over the recipes.
* ``markup``: everything else is valued at cost times a category markup.

Values are dollars rounded to the cent and never negative.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from backoffice.config import DEFAULT_MARKUP_MULTIPLIER
from backoffice.core.utils import round_half_up
from backoffice.domain.enums import ValuationMethod
from backoffice.domain.models import Product, Recipe
from backoffice.inventory.conversion import IngredientInfo, calculate_deduction

logger = logging.getLogger(__name__)


@dataclass
class ItemValuation:
    product_id: str
    name: str
    category: str
    stock: float
    cost_per_unit: float
    cost_value: float
    retail_value: float
    method: ValuationMethod
    retail_per_unit: float = 0.0
    markup_used: Optional[float] = None
    recipe_count: int = 0


@dataclass
class InventoryValuation:
    items: List[ItemValuation] = field(default_factory=list)
    total_cost_value: float = 0.0
    total_retail_value: float = 0.0
    recipe_valued_count: int = 0
    markup_valued_count: int = 0

    @property
    def potential_profit(self) -> float:
        return round_half_up(self.total_retail_value - self.total_cost_value, 2)


def _units_per_portion(product: Product, quantity: float, unit: str) -> float:
    info = IngredientInfo(
        recipe_quantity=quantity,
        recipe_unit=unit,
        product_name=product.name,
        purchase_unit=product.uom_purchase,
        size_value=product.size_value,
        size_unit=product.size_unit,
        cost_per_unit=product.cost_per_unit,
    )
    return calculate_deduction(info, 1).purchase_unit_deduction


def recipe_revenue_per_unit(
    product: Product,
    recipes: Sequence[Recipe],
    products_by_id: Mapping[str, Product],
) -> Optional[tuple]:
    """Average menu revenue one purchase unit of *product* generates.

    Returns ``(revenue_per_unit, recipe_count)`` or ``None`` when no priced
    recipe uses the product.
    """
    contributions: List[float] = []
    for recipe in recipes:
        if not recipe.menu_price or recipe.menu_price <= 0:
            continue
        lines = []
        for ing in recipe.ingredients:
            p = products_by_id.get(ing.product_id)
            if p is None:
                continue
            upp = _units_per_portion(p, ing.quantity, ing.unit)
            lines.append((ing.product_id, upp, upp * max(p.cost_per_unit, 0.0)))

        own = [line for line in lines if line[0] == product.id and line[1] > 0]
        if not own:
            continue
        recipe_cost = sum(line[2] for line in lines)
        for _, upp, cost in own:
            share = cost / recipe_cost if recipe_cost > 0 else 1.0 / len(lines)
            contributions.append(recipe.menu_price * share / upp)

    if not contributions:
        return None
    return sum(contributions) / len(contributions), len(contributions)


def calculate_product_value(
    product: Product,
    recipes: Sequence[Recipe] = (),
    products_by_id: Optional[Mapping[str, Product]] = None,
    markup_by_category: Optional[Mapping[str, float]] = None,
    default_markup: float = DEFAULT_MARKUP_MULTIPLIER,
) -> ItemValuation:
    stock = max(product.current_stock or 0.0, 0.0)
    unit_cost = max(product.cost_per_unit or 0.0, 0.0)
    products_by_id = products_by_id or {product.id: product}

    recipe_value = recipe_revenue_per_unit(product, recipes, products_by_id)
    if recipe_value is not None:
        per_unit, count = recipe_value
        return ItemValuation(
            product_id=product.id,
            name=product.name,
            category=product.category,
            stock=stock,
            cost_per_unit=unit_cost,
            cost_value=round_half_up(stock * unit_cost, 2),
            retail_value=round_half_up(stock * per_unit, 2),
            method=ValuationMethod.RECIPE,
            retail_per_unit=round_half_up(per_unit, 4),
            recipe_count=count,
        )

    markup = (markup_by_category or {}).get(product.category, default_markup)
    markup = max(float(markup), 0.0)
    return ItemValuation(
        product_id=product.id,
        name=product.name,
        category=product.category,
        stock=stock,
        cost_per_unit=unit_cost,
        cost_value=round_half_up(stock * unit_cost, 2),
        retail_value=round_half_up(stock * unit_cost * markup, 2),
        method=ValuationMethod.MARKUP,
        retail_per_unit=round_half_up(unit_cost * markup, 4),
        markup_used=markup,
    )


def calculate_inventory_value(
    products: Sequence[Product],
    recipes: Sequence[Recipe] = (),
    settings: Optional[Mapping] = None,
) -> InventoryValuation:
    """Value every product and total the results.

    Parameters
    ----------
    products : sequence of Product
        Stock on hand.  Negative counts are valued as zero.
    recipes : sequence of Recipe
        Menu recipes; only those with a positive ``menu_price`` are used.
    settings : mapping, optional
        ``markup_by_category`` (dict) and ``default_markup`` (float).

    Returns
    -------
    InventoryValuation
    """
    settings = settings or {}
    markups: Dict[str, float] = settings.get("markup_by_category") or {}
    default_markup = float(settings.get("default_markup") or DEFAULT_MARKUP_MULTIPLIER)
    by_id = {p.id: p for p in products}

    result = InventoryValuation()
    for product in products:
        item = calculate_product_value(product, recipes, by_id, markups, default_markup)
        result.items.append(item)
        if item.method == ValuationMethod.RECIPE:
            result.recipe_valued_count += 1
        else:
            result.markup_valued_count += 1

    result.total_cost_value = round_half_up(sum(i.cost_value for i in result.items), 2)
    result.total_retail_value = round_half_up(sum(i.retail_value for i in result.items), 2)
    logger.debug(
        "Valued %d products (recipe=%d, markup=%d): cost=%.2f retail=%.2f",
        len(result.items), result.recipe_valued_count, result.markup_valued_count,
        result.total_cost_value, result.total_retail_value,
    )
    return result
