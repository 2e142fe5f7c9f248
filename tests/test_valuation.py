"""Tests for inventory valuation (recipe-based and markup-based)."""

import pytest

from backoffice.domain.enums import ValuationMethod
from backoffice.domain.models import Product, Recipe, RecipeIngredient
from backoffice.inventory.valuation import (
    calculate_inventory_value,
    calculate_product_value,
    recipe_revenue_per_unit,
)


@pytest.fixture
def beef():
    return Product(
        "beef", "Ground Beef", category="protein", current_stock=2,
        cost_per_unit=40.0, uom_purchase="case", size_value=10, size_unit="lb",
    )


@pytest.fixture
def bun():
    return Product("bun", "Brioche Bun", category="bakery", current_stock=50, cost_per_unit=0.5)


@pytest.fixture
def burger():
    return Recipe("r1", "Burger", menu_price=12.0, ingredients=[
        RecipeIngredient("beef", 4, "oz"),
        RecipeIngredient("bun", 1, "each"),
    ])


class TestMarkupValuation:
    def test_category_markup(self):
        cheese = Product("c", "Cheddar", category="dairy", current_stock=10, cost_per_unit=2.5)
        item = calculate_product_value(cheese, markup_by_category={"dairy": 2.0})
        assert item.method == ValuationMethod.MARKUP
        assert item.cost_value == 25.0
        assert item.retail_value == 50.0
        assert item.markup_used == 2.0

    def test_default_markup(self):
        item = calculate_product_value(
            Product("x", "Napkins", current_stock=4, cost_per_unit=1.25), default_markup=3.0,
        )
        assert item.retail_value == 15.0

    def test_negative_stock_valued_at_zero(self):
        item = calculate_product_value(
            Product("x", "Napkins", current_stock=-3, cost_per_unit=1.25), default_markup=3.0,
        )
        assert item.stock == 0
        assert item.cost_value == 0
        assert item.retail_value == 0


class TestRecipeValuation:
    def test_price_apportioned_by_cost(self, beef, bun, burger):
        by_id = {"beef": beef, "bun": bun}
        per_unit, count = recipe_revenue_per_unit(beef, [burger], by_id)
        assert count == 1
        # beef is 2/3 of the $1.50 recipe cost; 0.025 case per burger
        assert per_unit == pytest.approx(8.0 / 0.025)
        per_bun, _ = recipe_revenue_per_unit(bun, [burger], by_id)
        assert per_bun == pytest.approx(4.0)

    def test_unpriced_recipe_ignored(self, beef, bun):
        recipe = Recipe("r2", "Staff meal", menu_price=None, ingredients=[
            RecipeIngredient("beef", 4, "oz"),
        ])
        assert recipe_revenue_per_unit(beef, [recipe], {"beef": beef, "bun": bun}) is None

    def test_inventory_totals(self, beef, bun, burger):
        napkins = Product("n", "Napkins", category="paper", current_stock=10, cost_per_unit=1.0)
        result = calculate_inventory_value(
            [beef, bun, napkins], [burger],
            {"markup_by_category": {"paper": 1.5}, "default_markup": 3.0},
        )
        by_id = {i.product_id: i for i in result.items}
        assert by_id["beef"].method == ValuationMethod.RECIPE
        assert by_id["beef"].retail_value == pytest.approx(640.0)
        assert by_id["bun"].retail_value == pytest.approx(200.0)
        assert by_id["n"].retail_value == 15.0
        assert result.recipe_valued_count == 2
        assert result.markup_valued_count == 1
        assert result.total_cost_value == pytest.approx(115.0)
        assert result.total_retail_value == pytest.approx(855.0)
        assert result.potential_profit == pytest.approx(740.0)
