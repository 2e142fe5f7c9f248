"""
Inventory Endpoints
POST /api/inventory/deduction-preview  - how a recipe sale converts to stock units
GET  /api/inventory/valuation          - cost and retail value of stock on hand
GET  /api/inventory/variance           - reconciliation variance report
"""

import asyncio
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Query

from backoffice.api.schemas import DeductionPreviewRequest
from backoffice.database import (
    ProductRow, RecipeRow, get_db, get_submitted_reconciliations,
    product_from_row, recipe_from_row, reconciliation_to_dict,
)
from backoffice.inventory.conversion import IngredientInfo, calculate_deduction, calculate_total_cost
from backoffice.inventory.valuation import calculate_inventory_value
from backoffice.inventory.variance import build_variance_report
from backoffice.metrics import record_calculation
from backoffice.routers.settings import load_settings

router = APIRouter(prefix="/api/inventory", tags=["inventory"])

# Default look-back for the variance report
VARIANCE_DEFAULT_DAYS = 90


@router.post("/deduction-preview")
async def deduction_preview(body: DeductionPreviewRequest):
    data = body.model_dump()
    quantity_sold = data.pop("quantity_sold")
    result = calculate_deduction(IngredientInfo(**data), quantity_sold)
    return {
        **result.__dict__,
        "total_cost": round(
            calculate_total_cost(body.recipe_quantity, quantity_sold, result.cost_per_recipe_unit), 4,
        ),
    }


@router.get("/valuation")
async def inventory_valuation():
    def _sync():
        db = get_db()
        try:
            products = [product_from_row(r) for r in db.query(ProductRow).all()]
            recipes = [recipe_from_row(r) for r in db.query(RecipeRow).all()]
            settings = load_settings(db)
        finally:
            db.close()
        valuation = calculate_inventory_value(products, recipes, settings)
        record_calculation("inventory_valuation")
        return {
            "items": valuation.items,
            "total_cost_value": valuation.total_cost_value,
            "total_retail_value": valuation.total_retail_value,
            "potential_profit": valuation.potential_profit,
            "recipe_valued_count": valuation.recipe_valued_count,
            "markup_valued_count": valuation.markup_valued_count,
        }

    return await asyncio.to_thread(_sync)


@router.get("/variance")
async def variance_report(start: Optional[date] = Query(None), end: Optional[date] = Query(None)):
    end = end or date.today()
    start = start or end - timedelta(days=VARIANCE_DEFAULT_DAYS)

    def _sync():
        db = get_db()
        try:
            counts = [reconciliation_to_dict(r) for r in get_submitted_reconciliations(db, start, end)]
        finally:
            db.close()
        record_calculation("variance_report")
        return build_variance_report(counts).to_dict()

    return await asyncio.to_thread(_sync)
