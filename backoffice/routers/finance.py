"""
Finance Endpoints
POST /api/finance/period-metrics                     - revenue, prime cost, benchmarks
GET  /api/finance/expense-suggestions                - recurring expenses from bank activity
POST /api/finance/expense-suggestions/{key}/dismiss  - dismiss, snooze or accept
GET  /api/finance/checks/amount-words                - check amount text
POST /api/finance/bank/mappings                      - suggest CSV column mappings
POST /api/finance/bank/import                        - parse (and store) a bank CSV
"""

import asyncio
import io
import logging
from datetime import date, timedelta

from fastapi import APIRouter, Query

from backoffice.api.schemas import (
    BankImportRequest, BankMappingRequest, DismissSuggestionRequest, PeriodMetricsRequest,
)
from backoffice.core.errors import ValidationError
from backoffice.database import (
    BankTransactionRow, ExpenseSuggestionDismissalRow, OperatingCostRow,
    bank_transaction_from_row, bank_transaction_to_row, dismissal_from_row,
    get_db, operating_cost_from_row, to_naive_utc,
)
from backoffice.domain.enums import SuggestionStatus
from backoffice.finance.bank_import import (
    BankColumnMapping, detect_account_info_from_csv, read_bank_statement,
    suggest_bank_column_mappings, validate_bank_mappings,
)
from backoffice.finance.checks import cents_to_words, format_check_amount
from backoffice.finance.expense_suggestions import detect_recurring_expenses
from backoffice.finance.period_metrics import calculate_period_metrics
from backoffice.metrics import record_calculation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/finance", tags=["finance"])

# Bank history scanned for recurring expenses
EXPENSE_LOOKBACK_DAYS = 120


@router.post("/period-metrics")
async def period_metrics(body: PeriodMetricsRequest):
    metrics = calculate_period_metrics(
        body.sales, body.adjustments, body.food_cost_records, body.labor_cost_records,
    )
    record_calculation("period_metrics")
    return metrics.to_dict()


@router.get("/expense-suggestions")
async def expense_suggestions(lookback_days: int = Query(EXPENSE_LOOKBACK_DAYS, ge=31, le=730)):
    since = date.today() - timedelta(days=lookback_days)

    def _sync():
        db = get_db()
        try:
            txns = [
                bank_transaction_from_row(r)
                for r in db.query(BankTransactionRow).filter(
                    BankTransactionRow.transaction_date >= since,
                    BankTransactionRow.amount_cents < 0,
                ).order_by(BankTransactionRow.transaction_date.asc())
            ]
            costs = [operating_cost_from_row(r) for r in db.query(OperatingCostRow).all()]
            dismissals = [dismissal_from_row(r) for r in db.query(ExpenseSuggestionDismissalRow).all()]
        finally:
            db.close()
        record_calculation("expense_suggestions")
        return [s.to_dict() for s in detect_recurring_expenses(txns, costs, dismissals)]

    return await asyncio.to_thread(_sync)


@router.post("/expense-suggestions/{suggestion_key}/dismiss")
async def dismiss_suggestion(suggestion_key: str, body: DismissSuggestionRequest):
    if body.action == SuggestionStatus.SNOOZED and body.snoozed_until is None:
        raise ValidationError("snoozed_until is required when snoozing")

    def _sync():
        db = get_db()
        try:
            row = db.get(ExpenseSuggestionDismissalRow, suggestion_key)
            if row is None:
                row = ExpenseSuggestionDismissalRow(suggestion_key=suggestion_key)
                db.add(row)
            row.action = body.action.value
            row.snoozed_until = to_naive_utc(body.snoozed_until) if body.snoozed_until else None
            db.commit()
            return {"status": "ok", "suggestion_key": suggestion_key, "action": row.action}
        finally:
            db.close()

    return await asyncio.to_thread(_sync)


@router.get("/checks/amount-words")
async def check_amount_words(amount_cents: int = Query(..., ge=0)):
    return {
        "amount_cents": amount_cents,
        "amount_display": format_check_amount(amount_cents),
        "amount_words": cents_to_words(amount_cents),
    }


@router.post("/bank/mappings")
async def bank_mappings(body: BankMappingRequest):
    mappings = suggest_bank_column_mappings(body.headers, body.sample_rows)
    validation = validate_bank_mappings(mappings)
    return {
        "mappings": [m.to_dict() for m in mappings],
        "validation": validation,
    }


@router.post("/bank/import")
async def bank_import(body: BankImportRequest):
    """Parse a bank CSV with owner-confirmed mappings and store the transactions."""
    mappings = [BankColumnMapping(m.csv_column, m.target_field) for m in body.mappings]
    raw_lines = body.csv_text.splitlines()
    account = detect_account_info_from_csv(raw_lines, body.filename)

    def _sync():
        result = read_bank_statement(io.StringIO(body.csv_text), mappings, skiprows=body.skiprows)
        saved = 0
        if not body.dry_run and result.transactions:
            db = get_db()
            try:
                db.add_all(bank_transaction_to_row(t) for t in result.transactions)
                db.commit()
                saved = len(result.transactions)
            finally:
                db.close()
        logger.info("Bank import %s: %d parsed, %d saved", body.filename or "<upload>",
                    len(result.transactions), saved)
        return {
            "account": account,
            "total_rows": result.total_rows,
            "parsed": len(result.transactions),
            "saved": saved,
            "skipped": result.skipped,
            "transactions": result.transactions,
        }

    return await asyncio.to_thread(_sync)
