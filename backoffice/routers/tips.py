"""
Tip Endpoints
POST /api/tips/split              - split a tip total by hours, role or evenly
POST /api/tips/rebalance          - pin one share and redistribute the rest
POST /api/tips/pools/allocate     - percentage contribution pools
GET  /api/tips/eligible           - employees that take part in tips
"""

import asyncio

from fastapi import APIRouter

from backoffice.api.schemas import PoolAllocationRequest, TipRebalanceRequest, TipSplitRequest
from backoffice.core.errors import ValidationError
from backoffice.database import employee_from_row, get_db, get_employees
from backoffice.domain.enums import TipShareMethod
from backoffice.metrics import record_calculation
from backoffice.tips.pooling import (
    ContributionPool, PoolWorker, ServerEarning, TipShare,
    calculate_percentage_pool_allocations, calculate_tip_split_by_hours,
    calculate_tip_split_by_role, calculate_tip_split_even, filter_tip_eligible,
    format_currency_from_cents, rebalance_allocations,
)

router = APIRouter(prefix="/api/tips", tags=["tips"])

_SPLITTERS = {
    TipShareMethod.HOURS.value: calculate_tip_split_by_hours,
    TipShareMethod.ROLE.value: calculate_tip_split_by_role,
    TipShareMethod.EVEN.value: calculate_tip_split_even,
}


@router.post("/split")
async def split_tips(body: TipSplitRequest):
    splitter = _SPLITTERS[body.method.value]
    shares = splitter(body.total_cents, [p.model_dump() for p in body.participants])
    record_calculation("tip_split")
    return {
        "total_cents": body.total_cents,
        "total_display": format_currency_from_cents(body.total_cents),
        "method": body.method.value,
        "shares": shares,
    }


@router.post("/rebalance")
async def rebalance(body: TipRebalanceRequest):
    if body.employee_id not in {s.employee_id for s in body.shares}:
        raise ValidationError(f"Employee {body.employee_id} is not part of this split")
    shares = [TipShare(s.employee_id, s.name, s.amount_cents) for s in body.shares]
    return {
        "total_cents": body.total_cents,
        "shares": rebalance_allocations(body.total_cents, shares, body.employee_id, body.new_amount_cents),
    }


@router.post("/pools/allocate")
async def allocate_pools(body: PoolAllocationRequest):
    """Servers pay a percentage into each pool; pools are shared among the staff who worked."""
    result = calculate_percentage_pool_allocations(
        servers=[ServerEarning(**s.model_dump()) for s in body.servers],
        pools=[ContributionPool(**p.model_dump()) for p in body.pools],
        workers=[PoolWorker(**w.model_dump()) for w in body.workers],
    )
    record_calculation("tip_pool")
    return result


@router.get("/eligible")
async def eligible_employees():
    def _sync():
        db = get_db()
        try:
            employees = [employee_from_row(r) for r in get_employees(db)]
        finally:
            db.close()
        return [
            {"id": e.id, "name": e.name, "position": e.position}
            for e in filter_tip_eligible(employees)
        ]

    return await asyncio.to_thread(_sync)
