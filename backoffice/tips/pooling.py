"""
backoffice.tips.pooling — Splitting tips between staff.

Every function here preserves the total exactly: shares are rounded to
whole cents and whatever rounding leaves over goes to the last
participant, so the sum of the shares always equals the amount split.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from backoffice.core.utils import format_currency, round_half_up
from backoffice.domain.enums import TipShareMethod
from backoffice.domain.models import Employee

logger = logging.getLogger(__name__)


@dataclass
class TipShare:
    employee_id: str
    name: str
    amount_cents: int
    hours: Optional[float] = None
    role: Optional[str] = None


# ---------------------------------------------------------------------------
# Core weighted split
# ---------------------------------------------------------------------------

def split_by_weights(total_cents: int, weights: Sequence[float]) -> List[int]:
    """Split *total_cents* proportionally to *weights*; the last entry absorbs rounding.

    All-zero weights fall back to an even split.  Leading shares are capped at
    what is left so no share goes negative when many people split a few cents.
    """
    if not weights:
        return []
    weight_sum = float(sum(weights))
    if weight_sum <= 0:
        weights = [1.0] * len(weights)
        weight_sum = float(len(weights))

    amounts = []
    remaining = total_cents
    for w in weights[:-1]:
        share = min(round_half_up(total_cents * w / weight_sum), remaining)
        amounts.append(share)
        remaining -= share
    amounts.append(remaining)
    return amounts


def calculate_tip_split_by_hours(total_cents: int, participants: Sequence[Mapping]) -> List[TipShare]:
    """Split by hours worked.  ``participants`` are ``{id, name, hours}`` mappings."""
    hours = [float(p.get("hours") or 0) for p in participants]
    amounts = split_by_weights(total_cents, hours)
    return [
        TipShare(str(p["id"]), p.get("name", ""), amount, hours=h)
        for p, h, amount in zip(participants, hours, amounts)
    ]


def calculate_tip_split_by_role(total_cents: int, participants: Sequence[Mapping]) -> List[TipShare]:
    """Split by role weight.  ``participants`` are ``{id, name, role, weight}`` mappings."""
    weights = [float(p.get("weight", 1) or 0) for p in participants]
    amounts = split_by_weights(total_cents, weights)
    return [
        TipShare(str(p["id"]), p.get("name", ""), amount, role=p.get("role"))
        for p, amount in zip(participants, amounts)
    ]


def calculate_tip_split_even(total_cents: int, participants: Sequence[Mapping]) -> List[TipShare]:
    amounts = split_by_weights(total_cents, [1.0] * len(participants))
    return [
        TipShare(str(p["id"]), p.get("name", ""), amount)
        for p, amount in zip(participants, amounts)
    ]


def rebalance_allocations(
    total_cents: int,
    shares: Sequence[TipShare],
    employee_id: str,
    new_amount_cents: int,
) -> List[TipShare]:
    """Pin one employee's share to *new_amount_cents* and redistribute the rest.

    The other shares keep their relative proportions.  The pinned amount is
    clamped to ``[0, total_cents]``.
    """
    pinned = max(0, min(int(new_amount_cents), total_cents))
    others = [s for s in shares if s.employee_id != employee_id]
    remaining = split_by_weights(total_cents - pinned, [s.amount_cents for s in others])
    by_id = dict(zip((s.employee_id for s in others), remaining))

    out = []
    for share in shares:
        amount = pinned if share.employee_id == employee_id else by_id[share.employee_id]
        out.append(TipShare(share.employee_id, share.name, amount, share.hours, share.role))
    return out


def filter_tip_eligible(employees: Iterable[Employee]) -> List[Employee]:
    """Active employees that participate in tips (``tip_eligible`` defaults to True)."""
    return [e for e in employees if e.is_active and e.tip_eligible is not False]


def format_currency_from_cents(cents: int) -> str:
    return format_currency(cents)


# ---------------------------------------------------------------------------
# Percentage contribution pools
# ---------------------------------------------------------------------------
# Servers keep what they earn minus a percentage paid into each pool; each
# pool is then shared among the support staff who worked.  A pool with no
# eligible worker refunds its contributions to the servers who paid in.

@dataclass
class ServerEarning:
    employee_id: str
    name: str
    earned_amount_cents: int


@dataclass
class ContributionPool:
    id: str
    name: str
    contribution_percentage: float
    share_method: TipShareMethod
    eligible_employee_ids: List[str] = field(default_factory=list)
    role_weights: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.share_method = TipShareMethod(self.share_method)


@dataclass
class PoolWorker:
    employee_id: str
    name: str
    hours_worked: float = 0.0
    role: str = ""


@dataclass
class Contribution:
    server_id: str
    pool_id: str
    amount_cents: int


@dataclass
class Refund:
    server_id: str
    pool_id: str
    refund_cents: int


@dataclass
class ServerResult:
    employee_id: str
    name: str
    earned_amount_cents: int
    retained_amount_cents: int
    refunded_amount_cents: int
    contributed_amount_cents: int


@dataclass
class PoolResult:
    pool_id: str
    pool_name: str
    total_contributed: int
    total_distributed: int
    total_refunded: int
    shares: List[TipShare] = field(default_factory=list)


@dataclass
class SplitItem:
    employee_id: str
    name: str
    amount_cents: int


@dataclass
class PercentageAllocationResult:
    server_results: List[ServerResult]
    pool_results: List[PoolResult]
    split_items: List[SplitItem]


def calculate_percentage_contributions(
    servers: Sequence[ServerEarning],
    pools: Sequence[ContributionPool],
) -> List[Contribution]:
    """What each server pays into each pool: ``round(earned * pct / 100)``."""
    return [
        Contribution(
            server_id=s.employee_id,
            pool_id=p.id,
            amount_cents=round_half_up(s.earned_amount_cents * p.contribution_percentage / 100),
        )
        for s in servers
        for p in pools
    ]


def calculate_pool_refunds(
    pool_id: str,
    contributions: Sequence[Contribution],
    pool_total_cents: int,
) -> List[Refund]:
    """Return *pool_total_cents* to the servers in proportion to what they paid in."""
    paid = [c for c in contributions if c.pool_id == pool_id]
    amounts = split_by_weights(pool_total_cents, [c.amount_cents for c in paid])
    return [Refund(c.server_id, pool_id, amount) for c, amount in zip(paid, amounts)]


def _pool_shares(pool: ContributionPool, workers: Sequence[PoolWorker], total: int) -> List[TipShare]:
    if pool.share_method == TipShareMethod.HOURS:
        return calculate_tip_split_by_hours(total, [
            {"id": w.employee_id, "name": w.name, "hours": w.hours_worked} for w in workers
        ])
    if pool.share_method == TipShareMethod.ROLE:
        return calculate_tip_split_by_role(total, [
            {
                "id": w.employee_id,
                "name": w.name,
                "role": w.role,
                "weight": pool.role_weights.get(w.role, 1),
            }
            for w in workers
        ])
    return calculate_tip_split_even(total, [{"id": w.employee_id, "name": w.name} for w in workers])


def calculate_percentage_pool_allocations(
    servers: Sequence[ServerEarning],
    pools: Sequence[ContributionPool],
    workers: Sequence[PoolWorker],
) -> PercentageAllocationResult:
    """Run every pool and combine the results into one payout per employee.

    The sum of ``split_items`` always equals the servers' total earnings.
    """
    contributions = calculate_percentage_contributions(servers, pools)
    contributed: Dict[str, int] = {s.employee_id: 0 for s in servers}
    refunded: Dict[str, int] = {s.employee_id: 0 for s in servers}
    for c in contributions:
        contributed[c.server_id] += c.amount_cents

    payouts: Dict[str, int] = {}
    names: Dict[str, str] = {}
    pool_results: List[PoolResult] = []

    for pool in pools:
        total = sum(c.amount_cents for c in contributions if c.pool_id == pool.id)
        eligible = set(pool.eligible_employee_ids)
        pool_workers = [w for w in workers if w.employee_id in eligible]

        if not pool_workers:
            for refund in calculate_pool_refunds(pool.id, contributions, total):
                refunded[refund.server_id] += refund.refund_cents
            logger.debug("Pool %s has no eligible workers; refunded %d cents", pool.name, total)
            pool_results.append(PoolResult(pool.id, pool.name, total, 0, total))
            continue

        shares = _pool_shares(pool, pool_workers, total)
        for share in shares:
            payouts[share.employee_id] = payouts.get(share.employee_id, 0) + share.amount_cents
            names.setdefault(share.employee_id, share.name)
        pool_results.append(PoolResult(pool.id, pool.name, total, total, 0, shares))

    server_results = []
    for s in servers:
        retained = s.earned_amount_cents - contributed[s.employee_id] + refunded[s.employee_id]
        server_results.append(ServerResult(
            employee_id=s.employee_id,
            name=s.name,
            earned_amount_cents=s.earned_amount_cents,
            retained_amount_cents=retained,
            refunded_amount_cents=refunded[s.employee_id],
            contributed_amount_cents=contributed[s.employee_id],
        ))

    combined: Dict[str, int] = {}
    order: List[str] = []
    for r in server_results:
        combined[r.employee_id] = r.retained_amount_cents
        names.setdefault(r.employee_id, r.name)
        order.append(r.employee_id)
    for emp_id, amount in payouts.items():
        if emp_id not in combined:
            combined[emp_id] = 0
            order.append(emp_id)
        combined[emp_id] += amount

    return PercentageAllocationResult(
        server_results=server_results,
        pool_results=pool_results,
        split_items=[SplitItem(emp_id, names[emp_id], combined[emp_id]) for emp_id in order],
    )
