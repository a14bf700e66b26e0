from __future__ import annotations

from decimal import ROUND_DOWN, Decimal

from xrpl_sweep.models import AccountState, ReserveParameters, SpendablePlan

# XRP amounts are exact to the drop (1e-6 XRP).
XRP_QUANTUM = Decimal("0.000001")


def fmt_xrp(amount: Decimal) -> str:
    return f"{Decimal(amount):.6f}".rstrip("0").rstrip(".") or "0"


def total_reserve(owner_count: int, base_reserve: Decimal, owner_reserve_increment: Decimal) -> Decimal:
    return Decimal(base_reserve) + int(owner_count) * Decimal(owner_reserve_increment)


def compute_spendable(
    balance: Decimal,
    owner_count: int,
    base_reserve: Decimal,
    owner_reserve_increment: Decimal,
    fee_buffer: Decimal,
) -> Decimal:
    """Balance left after the reserve and the transfer fee buffer; may be <= 0."""
    reserve = total_reserve(owner_count, base_reserve, owner_reserve_increment)
    return Decimal(balance) - reserve - Decimal(fee_buffer)


def plan_spendable(
    account: AccountState,
    reserve: ReserveParameters,
    *,
    fee_buffer: Decimal,
    min_payment: Decimal,
) -> SpendablePlan:
    spendable = compute_spendable(
        account.balance,
        account.owner_count,
        reserve.base_reserve,
        reserve.owner_reserve_increment,
        fee_buffer,
    )
    if spendable > 0:
        spendable = spendable.quantize(XRP_QUANTUM, rounding=ROUND_DOWN)
    return SpendablePlan(
        spendable_amount=spendable,
        should_send_payment=spendable > Decimal(min_payment),
        total_reserve=total_reserve(account.owner_count, reserve.base_reserve, reserve.owner_reserve_increment),
    )
