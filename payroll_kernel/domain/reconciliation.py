"""
Two-ledger reconciliation -- the settlement algorithm.

Responsibility:
    Given a settlement type, the amount paid, the period's net payable
    (salary only) and the current balances, compute the exact movement of
    the Advance ledger (staff owes business) and the Carry-Forward ledger
    (business owes staff).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O. Called by
    SettlementReconciler inside its transaction and by LedgerAuditor when
    replaying history.

Rules:
    ADVANCE
        advance += amount_paid
    SALARY
        shortfall = max(net_payable - amount_paid, 0)
        overpay   = max(amount_paid - net_payable, 0)
        shortfall: absorb from advance first, rest becomes carry-forward
        overpay:   absorb from carry-forward first, rest becomes advance
    SALARY_CARRYFORWARD
        the whole amount follows the overpay rule

Invariants enforced:
    - Balances after are never negative.
    - Shortfall and overpay are never both positive.
    - advance_after - carry_forward_after moves by exactly
      amount_paid - net_payable (salary) or amount_paid (other types).
"""

from decimal import Decimal

from payroll_kernel.db.types import ZERO
from payroll_kernel.domain.values import (
    LedgerBalances,
    LedgerMovement,
    SettlementType,
)


def _absorb(amount: Decimal, balance: Decimal) -> tuple[Decimal, Decimal]:
    """Take as much of ``amount`` from ``balance`` as it holds."""
    taken = min(amount, balance)
    return taken, amount - taken


def reconcile(
    settlement_type: SettlementType,
    amount_paid: Decimal,
    balances: LedgerBalances,
    net_payable: Decimal | None = None,
) -> LedgerMovement:
    """
    Compute the ledger movement for one settlement.

    Raises:
        ValueError: non-positive amount, negative starting balance, or a
            salary settlement without ``net_payable``.
    """
    if amount_paid <= 0:
        raise ValueError(f"amount_paid must be positive: {amount_paid}")
    if balances.advance < 0 or balances.carry_forward < 0:
        raise ValueError(f"starting balances cannot be negative: {balances}")

    shortfall = ZERO
    overpay = ZERO
    from_advance = ZERO
    from_carry = ZERO
    advance_delta = ZERO
    carry_delta = ZERO

    if settlement_type is SettlementType.ADVANCE:
        advance_delta = amount_paid

    elif settlement_type is SettlementType.SALARY:
        if net_payable is None or net_payable < 0:
            raise ValueError(f"salary settlement needs a non-negative net_payable: {net_payable}")
        shortfall = max(net_payable - amount_paid, ZERO)
        overpay = max(amount_paid - net_payable, ZERO)

        if shortfall > 0:
            from_advance, remaining = _absorb(shortfall, balances.advance)
            advance_delta = -from_advance
            carry_delta = remaining
        elif overpay > 0:
            from_carry, remaining = _absorb(overpay, balances.carry_forward)
            carry_delta = -from_carry
            advance_delta = remaining

    elif settlement_type is SettlementType.SALARY_CARRYFORWARD:
        from_carry, remaining = _absorb(amount_paid, balances.carry_forward)
        carry_delta = -from_carry
        advance_delta = remaining

    else:
        raise ValueError(f"Unknown settlement type: {settlement_type}")

    after = LedgerBalances(
        advance=balances.advance + advance_delta,
        carry_forward=balances.carry_forward + carry_delta,
    )
    assert after.advance >= 0 and after.carry_forward >= 0, (
        "ledger balances must never be negative"
    )

    return LedgerMovement(
        settlement_type=settlement_type,
        amount_paid=amount_paid,
        net_payable=net_payable if settlement_type is SettlementType.SALARY else None,
        shortfall=shortfall,
        overpay=overpay,
        from_advance=from_advance,
        from_carry_forward=from_carry,
        advance_delta=advance_delta,
        carry_forward_delta=carry_delta,
        balances_before=balances,
        balances_after=after,
    )


def expected_net_change(movement: LedgerMovement) -> Decimal:
    """How far the staff member's net position must move for this settlement."""
    if movement.settlement_type is SettlementType.SALARY:
        return movement.amount_paid - movement.net_payable
    return movement.amount_paid
