"""
Property-based tests for the settlement arithmetic.

Properties:
- Non-negativity: balances never go below zero, over any sequence.
- Mutual exclusivity: shortfall and overpay are never both positive.
- Conservation: the staff member's net position moves by exactly
  amount_paid - net_payable (salary) or amount_paid (other types).
- Exact payment leaves both ledgers untouched.
- Deduction monotonicity: more leave days never raise net payable.
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from payroll_kernel.domain.deduction import compute_deduction, net_payable
from payroll_kernel.domain.reconciliation import expected_net_change, reconcile
from payroll_kernel.domain.values import LedgerBalances, SettlementType

money = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("10000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
balance = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("10000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
salaries = st.integers(min_value=0, max_value=1_000_000).map(Decimal)
settlement_types = st.sampled_from(list(SettlementType))


@st.composite
def settlements(draw):
    settlement_type = draw(settlement_types)
    net = draw(balance) if settlement_type is SettlementType.SALARY else None
    return settlement_type, draw(money), net


class TestSingleSettlement:

    @given(settlement=settlements(), advance=balance, carry=balance)
    def test_balances_never_negative(self, settlement, advance, carry):
        settlement_type, amount, net = settlement
        movement = reconcile(
            settlement_type, amount, LedgerBalances(advance, carry), net
        )
        assert movement.balances_after.advance >= 0
        assert movement.balances_after.carry_forward >= 0

    @given(amount=money, net=balance, advance=balance, carry=balance)
    def test_shortfall_and_overpay_exclusive(self, amount, net, advance, carry):
        movement = reconcile(
            SettlementType.SALARY, amount, LedgerBalances(advance, carry), net
        )
        assert not (movement.shortfall > 0 and movement.overpay > 0)
        assert movement.shortfall - movement.overpay == net - amount

    @given(settlement=settlements(), advance=balance, carry=balance)
    def test_conservation(self, settlement, advance, carry):
        settlement_type, amount, net = settlement
        before = LedgerBalances(advance, carry)
        movement = reconcile(settlement_type, amount, before, net)
        change = movement.balances_after.net_position - before.net_position
        assert change == expected_net_change(movement)

    @given(settlement=settlements(), advance=balance, carry=balance)
    def test_absorption_never_exceeds_balance(self, settlement, advance, carry):
        settlement_type, amount, net = settlement
        movement = reconcile(settlement_type, amount, LedgerBalances(advance, carry), net)
        assert 0 <= movement.from_advance <= advance
        assert 0 <= movement.from_carry_forward <= carry
        # Never absorb from one ledger while growing it
        assert not (movement.from_advance > 0 and movement.advance_delta > 0)
        assert not (movement.from_carry_forward > 0 and movement.carry_forward_delta > 0)

    @given(net=money, advance=balance, carry=balance)
    def test_exact_payment_changes_nothing(self, net, advance, carry):
        before = LedgerBalances(advance, carry)
        movement = reconcile(SettlementType.SALARY, net, before, net)
        assert movement.balances_after == before


class TestSettlementSequences:

    @settings(max_examples=50)
    @given(sequence=st.lists(settlements(), min_size=1, max_size=25))
    def test_sequence_stays_non_negative_and_conserves(self, sequence):
        balances = LedgerBalances()
        expected_position = Decimal("0")
        for settlement_type, amount, net in sequence:
            movement = reconcile(settlement_type, amount, balances, net)
            expected_position += expected_net_change(movement)
            balances = movement.balances_after
            assert balances.advance >= 0
            assert balances.carry_forward >= 0
        assert balances.net_position == expected_position


class TestDeductionMonotonicity:

    @given(
        salary=salaries,
        fewer=st.integers(min_value=0, max_value=31),
        extra=st.integers(min_value=0, max_value=31),
    )
    def test_more_leave_never_raises_net_payable(self, salary, fewer, extra):
        _, small = compute_deduction(salary, fewer)
        _, large = compute_deduction(salary, fewer + extra)
        assert net_payable(salary, large) <= net_payable(salary, small)

    @given(salary=salaries, leave_days=st.integers(min_value=0, max_value=31))
    def test_net_payable_bounded_by_salary(self, salary, leave_days):
        _, amount = compute_deduction(salary, leave_days)
        assert amount >= 0
        assert 0 <= net_payable(salary, amount) <= salary
