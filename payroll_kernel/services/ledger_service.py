"""
LedgerService -- the Advance and Carry-Forward ledger rows.

Responsibility:
    Opens both ledger rows for a staff member, locks them for a settlement
    and applies a LedgerMovement computed by domain.reconciliation.

Architecture position:
    Kernel > Services -- imperative shell.  The only writer of
    AdvanceBalance and CarryForwardBalance; called by SettlementReconciler
    inside its transaction.

Invariants enforced:
    - Balances never go below zero (checked before flush, and by the
      table check constraints).
    - Rows are read with ``SELECT ... FOR UPDATE`` and ``populate_existing``,
      and written with optimistic version checks (``version_id_col``), so a
      stale starting balance never survives to commit.
    - Lock order is always advance row, then carry-forward row.

Failure modes:
    - StaffNotFoundError from open_ledgers for an unknown staff member.
    - NegativeBalanceError if a movement would drive a ledger below zero.
    - LedgerIntegrityError if a movement was computed from balances other
      than the locked ones.
    - StaleDataError (SQLAlchemy) if a concurrent writer committed first;
      the reconciler retries.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from payroll_kernel.db.types import MONEY_DECIMAL_PLACES, ZERO, round_money
from payroll_kernel.domain.values import LedgerBalances, LedgerMovement
from payroll_kernel.exceptions import LedgerIntegrityError, NegativeBalanceError
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.ledger import AdvanceBalance, CarryForwardBalance
from payroll_kernel.selectors.staff_selector import StaffSelector
from payroll_kernel.services.base import BaseService

logger = get_logger("services.ledger")


@dataclass
class LockedLedgers:
    """Both ledger rows of one staff member, locked for this transaction."""

    staff_id: UUID
    advance: AdvanceBalance
    carry_forward: CarryForwardBalance
    decimal_places: int = MONEY_DECIMAL_PLACES

    @property
    def balances(self) -> LedgerBalances:
        return LedgerBalances(
            advance=round_money(self.advance.balance, self.decimal_places),
            carry_forward=round_money(self.carry_forward.balance, self.decimal_places),
        )


class LedgerService(BaseService[AdvanceBalance]):
    """Owns the two running balances of every staff member."""

    def __init__(self, session: Session, decimal_places: int = MONEY_DECIMAL_PLACES):
        super().__init__(session)
        self.decimal_places = decimal_places

    def _select(self, model, staff_id: UUID, lock: bool):
        stmt = select(model).where(model.staff_id == staff_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def _create_missing(self, staff_id: UUID, actor_id: UUID) -> list[str]:
        missing = {
            name: model(staff_id=staff_id, balance=ZERO, created_by_id=actor_id)
            for name, model in (("advance", AdvanceBalance), ("carry_forward", CarryForwardBalance))
            if self._select(model, staff_id, lock=False) is None
        }
        if missing:
            self._persist(*missing.values())
        return list(missing)

    def open_ledgers(self, staff_id: UUID, actor_id: UUID) -> LedgerBalances:
        """
        Create both ledger rows with balance 0 (idempotent).

        Call when a staff member is registered, so that every later
        settlement finds its rows in place.

        Raises:
            StaffNotFoundError: unknown staff member.
        """
        StaffSelector(self.session).get(staff_id)
        opened = self._create_missing(staff_id, actor_id)
        if opened:
            logger.info(
                "ledger_rows_opened",
                extra={"staff_id": str(staff_id), "ledgers": opened},
            )
        return self.balances(staff_id)

    def balances(self, staff_id: UUID) -> LedgerBalances:
        """Current balances, zero for a row that does not exist."""
        advance = self._select(AdvanceBalance, staff_id, lock=False)
        carry = self._select(CarryForwardBalance, staff_id, lock=False)
        return LedgerBalances(
            advance=round_money(advance.balance, self.decimal_places) if advance else ZERO,
            carry_forward=round_money(carry.balance, self.decimal_places) if carry else ZERO,
        )

    def lock_ledgers(self, staff_id: UUID, actor_id: UUID) -> LockedLedgers:
        """
        Lock both rows for update, opening any that are missing.

        Rows missing for legacy staff are created inside a savepoint; if a
        concurrent transaction creates them first, the savepoint is rolled
        back and the committed rows are locked instead.
        """
        advance = self._select(AdvanceBalance, staff_id, lock=True)
        carry = self._select(CarryForwardBalance, staff_id, lock=True)

        if advance is None or carry is None:
            savepoint = self.session.begin_nested()
            try:
                opened = self._create_missing(staff_id, actor_id)
                savepoint.commit()
                logger.info(
                    "ledger_rows_opened",
                    extra={"staff_id": str(staff_id), "ledgers": opened, "lazy": True},
                )
            except IntegrityError:
                savepoint.rollback()
                logger.debug(
                    "ledger_open_race_retry",
                    extra={"staff_id": str(staff_id)},
                )
            advance = self._select(AdvanceBalance, staff_id, lock=True)
            carry = self._select(CarryForwardBalance, staff_id, lock=True)
            if advance is None or carry is None:
                raise LedgerIntegrityError(
                    f"Ledger rows for staff {staff_id} could not be opened"
                )

        return LockedLedgers(
            staff_id=staff_id,
            advance=advance,
            carry_forward=carry,
            decimal_places=self.decimal_places,
        )

    def apply_movement(
        self,
        locked: LockedLedgers,
        movement: LedgerMovement,
        actor_id: UUID,
    ) -> LedgerBalances:
        """
        Write ``movement`` to the locked rows and flush.

        A ledger whose delta is zero is not touched.
        """
        if locked.balances != movement.balances_before:
            raise LedgerIntegrityError(
                f"Movement for staff {locked.staff_id} was computed from "
                f"{movement.balances_before}, locked rows hold {locked.balances}"
            )

        self._apply(locked.advance, "advance", movement.advance_delta, locked.staff_id, actor_id)
        self._apply(
            locked.carry_forward,
            "carry_forward",
            movement.carry_forward_delta,
            locked.staff_id,
            actor_id,
        )
        self.session.flush()

        after = locked.balances
        logger.debug(
            "ledger_movement_applied",
            extra={
                "staff_id": str(locked.staff_id),
                "advance_delta": movement.advance_delta,
                "carry_forward_delta": movement.carry_forward_delta,
                "advance_balance": after.advance,
                "carry_forward_balance": after.carry_forward,
            },
        )
        return after

    def _apply(self, row, ledger: str, delta: Decimal, staff_id: UUID, actor_id: UUID) -> None:
        if delta == 0:
            return
        new_balance = round_money(row.balance, self.decimal_places) + delta
        if new_balance < 0:
            raise NegativeBalanceError(ledger, str(staff_id), str(new_balance))
        row.balance = new_balance
        row.updated_by_id = actor_id
