"""Sweep orchestration: payment of the spendable surplus, then AccountDelete.

The orchestrator walks a fixed sequence of states and issues one ledger call at
a time. AccountDelete is only ever reached after the payment (if any) came back
with tesSUCCESS from a validated ledger. Terminal outcomes are never retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Set

from xrpl.models.transactions import AccountDelete, Payment
from xrpl.models.transactions.transaction import Transaction
from xrpl.transaction import sign
from xrpl.utils import xrp_to_drops

from xrpl_sweep.config import SweepSettings
from xrpl_sweep.derivation import DerivedAccount
from xrpl_sweep.errors import NetworkFailure, SweepStateError
from xrpl_sweep.ledger import LedgerSession
from xrpl_sweep.models import (
    STAGE_DELETE,
    STAGE_PAYMENT,
    AccountDeleteIntent,
    AccountState,
    Cancelled,
    Outcome,
    PartialFailure,
    PaymentIntent,
    PreconditionFailed,
    ReserveParameters,
    SpendablePlan,
    SubmissionResult,
    Success,
    SweepTransaction,
)
from xrpl_sweep.reserve import fmt_xrp, plan_spendable

RESULT_CODE_HINTS = {
    "tecTOO_SOON": "AccountDelete needs the account sequence to be at least 256 ledgers old; wait ~15 minutes.",
    "tecHAS_OBLIGATIONS": "The account still owns ledger objects that block deletion; remove them first.",
    "tecDST_TAG_NEEDED": "The destination requires a destination tag; pick another destination.",
    "tecNO_DST_INSUF_XRP": "The destination does not exist and the amount is too small to create it.",
    "tecNO_DST": "The destination account does not exist.",
    "tecUNFUNDED_PAYMENT": "The balance no longer covers the payment; re-run to recompute the amount.",
}


class SweepState(str, Enum):
    IDLE = "idle"
    ACCOUNT_LOADED = "account_loaded"
    PRECONDITION_CHECKED = "precondition_checked"
    PLAN_COMPUTED = "plan_computed"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    PAYMENT_PHASE = "payment_phase"
    DELETE_PHASE = "delete_phase"
    TERMINAL = "terminal"


@dataclass(frozen=True, slots=True)
class ConfirmationRequest:
    source: str
    account: AccountState
    reserve: ReserveParameters
    plan: SpendablePlan


@dataclass(frozen=True, slots=True)
class Confirmation:
    destination: str
    affirmative: bool


def is_affirmative(answer: str) -> bool:
    return (answer or "").strip().lower() in {"y", "yes"}


class SweepOrchestrator:
    def __init__(
        self,
        session: LedgerSession,
        account: DerivedAccount,
        settings: SweepSettings,
        *,
        echo: Callable[[str], None] = print,
    ):
        self.session = session
        self.account = account
        self.settings = settings
        self.echo = echo

        self.state = SweepState.IDLE
        self.account_state: AccountState | None = None
        self.reserve: ReserveParameters | None = None
        self.plan: SpendablePlan | None = None
        self.destination: str | None = None
        self.outcome: Outcome | None = None
        self._submitted: Set[str] = set()

    @property
    def source(self) -> str:
        return self.account.address

    def _expect(self, *states: SweepState) -> None:
        if self.state not in states:
            expected = " or ".join(s.value for s in states)
            raise SweepStateError(f"Sweep is {self.state.value}, expected {expected}")

    def _finish(self, outcome: Outcome) -> Outcome:
        self.state = SweepState.TERMINAL
        self.outcome = outcome
        return outcome

    # ---------------- Setup ----------------
    def load(self) -> AccountState:
        """Snapshot the account and the current reserve. Raises AccountNotFound / NetworkFailure."""
        self._expect(SweepState.IDLE)
        account_state = self.session.fetch_account_state(self.source)
        reserve = self.session.fetch_reserve_parameters()
        self.account_state = account_state
        self.reserve = reserve
        self.state = SweepState.ACCOUNT_LOADED
        return account_state

    def check_preconditions(self) -> PreconditionFailed | None:
        self._expect(SweepState.ACCOUNT_LOADED)
        if self.account_state.owner_count > 0:
            self.echo(
                f"ERROR: Account owns {self.account_state.owner_count} objects "
                "(trust lines, offers, escrows, etc.); AccountDelete would fail."
            )
            return self._finish(PreconditionFailed("nonzero owner count"))
        self.state = SweepState.PRECONDITION_CHECKED
        return None

    def compute_plan(self) -> SpendablePlan:
        self._expect(SweepState.PRECONDITION_CHECKED)
        self.plan = plan_spendable(
            self.account_state,
            self.reserve,
            fee_buffer=self.settings.fee_buffer,
            min_payment=self.settings.min_payment,
        )
        self.state = SweepState.PLAN_COMPUTED
        return self.plan

    def await_confirmation(self) -> ConfirmationRequest:
        self._expect(SweepState.PLAN_COMPUTED)
        self.state = SweepState.AWAITING_CONFIRMATION
        return ConfirmationRequest(
            source=self.source,
            account=self.account_state,
            reserve=self.reserve,
            plan=self.plan,
        )

    def confirm(self, destination: str, affirmative: bool) -> Cancelled | None:
        """Record the caller's answer. Raises ValueError for an unusable destination."""
        self._expect(SweepState.AWAITING_CONFIRMATION)
        if self.destination is not None:
            raise SweepStateError("Destination already confirmed")
        if not affirmative:
            return self._finish(Cancelled())

        destination = (destination or "").strip()
        if not destination or not self.session.validate_address_format(destination):
            raise ValueError(f"Invalid XRP address: {destination!r}")
        if destination == self.source:
            raise ValueError("Destination must differ from the account being deleted")
        self.destination = destination
        return None

    # ---------------- Execution ----------------
    def execute(self) -> Outcome:
        self._expect(SweepState.AWAITING_CONFIRMATION)
        if self.destination is None:
            raise SweepStateError("No confirmed destination")

        payment: SubmissionResult | None = None
        if self.plan.should_send_payment:
            self.state = SweepState.PAYMENT_PHASE
            payment = self._transact(PaymentIntent(self.destination, self.plan.spendable_amount))
            if not payment.succeeded:
                return self._finish(self._payment_failure(payment))
            self.echo("Payment successful!")
        else:
            self.echo(
                f"Skipping payment: spendable {fmt_xrp(self.plan.spendable_amount)} XRP "
                f"is not above {fmt_xrp(self.settings.min_payment)} XRP."
            )

        self.state = SweepState.DELETE_PHASE
        deletion = self._transact(AccountDeleteIntent(self.destination))
        if not deletion.succeeded:
            return self._finish(self._delete_failure(deletion, payment))

        self.echo("Account deleted. Remaining funds sent (minus burn fee).")
        return self._finish(
            Success(
                destination=self.destination,
                amount_sent=self.plan.spendable_amount if payment else None,
                payment_hash=payment.tx_hash if payment else None,
                delete_hash=deletion.tx_hash,
            )
        )

    def run(self, confirm: Callable[[ConfirmationRequest], Confirmation]) -> Outcome:
        """Drive the whole sweep; ``confirm`` blocks until the caller answers."""
        self.load()
        failed = self.check_preconditions()
        if failed is not None:
            return failed
        self.compute_plan()
        answer = confirm(self.await_confirmation())
        cancelled = self.confirm(answer.destination, answer.affirmative)
        if cancelled is not None:
            return cancelled
        return self.execute()

    # ---------------- Transactions ----------------
    def _build(self, intent: SweepTransaction) -> Transaction:
        if isinstance(intent, PaymentIntent):
            return Payment(
                account=self.source,
                destination=intent.destination,
                amount=xrp_to_drops(intent.amount),
            )
        if self.account_state is None or self.account_state.owner_count != 0:
            raise SweepStateError("AccountDelete requires a zero owner count")
        return AccountDelete(account=self.source, destination=intent.destination)

    def _transact(self, intent: SweepTransaction) -> SubmissionResult:
        """Build, autofill, sign once and submit; each intent kind goes out at most once."""
        if intent.kind in self._submitted:
            raise SweepStateError(f"{intent.kind} transaction already submitted in this sweep")

        try:
            filled = self.session.autofill(self._build(intent))
        except NetworkFailure as exc:
            return SubmissionResult(result_code=None, succeeded=False, detail=str(exc), submitted=False)
        signed = sign(filled, self.account.wallet)

        label = "Payment" if intent.kind == STAGE_PAYMENT else "AccountDelete"
        if isinstance(intent, PaymentIntent):
            self.echo(f"Submitting {label} of {fmt_xrp(intent.amount)} XRP to {intent.destination}...")
        else:
            self.echo(f"Submitting {label} to {intent.destination}...")

        self._submitted.add(intent.kind)
        try:
            return self.session.submit_and_await_validation(signed)
        except NetworkFailure as exc:
            return SubmissionResult(result_code=None, succeeded=False, detail=str(exc))

    # ---------------- Failure reporting ----------------
    @staticmethod
    def _reason(result: SubmissionResult) -> str:
        if not result.submitted:
            return f"not submitted: {result.detail}"
        if not result.definitive:
            return f"unconfirmed: {result.detail}" if result.detail else "unconfirmed"
        return result.result_code

    def _payment_failure(self, result: SubmissionResult) -> PartialFailure:
        if result.definitive or not result.submitted:
            next_action = "Nothing was moved and the account was not deleted. Fix the cause and re-run the sweep."
        else:
            next_action = (
                "The payment may still be applied; look up the account on a ledger explorer "
                "before re-running. The account was not deleted."
            )
        hint = RESULT_CODE_HINTS.get(result.result_code or "")
        if hint:
            next_action = f"{next_action} {hint}"
        return PartialFailure(
            stage=STAGE_PAYMENT,
            reason=self._reason(result),
            code=result.result_code,
            funds_moved=False,
            next_action=next_action,
            payment_hash=result.tx_hash,
        )

    def _delete_failure(self, result: SubmissionResult, payment: SubmissionResult | None) -> PartialFailure:
        moved = payment is not None and payment.succeeded
        if moved:
            next_action = (
                f"The payment of {fmt_xrp(self.plan.spendable_amount)} XRP succeeded, but the account still "
                "exists and still holds its reserve. Retry the deletion only (re-running the sweep will skip "
                "the payment); do not send another payment."
            )
        else:
            next_action = "The account still exists with its full balance. Retry the deletion by re-running the sweep."
        if not result.definitive and result.submitted:
            next_action = f"The AccountDelete outcome is unknown; check the account before retrying. {next_action}"
        hint = RESULT_CODE_HINTS.get(result.result_code or "")
        if hint:
            next_action = f"{next_action} {hint}"
        return PartialFailure(
            stage=STAGE_DELETE,
            reason=self._reason(result),
            code=result.result_code,
            funds_moved=moved,
            next_action=next_action,
            payment_hash=payment.tx_hash if payment else None,
        )
