"""Tests for SweepOrchestrator: ordering, gating and terminal outcomes."""

from __future__ import annotations

from decimal import Decimal
from typing import List

import pytest

from tests.conftest import DESTINATION, FakeLedgerSession, ok, rejected
from xrpl_sweep.config import SweepSettings
from xrpl_sweep.derivation import DerivedAccount
from xrpl_sweep.errors import AccountNotFound, NetworkFailure, SweepStateError
from xrpl_sweep.models import (
    AccountState,
    Cancelled,
    PartialFailure,
    PaymentIntent,
    PreconditionFailed,
    SubmissionResult,
    Success,
)
from xrpl_sweep.sweep import Confirmation, SweepOrchestrator, SweepState, is_affirmative


def funded(balance: str = "15", owner_count: int = 0) -> AccountState:
    return AccountState(balance=Decimal(balance), owner_count=owner_count)


def make(
    account: DerivedAccount,
    settings: SweepSettings,
    session: FakeLedgerSession,
) -> tuple[SweepOrchestrator, List[str]]:
    lines: List[str] = []
    return SweepOrchestrator(session, account, settings, echo=lines.append), lines


def yes(_request) -> Confirmation:
    return Confirmation(destination=DESTINATION, affirmative=True)


def no(_request) -> Confirmation:
    return Confirmation(destination=DESTINATION, affirmative=False)


# ---------------------------------------------------------------------------
# End-to-end scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_payment_then_delete_success(self, account, settings) -> None:
        session = FakeLedgerSession(funded("15"), results=[ok("P" * 64), ok("D" * 64)])
        orch, _ = make(account, settings, session)

        outcome = orch.run(yes)

        assert isinstance(outcome, Success)
        assert outcome.amount_sent == Decimal("4.98")
        assert outcome.payment_hash == "P" * 64
        assert outcome.delete_hash == "D" * 64
        assert session.submitted_types == ["Payment", "AccountDelete"]
        assert orch.state is SweepState.TERMINAL

        payment, deletion = session.submitted
        assert payment.amount == "4980000"
        assert payment.destination == DESTINATION
        assert payment.account == account.address
        assert deletion.destination == DESTINATION
        assert deletion.account == account.address
        assert payment.is_signed() and deletion.is_signed()

    def test_payment_failure_stops_before_delete(self, account, settings) -> None:
        session = FakeLedgerSession(funded("15"), results=[rejected("tecPATH_DRY")])
        orch, _ = make(account, settings, session)

        outcome = orch.run(yes)

        assert isinstance(outcome, PartialFailure)
        assert outcome.stage == "payment"
        assert outcome.reason == "tecPATH_DRY"
        assert outcome.code == "tecPATH_DRY"
        assert not outcome.funds_moved
        assert session.submitted_types == ["Payment"]
        assert ("autofill", "AccountDelete") not in session.calls


# ---------------------------------------------------------------------------
# Ordering invariant
# ---------------------------------------------------------------------------


class TestOrdering:
    @pytest.mark.parametrize(
        "result",
        [
            rejected("tecUNFUNDED_PAYMENT"),
            rejected("tecNO_DST_INSUF_XRP"),
            rejected("tefPAST_SEQ"),
            SubmissionResult(result_code=None, succeeded=False, detail="LastLedgerSequence passed"),
            NetworkFailure("connection reset"),
        ],
        ids=["unfunded", "no-dst", "past-seq", "unvalidated", "network"],
    )
    def test_delete_never_follows_failed_payment(self, account, settings, result) -> None:
        session = FakeLedgerSession(funded("15"), results=[result])
        orch, _ = make(account, settings, session)

        outcome = orch.run(yes)

        assert isinstance(outcome, PartialFailure)
        assert outcome.stage == "payment"
        assert session.submitted_types == ["Payment"]
        assert [c for c in session.calls if c[0] == "autofill"] == [("autofill", "Payment")]

    def test_calls_are_strictly_sequential(self, account, settings) -> None:
        session = FakeLedgerSession(funded("15"))
        orch, _ = make(account, settings, session)
        orch.run(yes)
        assert [name for name, _ in session.calls] == [
            "fetch_account_state",
            "fetch_reserve_parameters",
            "autofill",
            "submit",
            "autofill",
            "submit",
        ]

    def test_unconfirmed_payment_reported_as_such(self, account, settings) -> None:
        session = FakeLedgerSession(
            funded("15"),
            results=[SubmissionResult(result_code=None, succeeded=False, detail="LastLedgerSequence passed")],
        )
        orch, _ = make(account, settings, session)
        outcome = orch.run(yes)
        assert outcome.reason.startswith("unconfirmed")
        assert outcome.code is None
        assert outcome.rejection is None
        assert "may still be applied" in outcome.next_action

    def test_autofill_failure_submits_nothing(self, account, settings) -> None:
        session = FakeLedgerSession(funded("15"), autofill_error=NetworkFailure("timeout"))
        orch, _ = make(account, settings, session)
        outcome = orch.run(yes)
        assert isinstance(outcome, PartialFailure)
        assert outcome.reason.startswith("not submitted")
        assert session.submitted == []


# ---------------------------------------------------------------------------
# Delete phase
# ---------------------------------------------------------------------------


class TestDeletePhase:
    def test_delete_failure_after_payment(self, account, settings) -> None:
        session = FakeLedgerSession(funded("15"), results=[ok("P" * 64), rejected("tecTOO_SOON")])
        orch, _ = make(account, settings, session)

        outcome = orch.run(yes)

        assert isinstance(outcome, PartialFailure)
        assert outcome.stage == "delete"
        assert outcome.code == "tecTOO_SOON"
        assert outcome.funds_moved
        assert outcome.payment_hash == "P" * 64
        assert "still holds its reserve" in outcome.next_action
        assert "do not send another payment" in outcome.next_action
        assert "256 ledgers" in outcome.next_action
        assert str(outcome.rejection) == "delete rejected by the network: tecTOO_SOON"

    def test_small_surplus_goes_straight_to_delete(self, account, settings) -> None:
        session = FakeLedgerSession(funded("10.05"))
        orch, lines = make(account, settings, session)

        outcome = orch.run(yes)

        assert isinstance(outcome, Success)
        assert outcome.amount_sent is None
        assert outcome.payment_hash is None
        assert session.submitted_types == ["AccountDelete"]
        assert any(line.startswith("Skipping payment") for line in lines)

    def test_delete_failure_without_payment(self, account, settings) -> None:
        session = FakeLedgerSession(funded("10.05"), results=[rejected("tecDST_TAG_NEEDED")])
        orch, _ = make(account, settings, session)
        outcome = orch.run(yes)
        assert outcome.stage == "delete"
        assert not outcome.funds_moved
        assert "destination tag" in outcome.next_action


# ---------------------------------------------------------------------------
# Gates: precondition, cancellation, destination
# ---------------------------------------------------------------------------


class TestGates:
    @pytest.mark.parametrize("owner_count", [1, 3, 200])
    def test_owner_count_blocks_sweep(self, account, settings, owner_count: int) -> None:
        session = FakeLedgerSession(funded("100", owner_count=owner_count))
        orch, lines = make(account, settings, session)

        def never(_request):
            raise AssertionError("confirmation must not be requested")

        outcome = orch.run(never)

        assert outcome == PreconditionFailed("nonzero owner count")
        assert session.submitted == []
        assert not any(name == "autofill" for name, _ in session.calls)
        assert orch.state is SweepState.TERMINAL
        assert lines and lines[0].startswith("ERROR")

    def test_declined_confirmation(self, account, settings) -> None:
        session = FakeLedgerSession(funded("15"))
        orch, _ = make(account, settings, session)
        assert isinstance(orch.run(no), Cancelled)
        assert session.submitted == []
        assert orch.state is SweepState.TERMINAL

    def test_account_not_found_propagates(self, account, settings) -> None:
        session = FakeLedgerSession(None)
        orch, _ = make(account, settings, session)
        with pytest.raises(AccountNotFound):
            orch.run(yes)
        assert session.submitted == []

    @pytest.mark.parametrize("destination", ["", "not-an-address", "rInvalid000000000000000000000000"])
    def test_invalid_destination_rejected(self, account, settings, destination: str) -> None:
        orch, _ = make(account, settings, FakeLedgerSession(funded("15")))
        orch.load()
        orch.check_preconditions()
        orch.compute_plan()
        orch.await_confirmation()
        with pytest.raises(ValueError):
            orch.confirm(destination, True)
        assert orch.state is SweepState.AWAITING_CONFIRMATION

    def test_destination_cannot_be_source(self, account, settings) -> None:
        orch, _ = make(account, settings, FakeLedgerSession(funded("15")))
        orch.load()
        orch.check_preconditions()
        orch.compute_plan()
        orch.await_confirmation()
        with pytest.raises(ValueError, match="differ"):
            orch.confirm(account.address, True)


# ---------------------------------------------------------------------------
# State machine discipline
# ---------------------------------------------------------------------------


class TestStateMachine:
    def test_step_by_step(self, account, settings) -> None:
        session = FakeLedgerSession(funded("20"))
        orch, _ = make(account, settings, session)

        assert orch.load() == funded("20")
        assert orch.state is SweepState.ACCOUNT_LOADED
        assert orch.check_preconditions() is None
        plan = orch.compute_plan()
        assert plan.spendable_amount == Decimal("9.98")
        request = orch.await_confirmation()
        assert request.source == account.address
        assert request.plan is plan
        assert orch.confirm(DESTINATION, True) is None
        assert isinstance(orch.execute(), Success)

    def test_execute_requires_confirmation(self, account, settings) -> None:
        orch, _ = make(account, settings, FakeLedgerSession(funded("15")))
        with pytest.raises(SweepStateError):
            orch.execute()
        orch.load()
        orch.check_preconditions()
        orch.compute_plan()
        orch.await_confirmation()
        with pytest.raises(SweepStateError, match="destination"):
            orch.execute()

    def test_out_of_order_calls(self, account, settings) -> None:
        orch, _ = make(account, settings, FakeLedgerSession(funded("15")))
        with pytest.raises(SweepStateError):
            orch.compute_plan()
        orch.load()
        with pytest.raises(SweepStateError):
            orch.load()

    def test_terminal_is_final(self, account, settings) -> None:
        session = FakeLedgerSession(funded("15"))
        orch, _ = make(account, settings, session)
        orch.run(yes)
        with pytest.raises(SweepStateError):
            orch.execute()
        assert session.submitted_types == ["Payment", "AccountDelete"]

    def test_same_transaction_kind_submitted_once(self, account, settings) -> None:
        session = FakeLedgerSession(funded("15"))
        orch, _ = make(account, settings, session)
        orch.load()
        intent = PaymentIntent(DESTINATION, Decimal("1"))
        orch._transact(intent)
        with pytest.raises(SweepStateError, match="already submitted"):
            orch._transact(PaymentIntent(DESTINATION, Decimal("2")))
        assert session.submitted_types == ["Payment"]


@pytest.mark.parametrize(
    ("answer", "expected"),
    [("y", True), ("YES", True), (" yes ", True), ("n", False), ("", False), ("yep", False)],
)
def test_is_affirmative(answer: str, expected: bool) -> None:
    assert is_affirmative(answer) is expected
