"""Shared pytest fixtures and a recording LedgerSession double."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Any, List, Tuple

import pytest
from xrpl.core.addresscodec import is_valid_classic_address
from xrpl.models.transactions.transaction import Transaction

from xrpl_sweep.config import SweepSettings
from xrpl_sweep.derivation import DerivedAccount, derive
from xrpl_sweep.errors import AccountNotFound
from xrpl_sweep.models import AccountState, ReserveParameters, SubmissionResult

# BIP-39 reference vectors (all-zero entropy).
PHRASE_12 = " ".join(["abandon"] * 11 + ["about"])
PHRASE_18 = " ".join(["abandon"] * 17 + ["agent"])
PHRASE_24 = " ".join(["abandon"] * 23 + ["art"])

# Genesis account; a well-formed classic address we never sign for.
DESTINATION = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"


def ok(tx_hash: str = "A" * 64) -> SubmissionResult:
    return SubmissionResult(result_code="tesSUCCESS", succeeded=True, tx_hash=tx_hash)


def rejected(code: str, tx_hash: str = "B" * 64) -> SubmissionResult:
    return SubmissionResult(result_code=code, succeeded=False, tx_hash=tx_hash)


class FakeLedgerSession:
    """Records every call in order; submissions answer from a queue of results."""

    def __init__(
        self,
        account_state: AccountState | None = None,
        reserve: ReserveParameters | None = None,
        results: List[SubmissionResult | Exception] | None = None,
        autofill_error: Exception | None = None,
    ):
        self.account_state = account_state
        self.reserve = reserve or ReserveParameters(Decimal(10), Decimal(2))
        self.results = list(results or [])
        self.autofill_error = autofill_error
        self.calls: List[Tuple[str, Any]] = []
        self.submitted: List[Transaction] = []
        self.closed = False

    def fetch_account_state(self, address: str) -> AccountState:
        self.calls.append(("fetch_account_state", address))
        if self.account_state is None:
            raise AccountNotFound(address)
        return self.account_state

    def fetch_reserve_parameters(self) -> ReserveParameters:
        self.calls.append(("fetch_reserve_parameters", None))
        return self.reserve

    def autofill(self, transaction: Transaction) -> Transaction:
        self.calls.append(("autofill", transaction.transaction_type.value))
        if self.autofill_error is not None:
            raise self.autofill_error
        return replace(transaction, sequence=7, fee="12", last_ledger_sequence=1_000)

    def submit_and_await_validation(self, signed_transaction: Transaction) -> SubmissionResult:
        self.calls.append(("submit", signed_transaction.transaction_type.value))
        self.submitted.append(signed_transaction)
        result = self.results.pop(0) if self.results else ok()
        if isinstance(result, Exception):
            raise result
        return result

    def validate_address_format(self, address: str) -> bool:
        return is_valid_classic_address(address)

    def close(self) -> None:
        self.closed = True

    @property
    def submitted_types(self) -> List[str]:
        return [tx.transaction_type.value for tx in self.submitted]


@pytest.fixture
def settings() -> SweepSettings:
    return SweepSettings(fee_buffer=Decimal("0.02"), min_payment=Decimal("0.1"))


@pytest.fixture
def account() -> DerivedAccount:
    acct = derive(PHRASE_12)
    try:
        yield acct
    finally:
        acct.wipe()
