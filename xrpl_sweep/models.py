from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Union

from xrpl_sweep.errors import TransactionRejected

SUCCESS_CODE = "tesSUCCESS"

STAGE_PAYMENT = "payment"
STAGE_DELETE = "delete"


# ---------------- Ledger snapshots ----------------
@dataclass(frozen=True, slots=True)
class ReserveParameters:
    base_reserve: Decimal
    owner_reserve_increment: Decimal


@dataclass(frozen=True, slots=True)
class AccountState:
    balance: Decimal
    owner_count: int


@dataclass(frozen=True, slots=True)
class SpendablePlan:
    spendable_amount: Decimal
    should_send_payment: bool
    total_reserve: Decimal = Decimal(0)


# ---------------- Transactions ----------------
@dataclass(frozen=True, slots=True)
class PaymentIntent:
    destination: str
    amount: Decimal

    kind = STAGE_PAYMENT


@dataclass(frozen=True, slots=True)
class AccountDeleteIntent:
    destination: str

    kind = STAGE_DELETE


SweepTransaction = Union[PaymentIntent, AccountDeleteIntent]


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    """What the session learned about a submitted transaction.

    ``result_code`` is None when no validated outcome was obtained.
    ``submitted`` is False only when the transaction never left this process.
    """

    result_code: str | None
    succeeded: bool
    tx_hash: str | None = None
    detail: str = ""
    submitted: bool = True

    @property
    def definitive(self) -> bool:
        return self.result_code is not None


# ---------------- Outcomes ----------------
@dataclass(frozen=True, slots=True)
class Success:
    destination: str
    amount_sent: Decimal | None = None
    payment_hash: str | None = None
    delete_hash: str | None = None


@dataclass(frozen=True, slots=True)
class PartialFailure:
    stage: str
    reason: str
    code: str | None = None
    funds_moved: bool = False
    next_action: str = ""
    payment_hash: str | None = None

    @property
    def rejection(self) -> TransactionRejected | None:
        if self.code is None:
            return None
        return TransactionRejected(self.stage, self.code)


@dataclass(frozen=True, slots=True)
class Cancelled:
    reason: str = "confirmation declined"


@dataclass(frozen=True, slots=True)
class PreconditionFailed:
    reason: str


Outcome = Union[Success, PartialFailure, Cancelled, PreconditionFailed]
