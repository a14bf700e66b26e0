"""Ledger session: the only part of the sweep that talks to the network.

Every call blocks until the server answers. Nothing here retries; a request
that fails surfaces as NetworkFailure and the caller decides what to do.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

import httpx
from xrpl.clients import JsonRpcClient
from xrpl.constants import XRPLException
from xrpl.core.addresscodec import is_valid_classic_address
from xrpl.models.requests import AccountInfo, ServerInfo, Tx
from xrpl.models.requests.request import Request
from xrpl.models.response import Response
from xrpl.models.transactions.transaction import Transaction
from xrpl.transaction import XRPLReliableSubmissionException, autofill, submit_and_wait
from xrpl.utils import drops_to_xrp

from xrpl_sweep.config import SweepSettings
from xrpl_sweep.errors import AccountNotFound, NetworkFailure
from xrpl_sweep.models import SUCCESS_CODE, AccountState, ReserveParameters, SubmissionResult


class LedgerSession(Protocol):
    def fetch_account_state(self, address: str) -> AccountState: ...

    def fetch_reserve_parameters(self) -> ReserveParameters: ...

    def autofill(self, transaction: Transaction) -> Transaction: ...

    def submit_and_await_validation(self, signed_transaction: Transaction) -> SubmissionResult: ...

    def validate_address_format(self, address: str) -> bool: ...

    def close(self) -> None: ...


def _xrp(value) -> Decimal:
    return Decimal(str(value))


class XrplLedgerSession:
    """LedgerSession over the XRPL JSON-RPC API."""

    def __init__(self, settings: SweepSettings, *, client: JsonRpcClient | None = None):
        self.settings = settings
        self.url = settings.endpoint
        self._client = client if client is not None else JsonRpcClient(self.url)
        self._closed = False

    # ---------------- Requests ----------------
    def _request(self, request: Request) -> Response:
        if self._closed:
            raise NetworkFailure("Ledger session is closed")
        try:
            return self._client.request(request)
        except (XRPLException, httpx.HTTPError) as e:
            raise NetworkFailure(f"{request.method} request failed: {e}") from e

    def fetch_account_state(self, address: str) -> AccountState:
        resp = self._request(AccountInfo(account=address, ledger_index="validated"))
        result = resp.result or {}
        if not resp.is_successful():
            if result.get("error") == "actNotFound":
                raise AccountNotFound(address)
            raise NetworkFailure(
                f"account_info failed: {result.get('error_message') or result.get('error') or result}"
            )

        data = result.get("account_data") or {}
        if "Balance" not in data:
            raise NetworkFailure(f"account_info returned no balance: {result}")
        return AccountState(
            balance=drops_to_xrp(str(data["Balance"])),
            owner_count=int(data.get("OwnerCount", 0) or 0),
        )

    def fetch_reserve_parameters(self) -> ReserveParameters:
        resp = self._request(ServerInfo())
        result = resp.result or {}
        if not resp.is_successful():
            raise NetworkFailure(f"server_info failed: {result.get('error_message') or result.get('error')}")

        ledger = (result.get("info") or {}).get("validated_ledger") or {}
        base = ledger.get("reserve_base_xrp")
        inc = ledger.get("reserve_inc_xrp")
        if base is None or inc is None:
            raise NetworkFailure("server_info has no validated ledger reserves (server not synced?)")
        return ReserveParameters(base_reserve=_xrp(base), owner_reserve_increment=_xrp(inc))

    # ---------------- Transactions ----------------
    def autofill(self, transaction: Transaction) -> Transaction:
        try:
            return autofill(transaction, self._client)
        except (XRPLException, httpx.HTTPError) as e:
            raise NetworkFailure(f"autofill failed: {e}") from e

    def submit_and_await_validation(self, signed_transaction: Transaction) -> SubmissionResult:
        """Submit an already-signed transaction and wait for a validated result."""
        if not signed_transaction.is_signed():
            raise ValueError("Refusing to submit an unsigned transaction")
        try:
            resp = submit_and_wait(signed_transaction, self._client)
        except XRPLReliableSubmissionException as e:
            return self._resolve_failed_submission(signed_transaction, str(e))
        except (XRPLException, httpx.HTTPError) as e:
            raise NetworkFailure(f"submit failed: {e}") from e

        result = resp.result or {}
        tx_hash = result.get("hash") or signed_transaction.get_hash()
        if not result.get("validated"):
            return SubmissionResult(
                result_code=None, succeeded=False, tx_hash=tx_hash, detail="transaction not validated"
            )
        code = (result.get("meta") or {}).get("TransactionResult")
        return SubmissionResult(result_code=code, succeeded=code == SUCCESS_CODE, tx_hash=tx_hash)

    def _resolve_failed_submission(self, signed_transaction: Transaction, detail: str) -> SubmissionResult:
        """Turn a submit_and_wait failure into the transaction's definitive code, when one exists.

        Preliminary tem* results are final (the transaction can never be applied) and
        arrive as "<code>: <message>". Everything else is looked up by hash; only a
        validated lookup counts as an answer.
        """
        tx_hash = signed_transaction.get_hash()
        prelim = detail.split(":", 1)[0].strip()
        if prelim.startswith("tem"):
            return SubmissionResult(result_code=prelim, succeeded=False, tx_hash=tx_hash, detail=detail)

        try:
            resp = self._request(Tx(transaction=tx_hash))
        except NetworkFailure as e:
            return SubmissionResult(result_code=None, succeeded=False, tx_hash=tx_hash, detail=f"{detail} ({e})")
        result = resp.result or {}
        if not resp.is_successful() or not result.get("validated"):
            return SubmissionResult(result_code=None, succeeded=False, tx_hash=tx_hash, detail=detail)
        code = (result.get("meta") or {}).get("TransactionResult")
        if not code:
            return SubmissionResult(result_code=None, succeeded=False, tx_hash=tx_hash, detail=detail)
        return SubmissionResult(result_code=code, succeeded=code == SUCCESS_CODE, tx_hash=tx_hash, detail=detail)

    def validate_address_format(self, address: str) -> bool:
        return is_valid_classic_address(address)

    def close(self) -> None:
        self._closed = True
