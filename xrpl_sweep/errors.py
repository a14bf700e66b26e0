"""Exception taxonomy for the sweep.

PreconditionFailed and Cancelled are terminal outcomes, not exceptions; see
``xrpl_sweep.models``.
"""

from __future__ import annotations


class SweepError(Exception):
    """Base class for every fatal sweep condition."""


class InvalidSeedPhrase(SweepError):
    """Word count outside {12,15,18,21,24} or BIP-39 checksum failure."""


class DerivationError(SweepError):
    """Derived key material failed its address echo-check."""


class AccountNotFound(SweepError):
    def __init__(self, address: str):
        super().__init__(f"Account {address} does not exist or is not funded")
        self.address = address


class NetworkFailure(SweepError):
    """A ledger request failed before a definitive answer was obtained."""


class SweepStateError(SweepError):
    """An orchestrator operation was called out of order."""


class TransactionRejected(SweepError):
    def __init__(self, phase: str, code: str):
        super().__init__(f"{phase} rejected by the network: {code}")
        self.phase = phase
        self.code = code
