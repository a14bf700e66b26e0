"""Derive an XRPL account from a BIP-39 seed phrase and sweep it into another account."""

from xrpl_sweep.config import Network, SweepSettings
from xrpl_sweep.derivation import DerivedAccount, Keypair, derive
from xrpl_sweep.reserve import compute_spendable
from xrpl_sweep.sweep import Confirmation, SweepOrchestrator, SweepState

__version__ = "0.1.0"

__all__ = [
    "Confirmation",
    "DerivedAccount",
    "Keypair",
    "Network",
    "SweepOrchestrator",
    "SweepSettings",
    "SweepState",
    "compute_spendable",
    "derive",
]
