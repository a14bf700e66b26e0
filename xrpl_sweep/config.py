"""Runtime settings: network selection, endpoints and sweep thresholds."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum


class Network(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"


DEFAULT_ENDPOINTS = {
    Network.MAINNET: "https://xrplcluster.com/",
    Network.TESTNET: "https://s.altnet.rippletest.net:51234/",
}

# Covers the Payment's own fee, which is deducted from the balance before the sweep amount.
DEFAULT_FEE_BUFFER_XRP = Decimal("0.02")

# Below this the transfer is skipped and the reserve reclaim carries the funds.
DEFAULT_MIN_PAYMENT_XRP = Decimal("0.1")

# Burned by AccountDelete; informational only, the network enforces it.
ACCOUNT_DELETE_BURN_XRP = Decimal("0.2")


def parse_network(value: str) -> Network:
    try:
        return Network((value or "").strip().lower())
    except ValueError as e:
        choices = ", ".join(n.value for n in Network)
        raise ValueError(f"Unknown network {value!r} (expected one of: {choices})") from e


def parse_xrp(value: str | Decimal, *, name: str) -> Decimal:
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"{name} must be a decimal XRP amount, got {value!r}") from e
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"{name} must be a non-negative XRP amount, got {value!r}")
    return amount


@dataclass(frozen=True, slots=True)
class SweepSettings:
    network: Network = Network.MAINNET
    rpc_url: str = ""
    fee_buffer: Decimal = DEFAULT_FEE_BUFFER_XRP
    min_payment: Decimal = DEFAULT_MIN_PAYMENT_XRP

    @property
    def endpoint(self) -> str:
        return self.rpc_url.strip() or DEFAULT_ENDPOINTS[self.network]

    @property
    def is_testnet(self) -> bool:
        return self.network is Network.TESTNET

