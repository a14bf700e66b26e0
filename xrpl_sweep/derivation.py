"""Seed phrase -> secp256k1 keypair -> classic XRPL address.

The derivation matches what xrpl.js ``Wallet.fromMnemonic`` does by default:
BIP-39 seed with an empty passphrase, then the single account key at
m/44'/144'/0'/0/0. Nothing here touches the network or the disk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from bip_utils import Bip44, Bip44Changes, Bip44Coins
from mnemonic import Mnemonic
from xrpl.core.keypairs import derive_classic_address
from xrpl.wallet import Wallet

from xrpl_sweep.errors import DerivationError, InvalidSeedPhrase

VALID_WORD_COUNTS = (12, 15, 18, 21, 24)
DERIVATION_PATH = "m/44'/144'/0'/0/0"

_WORDLIST = Mnemonic("english")


# ---------------- Key material ----------------
@dataclass(slots=True)
class Keypair:
    private_key: bytearray
    public_key: bytearray

    @property
    def private_key_hex(self) -> str:
        # xrpl-py expects secp256k1 private keys as 33 bytes with a 0x00 prefix.
        return "00" + bytes(self.private_key).hex().upper()

    @property
    def public_key_hex(self) -> str:
        return bytes(self.public_key).hex().upper()

    def wipe(self) -> None:
        for buf in (self.private_key, self.public_key):
            for i in range(len(buf)):
                buf[i] = 0


@dataclass(slots=True)
class DerivedAccount:
    keypair: Keypair
    address: str
    _wallet: Wallet | None = field(default=None, repr=False)

    @property
    def wallet(self) -> Wallet:
        if self._wallet is None:
            if not any(self.keypair.private_key):
                raise DerivationError("Key material has already been wiped")
            self._wallet = Wallet(
                public_key=self.keypair.public_key_hex,
                private_key=self.keypair.private_key_hex,
            )
        return self._wallet

    def wipe(self) -> None:
        self._wallet = None
        self.keypair.wipe()

    def __enter__(self) -> "DerivedAccount":
        return self

    def __exit__(self, *exc_info) -> None:
        self.wipe()


# ---------------- Seed phrase ----------------
def split_seed_phrase(seed_phrase: str) -> List[str]:
    return seed_phrase.strip().lower().split()


def validate_seed_phrase(seed_phrase: str) -> str:
    """Return the normalised phrase or raise InvalidSeedPhrase."""
    words = split_seed_phrase(seed_phrase)
    if len(words) not in VALID_WORD_COUNTS:
        allowed = ", ".join(str(n) for n in VALID_WORD_COUNTS)
        raise InvalidSeedPhrase(f"Invalid word count ({len(words)}). Must be one of: {allowed}.")
    normalized = " ".join(words)
    if not _WORDLIST.check(normalized):
        raise InvalidSeedPhrase(
            "Invalid mnemonic (checksum failed or words not in wordlist). Double-check spelling/order."
        )
    return normalized


# ---------------- Derivation ----------------
def derive(seed_phrase: str) -> DerivedAccount:
    normalized = validate_seed_phrase(seed_phrase)

    seed = bytearray(Mnemonic.to_seed(normalized, passphrase=""))
    try:
        node = (
            Bip44.FromSeed(bytes(seed), Bip44Coins.RIPPLE)
            .Purpose()
            .Coin()
            .Account(0)
            .Change(Bip44Changes.CHAIN_EXT)
            .AddressIndex(0)
        )
        keypair = Keypair(
            private_key=bytearray(node.PrivateKey().Raw().ToBytes()),
            public_key=bytearray(node.PublicKey().RawCompressed().ToBytes()),
        )
        echo_address = node.PublicKey().ToAddress()
    finally:
        for i in range(len(seed)):
            seed[i] = 0

    address = derive_classic_address(keypair.public_key_hex)
    if address != echo_address:
        keypair.wipe()
        raise DerivationError(f"Address echo-check failed ({address} != {echo_address})")
    return DerivedAccount(keypair=keypair, address=address)
