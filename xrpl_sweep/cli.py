#!/usr/bin/env python3
"""Sweep an XRP Ledger account derived from a BIP-39 seed phrase.

Flow:
  1) Derive the account from the seed phrase (12/15/18/21/24 words)
  2) Check balance, reserve and owner count
  3) Send the spendable XRP above the reserve (if meaningful)
  4) Delete the account, sending the remaining reserve (minus ~0.2 XRP burn)

Safety:
  - Defaults to DRY RUN. Use --execute to broadcast transactions.
  - The seed phrase is read without echo and never printed or stored.
  - Assumes NO owner objects (trust lines, offers, escrows). Clean them up first.

Env:
  - XRPL_NETWORK (mainnet | testnet, default: mainnet)
  - XRPL_RPC_URL (optional endpoint override)
  - XRPL_FEE_BUFFER_XRP (default: 0.02)
  - XRPL_MIN_PAYMENT_XRP (default: 0.1)
"""

from __future__ import annotations

import argparse
import getpass
import os
from typing import Callable, List

from dotenv import load_dotenv

from xrpl_sweep.config import (
    ACCOUNT_DELETE_BURN_XRP,
    DEFAULT_FEE_BUFFER_XRP,
    DEFAULT_MIN_PAYMENT_XRP,
    Network,
    SweepSettings,
    parse_network,
    parse_xrp,
)
from xrpl_sweep.derivation import DerivedAccount, derive
from xrpl_sweep.errors import InvalidSeedPhrase, SweepError
from xrpl_sweep.ledger import LedgerSession, XrplLedgerSession
from xrpl_sweep.models import Cancelled, Outcome, PartialFailure, PreconditionFailed, Success
from xrpl_sweep.reserve import fmt_xrp
from xrpl_sweep.sweep import Confirmation, ConfirmationRequest, SweepOrchestrator, is_affirmative

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2
EXIT_PARTIAL = 3

SEPARATOR = "-" * 80


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="xrpl-sweep",
        description="Derive an XRPL account from a seed phrase, send its spendable XRP and delete it.",
    )
    ap.add_argument(
        "--network",
        choices=[n.value for n in Network],
        default=(os.getenv("XRPL_NETWORK") or Network.MAINNET.value).strip().lower(),
        help="Ledger network (default: env XRPL_NETWORK or mainnet)",
    )
    ap.add_argument("--rpc-url", default=os.getenv("XRPL_RPC_URL", ""), help="JSON-RPC URL override")
    ap.add_argument(
        "--fee-buffer",
        default=os.getenv("XRPL_FEE_BUFFER_XRP") or str(DEFAULT_FEE_BUFFER_XRP),
        help=f"XRP kept back for the payment fee (default: {DEFAULT_FEE_BUFFER_XRP})",
    )
    ap.add_argument(
        "--min-payment",
        default=os.getenv("XRPL_MIN_PAYMENT_XRP") or str(DEFAULT_MIN_PAYMENT_XRP),
        help=f"Skip the payment unless spendable XRP exceeds this (default: {DEFAULT_MIN_PAYMENT_XRP})",
    )
    ap.add_argument("--destination", default="", help="Destination address (prompted if omitted)")
    ap.add_argument("--execute", action="store_true", help="Broadcast transactions (default: dry run)")
    return ap


def settings_from_args(args: argparse.Namespace) -> SweepSettings:
    return SweepSettings(
        network=parse_network(args.network),
        rpc_url=(args.rpc_url or "").strip(),
        fee_buffer=parse_xrp(args.fee_buffer, name="--fee-buffer"),
        min_payment=parse_xrp(args.min_payment, name="--min-payment"),
    )


# ---------------- Prompts ----------------
def prompt_destination(
    session: LedgerSession,
    source: str,
    *,
    input_fn: Callable[[str], str] | None = None,
) -> str:
    ask = input_fn or input
    while True:
        destination = ask("\nEnter destination XRP address: ").strip()
        if destination == source:
            print("Destination must differ from the account being deleted.")
            continue
        if session.validate_address_format(destination):
            return destination
        print("Invalid XRP address. Please try again.")


def describe_plan(request: ConfirmationRequest, settings: SweepSettings) -> List[str]:
    plan = request.plan
    lines = [
        f"Current balance: {fmt_xrp(request.account.balance)} XRP",
        f"Base reserve: {fmt_xrp(request.reserve.base_reserve)} XRP",
        f"Owner reserve per object: {fmt_xrp(request.reserve.owner_reserve_increment)} XRP",
    ]
    if plan.spendable_amount <= 0:
        lines.append("No significant spendable XRP above reserve.")
    else:
        lines.append(f"Approximate spendable amount: {fmt_xrp(plan.spendable_amount)} XRP")
    if plan.spendable_amount > 0 and not plan.should_send_payment:
        lines.append(f"Spendable amount is below {fmt_xrp(settings.min_payment)} XRP; the payment will be skipped.")
    return lines


def describe_actions(source: str, destination: str, request: ConfirmationRequest) -> List[str]:
    lines = ["", "This will:"]
    if request.plan.should_send_payment:
        lines.append(f"  1. Send {fmt_xrp(request.plan.spendable_amount)} XRP to {destination}")
    else:
        lines.append("  1. (skip payment: nothing meaningful above the reserve)")
    lines.append(
        f"  2. Delete account {source} and send remaining reserve "
        f"(minus ~{fmt_xrp(ACCOUNT_DELETE_BURN_XRP)} XRP burn) to {destination}"
    )
    lines.append("This action is IRREVERSIBLE. Double-check everything!")
    return lines


def report_outcome(outcome: Outcome) -> int:
    print(SEPARATOR)
    if isinstance(outcome, Success):
        print("SUCCESS! Account deleted.")
        if outcome.payment_hash:
            print(f"  payment sig: {outcome.payment_hash} ({fmt_xrp(outcome.amount_sent)} XRP)")
        print(f"  delete sig:  {outcome.delete_hash}")
        return EXIT_OK
    if isinstance(outcome, Cancelled):
        print("Cancelled.")
        return EXIT_OK
    if isinstance(outcome, PreconditionFailed):
        print(f"ERROR: precondition failed: {outcome.reason}")
        print("Remove owned objects first (e.g. with Xaman or XRP Toolkit), then re-run.")
        return EXIT_FATAL
    if isinstance(outcome, PartialFailure):
        rejection = outcome.rejection
        print(f"ERROR: {rejection}" if rejection else f"ERROR: {outcome.stage} failed: {outcome.reason}")
        if outcome.payment_hash:
            print(f"  payment sig: {outcome.payment_hash}")
        if outcome.funds_moved:
            print("WARNING: funds were partially moved; the account still exists and holds its reserve.")
        print(f"  next: {outcome.next_action}")
        return EXIT_PARTIAL
    raise TypeError(f"Unknown outcome: {outcome!r}")


# ---------------- Main ----------------
def main(argv: List[str] | None = None) -> int:
    load_dotenv()

    args = build_parser().parse_args(argv)
    try:
        settings = settings_from_args(args)
    except ValueError as exc:
        print(f"ERROR: {exc}")
        return EXIT_USAGE

    print("XRP Wallet Sweep (BIP-39 seed phrase)")
    print("=" * 40)
    print("Derives the wallet, checks balance, sends spendable XRP, then deletes the account")
    print(f"to recover most of the reserve (minus ~{fmt_xrp(ACCOUNT_DELETE_BURN_XRP)} XRP burn).")
    print("Assumes NO owner objects (trust lines, offers, etc.). Clean them up first!")
    print(SEPARATOR)

    try:
        seed_phrase = getpass.getpass("Enter your mnemonic (space-separated, 12/15/18/21/24 words): ")
    except (EOFError, KeyboardInterrupt):
        print("\nCancelled.")
        return EXIT_OK
    try:
        account = derive(seed_phrase)
    except InvalidSeedPhrase as exc:
        print(f"ERROR: {exc}")
        return EXIT_FATAL
    except SweepError as exc:
        print(f"ERROR: deriving wallet: {exc}")
        return EXIT_FATAL
    finally:
        del seed_phrase

    with account:
        print(f"Derived address: {account.address}")
        print(f"RPC: {settings.endpoint} ({settings.network.value})")
        print(f"Mode: {'EXECUTE' if args.execute else 'DRY RUN'}")
        print(SEPARATOR)

        session = XrplLedgerSession(settings)
        try:
            return _sweep(session, account, settings, args)
        except SweepError as exc:
            print(f"ERROR: {exc}")
            return EXIT_FATAL
        finally:
            session.close()
            print("Disconnected from XRPL.")


def _sweep(session: LedgerSession, account: DerivedAccount, settings: SweepSettings, args: argparse.Namespace) -> int:
    orchestrator = SweepOrchestrator(session, account, settings)

    def confirm(request: ConfirmationRequest) -> Confirmation:
        for line in describe_plan(request, settings):
            print(line)

        destination = (args.destination or "").strip()
        if destination and (destination == request.source or not session.validate_address_format(destination)):
            print(f"Invalid --destination {destination!r}.")
            destination = ""
        try:
            if not destination:
                destination = prompt_destination(session, request.source)

            for line in describe_actions(request.source, destination, request):
                print(line)

            if not args.execute:
                print("DRY RUN: not broadcasting any transactions. Re-run with --execute.")
                return Confirmation(destination=destination, affirmative=False)

            answer = input(f"\nProceed with sweep from {request.source} to {destination}? (y/n): ")
        except (EOFError, KeyboardInterrupt):
            # No answer at a prompt declines the sweep; nothing has been built yet.
            print()
            return Confirmation(destination=destination, affirmative=False)
        return Confirmation(destination=destination, affirmative=is_affirmative(answer))

    outcome = orchestrator.run(confirm)
    if isinstance(outcome, Cancelled) and not args.execute:
        return EXIT_OK
    return report_outcome(outcome)


if __name__ == "__main__":
    raise SystemExit(main())
