"""
Command-line interface for running x402 payment sessions.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Iterable, Optional, Sequence, Tuple

import requests

from .api import ConfigError, create_orchestrator, pay_for_resource
from .core.config import SessionConfig, load_session_config
from .core.environment import PAYER_KEY_ENV, build_environment
from .core.ledger import SolanaLedger
from .core.session import SessionEvent, SessionState
from .core.signer import KeypairSigner
from .core.wallet import fetch_wallet_snapshot


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def _env_override(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError("Overrides must look like KEY=VALUE")
    key, val = value.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Override key must not be empty")
    return key, val


def _collect_overrides(pairs: Iterable[Tuple[str, str]]) -> dict[str, str]:
    return {key: value for key, value in pairs}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="x402-session",
        description="Pay for an x402-protected resource with an SPL token on Solana",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing X402_* settings (default: .env)",
    )
    parser.add_argument(
        "--set",
        action="append",
        type=_env_override,
        metavar="KEY=VALUE",
        default=None,
        help="Override an environment variable without editing the .env file",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    pay = commands.add_parser("pay", help="Run one payment session end to end")
    pay.add_argument("--amount", required=True, help="Amount in token units (e.g. 0.2)")
    pay.add_argument(
        "--option",
        type=int,
        default=0,
        help="Index of the gateway payment option to use (default: 0)",
    )

    commands.add_parser("balance", help="Show the payer's SOL and token balances")
    return parser


def _log_event(event: SessionEvent) -> None:
    logging.info("[%s] %s", event.state.value, event.message)
    for choice in event.choices:
        logging.info("  %s) %s", choice.value, choice.label)


def _load_signer(env_file: str, overrides: dict[str, str]) -> KeypairSigner:
    environment = build_environment(env_file=env_file, overrides=overrides)
    for key, value in environment.settings().items():
        logging.debug("%s=%s (%s)", key, value, environment.sources.get(key, "unknown"))
    secret = environment.get(PAYER_KEY_ENV)
    if not secret:
        raise ConfigError(f"{PAYER_KEY_ENV} must be provided")
    return KeypairSigner.from_base58(secret)


async def _pay(config: SessionConfig, signer: KeypairSigner, args: argparse.Namespace) -> int:
    async with SolanaLedger(config.rpc_url) as ledger:
        orchestrator = create_orchestrator(
            signer=signer,
            config=config,
            ledger=ledger,
            session=requests.Session(),
            observer=_log_event,
        )
        event = await pay_for_resource(
            orchestrator, amount=args.amount, option_index=args.option
        )
    return _handle_outcome(event)


def _handle_outcome(event: SessionEvent) -> int:
    if event.state is SessionState.SUCCEEDED:
        receipt = event.session.transfer_receipt
        if receipt is not None:
            logging.info(
                "Paid %s minor units in transaction %s",
                receipt.amount_minor_units,
                receipt.transaction_id,
            )
        if event.session.settlement_pending:
            logging.warning("The gateway has not finished settling this payment yet")
        return 0

    if event.state is SessionState.FAILED:
        logging.error("Payment failed (%s): %s", event.error_kind, event.error_detail)
        if event.session.submitted_transaction_id:
            logging.error(
                "Transaction %s was broadcast; check its status before paying again",
                event.session.submitted_transaction_id,
            )
    else:
        logging.error("Payment session stopped in state %s: %s", event.state.value, event.message)
    return 1


async def _balance(config: SessionConfig, signer: KeypairSigner) -> int:
    async with SolanaLedger(config.rpc_url) as ledger:
        snapshot = await fetch_wallet_snapshot(
            ledger, signer.pubkey(), config.mint_pubkey, config.default_decimals
        )
    logging.info("Wallet %s", snapshot.address)
    logging.info("  SOL:   %s", snapshot.sol)
    logging.info("  Token: %s (account %s)", snapshot.token, snapshot.token_account)
    return 0


def run_cli(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)
    overrides = _collect_overrides(args.set or ())

    try:
        config = load_session_config(env_file=args.env_file, overrides=overrides)
        signer = _load_signer(args.env_file, overrides)
    except (ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    if args.command == "balance":
        runner = _balance(config, signer)
    else:
        runner = _pay(config, signer, args)

    try:
        return asyncio.run(runner)
    except Exception as exc:  # noqa: BLE001
        logging.error("%s failed: %s", args.command, exc)
        return 1


def main(argv: Optional[Sequence[str]] = None) -> None:
    raise SystemExit(run_cli(argv))
