"""
Interactive script that drives a payment session one command at a time.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from x402_session import (
    Cancel,
    ConfigError,
    KeypairSigner,
    SelectAmount,
    SelectOption,
    SessionEvent,
    SessionState,
    SolanaLedger,
    Start,
    create_orchestrator,
    load_session_config,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Pay for an x402 resource interactively")
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing X402_* settings",
    )
    parser.add_argument(
        "--gateway-url",
        help="Override the gateway base URL without editing local files",
    )
    parser.add_argument(
        "--rpc-url",
        help="Override the Solana RPC endpoint",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Python logging level (default: WARNING)",
    )
    return parser.parse_args()


def show(event: SessionEvent) -> None:
    print(f"[{event.state.value}] {event.message}")
    for choice in event.choices:
        print(f"  {choice.value}) {choice.label}")


def ask(prompt: str) -> str:
    return input(f"{prompt} (blank to cancel): ").strip()


async def run(args: argparse.Namespace) -> int:
    config = load_session_config(
        env_file=args.env_file,
        gateway_url=args.gateway_url,
        rpc_url=args.rpc_url,
    )
    signer = KeypairSigner.from_base58(os.environ.get("X402_PAYER_PRIVATE_KEY", ""))

    async with SolanaLedger(config.rpc_url) as ledger:
        orchestrator = create_orchestrator(
            signer=signer, config=config, ledger=ledger, observer=show
        )
        event = await orchestrator.submit(Start())
        while not event.state.terminal:
            if event.state is SessionState.AWAITING_NETWORK_SELECTION:
                answer = ask("Option")
                command = SelectOption(int(answer)) if answer.isdigit() else Cancel()
            elif event.state is SessionState.AWAITING_AMOUNT_SELECTION:
                answer = ask("Amount")
                command = SelectAmount(answer) if answer else Cancel()
            else:
                break
            event = await orchestrator.submit(command)
            if event.state is SessionState.IDLE:
                return 1

    return 0 if event.state is SessionState.SUCCEEDED else 1


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    try:
        return asyncio.run(run(args))
    except ConfigError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
