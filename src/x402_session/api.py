"""
Public, high-level helpers for running x402 payment sessions.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

import requests

from .core.config import ConfigError, SessionConfig, SessionParameters, load_session_config
from .core.gateway import GatewayClient
from .core.ledger import Ledger
from .core.session import (
    PaymentSessionOrchestrator,
    SelectAmount,
    SelectOption,
    SessionEvent,
    SessionState,
    Start,
)
from .core.signer import Signer

__all__ = [
    "ConfigError",
    "create_orchestrator",
    "pay_for_resource",
]


def create_orchestrator(
    *,
    signer: Signer,
    config: Optional[SessionConfig] = None,
    ledger: Optional[Ledger] = None,
    session: Optional[requests.Session] = None,
    observer: Optional[Callable[[SessionEvent], Any]] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[SessionParameters] = None,
    **settings: Any,
) -> PaymentSessionOrchestrator:
    """
    Construct a :class:`PaymentSessionOrchestrator`.

    Callers can either supply a ready-made :class:`SessionConfig` or let the
    helper assemble one from environment data and keyword ``settings``
    (any :func:`load_session_config` keyword, e.g. ``gateway_url``).
    """
    if config is not None:
        extras = (overrides, base, parameters, *settings.values())
        if any(item is not None and item != {} for item in extras):
            raise ValueError(
                "Provide either a pre-built SessionConfig or individual parameters, not both."
            )
        cfg = config
    else:
        cfg = load_session_config(
            env_file=env_file,
            overrides=overrides,
            base=base,
            parameters=parameters,
            **settings,
        )
    return PaymentSessionOrchestrator(
        cfg,
        signer,
        ledger=ledger,
        gateway=GatewayClient(cfg, session=session),
        observer=observer,
    )


async def pay_for_resource(
    orchestrator: PaymentSessionOrchestrator,
    *,
    amount: str,
    option_index: int = 0,
) -> SessionEvent:
    """
    Drive a whole session non-interactively: start, pick ``option_index``,
    pay ``amount``. Returns the last event, which is terminal unless a
    command was rejected.
    """
    event = await orchestrator.submit(Start())
    if event.state is not SessionState.AWAITING_NETWORK_SELECTION:
        return event
    event = await orchestrator.submit(SelectOption(option_index))
    if event.state is not SessionState.AWAITING_AMOUNT_SELECTION:
        return event
    return await orchestrator.submit(SelectAmount(amount))
