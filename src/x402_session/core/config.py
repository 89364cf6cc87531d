"""
Configuration objects and helpers for x402 payment sessions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from solders.pubkey import Pubkey

from .environment import build_environment
from .errors import ConfigError

__all__ = [
    "ConfigError",
    "DEFAULT_MINT",
    "SessionConfig",
    "SessionParameters",
    "load_session_config",
]

# USDC on Solana devnet
DEFAULT_MINT = "UCSsmd2A8Ub8J2mE68pXKSSJLJmMTJyPfuT4h7YwpQA"
DEFAULT_RPC_URL = "https://api.devnet.solana.com"

_PARAMETER_TO_ENV_KEY = {
    "gateway_url": "X402_GATEWAY_URL",
    "rpc_url": "X402_SOLANA_RPC_URL",
    "mint": "X402_TOKEN_MINT",
    "default_decimals": "X402_TOKEN_DECIMALS",
    "min_fee_lamports": "X402_MIN_FEE_LAMPORTS",
    "network_markers": "X402_NETWORK_MARKERS",
    "amount_presets": "X402_AMOUNT_PRESETS",
    "payment_path": "X402_PAYMENT_PATH",
    "confirm_path": "X402_CONFIRM_PATH",
    "request_timeout": "X402_REQUEST_TIMEOUT_SECONDS",
    "confirm_poll_attempts": "X402_CONFIRM_POLL_ATTEMPTS",
    "confirm_poll_interval": "X402_CONFIRM_POLL_INTERVAL_SECONDS",
}


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return str(value)


@dataclass(frozen=True)
class SessionParameters:
    """
    Explicit parameter bundle for constructing :class:`SessionConfig`.

    Callers can either instantiate this helper or pass the individual keyword
    arguments directly to :func:`load_session_config`.
    """

    gateway_url: Optional[str] = None
    rpc_url: Optional[str] = None
    mint: Optional[str] = None
    default_decimals: Optional[int | str] = None
    min_fee_lamports: Optional[int | str] = None
    network_markers: Optional[Sequence[str] | str] = None
    amount_presets: Optional[Sequence[str] | str] = None
    payment_path: Optional[str] = None
    confirm_path: Optional[str] = None
    request_timeout: Optional[float | str] = None
    confirm_poll_attempts: Optional[int | str] = None
    confirm_poll_interval: Optional[float | str] = None

    def as_overrides(self) -> Dict[str, str]:
        overrides: Dict[str, str] = {}
        for field_name, env_key in _PARAMETER_TO_ENV_KEY.items():
            value = getattr(self, field_name)
            if value is None:
                continue
            overrides[env_key] = _stringify(value)
        return overrides


def _collect_parameter_overrides(
    parameters: Optional[SessionParameters],
    explicit: Mapping[str, Any],
) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    if parameters is not None:
        overrides.update(parameters.as_overrides())

    for key, value in explicit.items():
        if value is None:
            continue
        try:
            env_key = _PARAMETER_TO_ENV_KEY[key]
        except KeyError as exc:
            raise TypeError(f"Unknown session parameter '{key}'") from exc
        overrides[env_key] = _stringify(value)
    return overrides


def _normalize_pubkey(raw_address: str, field_name: str) -> str:
    value = raw_address.strip()
    if not value:
        raise ConfigError(f"{field_name} must not be empty")
    try:
        return str(Pubkey.from_string(value))
    except ValueError as exc:
        raise ConfigError(f"{field_name} is not a valid Solana address") from exc


def _normalize_url(raw_url: str, field_name: str) -> str:
    value = raw_url.strip().rstrip("/")
    if not value.startswith(("http://", "https://")):
        raise ConfigError(f"{field_name} must be an http(s) URL, got '{raw_url}'")
    return value


def _normalize_path(raw_path: str, field_name: str) -> str:
    value = raw_path.strip()
    if not value:
        raise ConfigError(f"{field_name} must not be empty")
    return value if value.startswith("/") else "/" + value


def _parse_int(values: Mapping[str, str], key: str, default: str, minimum: int) -> int:
    raw = values.get(key, default)
    try:
        parsed = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer, got '{raw}'") from exc
    if parsed < minimum:
        raise ConfigError(f"{key} must be at least {minimum}, got {parsed}")
    return parsed


def _parse_float(values: Mapping[str, str], key: str, default: str) -> float:
    raw = values.get(key, default)
    try:
        parsed = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be a number, got '{raw}'") from exc
    if parsed < 0:
        raise ConfigError(f"{key} must not be negative, got {parsed}")
    return parsed


def _parse_list(values: Mapping[str, str], key: str, default: str) -> Tuple[str, ...]:
    items = tuple(
        item.strip() for item in values.get(key, default).split(",") if item.strip()
    )
    if not items:
        raise ConfigError(f"{key} must contain at least one entry")
    return items


@dataclass(frozen=True)
class SessionConfig:
    gateway_url: str
    rpc_url: str = DEFAULT_RPC_URL
    mint: str = DEFAULT_MINT
    default_decimals: int = 6
    min_fee_lamports: int = 10_000_000
    network_markers: Tuple[str, ...] = ("sol", "devnet", "testnet", "mainnet")
    amount_presets: Tuple[str, ...] = ("0.1", "0.2", "0.3")
    payment_path: str = "/resource/payment"
    confirm_path: str = "/resource/payment/confirm"
    request_timeout: float = 30.0
    confirm_poll_attempts: int = 3
    confirm_poll_interval: float = 2.0

    @property
    def mint_pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.mint)

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "SessionConfig":
        gateway_raw = values.get("X402_GATEWAY_URL")
        if gateway_raw is None:
            raise ConfigError("X402_GATEWAY_URL must be provided")

        return cls(
            gateway_url=_normalize_url(gateway_raw, "X402_GATEWAY_URL"),
            rpc_url=_normalize_url(
                values.get("X402_SOLANA_RPC_URL", DEFAULT_RPC_URL), "X402_SOLANA_RPC_URL"
            ),
            mint=_normalize_pubkey(values.get("X402_TOKEN_MINT", DEFAULT_MINT), "X402_TOKEN_MINT"),
            default_decimals=_parse_int(values, "X402_TOKEN_DECIMALS", "6", minimum=0),
            min_fee_lamports=_parse_int(
                values, "X402_MIN_FEE_LAMPORTS", "10000000", minimum=0
            ),
            network_markers=tuple(
                marker.lower()
                for marker in _parse_list(
                    values, "X402_NETWORK_MARKERS", "sol,devnet,testnet,mainnet"
                )
            ),
            amount_presets=_parse_list(values, "X402_AMOUNT_PRESETS", "0.1,0.2,0.3"),
            payment_path=_normalize_path(
                values.get("X402_PAYMENT_PATH", "/resource/payment"), "X402_PAYMENT_PATH"
            ),
            confirm_path=_normalize_path(
                values.get("X402_CONFIRM_PATH", "/resource/payment/confirm"),
                "X402_CONFIRM_PATH",
            ),
            request_timeout=_parse_float(values, "X402_REQUEST_TIMEOUT_SECONDS", "30"),
            confirm_poll_attempts=_parse_int(
                values, "X402_CONFIRM_POLL_ATTEMPTS", "3", minimum=0
            ),
            confirm_poll_interval=_parse_float(
                values, "X402_CONFIRM_POLL_INTERVAL_SECONDS", "2"
            ),
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        parameters: Optional[SessionParameters] = None,
        **explicit: Any,
    ) -> "SessionConfig":
        parameter_overrides = _collect_parameter_overrides(parameters, explicit)
        merged_overrides = dict(overrides or {})
        merged_overrides.update(parameter_overrides)

        environment = build_environment(
            env_file=env_file,
            base=base,
            overrides=merged_overrides,
        )
        return cls.from_mapping(environment.variables)


def load_session_config(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[SessionParameters] = None,
    gateway_url: Optional[str] = None,
    rpc_url: Optional[str] = None,
    mint: Optional[str] = None,
    default_decimals: Optional[int | str] = None,
    min_fee_lamports: Optional[int | str] = None,
    network_markers: Optional[Sequence[str] | str] = None,
    amount_presets: Optional[Sequence[str] | str] = None,
    payment_path: Optional[str] = None,
    confirm_path: Optional[str] = None,
    request_timeout: Optional[float | str] = None,
    confirm_poll_attempts: Optional[int | str] = None,
    confirm_poll_interval: Optional[float | str] = None,
) -> SessionConfig:
    """
    Convenience wrapper that mirrors :meth:`SessionConfig.from_env`.

    The configuration can be provided entirely through environment variables,
    a ``.env`` file, direct keyword arguments, or any combination of the three.
    The signing key is never part of it.
    """
    return SessionConfig.from_env(
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        gateway_url=gateway_url,
        rpc_url=rpc_url,
        mint=mint,
        default_decimals=default_decimals,
        min_fee_lamports=min_fee_lamports,
        network_markers=network_markers,
        amount_presets=amount_presets,
        payment_path=payment_path,
        confirm_path=confirm_path,
        request_timeout=request_timeout,
        confirm_poll_attempts=confirm_poll_attempts,
        confirm_poll_interval=confirm_poll_interval,
    )
