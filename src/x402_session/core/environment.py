"""
Layered ``X402_*`` settings for payment sessions.

A session is configured from three layers: the process environment, an
optional ``.env`` file and explicit overrides (CLI ``--set`` flags or keyword
arguments). The process environment wins over the file so deployments can pin
values, and overrides win over both. :class:`SessionEnvironment` remembers
which layer supplied each ``X402_*`` key so the CLI can report the effective
configuration without echoing the payer secret.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, MutableMapping, Optional

__all__ = [
    "PAYER_KEY_ENV",
    "SETTING_PREFIX",
    "SessionEnvironment",
    "build_environment",
    "load_env_file",
]

SETTING_PREFIX = "X402_"
PAYER_KEY_ENV = "X402_PAYER_PRIVATE_KEY"
_SECRET_KEYS = frozenset({PAYER_KEY_ENV})


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _parse_env_file(path: Path) -> Dict[str, str]:
    values: Dict[str, str] = {}
    try:
        data = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return values

    for raw_line in data.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, value = line.split("=", 1)
        values[key.strip()] = _unquote(value.strip())
    return values


def load_env_file(
    path: str = ".env",
    *,
    environ: Optional[MutableMapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Copy ``path`` into ``environ`` (default :data:`os.environ`), keeping keys
    that are already set, and return the merged mapping.
    """
    target: MutableMapping[str, str] = environ if environ is not None else os.environ
    for key, value in _parse_env_file(Path(path)).items():
        target.setdefault(key, value)
    return dict(target)


@dataclass(frozen=True)
class SessionEnvironment:
    variables: Mapping[str, str]
    # X402_* key -> "environ", "file" or "override"
    sources: Mapping[str, str] = field(default_factory=dict)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.variables.get(key, default)

    def settings(self) -> Dict[str, str]:
        """The ``X402_*`` variables in key order, secrets masked."""
        return {
            key: "***" if key in _SECRET_KEYS else value
            for key, value in sorted(self.variables.items())
            if key.startswith(SETTING_PREFIX)
        }


def build_environment(
    *,
    env_file: Optional[str] = ".env",
    base: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> SessionEnvironment:
    """
    Layer ``base`` (default :data:`os.environ`), ``env_file`` and ``overrides``.

    A missing ``env_file`` is skipped so the same call works with or without
    a local ``.env``.
    """
    merged: Dict[str, str] = dict(os.environ if base is None else base)
    sources: Dict[str, str] = {
        key: "environ" for key in merged if key.startswith(SETTING_PREFIX)
    }

    if env_file is not None:
        for key, value in _parse_env_file(Path(env_file)).items():
            if key not in merged:
                merged[key] = value
                if key.startswith(SETTING_PREFIX):
                    sources[key] = "file"

    for key, value in (overrides or {}).items():
        merged[key] = value
        if key.startswith(SETTING_PREFIX):
            sources[key] = "override"

    return SessionEnvironment(variables=merged, sources=sources)
