"""Environment variable parsing shared by the configuration dataclasses."""

from __future__ import annotations

import os

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


def read_str(env_var: str, default: str = "") -> str:
    """Return the stripped value of ``env_var`` or ``default`` when unset."""
    raw = os.environ.get(env_var, "")
    return raw.strip() or default


def parse_int(env_var: str, default: int, *, minimum: int = 0) -> int:
    """Read an integer env var no smaller than ``minimum``.

    Raises
    ------
    ValueError
        If the variable is set to a non-integer or a value below ``minimum``.

    """
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        msg = f"{env_var} must be an integer, got: {raw!r}"
        raise ValueError(msg) from exc
    if value < minimum:
        msg = f"{env_var} must be at least {minimum}, got: {value}"
        raise ValueError(msg)
    return value


def parse_seconds(env_var: str, default: float) -> float:
    """Read a positive duration in seconds.

    Raises
    ------
    ValueError
        If the variable is not a number or is not strictly positive.

    """
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        msg = f"{env_var} must be a number of seconds, got: {raw!r}"
        raise ValueError(msg) from exc
    if value <= 0:
        msg = f"{env_var} must be positive, got: {value}"
        raise ValueError(msg)
    return value


def parse_bool(env_var: str, *, default: bool) -> bool:
    """Read a boolean flag such as ``true``/``false`` or ``1``/``0``.

    Raises
    ------
    ValueError
        If the variable holds an unrecognised value.

    """
    raw = os.environ.get(env_var, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    msg = f"{env_var} must be a boolean flag, got: {raw!r}"
    raise ValueError(msg)
