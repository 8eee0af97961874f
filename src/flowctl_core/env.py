"""Environment parsing helpers.

``read_env`` turns a declaration of expected variables into a dict of parsed
values and reports every invalid required variable at once::

    settings = read_env({
        "TABLE": EnvVar(required=True),
        "MAX_RETRIES": EnvVar(int, default=2),
        "DEBUG": EnvVar(bool),
    })
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .errors import InvalidEnvError

TRUE_STRINGS = frozenset({"1", "true", "yes", "y", "on"})
FALSE_STRINGS = frozenset({"0", "false", "no", "n", "off"})


def is_nil(value: Any) -> bool:
    return value is None


def to_boolean(value: Any) -> bool:
    """Lenient truthiness for flags coming from config or the environment.

    Unknown strings are False.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in TRUE_STRINGS


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return to_boolean(raw)


@dataclass(frozen=True)
class EnvVar:
    type: Callable[..., Any] = str
    default: Any = None
    required: bool = False


def _parse(var: EnvVar, raw: str) -> Any:
    if var.type is bool:
        return to_boolean(raw)
    if var.type in (int, float):
        try:
            return var.type(raw.strip())
        except ValueError:
            return math.nan
    return var.type(raw)


def _is_invalid(value: Any) -> bool:
    if value is None or value == "":
        return True
    return isinstance(value, float) and math.isnan(value)


def read_env(
    params: Mapping[str, EnvVar], values: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """Parse the variables declared in ``params`` from ``values`` (default ``os.environ``).

    Missing variables take their default. Required variables that end up
    ``None``, empty or unparsable are collected and reported together in an
    :class:`InvalidEnvError`.
    """
    values = os.environ if values is None else values
    result: Dict[str, Any] = {}
    invalid: List[Tuple[str, Any]] = []

    for name, var in params.items():
        raw = values.get(name)
        value = var.default if raw is None else _parse(var, raw)
        if var.required and _is_invalid(value):
            invalid.append((name, value))
        else:
            result[name] = value

    if invalid:
        raise InvalidEnvError(invalid)
    return result
