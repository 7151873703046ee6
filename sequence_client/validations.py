"""Option validation helpers shared by the resource modules."""

from collections.abc import Iterable, Mapping
from typing import Any

from .errors import ConfigurationError


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) == 0
    return False


def validate_required(opts: Mapping[str, Any], *keys: str) -> None:
    """Raise unless at least one of ``keys`` has a non-blank value."""
    if all(is_blank(opts.get(k)) for k in keys):
        names = " and ".join(f"{k!r}" for k in keys)
        raise ConfigurationError(f"{names} must be provided")


def validate_inclusion_of(opts: Iterable[str], *valid: str) -> None:
    """Raise if ``opts`` contains a key that is not in ``valid``."""
    for key in opts:
        if key not in valid:
            names = ", ".join(f"{v!r}" for v in valid)
            raise ConfigurationError(
                f"{key!r} is an invalid option. Valid options are {names}"
            )


def compact(body: Mapping[str, Any]) -> dict[str, Any]:
    """Drop ``None`` values from a request body."""
    return {k: v for k, v in body.items() if v is not None}
