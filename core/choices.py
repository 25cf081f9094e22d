"""
Validated parsing of string-backed enumerations.
"""
from typing import Optional, Type

from django.db import models

from .exceptions import InvalidArgument


def parse_choice(choices: Type[models.TextChoices], raw, prefix: Optional[str] = None):
    """
    Return the member of ``choices`` whose value matches ``raw``.

    Matching is exact: case and surrounding whitespace count. ``prefix`` allows
    the bare form of prefixed values, e.g. size "38" for "T38".

    Raises:
        InvalidArgument: If ``raw`` is not a member.
    """
    if isinstance(raw, choices):
        return raw

    value = str(raw) if raw is not None else ''
    candidates = [value]
    if prefix and not value.startswith(prefix):
        candidates.append(f"{prefix}{value}")

    for candidate in candidates:
        if candidate in choices.values:
            return choices(candidate)

    raise InvalidArgument(
        choices.__name__,
        raw,
        'parse',
        message=f"Invalid {choices.__name__.lower()}: {raw!r}"
    )
