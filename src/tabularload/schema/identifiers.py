"""
Identifier sanitization.

Maps raw field and resource names to identifiers that are safe as SQL
table and column names in every supported store: lower-case ASCII
letters, digits and underscores, never starting with a digit.
"""

import re
from collections.abc import Iterable

from tabularload.errors import SchemaError

_INVALID_RUN = re.compile(r"[^a-z0-9_]+")
_UNDERSCORES = re.compile(r"_{2,}")


def sanitize(raw_name: str) -> str:
    """
    Map a raw name to a safe identifier.

    The result is idempotent: ``sanitize(sanitize(x)) == sanitize(x)``.

    Examples:
        >>> sanitize("52 week low")
        '_52_week_low'
        >>> sanitize("Price/Earnings")
        'price_earnings'

    Args:
        raw_name: Name as declared in the descriptor.

    Returns:
        Sanitized identifier.

    Raises:
        SchemaError: If nothing usable is left of the name.
    """
    name = _INVALID_RUN.sub("_", raw_name.lower())
    name = _UNDERSCORES.sub("_", name).strip("_")

    if not name:
        msg = f"Name {raw_name!r} sanitizes to an empty identifier"
        raise SchemaError(msg)

    # Digit guard is applied last so it survives the trim above
    if name[0].isdigit():
        name = f"_{name}"
    return name


def sanitize_all(raw_names: Iterable[str]) -> list[str]:
    """
    Sanitize a list of names that must stay distinct.

    Args:
        raw_names: Names in declaration order.

    Returns:
        Sanitized identifiers in the same order.

    Raises:
        SchemaError: If a name is empty after sanitization or two names
            collide.
    """
    seen: dict[str, str] = {}
    result = []
    for raw in raw_names:
        identifier = sanitize(raw)
        if identifier in seen:
            msg = (
                f"Names {seen[identifier]!r} and {raw!r} both sanitize "
                f"to {identifier!r}"
            )
            raise SchemaError(msg)
        seen[identifier] = raw
        result.append(identifier)
    return result
