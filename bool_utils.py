"""Boolean coercion for GitHub Actions inputs.

Action inputs always arrive as strings (``INPUT_DRY_RUN=true``), so flags such
as ``dry-run`` accept the usual truthy and falsy spellings.
"""

from __future__ import annotations

__all__ = ["TRUTHY", "FALSY", "coerce_bool"]

TRUTHY = frozenset({"1", "true", "yes", "on"})
FALSY = frozenset({"0", "false", "no", "off"})


def coerce_bool(value: object, *, default: bool, name: str = "input") -> bool:
    """Coerce ``value`` to bool, returning ``default`` for ``None`` or blanks.

    Parameters
    ----------
    value
        The raw input. Accepts ``bool``, ``str`` or ``None``.
    default
        Returned when ``value`` is ``None`` or a blank string.
    name
        Input name quoted in the error message, such as ``dry-run``.

    Raises
    ------
    ValueError
        If ``value`` cannot be interpreted as a boolean.

    Examples
    --------
    >>> coerce_bool("Yes", default=False)
    True
    >>> coerce_bool("  ", default=True)
    True
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalised = value.strip().lower()
        if not normalised:
            return default
        if normalised in TRUTHY:
            return True
        if normalised in FALSY:
            return False
    msg = f"Cannot interpret {value!r} as boolean for {name}"
    raise ValueError(msg)
