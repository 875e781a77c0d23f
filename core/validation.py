"""
Input validation shared by the services.

Routes parse path segments with parse_id(); services re-check ids with
require_positive_id() so a bad id can never reach a query, whoever the
caller is.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional

from core.exceptions import ValidationError


def require_positive_id(value: Any, label: str = "ID") -> int:
    """
    Accept only a positive integer id.

    Raises:
        ValidationError: "<label> is required" when absent,
            "Invalid <label>" when present but not a positive integer
    """
    field = label.lower().replace(" ", "_")
    if value is None or value == "":
        raise ValidationError(f"{label} is required", field=field)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"Invalid {label}", field=field)
    return value


def parse_id(raw: Optional[str], label: str = "ID") -> int:
    """
    Turn a path segment into a positive integer id.

    Only plain decimal digits are accepted: "12" is fine, "12abc", "-1",
    "0", "1.5" and " 3" are not.
    """
    if raw is None or raw == "":
        return require_positive_id(None, label)
    if not raw.isdigit() or not raw.isascii():
        return require_positive_id(raw, label)
    return require_positive_id(int(raw), label)


def require_fields(data: Mapping[str, Any], names: Iterable[str],
                   allow_blank: Iterable[str] = ()) -> None:
    """
    Reject a payload missing any of the named fields.

    None and blank strings count as missing; 0 does not. Fields named in
    ``allow_blank`` must be present but may be an empty string.

    Raises:
        ValidationError: "Missing required fields: a, b"
    """
    blank_ok = frozenset(allow_blank)
    missing: List[str] = []
    for name in names:
        value = data.get(name)
        if value is None:
            missing.append(name)
        elif isinstance(value, str) and not value.strip() and name not in blank_ok:
            missing.append(name)
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            field=missing[0],
        )
