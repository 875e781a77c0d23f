"""
Custom service intake over the HTTP session.

Each browser session owns one CustomServiceRequest, kept in the Flask
session under ``service_request``. Submitted requests become ServiceLines
queued under ``pending_services`` until checkout creates the order.
"""

from __future__ import annotations

from datetime import date
from typing import Any, List, Mapping, MutableMapping, Optional

import bleach

from core.exceptions import ValidationError
from models.money import ZERO, parse_amount
from models.order import ServiceLine
from models.service_request import CustomServiceRequest

SESSION_KEY = "service_request"
PENDING_KEY = "pending_services"

MAX_NOTES_LENGTH = 1000

_SETTERS = {
    "custom_price": "set_custom_price",
    "notes": "set_notes",
    "preferred_date": "set_preferred_date",
    "preferred_time": "set_preferred_time",
}


def _sanitize_text(text: Any, max_length: Optional[int] = None) -> str:
    """Strip markup from user-entered text."""
    if not text:
        return ""
    text = bleach.clean(str(text).strip(), tags=[], strip=True)
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


def load_request(session: Mapping[str, Any]) -> CustomServiceRequest:
    return CustomServiceRequest.from_dict(session.get(SESSION_KEY, {}))


def save_request(session: MutableMapping[str, Any], request: CustomServiceRequest) -> None:
    session[SESSION_KEY] = request.to_dict()
    session.modified = True


def apply_changes(request: CustomServiceRequest, changes: Mapping[str, Any]) -> CustomServiceRequest:
    """
    Route each supplied field to its setter.

    Unknown keys are ignored. ``address`` may be partial.
    """
    for key, setter in _SETTERS.items():
        if key in changes:
            limit = MAX_NOTES_LENGTH if key == "notes" else 64
            getattr(request, setter)(_sanitize_text(changes[key], limit))
    if isinstance(changes.get("address"), Mapping):
        request.set_address({k: _sanitize_text(v, 255) for k, v in changes["address"].items()})
    return request


def to_service_line(request: CustomServiceRequest, description: str = "") -> ServiceLine:
    """
    Validate a finished request and turn it into an order line.

    This is where price and date are checked; the setters accept anything.

    Raises:
        ValidationError: Missing/invalid price or malformed date
    """
    if not request.custom_price.strip():
        raise ValidationError("Missing required fields: custom_price", field="custom_price")
    try:
        price = parse_amount(request.custom_price)
    except ValueError:
        raise ValidationError("Custom price must be a number", field="custom_price")
    if price <= ZERO:
        raise ValidationError("Custom price must be greater than 0", field="custom_price")

    if request.preferred_date:
        try:
            date.fromisoformat(request.preferred_date)
        except ValueError:
            raise ValidationError("Preferred date must be YYYY-MM-DD", field="preferred_date")

    return ServiceLine(
        description=_sanitize_text(description, 255) or "Custom service",
        quoted_price=price,
        notes=request.notes,
        preferred_date=request.preferred_date,
        preferred_time=request.preferred_time,
        address=request.address,
    )


def submit_request(session: MutableMapping[str, Any], description: str = "") -> ServiceLine:
    """Validate the session's request, queue it as a line, and reset it."""
    request = load_request(session)
    line = to_service_line(request, description)

    pending = list(session.get(PENDING_KEY, []))
    pending.append(line.to_dict())
    session[PENDING_KEY] = pending

    request.reset()
    save_request(session, request)
    return line


def pending_lines(session: Mapping[str, Any]) -> List[ServiceLine]:
    return [ServiceLine.from_dict(data) for data in session.get(PENDING_KEY, [])]


def clear_pending(session: MutableMapping[str, Any]) -> None:
    session.pop(PENDING_KEY, None)
    session.modified = True
