"""Plain code adapter — the printed gym QR codes.

Handles payloads shaped like:
    gym_check_in
    gym_check_out
    gym_check_in:suzukakedai

The optional suffix names the location; without it the scanner session's
own location applies.
"""

from __future__ import annotations

from presence_core.adapters.base import ScanPayloadAdapter
from presence_core.domain.enums import Location, OccupancyAction
from presence_core.domain.scan import ScanCommand

_PREFIX = "gym_"

_CODES: dict[str, OccupancyAction] = {
    "gym_check_in": OccupancyAction.CHECK_IN,
    "gym_check_out": OccupancyAction.CHECK_OUT,
}


class PlainCodeAdapter(ScanPayloadAdapter):

    @property
    def source_name(self) -> str:
        return "plain_code"

    def can_handle(self, raw: str) -> bool:
        return raw.startswith(_PREFIX)

    def adapt(self, raw: str) -> ScanCommand:
        code, _, suffix = raw.partition(":")
        action = _CODES.get(code)
        if action is None:
            raise ValueError(f"unknown gym code: {code!r}")
        location = None
        if suffix:
            try:
                location = Location(suffix.lower())
            except ValueError:
                raise ValueError(f"unknown location: {suffix!r}") from None
        return ScanCommand(action=action, location=location)
