"""JSON payload adapter — codes that embed a small JSON object.

Handles payloads shaped like:
    {"action": "check_out", "location": "ookayama"}
"""

from __future__ import annotations

import json

from presence_core.adapters.base import ScanPayloadAdapter
from presence_core.domain.scan import ScanCommand


class JsonPayloadAdapter(ScanPayloadAdapter):

    @property
    def source_name(self) -> str:
        return "json_payload"

    def can_handle(self, raw: str) -> bool:
        return raw.startswith("{") and raw.endswith("}")

    def adapt(self, raw: str) -> ScanCommand:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"malformed JSON: {exc.msg}") from exc
        if not isinstance(data, dict) or "action" not in data:
            raise ValueError("missing required field: action")
        # pydantic's ValidationError is a ValueError
        return ScanCommand.model_validate(
            {"action": data["action"], "location": data.get("location")}
        )
