"""Adapter Registry — selects the scan payload adapter for decoded text.

The registry holds a list of registered ScanPayloadAdapters.  When a scan
is decoded, it iterates through adapters in registration order and selects
the first one whose can_handle() returns True.

No heuristics.  No guessing.  Fail fast if nothing matches.
"""

from __future__ import annotations

import logging

from presence_core.adapters.base import ScanPayloadAdapter
from presence_core.domain.errors import PresenceError
from presence_core.domain.scan import ScanCommand

logger = logging.getLogger(__name__)


class AdapterStats:
    """Per-adapter statistics for observability."""

    __slots__ = ("adapter_name", "accepted_count", "rejected_count")

    def __init__(self, adapter_name: str) -> None:
        self.adapter_name = adapter_name
        self.accepted_count: int = 0
        self.rejected_count: int = 0

    def to_dict(self) -> dict:
        return {
            "adapter_name": self.adapter_name,
            "accepted_count": self.accepted_count,
            "rejected_count": self.rejected_count,
        }


class NoAdapterFoundError(PresenceError):
    """Raised when the decoded text is not a recognised scan payload."""


class AdaptationError(PresenceError):
    """Raised when a matched adapter fails to translate the payload."""

    def __init__(self, adapter_name: str, reason: str) -> None:
        self.adapter_name = adapter_name
        self.reason = reason
        super().__init__(f"Adapter '{adapter_name}' failed: {reason}")


class AdapterRegistry:
    """Registry of scan payload adapters with selection and stats tracking.

    Usage:
        registry = AdapterRegistry()
        registry.register(PlainCodeAdapter())
        registry.register(JsonPayloadAdapter())

        command = registry.adapt(decoded_text)
    """

    def __init__(self) -> None:
        self._adapters: list[ScanPayloadAdapter] = []
        self._stats: dict[str, AdapterStats] = {}

    def register(self, adapter: ScanPayloadAdapter) -> None:
        self._adapters.append(adapter)
        self._stats[adapter.source_name] = AdapterStats(adapter.source_name)
        logger.info("Registered scan adapter: %s", adapter.source_name)

    def adapt(self, raw: str) -> ScanCommand:
        """Route decoded text through the first matching adapter.

        Raises:
            NoAdapterFoundError: If no adapter's can_handle() returns True.
            AdaptationError: If the matched adapter fails to translate.
        """
        text = raw.strip()
        for adapter in self._adapters:
            if adapter.can_handle(text):
                stats = self._stats[adapter.source_name]
                try:
                    command = adapter.adapt(text)
                except ValueError as exc:
                    stats.rejected_count += 1
                    logger.warning("Adapter '%s' rejected payload: %s", adapter.source_name, exc)
                    raise AdaptationError(adapter.source_name, str(exc)) from exc
                stats.accepted_count += 1
                logger.debug("Adapter '%s' accepted payload → %s", adapter.source_name, command.action.value)
                return command

        raise NoAdapterFoundError(f"Not a recognised scan code: {text[:40]!r}")

    @property
    def adapter_names(self) -> list[str]:
        return [a.source_name for a in self._adapters]

    @property
    def stats(self) -> list[dict]:
        return [s.to_dict() for s in self._stats.values()]
