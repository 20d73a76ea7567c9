"""Abstract base for scan payload adapters.

Scan payload adapters normalise the text decoded from a QR code into a
canonical ScanCommand.

Architectural rules:
    1. adapt() must return a fully valid ScanCommand or raise ValueError.
    2. No adapter may call the event store directly.
    3. can_handle() is a cheap shape check; adapt() does the validation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from presence_core.domain.scan import ScanCommand


class ScanPayloadAdapter(ABC):
    """Base class for converting decoded scan text into ScanCommands."""

    @abstractmethod
    def can_handle(self, raw: str) -> bool:
        """Return True if this adapter recognises the shape of *raw*."""
        ...

    @abstractmethod
    def adapt(self, raw: str) -> ScanCommand:
        """Translate decoded text into a validated ScanCommand.

        Raises:
            ValueError: If the payload cannot be normalised.
        """
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Human-readable name of the payload format this adapter handles."""
        ...
