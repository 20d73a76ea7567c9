"""Tests for scan payload adapters and the adapter registry.

Covers adapter selection, payload rejection, location parsing and
registry stats.
"""

from __future__ import annotations

import pytest

from presence_core.adapters.json_payload import JsonPayloadAdapter
from presence_core.adapters.plain_code import PlainCodeAdapter
from presence_core.adapters.registry import (
    AdaptationError,
    AdapterRegistry,
    NoAdapterFoundError,
)
from presence_core.domain.enums import Location, OccupancyAction


def _build_registry() -> AdapterRegistry:
    reg = AdapterRegistry()
    reg.register(PlainCodeAdapter())
    reg.register(JsonPayloadAdapter())
    return reg


# ── Selection ────────────────────────────────────────────────────────────────


class TestAdapterSelection:
    def test_plain_check_in(self) -> None:
        command = _build_registry().adapt("gym_check_in")
        assert command.action == OccupancyAction.CHECK_IN
        assert command.location is None

    def test_plain_check_out(self) -> None:
        command = _build_registry().adapt("gym_check_out")
        assert command.action == OccupancyAction.CHECK_OUT

    def test_surrounding_whitespace_ignored(self) -> None:
        command = _build_registry().adapt("  gym_check_in\n")
        assert command.action == OccupancyAction.CHECK_IN

    def test_json_payload_selected(self) -> None:
        command = _build_registry().adapt('{"action": "check_out", "location": "ookayama"}')
        assert command.action == OccupancyAction.CHECK_OUT
        assert command.location == Location.OOKAYAMA

    def test_unrelated_code_raises(self) -> None:
        with pytest.raises(NoAdapterFoundError):
            _build_registry().adapt("https://example.com/menu")

    def test_empty_registry_raises(self) -> None:
        with pytest.raises(NoAdapterFoundError):
            AdapterRegistry().adapt("gym_check_in")


# ── Rejection ────────────────────────────────────────────────────────────────


class TestPayloadRejection:
    def test_unknown_gym_code(self) -> None:
        with pytest.raises(AdaptationError) as info:
            _build_registry().adapt("gym_check_sideways")
        assert info.value.adapter_name == "plain_code"

    def test_unknown_location_suffix(self) -> None:
        with pytest.raises(AdaptationError):
            _build_registry().adapt("gym_check_in:tamachi")

    def test_malformed_json(self) -> None:
        with pytest.raises(AdaptationError):
            _build_registry().adapt('{"action": }')

    def test_json_missing_action(self) -> None:
        with pytest.raises(AdaptationError):
            _build_registry().adapt('{"location": "ookayama"}')

    def test_json_unknown_action(self) -> None:
        with pytest.raises(AdaptationError):
            _build_registry().adapt('{"action": "wave"}')

    def test_json_array_rejected(self) -> None:
        with pytest.raises(NoAdapterFoundError):
            _build_registry().adapt('["check_in"]')


# ── Locations ────────────────────────────────────────────────────────────────


class TestLocationSuffix:
    def test_suffix_names_location(self) -> None:
        command = _build_registry().adapt("gym_check_in:suzukakedai")
        assert command.location == Location.SUZUKAKEDAI

    def test_suffix_is_case_insensitive(self) -> None:
        command = _build_registry().adapt("gym_check_out:Ookayama")
        assert command.location == Location.OOKAYAMA


# ── Stats ────────────────────────────────────────────────────────────────────


class TestRegistryStats:
    def test_stats_track_accepted_and_rejected(self) -> None:
        reg = _build_registry()
        reg.adapt("gym_check_in")
        reg.adapt("gym_check_out")
        with pytest.raises(AdaptationError):
            reg.adapt("gym_nope")
        plain = next(s for s in reg.stats if s["adapter_name"] == "plain_code")
        assert plain["accepted_count"] == 2
        assert plain["rejected_count"] == 1

    def test_adapter_names(self) -> None:
        assert _build_registry().adapter_names == ["plain_code", "json_payload"]


class TestCanHandle:
    def test_plain_can_handle(self) -> None:
        assert PlainCodeAdapter().can_handle("gym_check_in")
        assert not PlainCodeAdapter().can_handle("GYM_CHECK_IN")

    def test_json_can_handle(self) -> None:
        assert JsonPayloadAdapter().can_handle('{"action": "check_in"}')
        assert not JsonPayloadAdapter().can_handle("gym_check_in")
