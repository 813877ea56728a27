"""Tests for the apparatus interaction protocol."""

from unittest.mock import Mock

import pytest

from mapbot_app.config.defaults import DeviceParams
from mapbot_app.device.models import DeviceState, ItemReadiness, ProtocolStatus
from mapbot_app.device.protocol import DeviceProtocol
from mapbot_app.errors import FailureKind
from mapbot_app.game.models import ActionResult, Item, ObjectKind, Position


@pytest.fixture
def device(game, breaker, clock):
    game.place(ObjectKind.APPARATUS, Position(10.0, 0.0), "Map Device")
    return DeviceProtocol(game, game, breaker, DeviceParams(), clock)


class TestOpenDevice:
    """Test opening the apparatus."""

    def test_already_open_issues_no_actions(self, game, device):
        game.device_is_open = True
        result = device.open_device()
        assert result.status == ProtocolStatus.SUCCESS
        assert game.log == []

    def test_opens_device_when_close_enough(self, game, device, clock):
        started = clock.now()
        result = device.open_device()

        assert result.ok
        assert game.actions_named("interact") == [("interact", ObjectKind.APPARATUS)]
        assert game.device_is_open
        assert 0.3 - 1e-9 <= clock.now() - started <= 0.4 + 1e-9
        assert device.session.state == DeviceState.OPEN

    def test_far_device_moves_and_reports_in_progress(self, game, device):
        game.pos = Position(100.0, 0.0)
        result = device.open_device()

        assert result.status == ProtocolStatus.IN_PROGRESS
        assert game.log == [("move_towards", Position(10.0, 0.0))]

    def test_missing_device(self, game, device):
        del game.objects[ObjectKind.APPARATUS]
        result = device.open_device()
        assert result.status == ProtocolStatus.NOT_FOUND
        assert result.failure_kind == FailureKind.NOT_READY

    def test_closes_blocking_overlay_first(self, game, device):
        game.overlay = True
        result = device.open_device()

        assert result.ok
        assert game.log[0] == ("press_key", "escape")
        assert game.log[1] == ("interact", ObjectKind.APPARATUS)

    def test_interact_failure(self, game, device):
        game.forced_results["interact"] = ActionResult.TARGET_INVALID
        result = device.open_device()

        assert result.status == ProtocolStatus.ACTION_FAILED
        assert result.action_result == ActionResult.TARGET_INVALID
        assert result.failure_kind == FailureKind.TRANSIENT_ACTION_FAILURE
        assert device.session is None

    def test_open_timeout_is_bounded(self, game, device, clock):
        game.device_responds = False
        started = clock.now()
        result = device.open_device()

        assert result.status == ProtocolStatus.TIMEOUT
        assert clock.now() - started <= 3.0 + 0.1 + 1e-9
        assert device.session is None


class TestPlaceItem:
    """Test loading items into the apparatus."""

    def test_requires_open_device(self, game, device, key_item):
        game.inventory = [key_item]
        result = device.place_item(key_item)
        assert result.status == ProtocolStatus.NOT_READY
        assert game.log == []

    def test_place_is_idempotent(self, game, device, key_item):
        """Placing an already loaded item issues no second move."""
        game.device_is_open = True
        game.inventory = [key_item]

        first = device.place_item(key_item)
        second = device.place_item(key_item)

        assert first.ok and second.ok
        assert len(game.actions_named("move_item")) == 1
        assert game.device_contents == [key_item]

    def test_session_tracks_loaded_items(self, game, device, key_item):
        game.inventory = [key_item]

        assert device.open_device().ok
        assert device.place_item(key_item).ok

        assert device.session.state == DeviceState.LOADING
        assert device.session.loaded_item_ids == frozenset({1})
        assert device.session.free_slots == 5

    def test_full_device_not_ready(self, game, device, key_item):
        game.device_is_open = True
        game.slots = 1
        game.device_contents = [Item(9, "Other Map", "Maps")]
        game.inventory = [key_item]

        result = device.place_item(key_item)
        assert result.status == ProtocolStatus.NOT_READY
        assert game.log == []

    def test_timeout_when_count_does_not_increase(self, game, device, key_item, clock):
        game.device_is_open = True
        game.inventory = [key_item]
        game.place_delay = 10.0
        started = clock.now()

        result = device.place_item(key_item)

        assert result.status == ProtocolStatus.TIMEOUT
        assert clock.now() - started <= 3.0 + 0.1 + 1e-9

    def test_move_failure(self, game, device, key_item):
        game.device_is_open = True
        game.forced_results["move_item"] = ActionResult.NO_SPACE
        result = device.place_item(key_item)
        assert result.status == ProtocolStatus.ACTION_FAILED
        assert result.action_result == ActionResult.NO_SPACE


class TestClearDevice:
    """Test emptying the apparatus."""

    def test_requires_open_device(self, device):
        assert device.clear_device().status == ProtocolStatus.NOT_READY

    def test_failures_are_skipped(self, game, device, clock):
        game.device_is_open = True
        game.device_contents = [Item(1, "A", "Maps"), Item(2, "B", "Maps")]
        game.forced_results["move_item"] = ActionResult.BLOCKED

        result = device.clear_device()

        assert result.ok
        assert len(game.actions_named("move_item")) == 2
        assert clock.sleep_calls == [0.05]


class TestActivateDevice:
    """Test activation."""

    def test_requires_open_device(self, game, device):
        assert device.activate_device().status == ProtocolStatus.NOT_READY
        assert game.log == []

    def test_settles_then_activates_and_waits_for_close(self, game, device, clock):
        game.device_is_open = True
        result = device.activate_device()

        assert result.ok
        assert clock.sleep_calls[0] == 1.0
        assert game.actions_named("activate_device") == [("activate_device",)]
        assert not game.device_is_open
        assert device.session is None

    def test_closed_during_settle_delay(self, game, device):
        game.device_is_open = True
        game.schedule(0.5, lambda: setattr(game, "device_is_open", False))

        result = device.activate_device()

        assert result.status == ProtocolStatus.NOT_READY
        assert "before activation" in result.message
        assert game.actions_named("activate_device") == []

    def test_device_staying_open_is_soft_warning(self, game, device, clock):
        game.device_is_open = True
        game.device_closes_on_activate = False
        started = clock.now()

        result = device.activate_device()

        assert result.ok
        assert clock.now() - started <= 1.0 + 5.0 + 0.1 + 1e-9

    def test_activation_failure(self, game, device):
        game.device_is_open = True
        game.forced_results["activate_device"] = ActionResult.UNKNOWN
        assert device.activate_device().status == ProtocolStatus.ACTION_FAILED


class TestFaultHandling:
    """Unexpected faults become ERROR results reported to the breaker."""

    def test_query_exception_is_contained(self, game, breaker, clock):
        query = Mock()
        query.device_open.side_effect = RuntimeError("memory read failed")
        device = DeviceProtocol(query, game, breaker, clock=clock)

        result = device.open_device()

        assert result.status == ProtocolStatus.ERROR
        assert result.failure_kind == FailureKind.UNEXPECTED
        assert breaker.count == 1

    def test_ensure_item_ready_error(self, game, breaker, clock):
        query = Mock()
        query.device_open.side_effect = RuntimeError("boom")
        device = DeviceProtocol(query, game, breaker, clock=clock)

        assert device.ensure_item_ready(lambda items: None, lambda item: True) == ItemReadiness.ERROR
        assert breaker.count == 1


class TestEnsureItemReady:
    """Test the composite key item check."""

    def test_device_not_open(self, device):
        assert device.ensure_item_ready(lambda items: None, lambda item: True) == ItemReadiness.DEVICE_NOT_OPEN

    def test_primary_already_loaded(self, game, device, key_item):
        game.device_is_open = True
        game.device_contents = [key_item]

        readiness = device.ensure_item_ready(lambda items: None, lambda item: item.item_class == "Maps")

        assert readiness == ItemReadiness.READY
        assert game.log == []

    def test_loads_candidate_from_inventory(self, game, device, key_item):
        game.device_is_open = True
        game.inventory = [key_item]

        readiness = device.ensure_item_ready(
            lambda items: items[0] if items else None,
            lambda item: item.item_class == "Maps",
        )

        assert readiness == ItemReadiness.READY
        assert game.device_contents == [key_item]

    def test_needs_external_supply(self, game, device):
        game.device_is_open = True
        readiness = device.ensure_item_ready(lambda items: None, lambda item: False)
        assert readiness == ItemReadiness.NEED_EXTERNAL_SUPPLY

    def test_insertion_failed(self, game, device, key_item):
        game.device_is_open = True
        game.inventory = [key_item]
        game.forced_results["move_item"] = ActionResult.BLOCKED

        readiness = device.ensure_item_ready(lambda items: items[0], lambda item: False)
        assert readiness == ItemReadiness.INSERTION_FAILED


class TestLoadOptionalItems:
    """Test best-effort secondary item loading."""

    def test_respects_limit(self, game, device):
        game.device_is_open = True
        game.inventory = [Item(i, f"Scarab {i}", "Map Fragments") for i in range(1, 5)]

        loaded = device.load_optional_items(list(game.inventory), limit=2)

        assert loaded == 2
        assert len(game.device_contents) == 2

    def test_stops_when_device_full(self, game, device):
        game.device_is_open = True
        game.slots = 1
        items = [Item(i, f"Scarab {i}", "Map Fragments") for i in range(1, 4)]
        game.inventory = list(items)

        assert device.load_optional_items(items, limit=3) == 1
        assert len(game.actions_named("move_item")) == 1
