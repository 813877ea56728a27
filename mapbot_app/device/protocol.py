"""
Apparatus interaction protocol.

Opening the apparatus, loading items, clearing it and activating it are
multi-step procedures built from bounded polls. Every public operation is
idempotent: it inspects the live client state first and only issues the
actions still missing, so the calling task can re-invoke it on every tick
until it reports a terminal status.
"""

from typing import Callable, Iterable, Optional

from ..config.defaults import DeviceParams
from ..control.breaker import ErrorCircuitBreaker
from ..game.interfaces import ActionExecutor, StateQuery
from ..game.models import Item, ObjectKind
from ..logging.config import get_device_logger, log_transition
from ..utils.time import Clock, resolve_clock
from ..utils.wait import pause, wait_for
from .models import (
    TERMINAL_STATES,
    DeviceSession,
    DeviceState,
    ItemReadiness,
    ProtocolResult,
    ProtocolStatus,
)

logger = get_device_logger(__name__)

ItemPicker = Callable[[list[Item]], Optional[Item]]
ItemPredicate = Callable[[Item], bool]


class DeviceProtocol:
    """
    Drives the apparatus through open, load and activate.

    Faults raised by the client collaborators are caught at each public
    operation, reported to the circuit breaker and returned as an
    ``ERROR`` result.
    """

    def __init__(
        self,
        query: StateQuery,
        actions: ActionExecutor,
        breaker: ErrorCircuitBreaker,
        params: Optional[DeviceParams] = None,
        clock: Optional[Clock] = None
    ) -> None:
        self.query = query
        self.actions = actions
        self.breaker = breaker
        self.params = params or DeviceParams()
        self.clock = resolve_clock(clock)
        self._session: Optional[DeviceSession] = None

    @property
    def session(self) -> Optional[DeviceSession]:
        """Current workflow session, or None when no workflow is active."""
        return self._session

    def open_device(self) -> ProtocolResult:
        """Approach and open the apparatus."""
        return self._guarded("open_device", self._open_device)

    def place_item(self, item: Item) -> ProtocolResult:
        """Load one item into the open apparatus and confirm it arrived."""
        return self._guarded("place_item", lambda: self._place_item(item))

    def clear_device(self) -> ProtocolResult:
        """Move every loaded item back to the inventory, best effort."""
        return self._guarded("clear_device", self._clear_device)

    def activate_device(self) -> ProtocolResult:
        """Activate the loaded apparatus and wait for it to close."""
        return self._guarded("activate_device", self._activate_device)

    def ensure_item_ready(
        self,
        select_candidate: ItemPicker,
        is_primary: ItemPredicate
    ) -> ItemReadiness:
        """
        Make sure a primary item is loaded in the apparatus.

        Args:
            select_candidate: Picks a primary item from the local inventory
            is_primary: Whether a loaded item counts as the primary item

        Returns:
            READY when a primary item is loaded, NEED_EXTERNAL_SUPPLY when the
            inventory holds no candidate and the storage must be visited
        """
        try:
            if not self.query.device_open():
                return ItemReadiness.DEVICE_NOT_OPEN

            if any(is_primary(item) for item in self.query.device_items()):
                return ItemReadiness.READY

            candidate = select_candidate(self.query.inventory_items())
            if candidate is None:
                logger.info("No primary item in inventory")
                return ItemReadiness.NEED_EXTERNAL_SUPPLY

            result = self._place_item(candidate)
            if result.ok:
                return ItemReadiness.READY

            logger.warning(
                "Failed to load primary item",
                item=candidate.name,
                status=result.status.value,
                reason=result.message
            )
            return ItemReadiness.INSERTION_FAILED

        except Exception as e:
            self._report_fault("ensure_item_ready", e)
            return ItemReadiness.ERROR

    def load_optional_items(self, items: Iterable[Item], limit: int) -> int:
        """
        Load secondary items into the remaining slots.

        Failures are logged and skipped.

        Returns:
            Number of items confirmed loaded
        """
        loaded = 0
        for item in items:
            if loaded >= limit:
                break

            result = self.place_item(item)
            if result.ok:
                loaded += 1
            elif result.status == ProtocolStatus.NOT_READY:
                break
            else:
                logger.debug("Optional item not loaded", item=item.name, reason=result.message)

            pause(self.params.optional_item_delay, self.clock)

        return loaded

    def _guarded(self, operation: str, step: Callable[[], ProtocolResult]) -> ProtocolResult:
        try:
            return step()
        except Exception as e:
            self._report_fault(operation, e)
            return ProtocolResult.error(f"{operation} failed: {e}")

    def _report_fault(self, operation: str, error: Exception) -> None:
        logger.error(
            "Unexpected error in device operation",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__
        )
        self._transition(DeviceState.FAILED, f"{operation} raised")
        self.breaker.report_error(f"{operation}: {error}")

    def _open_device(self) -> ProtocolResult:
        if self.query.device_open():
            if self._session is None or self._session.state == DeviceState.OPENING:
                self._transition(DeviceState.OPEN, "already open")
            return ProtocolResult.success("Device already open")

        if self.query.overlay_open():
            logger.debug("Closing blocking overlay before opening device")
            self.actions.press_key(self.params.close_panels_key)
            pause(self.params.overlay_close_delay, self.clock)

        apparatus = self.query.find_object(ObjectKind.APPARATUS)
        if apparatus is None:
            return ProtocolResult.not_found("Device not found in area")

        distance = self.query.position().distance_to(apparatus.position)
        if distance > self.params.proximity:
            self.actions.move_towards(apparatus.position)
            return ProtocolResult.in_progress("Still approaching device")

        self._transition(DeviceState.OPENING, "interact")
        result = self.actions.interact(apparatus)
        if not result.ok:
            self._transition(DeviceState.FAILED, "interact failed")
            return ProtocolResult.action_failed("Failed to interact with device", result)

        opened = wait_for(
            self.query.device_open,
            interval=self.params.poll_interval,
            timeout=self.params.open_timeout,
            description="device to open",
            clock=self.clock
        )
        if not opened:
            self._transition(DeviceState.FAILED, "open timeout")
            return ProtocolResult.timeout("Device did not open")

        self._transition(DeviceState.OPEN, "opened")
        return ProtocolResult.success("Device opened")

    def _place_item(self, item: Item) -> ProtocolResult:
        if not self.query.device_open():
            return ProtocolResult.not_ready("Device is not open")

        loaded = self.query.device_items()
        if any(existing.item_id == item.item_id for existing in loaded):
            return ProtocolResult.success(f"{item.name} already loaded")

        max_slots = self._max_slots()
        if len(loaded) >= max_slots:
            return ProtocolResult.not_ready("Device is full")

        before = len(loaded)
        self._transition(DeviceState.LOADING, "place item")

        result = self.actions.move_item(item.item_id)
        if not result.ok:
            return ProtocolResult.action_failed(f"Failed to move {item.name}", result)

        arrived = wait_for(
            lambda: len(self.query.device_items()) == before + 1,
            interval=self.params.poll_interval,
            timeout=self.params.place_timeout,
            description=f"{item.name} to appear in device",
            clock=self.clock
        )
        if not arrived:
            return ProtocolResult.timeout(f"{item.name} did not appear in device")

        self._remember_loaded()
        logger.info("Item placed in device", item=item.name, loaded=before + 1, max_slots=max_slots)
        return ProtocolResult.success(f"{item.name} placed")

    def _clear_device(self) -> ProtocolResult:
        if not self.query.device_open():
            return ProtocolResult.not_ready("Device is not open")

        loaded = self.query.device_items()
        for index, item in enumerate(loaded):
            if index:
                pause(self.params.clear_item_delay, self.clock)

            result = self.actions.move_item(item.item_id)
            if not result.ok:
                logger.warning("Failed to remove item from device", item=item.name, result=result.value)

        self._remember_loaded()
        return ProtocolResult.success(f"Cleared {len(loaded)} items")

    def _activate_device(self) -> ProtocolResult:
        if not self.query.device_open():
            return ProtocolResult.not_ready("Device is not open")

        pause(self.params.settle_delay, self.clock)

        if not self.query.device_open():
            return ProtocolResult.not_ready("Device closed before activation")

        self._transition(DeviceState.ACTIVATING, "activate")
        result = self.actions.activate_device()
        if not result.ok:
            self._transition(DeviceState.FAILED, "activate failed")
            return ProtocolResult.action_failed("Failed to activate device", result)

        closed = wait_for(
            lambda: not self.query.device_open(),
            interval=self.params.poll_interval,
            timeout=self.params.close_timeout,
            description="device to close after activation",
            clock=self.clock
        )
        if not closed:
            logger.warning("Device still open after activation", timeout=self.params.close_timeout)

        self._transition(DeviceState.CLOSED, "activated")
        return ProtocolResult.success("Device activated")

    def _max_slots(self) -> int:
        slots = self.query.device_slots()
        return slots if slots else self.params.max_slots

    def _remember_loaded(self) -> None:
        if self._session is not None:
            self._session = self._session.with_loaded(
                item.item_id for item in self.query.device_items()
            )

    def _transition(self, new_state: DeviceState, trigger: str) -> None:
        current = self._session.state if self._session else DeviceState.CLOSED
        if current == new_state:
            return

        log_transition(logger, "Device state transition", current.value, new_state.value, trigger=trigger)

        if new_state in TERMINAL_STATES:
            self._session = None
        elif self._session is None:
            self._session = DeviceSession(state=new_state, max_slots=self._max_slots())
        else:
            self._session = self._session.with_state(new_state)
