"""
Storage routine.

Supplies the apparatus workflow with items kept in the storage container and
takes collected items off the inventory. Same contract as the device
protocol: status values, idempotent steps, faults reported to the breaker.
"""

from typing import Callable, Iterable, Optional

from ..config.defaults import StorageParams
from ..control.breaker import ErrorCircuitBreaker
from ..game.interfaces import ActionExecutor, StateQuery
from ..game.models import ActionResult, Item, ObjectKind
from ..logging.config import get_device_logger
from ..utils.time import Clock, resolve_clock
from ..utils.wait import pause, wait_for
from .models import ProtocolResult

logger = get_device_logger(__name__)


class StorageRoutine:
    """Opens the storage container and moves items in and out of it."""

    def __init__(
        self,
        query: StateQuery,
        actions: ActionExecutor,
        breaker: ErrorCircuitBreaker,
        params: Optional[StorageParams] = None,
        clock: Optional[Clock] = None
    ) -> None:
        self.query = query
        self.actions = actions
        self.breaker = breaker
        self.params = params or StorageParams()
        self.clock = resolve_clock(clock)

    def open_storage(self) -> ProtocolResult:
        return self._guarded("open_storage", self._open_storage)

    def withdraw(self, select_candidate: Callable[[list[Item]], Optional[Item]]) -> ProtocolResult:
        """Move one selected storage item into the inventory."""
        return self._guarded("withdraw", lambda: self._withdraw(select_candidate))

    def deposit(self, items: Iterable[Item]) -> ProtocolResult:
        """Move the given inventory items into storage."""
        return self._guarded("deposit", lambda: self._deposit(list(items)))

    def close(self) -> ProtocolResult:
        return self._guarded("close", self._close)

    def _guarded(self, operation: str, step: Callable[[], ProtocolResult]) -> ProtocolResult:
        try:
            return step()
        except Exception as e:
            logger.error(
                "Unexpected error in storage operation",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__
            )
            self.breaker.report_error(f"{operation}: {e}")
            return ProtocolResult.error(f"{operation} failed: {e}")

    def _open_storage(self) -> ProtocolResult:
        if self.query.storage_open():
            return ProtocolResult.success("Storage already open")

        storage = self.query.find_object(ObjectKind.STORAGE)
        if storage is None:
            return ProtocolResult.not_found("Storage not found in area")

        if self.query.position().distance_to(storage.position) > self.params.proximity:
            self.actions.move_towards(storage.position)
            return ProtocolResult.in_progress("Still approaching storage")

        result = self.actions.interact(storage)
        if not result.ok:
            return ProtocolResult.action_failed("Failed to interact with storage", result)

        opened = wait_for(
            self.query.storage_open,
            interval=self.params.poll_interval,
            timeout=self.params.open_timeout,
            description="storage to open",
            clock=self.clock
        )
        if not opened:
            return ProtocolResult.timeout("Storage did not open")

        logger.info("Storage opened")
        return ProtocolResult.success("Storage opened")

    def _withdraw(self, select_candidate: Callable[[list[Item]], Optional[Item]]) -> ProtocolResult:
        if not self.query.storage_open():
            return ProtocolResult.not_ready("Storage is not open")

        candidate = select_candidate(self.query.storage_items())
        if candidate is None:
            return ProtocolResult.not_found("No suitable item in storage")

        result = self.actions.move_item(candidate.item_id)
        if not result.ok:
            return ProtocolResult.action_failed(f"Failed to withdraw {candidate.name}", result)

        arrived = wait_for(
            lambda: self._in_inventory(candidate.item_id),
            interval=self.params.poll_interval,
            timeout=self.params.transfer_timeout,
            description=f"{candidate.name} to reach inventory",
            clock=self.clock
        )
        if not arrived:
            return ProtocolResult.timeout(f"{candidate.name} did not reach inventory")

        logger.info("Item withdrawn from storage", item=candidate.name)
        return ProtocolResult.success(f"Withdrew {candidate.name}")

    def _deposit(self, items: list[Item]) -> ProtocolResult:
        if not self.query.storage_open():
            return ProtocolResult.not_ready("Storage is not open")

        moved = []
        last_failure: Optional[ActionResult] = None
        for item in items:
            result = self.actions.move_item(item.item_id)
            if result.ok:
                moved.append(item.item_id)
            else:
                last_failure = result
                logger.warning("Failed to deposit item", item=item.name, result=result.value)
            pause(self.params.item_delay, self.clock)

        if items and not moved:
            return ProtocolResult.action_failed(f"None of {len(items)} items could be deposited", last_failure)

        deposited = wait_for(
            lambda: not any(self._in_inventory(item_id) for item_id in moved),
            interval=self.params.poll_interval,
            timeout=self.params.transfer_timeout,
            description="deposited items to leave inventory",
            clock=self.clock
        )
        if not deposited:
            return ProtocolResult.timeout("Deposited items still in inventory")

        logger.info("Items deposited", count=len(moved), requested=len(items))
        return ProtocolResult.success(f"Deposited {len(moved)} items")

    def _close(self) -> ProtocolResult:
        if self.query.storage_open():
            self.actions.press_key(self.params.close_panels_key)
        return ProtocolResult.success("Storage closed")

    def _in_inventory(self, item_id: int) -> bool:
        return any(item.item_id == item_id for item in self.query.inventory_items())
