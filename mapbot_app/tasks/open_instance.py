"""
Opening a new instance with the apparatus.

Each pass re-enters the workflow from the live client state: open the
apparatus, return leftover unrelated items to the inventory, make sure a key
item is loaded (fetching one from storage when the inventory has none), load
optional items, then activate.
"""

from typing import Optional

from ..config.defaults import InstanceParams
from ..control.breaker import ErrorCircuitBreaker
from ..device.models import ItemReadiness, ProtocolStatus
from ..device.protocol import DeviceProtocol
from ..device.selection import ItemSelector
from ..device.storage import StorageRoutine
from ..errors import FailureKind
from ..game.models import Item
from .base import Task, TaskResult
from .context import ExecutionContext


class OpenInstanceTask(Task):
    """Loads and activates the apparatus when no resumable portal exists."""

    name = "open_instance"

    def __init__(
        self,
        breaker: ErrorCircuitBreaker,
        device: DeviceProtocol,
        storage: StorageRoutine,
        selector: ItemSelector,
        params: Optional[InstanceParams] = None
    ):
        super().__init__(breaker)
        self.device = device
        self.storage = storage
        self.selector = selector
        self.params = params or InstanceParams()

    def can_execute(self, ctx: ExecutionContext) -> bool:
        return ctx.in_safe_area and not ctx.has_portal and not ctx.session_limit_reached

    def run(self, ctx: ExecutionContext) -> TaskResult:
        opened = self.device.open_device()
        if not opened.ok:
            return self.from_protocol(opened)

        foreign = [item for item in ctx.device_items if not self._belongs_in_device(item)]
        if foreign:
            self.logger.info("Clearing unrelated items from device", items=[item.name for item in foreign])
            cleared = self.device.clear_device()
            if not cleared.ok:
                return self.from_protocol(cleared)
            return TaskResult.in_progress(cleared.message)

        readiness =self.device.ensure_item_ready(self.selector.select_key_item, self.selector.is_key_item)

        if readiness == ItemReadiness.NEED_EXTERNAL_SUPPLY:
            return self._fetch_key_item()
        if readiness == ItemReadiness.DEVICE_NOT_OPEN:
            return TaskResult.in_progress("Device closed, reopening")
        if readiness == ItemReadiness.INSERTION_FAILED:
            return self.fail("Key item could not be loaded", FailureKind.TRANSIENT_ACTION_FAILURE)
        if readiness == ItemReadiness.ERROR:
            return self.fail("Key item check failed", FailureKind.UNEXPECTED, report=False)

        loaded_optional = sum(1 for item in ctx.device_items if self.selector.is_optional_item(item))
        remaining = self.params.max_optional_items - loaded_optional
        if remaining > 0:
            optional = self.selector.select_optional(ctx.inventory_items)
            if optional:
                count = self.device.load_optional_items(optional, remaining)
                self.logger.info("Optional items loaded", count=count, requested=len(optional))

        activated = self.device.activate_device()
        if not activated.ok:
            return self.from_protocol(activated)

        self.breaker.reset()
        return TaskResult.success("Instance opened")

    def _belongs_in_device(self, item: Item) -> bool:
        return self.selector.is_key_item(item) or self.selector.is_optional_item(item)

    def _fetch_key_item(self) -> TaskResult:
        opened = self.storage.open_storage()
        if not opened.ok:
            return self.from_protocol(opened)

        withdrawn = self.storage.withdraw(self.selector.select_key_item)
        if withdrawn.status == ProtocolStatus.NOT_FOUND:
            self.storage.close()
            return self.fail("No key items left in storage", FailureKind.NOT_READY)
        if not withdrawn.ok:
            return self.from_protocol(withdrawn)

        self.storage.close()
        return TaskResult.in_progress("Key item withdrawn from storage")
