"""Depositing collected items in the safe area."""

from ..control.breaker import ErrorCircuitBreaker
from ..device.models import ProtocolStatus
from ..device.storage import StorageRoutine
from .base import Task, TaskResult
from .context import ExecutionContext


class StashTask(Task):
    """
    Moves every non-reserved inventory item into storage.

    Items none of which could be moved are left in the inventory for the rest
    of the session so the task does not retry them on every pass.
    """

    name = "stash"

    def __init__(self, breaker: ErrorCircuitBreaker, storage: StorageRoutine):
        super().__init__(breaker)
        self.storage = storage
        self._kept: set[int] = set()

    def can_execute(self, ctx: ExecutionContext) -> bool:
        return ctx.in_safe_area and any(item.item_id not in self._kept for item in ctx.stashable_items)

    def run(self, ctx: ExecutionContext) -> TaskResult:
        items = [item for item in ctx.stashable_items if item.item_id not in self._kept]

        opened = self.storage.open_storage()
        if not opened.ok:
            return self.from_protocol(opened)

        deposited = self.storage.deposit(items)
        if deposited.status == ProtocolStatus.ACTION_FAILED:
            self._kept.update(item.item_id for item in items)
            self.storage.close()
            self.logger.warning("Keeping items that cannot be stashed", items=[item.name for item in items])
        if not deposited.ok:
            return self.from_protocol(deposited)

        self.storage.close()
        return TaskResult.success(deposited.message)

    def is_kept(self, item_id: int) -> bool:
        return item_id in self._kept
