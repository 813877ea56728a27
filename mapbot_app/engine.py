"""
Map runner engine.

Composition root of the control layer: builds every service instance from a
``BotConfig``, registers the task set in priority order and drives the
orchestrator one pass per tick until stopped. A tripped circuit breaker
stops the engine; there is no automatic restart.
"""

import uuid
from pathlib import Path
from typing import Any, Optional

import structlog

from .config.defaults import BotConfig, get_default_config
from .config.loader import load_config
from .control.breaker import ErrorCircuitBreaker
from .control.stuck import StuckDetector
from .device.protocol import DeviceProtocol
from .device.selection import ItemSelector
from .device.storage import StorageRoutine
from .errors import SystemicFailureError
from .game.interfaces import ActionExecutor, StateQuery
from .logging.config import configure_logging
from .prices.cache import ReferencePriceCache
from .prices.feed import HttpReferenceFeed, ReferenceFeed
from .prices.loot import LootFilter
from .stats.statistics import RunStatistics
from .tasks.context import ContextBuilder
from .tasks.enter_instance import EnterInstanceTask
from .tasks.explore import ExploreTask
from .tasks.loot import LootTask
from .tasks.open_instance import OpenInstanceTask
from .tasks.orchestrator import Orchestrator, TickOutcome
from .tasks.return_home import ReturnToSafeAreaTask
from .tasks.session_limit import SessionLimitTask
from .tasks.stash import StashTask
from .utils.time import Clock, format_timestamp, resolve_clock, utc_now

logger = structlog.get_logger(__name__)


class MapRunnerEngine:
    """
    Main coordinator for the map running automation.

    Manages the control loop:
    Client state → Execution context → Task selection → Actions
    """

    def __init__(
        self,
        query: StateQuery,
        actions: ActionExecutor,
        config: Optional[BotConfig] = None,
        feed: Optional[ReferenceFeed] = None,
        clock: Optional[Clock] = None
    ) -> None:
        self.config = config or get_default_config()
        self.clock = resolve_clock(clock)
        self.query = query
        self.actions = actions

        cfg = self.config

        self.breaker = ErrorCircuitBreaker(
            max_consecutive=cfg.breaker.max_consecutive,
            reset_timeout=cfg.breaker.reset_timeout_seconds,
            clock=self.clock,
            on_trip=self._on_breaker_trip,
        )
        self.stuck_detector = StuckDetector(
            threshold=cfg.stuck.threshold,
            minimum_movement_distance=cfg.stuck.minimum_movement_distance,
            immobilizing_conditions=cfg.stuck.immobilizing_conditions,
        )

        self.price_cache: Optional[ReferencePriceCache] = None
        if cfg.prices.enabled:
            if feed is None:
                feed = HttpReferenceFeed(
                    base_url=cfg.prices.base_url,
                    league=cfg.prices.league,
                    timeout=cfg.prices.request_timeout,
                )
            self.price_cache = ReferencePriceCache(
                feed,
                ttl_seconds=cfg.prices.ttl_seconds,
                clock=self.clock,
                retain_failed_categories=cfg.prices.retain_failed_categories,
            )

        self.loot_filter = LootFilter(self.price_cache, cfg.loot)
        self.selector = ItemSelector(cfg.instance)
        self.stats = RunStatistics(self.clock)
        self.device = DeviceProtocol(query, actions, self.breaker, cfg.device, self.clock)
        self.storage = StorageRoutine(query, actions, self.breaker, cfg.storage, self.clock)

        self.context_builder = ContextBuilder(
            query, self.stats, self.loot_filter, self.selector, cfg, self.clock
        )
        self.orchestrator = Orchestrator(
            self.context_builder.build,
            self.breaker,
            max_task_seconds=cfg.session.max_task_seconds,
            clock=self.clock,
        )
        self._register_tasks()

        self._running = False
        self._stop_reason: Optional[str] = None
        self._halted_by_breaker = False
        self._ticks = 0
        self.run_id: Optional[str] = None

        logger.info("Map runner engine initialized", tasks=[r.task.name for r in self.orchestrator.tasks])

    @classmethod
    def from_config_dir(
        cls,
        query: StateQuery,
        actions: ActionExecutor,
        config_dir: Optional[Path] = None,
        overrides: Optional[dict[str, Any]] = None,
        setup_logging: bool = True,
        **kwargs: Any
    ) -> "MapRunnerEngine":
        """Create an engine from a settings profile directory, configuring logging from it."""
        config = load_config(config_dir, overrides)
        if setup_logging:
            configure_logging(config.logging)
        return cls(query, actions, config=config, **kwargs)

    def _register_tasks(self) -> None:
        cfg = self.config
        register = self.orchestrator.register

        register(SessionLimitTask(self.breaker, on_limit=self.stop))
        register(ReturnToSafeAreaTask(
            self.query, self.actions, self.breaker, self.stats, cfg.exit, self.clock
        ))
        register(LootTask(
            self.query, self.actions, self.breaker, self.loot_filter, self.stats, cfg.loot, self.clock
        ))
        register(ExploreTask(self.actions, self.breaker, self.stuck_detector, self.stats))
        register(StashTask(self.breaker, self.storage))
        register(OpenInstanceTask(self.breaker, self.device, self.storage, self.selector, cfg.instance))
        register(EnterInstanceTask(
            self.query, self.actions, self.breaker, self.stats, self.loot_filter, cfg.instance, self.clock
        ))

    @property
    def running(self) -> bool:
        return self._running

    @property
    def stop_reason(self) -> Optional[str]:
        return self._stop_reason

    def start(self) -> None:
        """Reset the session and load reference prices."""
        if self._running:
            return

        self._running = True
        self._stop_reason = None
        self._halted_by_breaker = False
        self._ticks = 0
        self.run_id = uuid.uuid4().hex[:12]
        structlog.contextvars.bind_contextvars(run_id=self.run_id)
        self.breaker.reset()

        if self.price_cache is not None:
            snapshot = self.price_cache.force_refresh()
            logger.info(
                "Reference prices loaded",
                entries=len(snapshot),
                failed_categories=sorted(snapshot.failed_categories)
            )

        logger.info("Engine started", started_at=format_timestamp(utc_now()))

    def stop(self, reason: str = "Stopped by operator") -> None:
        if not self._running:
            return

        self._running = False
        self._stop_reason = reason
        logger.info("Engine stopped", reason=reason, ticks=self._ticks, **self.stats.summary())
        structlog.contextvars.unbind_contextvars("run_id")

    def tick(self) -> Optional[TickOutcome]:
        """
        Run one orchestrator pass.

        Returns:
            The pass outcome, or None when the engine is not running
        """
        if not self._running:
            return None

        self._ticks += 1
        outcome = self.orchestrator.execute()

        if outcome.halted:
            self.stop(self.breaker.trip_reason or "Circuit breaker tripped")

        return outcome

    def run(self, max_ticks: Optional[int] = None) -> int:
        """
        Tick until stopped, sleeping ``tick_interval`` between passes.

        Returns:
            Number of ticks run

        Raises:
            SystemicFailureError: The circuit breaker stopped the engine
        """
        self.start()
        ticks = 0

        while self._running and (max_ticks is None or ticks < max_ticks):
            self.tick()
            ticks += 1
            if self._running:
                self.clock.sleep(self.config.session.tick_interval)

        if self._halted_by_breaker:
            raise SystemicFailureError(
                self._stop_reason or "Circuit breaker tripped",
                error_count=self.breaker.count,
            )

        return ticks

    def _on_breaker_trip(self, reason: str) -> None:
        self._halted_by_breaker = True
        self.stop(reason)
