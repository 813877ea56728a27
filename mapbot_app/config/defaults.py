"""Default configuration parameters for the instance runner."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DeviceParams:
    """Apparatus interaction parameters."""
    proximity: float = 30.0                          # Max distance to interact
    poll_interval: float = 0.1                       # Seconds between state checks
    open_timeout: float = 3.0                        # Wait for device UI to open
    place_timeout: float = 3.0                       # Wait for loaded count to increase
    settle_delay: float = 1.0                        # Pause before activation
    close_timeout: float = 5.0                       # Wait for device to close after activation
    clear_item_delay: float = 0.05                   # Pause between items when clearing
    overlay_close_delay: float = 0.2                 # Pause after closing a blocking overlay
    optional_item_delay: float = 0.1                 # Pause between optional insertions
    max_slots: int = 6                               # Device capacity when the client does not report it
    close_panels_key: str = "escape"


@dataclass(frozen=True)
class StorageParams:
    """Remote storage (stash) parameters."""
    proximity: float = 15.0
    poll_interval: float = 0.1
    open_timeout: float = 3.0
    transfer_timeout: float = 3.0
    item_delay: float = 0.05
    close_panels_key: str = "escape"


@dataclass(frozen=True)
class StuckParams:
    """Stuck detection parameters."""
    threshold: int = 10                              # Consecutive no-movement updates
    minimum_movement_distance: float = 5.0
    immobilizing_conditions: tuple[str, ...] = ("frozen", "stunned", "trapped", "petrified")


@dataclass(frozen=True)
class BreakerParams:
    """Consecutive failure circuit breaker parameters."""
    max_consecutive: int = 10
    reset_timeout_seconds: float = 120.0


@dataclass(frozen=True)
class InstanceParams:
    """Which key items open an instance and when an instance is done."""
    key_item_class: str = "Maps"
    min_tier: int = 1
    max_tier: int = 16
    preferred_names: tuple[str, ...] = ()
    blacklisted_names: tuple[str, ...] = ()
    optional_item_names: tuple[str, ...] = ()        # Secondary items loaded best-effort
    max_optional_items: int = 4
    keep_names: tuple[str, ...] = ("Portal Scroll",)  # Never stashed
    target_exploration_percent: float = 80.0
    monsters_remaining_threshold: int = -1           # Disabled when negative
    max_instance_seconds: float = 600.0
    portal_proximity: float = 20.0
    enter_timeout: float = 5.0


@dataclass(frozen=True)
class ExitParams:
    """Conditions and mechanics for returning to the safe area."""
    inventory_free_cells_threshold: int = 5
    min_health_percent: float = 20.0
    portal_key: str = "t"
    portal_search_radius: float = 20.0
    portal_spawn_timeout: float = 3.0
    transition_timeout: float = 10.0


@dataclass(frozen=True)
class LootParams:
    """Ground item filtering parameters."""
    enabled: bool = True
    max_range: float = 40.0
    pickup_range: float = 10.0
    pickup_timeout: float = 1.0
    use_price_filter: bool = True
    min_value: float = 5.0
    mandatory_classes: tuple[str, ...] = ()
    pickup_classes: tuple[str, ...] = ("Currency", "Maps", "Divination Card")
    blacklisted_names: tuple[str, ...] = ()
    always_pickup_unknown_currency: bool = True


@dataclass(frozen=True)
class PriceCacheParams:
    """Reference price feed parameters."""
    enabled: bool = True
    base_url: str = "https://poe.ninja/api/data"
    league: str = "Standard"
    ttl_seconds: float = 3600.0
    request_timeout: float = 10.0
    retain_failed_categories: bool = False


@dataclass(frozen=True)
class SessionParams:
    """Tick driver and session limits."""
    tick_interval: float = 0.03
    max_task_seconds: float = 60.0                   # Watchdog for a single task
    max_instances: int = 0                           # 0 means unlimited


@dataclass(frozen=True)
class LoggingParams:
    """Log output settings."""
    level: str = "INFO"
    format_json: bool = False                        # JSON lines on the console instead of coloured text
    include_caller: bool = False
    log_file: str = ""                               # Also append JSON lines here when set


@dataclass(frozen=True)
class BotConfig:
    """Complete configuration."""
    device: DeviceParams = field(default_factory=DeviceParams)
    storage: StorageParams = field(default_factory=StorageParams)
    stuck: StuckParams = field(default_factory=StuckParams)
    breaker: BreakerParams = field(default_factory=BreakerParams)
    instance: InstanceParams = field(default_factory=InstanceParams)
    exit: ExitParams = field(default_factory=ExitParams)
    loot: LootParams = field(default_factory=LootParams)
    prices: PriceCacheParams = field(default_factory=PriceCacheParams)
    session: SessionParams = field(default_factory=SessionParams)
    logging: LoggingParams = field(default_factory=LoggingParams)


def get_default_config() -> BotConfig:
    """Get the default configuration instance."""
    return BotConfig(
        device=DeviceParams(),
        storage=StorageParams(),
        stuck=StuckParams(),
        breaker=BreakerParams(),
        instance=InstanceParams(),
        exit=ExitParams(),
        loot=LootParams(),
        prices=PriceCacheParams(),
        session=SessionParams(),
        logging=LoggingParams(),
    )
