"""Default configuration parameters for the flightwatch engines."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SyncParams:
    """Watchlist refresh parameters."""
    max_concurrency: int = 8                 # Concurrent flight lookups per refresh
    lookup_timeout_seconds: float = 15.0     # Per-lookup deadline


@dataclass(frozen=True)
class LookupParams:
    """Flight data service parameters."""
    base_url: str = "http://localhost:5000"
    timeout_seconds: float = 15.0
    user_agent: str = "flightwatch/0.1"


@dataclass(frozen=True)
class ProductParams:
    """One recognized subscription product."""
    id: str
    display_name: str
    has_intro_trial: bool = False


def _default_products() -> tuple[ProductParams, ...]:
    return (
        ProductParams(
            id="subscription.flightwatch.weekly",
            display_name="3-Day Trial",
            has_intro_trial=True,
        ),
        ProductParams(
            id="subscription.flightwatch.yearly",
            display_name="Yearly Plan",
            has_intro_trial=False,
        ),
    )


@dataclass(frozen=True)
class EntitlementParams:
    """Subscription gating parameters."""
    free_action_quota: int = 1               # Gated actions allowed without a subscription
    require_entitlement_to_track: bool = True
    listener_retry_seconds: float = 5.0      # Delay before resubscribing to a failed transaction stream
    preferred_product_id: str = "subscription.flightwatch.yearly"   # Listed first
    products: tuple[ProductParams, ...] = field(default_factory=_default_products)

    @property
    def product_ids(self) -> tuple[str, ...]:
        return tuple(p.id for p in self.products)


@dataclass(frozen=True)
class StorageParams:
    """Local key-value persistence parameters."""
    data_dir: str = "~/.flightwatch"
    watchlist_key: str = "saved_flights"
    entitlement_key: str = "entitlement_state"


@dataclass(frozen=True)
class LoggingParams:
    """Logging output parameters."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    sync: SyncParams
    lookup: LookupParams
    entitlement: EntitlementParams
    storage: StorageParams
    logging: LoggingParams


def get_default_config() -> AppConfig:
    """Get the default configuration instance."""
    return AppConfig(
        sync=SyncParams(),
        lookup=LookupParams(),
        entitlement=EntitlementParams(),
        storage=StorageParams(),
        logging=LoggingParams(),
    )
