"""
Environment-driven settings for the resilience layer.
"""
import os
from dataclasses import dataclass, field
from typing import Optional

PRODUCTION = "production"


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value else default


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.environ.get(name)
    if not value:
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass
class ResilienceSettings:
    """Configuration for suppression, retry and monitoring behaviour."""
    environment: str = "development"
    discovery_interval: float = 0.1
    discovery_timeout: float = 10.0
    discovery_prefixes: tuple[str, ...] = field(
        default_factory=lambda: ("walletconnect", "pywalletconnect")
    )
    poll_interval: float = 5.0
    transaction_service_url: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == PRODUCTION

    @classmethod
    def from_env(cls) -> 'ResilienceSettings':
        """Build settings from ``RESILIENCE_*`` environment variables."""
        defaults = cls()
        return cls(
            environment=os.environ.get("RESILIENCE_ENV", defaults.environment),
            discovery_interval=_env_float("RESILIENCE_DISCOVERY_INTERVAL", defaults.discovery_interval),
            discovery_timeout=_env_float("RESILIENCE_DISCOVERY_TIMEOUT", defaults.discovery_timeout),
            discovery_prefixes=_env_list("RESILIENCE_DISCOVERY_PREFIXES", defaults.discovery_prefixes),
            poll_interval=_env_float("RESILIENCE_POLL_INTERVAL", defaults.poll_interval),
            transaction_service_url=os.environ.get("RESILIENCE_TX_SERVICE_URL") or None
        )
