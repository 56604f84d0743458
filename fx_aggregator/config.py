"""Runtime configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping

from fx_aggregator.ingestion.exchangerate_api import EXCHANGERATE_API_BASE_URL
from fx_aggregator.ingestion.fixer import FIXER_BASE_URL
from fx_aggregator.ingestion.http import DEFAULT_TIMEOUT_SECONDS
from fx_aggregator.ingestion.openexchangerates import OPENEXCHANGERATES_BASE_URL
from fx_aggregator.pipeline.scheduler import HOURLY
from fx_aggregator.utils.currency import DEFAULT_MARKUP, validate_markup


@dataclass(slots=True)
class ProviderConfig:
    """Credentials and endpoint for one rate provider."""

    api_key: str = ""
    base_url: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclass(slots=True)
class AggregatorConfig:
    """Everything needed to assemble a pipeline.

    ``from_env`` maps environment variables onto the fields; unset variables
    keep the defaults below.
    """

    db_url: str | None = None
    default_markup: Decimal = DEFAULT_MARKUP
    http_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    interval_seconds: int = HOURLY
    openexchangerates: ProviderConfig = field(
        default_factory=lambda: ProviderConfig(base_url=OPENEXCHANGERATES_BASE_URL)
    )
    exchangerate_api: ProviderConfig = field(
        default_factory=lambda: ProviderConfig(base_url=EXCHANGERATE_API_BASE_URL)
    )
    fixer: ProviderConfig = field(default_factory=lambda: ProviderConfig(base_url=FIXER_BASE_URL))

    def __post_init__(self) -> None:
        markup = validate_markup(self.default_markup)
        self.default_markup = DEFAULT_MARKUP if markup is None else markup
        if self.http_timeout_seconds <= 0:
            raise ValueError("http_timeout_seconds must be positive")
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AggregatorConfig":
        env = os.environ if environ is None else environ
        return cls(
            db_url=env.get("FX_AGGREGATOR_DB_URL") or None,
            default_markup=validate_markup(
                env.get("FX_AGGREGATOR_DEFAULT_MARKUP", str(DEFAULT_MARKUP))
            ),
            http_timeout_seconds=float(
                env.get("FX_AGGREGATOR_HTTP_TIMEOUT", DEFAULT_TIMEOUT_SECONDS)
            ),
            interval_seconds=int(env.get("FX_AGGREGATOR_INTERVAL_SECONDS", HOURLY)),
            openexchangerates=ProviderConfig(
                api_key=env.get("OPENEXCHANGERATES_APP_ID", ""),
                base_url=env.get("OPENEXCHANGERATES_BASE_URL", OPENEXCHANGERATES_BASE_URL),
            ),
            exchangerate_api=ProviderConfig(
                api_key=env.get("EXCHANGERATE_API_KEY", ""),
                base_url=env.get("EXCHANGERATE_API_BASE_URL", EXCHANGERATE_API_BASE_URL),
            ),
            fixer=ProviderConfig(
                api_key=env.get("FIXER_API_KEY", ""),
                base_url=env.get("FIXER_BASE_URL", FIXER_BASE_URL),
            ),
        )


__all__ = ["AggregatorConfig", "ProviderConfig"]
