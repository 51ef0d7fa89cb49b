"""
Application settings configuration for eventcore.

Centralized settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


OverlapPolicy = Literal["advisory", "strict"]


class AppSettings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment Variables:
        EVENTCORE_SWEEP_ENABLED: Start the auto-transition scheduler with the app (default: true)
        EVENTCORE_SWEEP_INTERVAL_SECONDS: Seconds between sweep ticks (default: 120)
        EVENTCORE_PRE_EVENT_LEAD_HOURS: Hours before start at which published
            events move to pre_event (default: 24)
        EVENTCORE_SERIES_OVERLAP_POLICY: "advisory" reports sibling overlap as a
            warning, "strict" rejects it (default: advisory)
        EVENTCORE_PAST_START_GRACE_SECONDS: Tolerance applied to the "series
            starts in the past" check (default: 60)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    # Auto-transition sweep
    sweep_enabled: bool = Field(
        default=True,
        validation_alias="EVENTCORE_SWEEP_ENABLED",
        description="Run the auto-transition scheduler in the application lifespan",
    )

    sweep_interval_seconds: int = Field(
        default=120,
        validation_alias="EVENTCORE_SWEEP_INTERVAL_SECONDS",
        ge=10,
        le=3600,
    )

    pre_event_lead_hours: int = Field(
        default=24,
        validation_alias="EVENTCORE_PRE_EVENT_LEAD_HOURS",
        ge=1,
        le=168,
    )

    # Series validation
    series_overlap_policy: OverlapPolicy = Field(
        default="advisory",
        validation_alias="EVENTCORE_SERIES_OVERLAP_POLICY",
        description="How overlapping sibling series are reported: advisory (warning) or strict (error)",
    )

    past_start_grace_seconds: int = Field(
        default=60,
        validation_alias="EVENTCORE_PAST_START_GRACE_SECONDS",
        ge=0,
        le=3600,
    )

    # Series ordering
    collation_locale: str = Field(
        default="",
        validation_alias="EVENTCORE_COLLATION_LOCALE",
        description="LC_COLLATE used to order series names; empty uses the process environment",
    )

    @property
    def strict_overlap(self) -> bool:
        """Check if overlapping siblings block persistence."""
        return self.series_overlap_policy == "strict"


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get cached application settings instance.

    Returns:
        AppSettings: Configured application settings from environment
    """
    return AppSettings()
