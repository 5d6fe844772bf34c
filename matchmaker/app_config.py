from datetime import timedelta

from pydantic import BaseModel, ConfigDict

from matchmaker.shared.config import config


def _split_csv(raw: str | None) -> tuple[str, ...]:
    return tuple(x.strip() for x in (raw or "").split(",") if x.strip())


class AppEnvironConfig(BaseModel):
    """Immutable runtime settings, assembled once at startup."""

    model_config = ConfigDict(frozen=True)

    DEBUG: bool = config.get_bool("DEBUG", False)

    # HTTP server
    API_HOST: str = (config.get("API_HOST") or "0.0.0.0").strip()
    API_PORT: int = config.get_int("API_PORT", 8080, minimum=1)
    API_CORS_ORIGINS: tuple[str, ...] = _split_csv(config.get("API_CORS_ORIGINS", "*"))
    # Administrative endpoints are disabled while this is empty
    INTERNAL_API_KEY: str | None = (config.get("INTERNAL_API_KEY") or "").strip() or None

    # Dynamic sessions
    SESSION_TTL_MS: int = config.get_int("SESSION_TTL_MS", 300_000, minimum=1)
    CLEANUP_INTERVAL_MS: int = config.get_int("CLEANUP_INTERVAL_MS", 60_000, minimum=1)

    # Fixed devices; heartbeats are expected every 20-30s
    DEVICE_OFFLINE_THRESHOLD_MS: int = config.get_int("DEVICE_OFFLINE_THRESHOLD_MS", 90_000, minimum=1)
    DEVICE_SWEEP_INTERVAL_MS: int = config.get_int("DEVICE_SWEEP_INTERVAL_MS", 30_000, minimum=1)

    # Access codes
    CODE_LENGTH: int = config.get_int("CODE_LENGTH", 6, minimum=4)
    CODE_MAX_ATTEMPTS: int = config.get_int("CODE_MAX_ATTEMPTS", 100, minimum=1)

    # Free mode
    FREE_MODE_TRIAL_DURATION_MS: int = config.get_int("FREE_MODE_TRIAL_DURATION_MS", 1_800_000, minimum=1)
    FREE_MODE_COOLDOWN_MS: int = config.get_int("FREE_MODE_COOLDOWN_MS", 600_000, minimum=0)
    FREE_MODE_PROGRESSIVE_COOLDOWN: bool = config.get_bool("FREE_MODE_PROGRESSIVE_COOLDOWN", False)

    # External collaborators
    ACCOUNT_SERVICE_URL: str | None = (config.get("ACCOUNT_SERVICE_URL") or "").strip() or None
    ACCOUNT_SERVICE_API_KEY: str | None = (config.get("ACCOUNT_SERVICE_API_KEY") or "").strip() or None
    PAID_ACCOUNT_CODES: tuple[str, ...] = _split_csv(config.get("PAID_ACCOUNT_CODES"))
    OWNER_NOTIFY_WEBHOOK_URL: str | None = (config.get("OWNER_NOTIFY_WEBHOOK_URL") or "").strip() or None

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(milliseconds=self.SESSION_TTL_MS)

    @property
    def cleanup_interval(self) -> timedelta:
        return timedelta(milliseconds=self.CLEANUP_INTERVAL_MS)

    @property
    def device_offline_threshold(self) -> timedelta:
        return timedelta(milliseconds=self.DEVICE_OFFLINE_THRESHOLD_MS)

    @property
    def device_sweep_interval(self) -> timedelta:
        return timedelta(milliseconds=self.DEVICE_SWEEP_INTERVAL_MS)

    @property
    def free_mode_trial_duration(self) -> timedelta:
        return timedelta(milliseconds=self.FREE_MODE_TRIAL_DURATION_MS)

    @property
    def free_mode_cooldown(self) -> timedelta:
        return timedelta(milliseconds=self.FREE_MODE_COOLDOWN_MS)


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
