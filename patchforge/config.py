"""Runtime configuration: env-driven via pydantic-settings.

Reads from a .env file and PATCHFORGE_* environment variables.  Components
receive a ``Settings`` instance explicitly; nothing reads ambient globals
after startup.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_UPDATE_HISTORY_URL = (
    "https://support.microsoft.com/en-us/topic/"
    "windows-11-version-23h2-update-history-59875222-b990-4bd9-932f-91a5954de434"
)


class Settings(BaseSettings):
    """Patchforge settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export PATCHFORGE_LOG_LEVEL=DEBUG
        export PATCHFORGE_HTTP_TIMEOUT_SECONDS=30
        export PATCHFORGE_REMEDIATION_ENABLED=false

    Or via .env file::

        PATCHFORGE_UPDATE_HISTORY_URL=https://support.microsoft.com/...
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PATCHFORGE_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Network
    http_timeout_seconds: float = 20.0
    probe_timeout_seconds: float = 5.0
    user_agent: str = "patchforge/0.2.0"
    update_history_url: str = DEFAULT_UPDATE_HISTORY_URL
    github_api_url: str = "https://api.github.com"
    github_token: str = ""

    # Subprocesses
    command_timeout_seconds: int = 120
    remediation_timeout_seconds: int = 1800

    # Remediation is skipped entirely when disabled, even for `update`.
    remediation_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


# Module-level singleton: import as `from patchforge.config import config`
config = Settings()
