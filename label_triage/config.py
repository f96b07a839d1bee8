"""Runtime settings for the triage service."""

import os
from pathlib import Path

from .errors import ConfigError

DEFAULT_RULES_PATH = ".github/triage.yml"
DEFAULT_CONCURRENCY_GROUP = "issue-triage"
DEFAULT_API_TIMEOUT = 15.0
DEFAULT_MAX_WORKERS = 4


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def parse_runner_debug() -> bool:
    """Return True when the CI runner asked for debug output."""
    raw = os.getenv("RUNNER_DEBUG")
    if raw is None or raw == "":
        return False
    if raw not in {"0", "1"}:
        raise ConfigError("RUNNER_DEBUG must be '0' or '1' when set")
    return raw == "1"


class TriageSettings:
    """Configuration for a triage run, read from environment variables.

    Every value can be overridden after construction, which is how the CLI
    applies its options on top of the environment.
    """

    def __init__(self) -> None:
        """Initialize settings from environment variables."""
        self.token: str | None = os.getenv("GITHUB_TOKEN")
        self.repository: str | None = os.getenv("GITHUB_REPOSITORY")
        self.allowed_repository: str | None = os.getenv("TRIAGE_ALLOWED_REPOSITORY")
        self.rules_path: Path = Path(os.getenv("TRIAGE_CONFIG", DEFAULT_RULES_PATH))
        self.concurrency_group: str = os.getenv(
            "TRIAGE_CONCURRENCY_GROUP", DEFAULT_CONCURRENCY_GROUP
        )
        self.api_timeout: float = _env_float("TRIAGE_API_TIMEOUT", DEFAULT_API_TIMEOUT)
        self.max_workers: int = _env_int("TRIAGE_MAX_WORKERS", DEFAULT_MAX_WORKERS)

    def split_repository(self) -> tuple[str, str]:
        """Split the repository into (owner, name)."""
        if not self.repository or "/" not in self.repository:
            raise ConfigError(
                f"Repository must be in owner/name format, got {self.repository!r}"
            )
        owner, name = self.repository.split("/", 1)
        if not owner or not name:
            raise ConfigError(
                f"Repository must be in owner/name format, got {self.repository!r}"
            )
        return owner, name

    def validate(self, require_token: bool = True) -> None:
        """Validate settings and raise ConfigError if invalid."""
        missing = []
        if require_token and not self.token:
            missing.append("GITHUB_TOKEN")
        if not self.repository:
            missing.append("GITHUB_REPOSITORY")
        if missing:
            raise ConfigError(
                f"Environment variables required for triage: {', '.join(missing)}"
            )

        self.split_repository()

        if self.api_timeout <= 0:
            raise ConfigError("TRIAGE_API_TIMEOUT must be greater than zero")
        if self.max_workers < 1:
            raise ConfigError("TRIAGE_MAX_WORKERS must be at least 1")
        if not self.concurrency_group:
            raise ConfigError("TRIAGE_CONCURRENCY_GROUP must not be empty")
