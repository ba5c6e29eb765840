"""Board configuration — env-driven via pydantic-settings.

Reads from a ``.env`` file and ``WORKBOARD_*`` environment variables.

Examples
--------
Override via environment::

    export WORKBOARD_PROJECT_ROOT=/srv/my-project
    export WORKBOARD_PORT=5000
    export WORKBOARD_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class BoardConfig(BaseSettings):
    """Runtime configuration for the synchronization engine and its server.

    Descriptors live under ``project_root / project_subdir``; each work item
    directory holds ``descriptor_name`` plus optional ``doc_name`` and
    ``context_name`` free-text bodies.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WORKBOARD_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Project layout
    project_root: Path = Path(".")
    project_subdir: Path = Path(".avc/project")
    descriptor_name: str = "work.json"
    doc_name: str = "doc.md"
    context_name: str = "context.md"

    # Server
    host: str = "localhost"
    port: int = 4174
    cors_origins: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # Watching
    watch_enabled: bool = True
    debounce_seconds: float = 0.1  # write-stability window per path

    # Observability
    log_level: str = "INFO"

    @property
    def descriptor_root(self) -> Path:
        """Absolute directory that holds the descriptor tree."""
        return (self.project_root / self.project_subdir).resolve()


# Module-level singleton: `from workboard.config import config`
config = BoardConfig()
