"""Centralised settings for the Nexus knowledge graph.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from the package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("NEXUS_WORKSPACE", Path.home() / ".nexus_data")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database file."""
        return self.workspace_dir / "knowledge.db"

    persistence_timeout: float = field(
        default_factory=lambda: float(os.environ.get("PERSISTENCE_TIMEOUT", "5.0"))
    )

    # ------------------------------------------------------------------
    # Query defaults
    # ------------------------------------------------------------------
    search_default_limit: int = field(
        default_factory=lambda: int(os.environ.get("SEARCH_DEFAULT_LIMIT", "20"))
    )
    traversal_default_limit: int = field(
        default_factory=lambda: int(os.environ.get("TRAVERSAL_DEFAULT_LIMIT", "50"))
    )

    # ------------------------------------------------------------------
    # Node previews
    # ------------------------------------------------------------------
    preview_summary_chars: int = field(
        default_factory=lambda: int(os.environ.get("PREVIEW_SUMMARY_CHARS", "150"))
    )
    preview_keyword_count: int = field(
        default_factory=lambda: int(os.environ.get("PREVIEW_KEYWORD_COUNT", "5"))
    )

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level settings instance; import this everywhere:
#   from nexus.config import settings
settings = Settings()
