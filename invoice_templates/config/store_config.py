"""
Template store configuration.

Supports:
- sqlite (local file, default)
- memory (process-local, nothing persisted)
"""

import os
from dataclasses import dataclass
from typing import Literal

from invoice_templates.repository.backends import MemoryBackend, SQLiteBackend, TemplateBackend


@dataclass
class StoreConfig:
    """Configuration for the issuer template store."""

    backend: Literal["sqlite", "memory"] = "sqlite"

    # SQLite settings
    db_path: str = "data/company_templates.db"
    executor_workers: int = 4

    # Learning settings
    decay_factor: float = 0.95  # Confidence kept by a field missing from an invoice
    outlier_threshold: float = 0.15  # Max region distance accepted by the learner
    min_match_quality: float = 0.5  # Min OCR match confidence accepted by the learner

    @classmethod
    def from_env(cls) -> "StoreConfig":
        """Load config from environment variables."""
        return cls(
            backend=os.getenv("TEMPLATE_BACKEND", "sqlite").lower(),
            db_path=os.getenv("TEMPLATE_DB_PATH", "data/company_templates.db"),
            executor_workers=int(os.getenv("TEMPLATE_DB_WORKERS", "4")),
            decay_factor=float(os.getenv("TEMPLATE_DECAY_FACTOR", "0.95")),
            outlier_threshold=float(os.getenv("TEMPLATE_OUTLIER_THRESHOLD", "0.15")),
            min_match_quality=float(os.getenv("TEMPLATE_MIN_MATCH_QUALITY", "0.5")),
        )


def build_backend(config: StoreConfig) -> TemplateBackend:
    """Create the backend named by the configuration."""
    if config.backend == "sqlite":
        return SQLiteBackend(db_path=config.db_path, max_workers=config.executor_workers)
    elif config.backend == "memory":
        return MemoryBackend()
    raise ValueError(f"Unknown template backend: {config.backend!r}")
