"""
Tests for template store configuration.
"""

import pytest

from invoice_templates.config.store_config import StoreConfig, build_backend
from invoice_templates.repository.backends import MemoryBackend, SQLiteBackend


class TestStoreConfig:
    def test_defaults_from_empty_env(self, monkeypatch):
        for name in ("TEMPLATE_BACKEND", "TEMPLATE_DB_PATH", "TEMPLATE_DB_WORKERS",
                     "TEMPLATE_DECAY_FACTOR", "TEMPLATE_OUTLIER_THRESHOLD", "TEMPLATE_MIN_MATCH_QUALITY"):
            monkeypatch.delenv(name, raising=False)

        config = StoreConfig.from_env()

        assert config == StoreConfig()
        assert config.decay_factor == 0.95
        assert config.outlier_threshold == 0.15
        assert config.min_match_quality == 0.5

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("TEMPLATE_BACKEND", "MEMORY")
        monkeypatch.setenv("TEMPLATE_DB_PATH", "/tmp/t.db")
        monkeypatch.setenv("TEMPLATE_DB_WORKERS", "2")
        monkeypatch.setenv("TEMPLATE_DECAY_FACTOR", "0.9")
        monkeypatch.setenv("TEMPLATE_OUTLIER_THRESHOLD", "0.2")
        monkeypatch.setenv("TEMPLATE_MIN_MATCH_QUALITY", "0.7")

        config = StoreConfig.from_env()

        assert config.backend == "memory"
        assert config.db_path == "/tmp/t.db"
        assert config.executor_workers == 2
        assert config.decay_factor == 0.9
        assert config.outlier_threshold == 0.2
        assert config.min_match_quality == 0.7


class TestBuildBackend:
    def test_memory(self):
        assert isinstance(build_backend(StoreConfig(backend="memory")), MemoryBackend)

    def test_sqlite(self, tmp_path):
        backend = build_backend(StoreConfig(backend="sqlite", db_path=str(tmp_path / "t.db")))
        try:
            assert isinstance(backend, SQLiteBackend)
            assert (tmp_path / "t.db").exists()
        finally:
            backend.close()

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown template backend"):
            build_backend(StoreConfig(backend="redis"))
