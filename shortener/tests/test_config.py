"""Tests for configuration and backend selection."""

import pytest

from shortener.config import Config, load_config, parse_args
from shortener.lib.database import (
    StoreBackend,
    select_backend,
    create_store,
    MemoryLinkStore,
    FileLinkStore,
    PostgresLinkStore,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("HOST", "PORT", "BASE_URL", "FILE_STORAGE_PATH", "DATABASE_DSN", "REDIS_URL", "KEY_LENGTH"):
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the picture
    monkeypatch.setitem(Config.model_config, "env_file", None)


class TestConfig:
    """Environment and command-line configuration."""

    def test_defaults(self):
        config = Config()

        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.key_length == 9
        assert config.database_dsn is None
        assert select_backend(config) is StoreBackend.MEMORY

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("BASE_URL", "https://sho.rt")
        monkeypatch.setenv("KEY_LENGTH", "12")

        config = Config()

        assert config.base_url == "https://sho.rt"
        assert config.key_length == 12

    def test_empty_values_are_unset(self, monkeypatch):
        monkeypatch.setenv("DATABASE_DSN", "")
        monkeypatch.setenv("FILE_STORAGE_PATH", "")

        config = Config()

        assert config.database_dsn is None
        assert config.file_storage_path is None

    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("BASE_URL", "http://env.example.com")

        config = load_config(["-a", "0.0.0.0:9090", "-b", "http://flag.example.com", "-f", "/tmp/links.json"])

        assert config.host == "0.0.0.0"
        assert config.port == 9090
        assert config.base_url == "http://flag.example.com"
        assert config.file_storage_path == "/tmp/links.json"

    def test_parse_args_only_returns_given_flags(self):
        assert parse_args([]) == {}
        assert parse_args(["-d", "postgresql://localhost/db"]) == {"database_dsn": "postgresql://localhost/db"}

    def test_bad_address(self):
        with pytest.raises(SystemExit):
            parse_args(["-a", "no-port"])


class TestBackendSelection:
    """A DSN wins over a file path; memory is the fallback."""

    def test_dsn_wins(self):
        config = Config(database_dsn="postgresql://localhost/db", file_storage_path="/tmp/links.json")
        assert select_backend(config) is StoreBackend.POSTGRES

    def test_file(self):
        config = Config(file_storage_path="/tmp/links.json")
        assert select_backend(config) is StoreBackend.FILE

    def test_create_store(self, tmp_path, logger):
        memory = create_store(Config(), logger=logger)
        file = create_store(Config(file_storage_path=str(tmp_path / "links.json")), logger=logger)
        postgres = create_store(Config(database_dsn="postgresql://localhost/db"), logger=logger)

        assert type(memory) is MemoryLinkStore
        assert isinstance(file, FileLinkStore)
        assert isinstance(postgres, PostgresLinkStore)
        assert memory.generator.length == 9
