"""Tests for configuration validation and database adapter selection."""

import pytest
from pydantic import ValidationError
from sqlalchemy.pool import NullPool

from shortlink.core.setting import DEFAULT_ALPHABET, Settings, ShortCodeConfig
from shortlink.db.adapters import get_database_adapter
from shortlink.db.postgres_adapter import PostgreSQLAdapter
from shortlink.db.sqlite_adapter import SQLiteAdapter


class TestSettings:

    def test_defaults(self):
        config = Settings(_env_file=None)
        assert config.SHORT_CODE_LENGTH == 7
        assert config.short_code == ShortCodeConfig(alphabet=DEFAULT_ALPHABET, length=7)
        assert len(DEFAULT_ALPHABET) == 62

    @pytest.mark.parametrize("length", [6, 10])
    def test_length_bounds_accepted(self, length):
        assert Settings(_env_file=None, SHORT_CODE_LENGTH=length).short_code.length == length

    @pytest.mark.parametrize("length", [5, 11])
    def test_length_out_of_range_rejected(self, length):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, SHORT_CODE_LENGTH=length)

    def test_length_from_environment(self, monkeypatch):
        monkeypatch.setenv("SHORT_CODE_LENGTH", "4")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    @pytest.mark.parametrize("alphabet", ["a", "aab"])
    def test_bad_alphabet_rejected(self, alphabet):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, SHORT_CODE_ALPHABET=alphabet)

    def test_base_url_trailing_slash_stripped(self):
        assert Settings(_env_file=None, BASE_URL="https://sho.rt/").BASE_URL == "https://sho.rt"

    def test_cache_ttl_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, CACHE_TTL=0)

    def test_short_code_config_is_frozen(self):
        config = ShortCodeConfig()
        with pytest.raises(ValidationError):
            config.length = 9


class TestDatabaseAdapters:

    def test_sqlite(self):
        adapter = get_database_adapter("sqlite+aiosqlite:///./test.db")
        assert isinstance(adapter, SQLiteAdapter)
        assert adapter.get_pool_class() is NullPool
        assert adapter.get_connect_args() == {"check_same_thread": False}

    def test_postgres(self):
        adapter = get_database_adapter("postgresql+asyncpg://user:pw@db/shortlink")
        assert isinstance(adapter, PostgreSQLAdapter)
        assert adapter.get_engine_kwargs()["pool_pre_ping"] is True

    def test_unsupported(self):
        with pytest.raises(ValueError):
            get_database_adapter("mysql+aiomysql://user:pw@db/shortlink")
