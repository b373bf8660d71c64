from flatflow.config import Settings


def test_defaults(monkeypatch):
    for name in ("DATABASE_URL", "CACHE_TTL_SECONDS", "CACHE_MAX_ENTRIES", "LOG_LEVEL", "TZ"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.database_url is None
    assert settings.cache_ttl_seconds == 300
    assert settings.cache_max_entries == 100
    assert settings.log_level == "INFO"
    assert settings.zoneinfo.key == "UTC"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@db/flatflow")
    monkeypatch.setenv("CACHE_TTL_SECONDS", "60")

    settings = Settings(_env_file=None)

    assert settings.database_url == "postgresql+asyncpg://u:p@db/flatflow"
    assert settings.cache_ttl_seconds == 60
