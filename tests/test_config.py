from chalostore.config import DEFAULT_DATABASE_URL, Settings


def test_defaults():
    settings = Settings.from_env({})

    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.redis_url is None
    assert settings.payment_service_url is None
    assert settings.notification_service_url is None
    assert settings.http_timeout == 30.0
    assert settings.log_level == "INFO"
    assert settings.seed_catalog is True


def test_from_env():
    settings = Settings.from_env(
        {
            "DATABASE_URL": "postgresql+asyncpg://store@db/store",
            "REDIS_URL": "redis://redis:6379",
            "PAYMENT_SERVICE_URL": "http://payments:8000",
            "NOTIFICATION_SERVICE_URL": "",
            "HTTP_TIMEOUT": "5",
            "LOG_LEVEL": "debug",
            "SEED_CATALOG": "false",
        }
    )

    assert settings.database_url == "postgresql+asyncpg://store@db/store"
    assert settings.redis_url == "redis://redis:6379"
    assert settings.payment_service_url == "http://payments:8000"
    assert settings.notification_service_url is None
    assert settings.http_timeout == 5.0
    assert settings.log_level == "DEBUG"
    assert settings.seed_catalog is False
