import pytest

from bitbeam.config import load_config, normalize_database_url


def test_defaults(monkeypatch):
    for name in ("BITBEAM_DB_TYPE", "BITBEAM_DATABASE_URL", "BITBEAM_USE_TLS", "BITBEAM_ALLOW_REGISTER",
                 "BITBEAM_ADMIN_KEY", "BITBEAM_PORT", "BITBEAM_LOG_LOCATION"):
        monkeypatch.delenv(name, raising=False)
    config = load_config()
    assert config.db_type == "sqlite"
    assert config.database_url == "sqlite:///./bitbeam.sqlite"
    assert config.port == 3000
    assert config.scheme == "http"
    assert config.allow_register is True
    assert config.admin_key is None
    assert config.log_location is None
    assert config.db_connect_args == {"check_same_thread": False}


def test_flags_parse(monkeypatch):
    monkeypatch.setenv("BITBEAM_USE_TLS", "YES")
    monkeypatch.setenv("BITBEAM_ALLOW_REGISTER", "false")
    config = load_config()
    assert config.scheme == "https"
    assert config.allow_register is False


def test_unsupported_backend(monkeypatch):
    monkeypatch.setenv("BITBEAM_DB_TYPE", "mysql")
    with pytest.raises(ValueError):
        load_config()


def test_postgres_requires_url(monkeypatch):
    monkeypatch.setenv("BITBEAM_DB_TYPE", "postgres")
    monkeypatch.delenv("BITBEAM_DATABASE_URL", raising=False)
    with pytest.raises(ValueError):
        load_config()


@pytest.mark.parametrize(
    "db_type, raw, expected",
    [
        ("sqlite", "sqlite://./bitbeam.sqlite", "sqlite:///./bitbeam.sqlite"),
        ("sqlite", "sqlite:////var/lib/bitbeam.db", "sqlite:////var/lib/bitbeam.db"),
        ("postgres", "postgres://u:p@db/bitbeam", "postgresql://u:p@db/bitbeam"),
        ("postgres", "postgresql://u:p@db/bitbeam", "postgresql://u:p@db/bitbeam"),
    ],
)
def test_normalize_database_url(db_type, raw, expected):
    assert normalize_database_url(db_type, raw) == expected
