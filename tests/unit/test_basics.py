from __future__ import annotations

import pytest

from tablemap import config
from tablemap.domain.models import StorageType


def test_get_settings_defaults():
    settings = config.get_settings()
    assert settings.db_host == "localhost"
    assert settings.db_port == 5432
    assert settings.db_user == "postgres"
    assert settings.db_name == "tablemap"
    assert settings.primary_key_name == "id"
    assert StorageType.parse(settings.primary_key_type) is StorageType.INTEGER
    assert settings.mapping_max_depth == 3
    assert settings.mapping_detect_images is True


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("MAPPING_MAX_DEPTH", "1")
    monkeypatch.setenv("PRIMARY_KEY_NAME", "post_id")
    monkeypatch.setenv("API_BASE_URL", "https://api.example.com")

    settings = config.get_settings()

    assert settings.mapping_max_depth == 1
    assert settings.primary_key_name == "post_id"
    assert settings.api_base_url == "https://api.example.com"


def test_dsn_uses_database_fields():
    settings = config.Settings(db_host="db", db_port=6543, db_user="u", db_password="p", db_name="n")
    assert settings.dsn == "postgresql://u:p@db:6543/n"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("INTEGER", StorageType.INTEGER),
        ("int", StorageType.INTEGER),
        ("VARCHAR", StorageType.VARCHAR),
        ("VARCHAR(255)", StorageType.VARCHAR),
        ("DECIMAL(10,2)", StorageType.DECIMAL),
        ("text", StorageType.LONG_TEXT),
        (StorageType.DATETIME, StorageType.DATETIME),
    ],
)
def test_storage_type_parse(text, expected):
    assert StorageType.parse(text) is expected


def test_storage_type_parse_rejects_unknown():
    with pytest.raises(ValueError):
        StorageType.parse("BLOB")
