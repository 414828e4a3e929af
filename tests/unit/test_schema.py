from __future__ import annotations

from datetime import datetime

import pytest

from tablemap.domain.models import ColumnDefinition, ColumnSchema, StorageType
from tablemap.errors import SchemaConflictError
from tablemap.mapping.schema import build_schema

PRODUCT = {
    "id": 1,
    "name": "Wireless Headphones",
    "price": 99.99,
    "features": ["Bluetooth", "Noise Cancelling"],
    "specs": {"weight": "250g", "color": "Black"},
    "in_stock": True,
    "created_at": datetime(2024, 3, 1, 12, 0, 0),
}


def test_synthetic_primary_key_is_prepended():
    schema = build_schema({"name": "Widget", "price": 9.99, "tags": ["a", "b"]})

    assert schema.render() == [
        "id INTEGER PRIMARY KEY AUTO_INCREMENT",
        "name VARCHAR(255)",
        "price DECIMAL(10,2)",
        "tags LONG_TEXT",
    ]


def test_present_primary_key_is_promoted_in_place():
    schema = build_schema({"id": 5, "title": "x"}, primary_key="id")

    assert schema.render() == ["id INTEGER PRIMARY KEY", "title VARCHAR(255)"]
    assert not schema.primary_key.auto_increment


def test_column_order_follows_example_order():
    schema = build_schema(PRODUCT)

    assert schema.names() == list(PRODUCT)
    assert schema.get("specs").storage_type is StorageType.LONG_TEXT
    assert schema.get("in_stock").storage_type is StorageType.BOOLEAN
    assert schema.get("created_at").storage_type is StorageType.DATETIME


def test_custom_primary_key_name():
    schema = build_schema({"sku": "A-1", "name": "Widget"}, primary_key="product_id")

    assert schema.primary_key.name == "product_id"
    assert schema.names() == ["product_id", "sku", "name"]


def test_varchar_primary_key_from_example():
    schema = build_schema({"sku": "A-1", "name": "Widget"}, primary_key="sku", primary_key_type="VARCHAR")

    assert schema.render()[0] == "sku VARCHAR(255) PRIMARY KEY"


def test_primary_key_matches_exact_name_only():
    schema = build_schema({"id_external": 7, "name": "x"})

    assert schema.names() == ["id", "id_external", "name"]
    assert schema.get("id_external").primary_key is False


@pytest.mark.parametrize(
    "example",
    [
        PRODUCT,
        {"name": "Widget"},
        {"id": 3},
        {},
    ],
)
def test_exactly_one_primary_key_and_deterministic(example):
    first = build_schema(example)
    second = build_schema(example)

    assert sum(1 for column in first.columns if column.primary_key) == 1
    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


def test_duplicate_field_names_are_rejected():
    with pytest.raises(SchemaConflictError):
        build_schema([("id", 1), ("name", "a"), ("name", "b")])


def test_pairs_are_accepted_in_order():
    schema = build_schema([("b", 1), ("a", "x")])

    assert schema.names() == ["id", "b", "a"]


@pytest.mark.parametrize(
    "pk_value",
    [{"nested": 1}, ["a"], "abc", 1.5, True],
)
def test_incompatible_primary_key_value_is_a_conflict(pk_value):
    with pytest.raises(SchemaConflictError):
        build_schema({"id": pk_value, "name": "x"})


def test_missing_non_integer_primary_key_cannot_auto_increment():
    with pytest.raises(SchemaConflictError):
        build_schema({"name": "x"}, primary_key="sku", primary_key_type="VARCHAR(255)")


def test_primary_key_type_aliases():
    assert build_schema({"name": "x"}, primary_key_type="INT").primary_key.storage_type is StorageType.INTEGER


def test_column_schema_requires_single_primary_key():
    with pytest.raises(SchemaConflictError):
        ColumnSchema(columns=(ColumnDefinition(name="a", storage_type=StorageType.INTEGER),))
