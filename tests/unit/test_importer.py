from __future__ import annotations

import httpx
import pytest

from tablemap.domain.models import FieldKind, FieldRef, MappingOptions
from tablemap.errors import ApiError
from tablemap.importer import ContentImporter, ContentTarget
from tablemap.infrastructure.http_client import ApiClient
from tablemap.mapping.generator import generate_mapping

POSTS = [
    {
        "id": 1,
        "title": "First",
        "body": "Hello",
        "cover": "http://x/cover.jpg",
        "published": "2024-05-01 10:00:00",
        "comments": [{"author": "A", "text": "hi"}],
    },
    {
        "id": 2,
        "title": "Second",
        "body": "World",
        "cover": "http://x/other.png",
        "published": "2024-05-02 11:00:00",
        "comments": [],
    },
]


def _client(payload, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload)

    return ApiClient(base_url="https://api.example.com", transport=httpx.MockTransport(handler))


def test_in_memory_target_satisfies_protocol(content_target):
    assert isinstance(content_target, ContentTarget)


def test_save_creates_then_updates_by_unique_field(content_target):
    importer = ContentImporter(content_target)
    mapping = generate_mapping(POSTS[0], title_field="title", content_field="body")

    first = importer.save(POSTS[0], "post", mapping, unique_field="id")
    again = importer.save({**POSTS[0], "title": "First (edited)"}, "post", mapping, unique_field="id")

    assert first == again == 100
    assert content_target.items[100]["title"] == "First (edited)"
    assert content_target.items[100]["content"] == "Hello"


def test_field_definitions_use_detected_kinds(content_target):
    importer = ContentImporter(content_target)
    mapping = generate_mapping(POSTS[0], title_field="title", content_field="body")

    importer.save(POSTS[0], "post", mapping)

    definitions = content_target.field_definitions["post"]
    assert definitions == {
        "id": FieldKind.NUMBER,
        "cover": FieldKind.IMAGE,
        "published": FieldKind.DATETIME,
        "comments": FieldKind.REPEATER,
    }


def test_create_fields_can_be_disabled(content_target):
    importer = ContentImporter(content_target)

    importer.save(POSTS[0], "post", {"title": "title"}, create_fields=False)

    assert content_target.field_definitions == {}


def test_failed_conversion_is_stored_as_none_and_reported(content_target):
    importer = ContentImporter(content_target)
    mapping = {"title": "title", "published": FieldRef(path="published", filter="date")}

    results = importer.save_many([{"id": 9, "title": "T", "published": "someday"}], "post", mapping)

    assert results[0].status == "success"
    assert results[0].field_errors == ["published"]
    assert content_target.items[results[0].target_id]["published"] is None
    assert "published" not in content_target.field_definitions.get("post", {})


def test_save_many_continues_past_rejected_records(content_target):
    content_target.reject_titles.add("First")
    importer = ContentImporter(content_target)
    mapping = generate_mapping(POSTS[0], title_field="title", content_field="body")

    results = importer.save_many(POSTS, "post", mapping, unique_field="id")

    assert [result.status for result in results] == ["failed", "success"]
    assert results[0].source_id == 1
    assert "rejected" in results[0].error
    assert results[1].target_id == 100


def test_import_endpoint_generates_mapping_from_first_record(content_target):
    importer = ContentImporter(content_target, _client(POSTS))

    results = importer.import_endpoint(
        "/posts",
        "post",
        unique_field="id",
        options=MappingOptions(title_field="title", content_field="body", max_depth=2),
    )

    assert [result.target_id for result in results] == [100, 101]
    assert content_target.items[100]["comments"] == [{"author": "A", "text": "hi"}]
    assert content_target.items[101]["comments"] == []


def test_import_endpoint_accepts_single_object(content_target):
    importer = ContentImporter(content_target, _client(POSTS[1]))

    results = importer.import_endpoint("/posts/2", "post")

    assert len(results) == 1
    assert content_target.items[100]["title"] == "Second"


def test_import_endpoint_propagates_api_errors(content_target):
    importer = ContentImporter(content_target, _client({"message": "Not found"}, status_code=404))

    with pytest.raises(ApiError) as excinfo:
        importer.import_endpoint("/missing", "post")
    assert excinfo.value.status == 404
    assert content_target.items == {}


def test_import_endpoint_requires_client(content_target):
    with pytest.raises(ValueError):
        ContentImporter(content_target).import_endpoint("/posts", "post")
