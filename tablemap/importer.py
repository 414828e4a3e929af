"""
Import remote payloads into a content system.

The ContentImporter fetches records, generates a mapping from the first one,
transforms every record with that mapping and hands the result to a
ContentTarget: look up an existing item by a unique field, make sure the
target's field definitions exist, then create or update the item.

Usage:
    importer = ContentImporter(target, ApiClient("https://jsonplaceholder.typicode.com"))
    results = importer.import_endpoint(
        "/posts", "imported_post", unique_field="id",
        options=MappingOptions(title_field="title", content_field="body", max_depth=2),
    )
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Protocol, runtime_checkable

from tablemap.domain.models import (
    FieldKind,
    FieldMapping,
    FieldRef,
    FieldSpec,
    ImportResult,
    MappingOptions,
    RepeaterSpec,
    TransformedRecord,
)
from tablemap.errors import ContentTargetError, FieldError
from tablemap.infrastructure.http_client import ApiClient
from tablemap.mapping.generator import CONTENT_TARGET, TITLE_TARGET, generate_mapping
from tablemap.mapping.inference import infer_field_kind
from tablemap.mapping.transformer import field_errors, strip_field_errors, transform
from tablemap.utils.logging import get_logger

log = get_logger(__name__)

STANDARD_FIELDS = frozenset({TITLE_TARGET, CONTENT_TARGET})


@runtime_checkable
class ContentTarget(Protocol):
    """
    Content-system persistence collaborator.
    """

    def find_existing(self, target_type: str, unique_field: str, unique_value: Any) -> Optional[Any]:
        """Return the id of an item whose `unique_field` equals `unique_value`, or None."""
        ...

    def upsert(self, target_type: str, target_id: Optional[Any], record: TransformedRecord) -> Any:
        """Create (target_id None) or update an item; return its id. Raises ContentTargetError."""
        ...

    def ensure_field_definition(self, name: str, field_kind: FieldKind, target_type: str) -> None:
        """Create the field definition if it does not exist yet; idempotent."""
        ...


def _field_kind(spec: Optional[FieldSpec], value: Any) -> FieldKind:
    if isinstance(spec, RepeaterSpec):
        return FieldKind.REPEATER
    if isinstance(spec, FieldRef) and spec.kind is not None:
        return spec.kind
    return infer_field_kind(value)


class ContentImporter:
    """
    Transform source records and persist them through a ContentTarget.
    """

    def __init__(self, target: ContentTarget, client: Optional[ApiClient] = None) -> None:
        self.target = target
        self.client = client

    def save(
        self,
        record: Mapping[str, Any],
        target_type: str,
        mapping: FieldMapping,
        unique_field: Optional[str] = None,
        create_fields: bool = True,
    ) -> Any:
        """
        Transform one record and create or update it in the target.

        Fields whose conversion failed are stored as None. Returns the target id.

        Raises
        ------
        ContentTargetError
            When the target rejects the record.
        """
        return self._persist(transform(record, mapping), target_type, mapping, unique_field, create_fields)

    def _persist(
        self,
        transformed: TransformedRecord,
        target_type: str,
        mapping: FieldMapping,
        unique_field: Optional[str],
        create_fields: bool,
    ) -> Any:
        unique_value = transformed.get(unique_field) if unique_field else None
        existing = None
        if unique_field and unique_value not in (None, ""):
            existing = self.target.find_existing(target_type, unique_field, unique_value)

        if create_fields:
            for name, value in transformed.items():
                if name in STANDARD_FIELDS or isinstance(value, FieldError):
                    continue
                self.target.ensure_field_definition(name, _field_kind(mapping.get(name), value), target_type)

        target_id = self.target.upsert(target_type, existing, strip_field_errors(transformed))
        log.debug(
            "Record saved",
            extra={"target_type": target_type, "target_id": target_id, "updated": existing is not None},
        )
        return target_id

    def save_many(
        self,
        records: Iterable[Mapping[str, Any]],
        target_type: str,
        mapping: FieldMapping,
        unique_field: Optional[str] = None,
        create_fields: bool = True,
        source_id_field: str = "id",
    ) -> List[ImportResult]:
        """
        Save every record, continuing past records the target rejects.
        """
        results: List[ImportResult] = []
        for record in records:
            source_id = record.get(source_id_field) if isinstance(record, Mapping) else None
            transformed = transform(record, mapping)
            errors = [error.field for error in field_errors(transformed)]
            try:
                target_id = self._persist(transformed, target_type, mapping, unique_field, create_fields)
            except ContentTargetError as exc:
                log.warning(
                    "Record import failed",
                    extra={"target_type": target_type, "source_id": source_id, "error": str(exc)},
                )
                results.append(
                    ImportResult(source_id=source_id, status="failed", error=str(exc), field_errors=errors)
                )
                continue
            results.append(ImportResult(source_id=source_id, target_id=target_id, field_errors=errors))

        failed = sum(1 for result in results if result.status == "failed")
        log.info(
            "Import finished",
            extra={"target_type": target_type, "records": len(results), "failed": failed},
        )
        return results

    def import_endpoint(
        self,
        endpoint: str,
        target_type: str,
        unique_field: Optional[str] = None,
        mapping: Optional[FieldMapping] = None,
        options: Optional[MappingOptions] = None,
        params: Optional[Mapping[str, Any]] = None,
        create_fields: bool = True,
    ) -> List[ImportResult]:
        """
        Fetch `endpoint` and import every record it returns.

        A single-object response is imported as one record. Without an explicit
        mapping, one is generated from the first record.

        Raises
        ------
        ApiError
            When the fetch fails.
        """
        if self.client is None:
            raise ValueError("ContentImporter needs an ApiClient to import from an endpoint")

        payload = self.client.fetch(endpoint, params=params)
        records = payload if isinstance(payload, list) else [payload]
        records = [record for record in records if isinstance(record, Mapping)]
        if not records:
            log.info("No records returned", extra={"endpoint": endpoint})
            return []

        effective_mapping = mapping or generate_mapping(records[0], options)
        return self.save_many(records, target_type, effective_mapping, unique_field, create_fields)


__all__ = ["ContentImporter", "ContentTarget", "STANDARD_FIELDS"]
