"""
Mapping package for tablemap.

Schema inference and structural mapping: type inference, column schema
construction, dotted-path resolution, field-mapping generation, record
transformation and the storage codec for composite values. Everything here is
pure and free of I/O.
"""

from tablemap.mapping.codec import decode, encode, is_encoded, prepare_row, restore_row
from tablemap.mapping.generator import generate_mapping, mapping_from_dict, mapping_to_dict
from tablemap.mapping.inference import (
    infer_field_kind,
    infer_storage_type,
    is_image,
    is_image_array,
)
from tablemap.mapping.paths import resolve
from tablemap.mapping.schema import build_schema
from tablemap.mapping.transformer import apply_filter, field_errors, transform

__all__ = [
    "apply_filter",
    "build_schema",
    "decode",
    "encode",
    "field_errors",
    "generate_mapping",
    "infer_field_kind",
    "infer_storage_type",
    "is_encoded",
    "is_image",
    "is_image_array",
    "mapping_from_dict",
    "mapping_to_dict",
    "prepare_row",
    "resolve",
    "restore_row",
    "transform",
]
