"""
Field Projector - turns a primary-store document into an index record body.
"""

import json
from typing import Any, Dict, Iterable, List

ID_FIELD = "id"
EXACT_SUFFIX = "_exact"
# Larger exact copies are not worth indexing, nobody filters on them
EXACT_MAX_BYTES = 4096

# The query engine does exact matches on these for performance
MANDATORY_FIELDS = ["slug", "path", "type", "tags", "locale"]


def build_field_set(fields: Iterable[str], add_fields: Iterable[str] = ()) -> List[str]:
    """Default fields + additions + mandatory fields, deduplicated in order."""
    return list(dict.fromkeys([*fields, *add_fields, *MANDATORY_FIELDS]))


def exact_field(field: str) -> str:
    return field + EXACT_SUFFIX


def _indexable(value: Any) -> bool:
    # Scalars and arrays of scalars only
    if isinstance(value, list):
        return not value or not isinstance(value[0], (dict, list))
    return not isinstance(value, dict)


def _exact_size(value: Any) -> int:
    return len(json.dumps(value, default=str).encode("utf-8"))


class FieldProjector:
    """Projects the indexable fields of a document, plus exact-match siblings."""

    def __init__(self, fields: Iterable[str]):
        self.fields = list(fields)

    def project(self, document: Dict[str, Any]) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        for field in self.fields:
            value = document.get(field)
            if value is None or not _indexable(value):
                continue
            body[field] = value
            if not value or _exact_size(value) < EXACT_MAX_BYTES:
                body[exact_field(field)] = value
        # The search engine carries the identity as the record's own _id
        body.pop(ID_FIELD, None)
        body.pop(exact_field(ID_FIELD), None)
        return body
