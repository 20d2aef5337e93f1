"""Deterministic query fingerprints.

A fingerprint summarizes a query's resource, operation, filters, sorting and
raw text. Logically identical queries map to the same fingerprint: top-level
filters are AND-combined and nested logical filters are commutative, so their
order is normalized away, as is the order of set-valued operator arguments.
Sort order is meaningful and kept as given.
"""

import hashlib
import json
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

LOGICAL_OPERATORS = frozenset({"and", "or"})
SET_OPERATORS = frozenset({"in", "nin", "ina", "nina"})

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class QueryFingerprint:
    """Opaque, hashable cache key for a query."""

    resource: str
    operation: str
    digest: str

    def __str__(self) -> str:
        return f"{self.resource}:{self.operation}:{self.digest}"


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def _plain(value: Any) -> Any:
    """Convert mappings, sequences and enums into JSON-friendly structures."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted((_plain(v) for v in value), key=_canonical)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return [_plain(v) for v in value]
    return value


def normalize_filter(crud_filter: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize one field or logical filter."""
    normalized = _plain(crud_filter)
    operator = str(normalized.get("operator", "")).lower()
    value = normalized.get("value")

    if operator in LOGICAL_OPERATORS and isinstance(value, list):
        normalized["value"] = normalize_filters(value)
    elif operator in SET_OPERATORS and isinstance(value, list):
        normalized["value"] = sorted(value, key=_canonical)

    if "operator" in normalized:
        normalized["operator"] = operator
    return normalized


def normalize_filters(
    filters: Sequence[Mapping[str, Any]] | None,
) -> list[dict[str, Any]]:
    """Normalize a filter list into a canonical order."""
    if not filters:
        return []
    return sorted((normalize_filter(f) for f in filters), key=_canonical)


def normalize_sorting(
    sorting: Sequence[Mapping[str, Any]] | None,
) -> list[dict[str, Any]]:
    """Normalize sorters, preserving their order."""
    if not sorting:
        return []
    normalized = []
    for sorter in sorting:
        item = _plain(sorter)
        if "order" in item and isinstance(item["order"], str):
            item["order"] = item["order"].lower()
        normalized.append(item)
    return normalized


def normalize_query_text(query_text: str | None) -> str | None:
    """Collapse whitespace runs in raw query text."""
    if query_text is None:
        return None
    return _WHITESPACE.sub(" ", query_text).strip()


def compute_fingerprint(
    resource: str,
    operation: str | Enum = "select",
    filters: Sequence[Mapping[str, Any]] | None = None,
    sorting: Sequence[Mapping[str, Any]] | None = None,
    query_text: str | None = None,
) -> QueryFingerprint:
    """Compute the fingerprint of a query.

    Args:
        resource: Table or resource name
        operation: Query operation (select, insert, update, delete)
        filters: CRUD filters, field filters or logical ``and``/``or`` groups
        sorting: Ordered list of ``{"field", "order"}`` sorters
        query_text: Raw query text, if the caller has it

    Returns:
        Fingerprint identical for every logically equivalent input
    """
    op = operation.value if isinstance(operation, Enum) else str(operation).lower()
    payload = {
        "resource": resource,
        "operation": op,
        "filters": normalize_filters(filters),
        "sorting": normalize_sorting(sorting),
        "query": normalize_query_text(query_text),
    }
    digest = hashlib.sha256(_canonical(payload).encode()).hexdigest()[:32]
    return QueryFingerprint(resource=resource, operation=op, digest=digest)
