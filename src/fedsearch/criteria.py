"""
Structured query criteria.

A small closed grammar shared by the primary store and the search pushdown:
field equality, field membership, greater-than (keyset pagination) and
boolean composition. The primary store evaluates the full tree; only the
equality/membership subset under conjunctions is pushed to the search engine.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

# Fields whose equality/membership clauses are copied into search filters
PUSHDOWN_FIELDS: Tuple[str, ...] = ("id", "slug", "path", "type", "tags")


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any


@dataclass(frozen=True)
class In:
    field: str
    values: Tuple[Any, ...]

    def __init__(self, field: str, values: Sequence[Any]):
        object.__setattr__(self, "field", field)
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class Gt:
    field: str
    value: Any


@dataclass(frozen=True)
class And:
    clauses: Tuple["Criteria", ...]

    def __init__(self, *clauses: "Criteria"):
        object.__setattr__(self, "clauses", tuple(clauses))


@dataclass(frozen=True)
class Or:
    clauses: Tuple["Criteria", ...]

    def __init__(self, *clauses: "Criteria"):
        object.__setattr__(self, "clauses", tuple(clauses))


Criteria = Union[Eq, In, Gt, And, Or]


def and_(*clauses: Optional[Criteria]) -> Optional[Criteria]:
    """Conjunction of the given clauses, skipping empty ones."""
    present = [c for c in clauses if c is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return And(*present)


def discover_equality_filters(criteria: Optional[Criteria]) -> Dict[str, List[Any]]:
    """
    Collect simple equality and membership clauses on the pushdown fields.

    The result sets an outer bound on what ``criteria`` could match, so the
    search engine can winnow hits before they are reconciled against the
    primary store. Clauses under ``Or`` are never collected since they do not
    bound the result.
    """
    queries: Dict[str, List[Any]] = {}

    def walk(node: Optional[Criteria]) -> None:
        if isinstance(node, Eq):
            if node.field in PUSHDOWN_FIELDS and isinstance(node.value, str):
                queries.setdefault(node.field, []).append(node.value)
        elif isinstance(node, In):
            if node.field in PUSHDOWN_FIELDS:
                queries.setdefault(node.field, []).extend(node.values)
        elif isinstance(node, And):
            for clause in node.clauses:
                walk(clause)

    walk(criteria)
    return queries
