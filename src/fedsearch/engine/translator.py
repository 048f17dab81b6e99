"""
Query Translator - structured filters + free text -> Elasticsearch query body.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from fedsearch.engine.projector import ID_FIELD, exact_field

SIMPLE_QUERY_STRING = "simple_query_string"
AND_TERMS = "and_terms"

# Quoted spans (with escaped quotes inside) and lone escaped quotes are
# matched first so that only a bare minus sign lands in group 1
_EXCLUSION = re.compile(r'\\"|"(?:\\"|[^"])*"|(-)')


@dataclass(frozen=True)
class SearchState:
    """Free-text part of a cursor: the user's text and how to match it."""
    text: str
    autocomplete: bool = False


def safe_query(value: Any) -> Optional[str]:
    """The trimmed search string for ``value``, or None when it renders blank."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def force_exclusions(text: str) -> str:
    """
    Rewrite ``-word`` to ``+-word`` outside quoted phrases.

    With the default OR operator a bare ``-swedish`` only adds "anything
    without swedish" as another alternative; ``+-swedish`` makes the
    exclusion mandatory while the other terms stay optional.
    """
    return _EXCLUSION.sub(lambda m: "+-" if m.group(1) else m.group(0), text)


class QueryTranslator:
    """Builds search bodies from a SearchState and pushdown equality filters."""

    def __init__(
        self,
        fields: Iterable[str],
        boosts: Optional[Mapping[str, float]] = None,
        mode: str = SIMPLE_QUERY_STRING,
    ):
        if mode not in (SIMPLE_QUERY_STRING, AND_TERMS):
            raise ValueError(f"unknown query mode: {mode}")
        self.fields = list(fields)
        self.boosts = dict(boosts or {})
        self.mode = mode

    def boosted_fields(self) -> List[str]:
        return [
            f"{field}^{self.boosts[field]}" if self.boosts.get(field) else field
            for field in self.fields
        ]

    def search_query(self, state: SearchState) -> Dict[str, Any]:
        if self.mode == AND_TERMS:
            terms = ['"' + term.replace('"', '\\"') + '"' for term in state.text.split()]
            return {
                "simple_query_string": {
                    "query": " ".join(terms),
                    "fields": self.boosted_fields(),
                    "default_operator": "and",
                }
            }
        return {
            "simple_query_string": {
                "query": force_exclusions(state.text),
                "fields": self.boosted_fields(),
            }
        }

    def autocomplete_query(self, state: SearchState) -> Dict[str, Any]:
        return {
            "multi_match": {
                "type": "phrase_prefix",
                "query": state.text,
                "fields": self.boosted_fields(),
            }
        }

    def translate(
        self,
        state: SearchState,
        filters: Optional[Mapping[str, List[Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Query body for ``state`` narrowed by ``filters``.

        Each filter field becomes a ``terms`` clause on its exact sibling
        (OR within a field, AND across fields). Identifiers are not projected
        as fields, so an ``id`` filter becomes an ``ids`` clause instead.
        """
        filters = dict(filters or {})
        ids = filters.pop(ID_FIELD, None)
        text_query = self.autocomplete_query(state) if state.autocomplete else self.search_query(state)
        clauses: List[Dict[str, Any]] = [
            {"terms": {exact_field(field): list(values)}}
            for field, values in filters.items()
        ]
        if ids:
            clauses.append({"ids": {"values": [str(i) for i in ids]}})
        return {
            "query": {
                "bool": {
                    "must": [text_query],
                    "filter": clauses,
                }
            }
        }
