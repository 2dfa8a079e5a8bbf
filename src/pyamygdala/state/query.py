"""Query engine.

Stateless reads over a single type's bucket: exact id lookup, single-level
equality predicates and ``orderBy`` sorting. Nothing here mutates a table.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pyamygdala.exceptions import InvalidQueryError
from pyamygdala.ingestion.normalize import is_record, is_scalar_id
from pyamygdala.models.schema import OrderBy
from pyamygdala.state.table import Record, stored_key


def strict_equal(left: Any, right: Any) -> bool:
    """Equality that never conflates booleans with numbers (``True`` is not ``1``)."""
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    return left == right


def matches(record: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    """True when every ``key: value`` pair of *query* equals the record's (no deep match)."""
    for key, value in query.items():
        if key not in record or not strict_equal(record[key], value):
            return False
    return True


def sort_key(record: Mapping[str, Any], attribute: str) -> str:
    value = record.get(attribute)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).lower()


def apply_ordering(records: Iterable[Record], ordering: OrderBy | None) -> list[Record]:
    """Sort ascending by the lowercased attribute, then reverse the whole list if flagged.

    The reverse is applied to the stable ascending result, so ties come out
    in reverse storage order rather than in storage order.
    """
    results = list(records)
    if ordering is None:
        return results
    results.sort(key=lambda record: sort_key(record, ordering.attribute))
    if ordering.descending:
        results.reverse()
    return results


def find(bucket: Mapping[Any, Record], query: Any) -> Record | None:
    if query is None:
        return None
    if is_record(query):
        for record in bucket.values():
            if matches(record, query):
                return record
        return None
    if is_scalar_id(query):
        return bucket.get(stored_key(bucket, query))
    raise InvalidQueryError(f"Invalid query for find: {query!r:.100}", query=query)


def find_all(
    bucket: Mapping[Any, Record],
    query: Any = None,
    *,
    ordering: OrderBy | None = None,
) -> list[Record]:
    if query is None:
        results = list(bucket.values())
    elif is_record(query):
        results = [record for record in bucket.values() if matches(record, query)]
    else:
        raise InvalidQueryError(f"Invalid query for find_all: {query!r:.100}", query=query)
    return apply_ordering(results, ordering)
