"""
Filter Evaluator

Answers drill-down queries against an ExploreIndex:

* ``list_records`` -- records passing every active filter (and the optional
  label substring), in sorted record order.
* ``list_values``  -- distinct values of one facet among the records passing
  the other filters, plus whether any of them has no value for it.

A record passes ``(facet, value)`` when its primary association is that
value, or, for multi-valued facets, when the value is in its overflow list.
``(facet, unknown)`` passes records without a primary association.
Membership is by FacetValue identity.
"""

from typing import Iterator, List, Optional, Sequence, Tuple

from .errors import InvalidFilterError
from .hashmap import HashMap32
from .index_builder import ExploreIndex
from .models import (
    FACET_INFO,
    ExploreRecord,
    Facet,
    FacetFilter,
    FacetValue,
    FacetValueItem,
    RecordListing,
    RecordSummary,
    ValueListing,
)

# (facet, required value or None for unknown, facet is multi-valued)
ResolvedFilter = Tuple[Facet, Optional[FacetValue], bool]


def resolve_filters(index: ExploreIndex, filters: Sequence[FacetFilter]) -> List[ResolvedFilter]:
    """Map ``(facet, rank)`` selections to the FacetValues they address."""
    resolved: List[ResolvedFilter] = []
    for f in filters:
        facet = Facet(f.facet)
        value: Optional[FacetValue] = None
        if f.rank is not None:
            table = index.table(facet)
            if not 0 <= f.rank < len(table):
                raise InvalidFilterError(
                    f"{FACET_INFO[facet].name} has no value with rank {f.rank} "
                    f"({len(table)} values)"
                )
            value = table.values[f.rank]
        resolved.append((facet, value, FACET_INFO[facet].multi_valued))
    return resolved


def record_passes(record: ExploreRecord, filters: Sequence[ResolvedFilter]) -> bool:
    for facet, value, multi_valued in filters:
        if record.by[facet] is value:
            continue
        if multi_valued and value is not None and record.split and value in record.split:
            continue
        return False
    return True


def iter_matching(
    index: ExploreIndex,
    filters: Sequence[ResolvedFilter],
    substring: Optional[str] = None,
) -> Iterator[Tuple[int, ExploreRecord]]:
    """Yield ``(record id, record)`` for every record passing all filters."""
    needle = substring.lower() if substring else ""
    for rid, record in enumerate(index.records):
        if not record_passes(record, filters):
            continue
        if needle and needle not in record.label.lower():
            continue
        yield rid, record


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def list_records(
    index: ExploreIndex,
    filters: Sequence[FacetFilter] = (),
    substring: Optional[str] = None,
) -> RecordListing:
    resolved = resolve_filters(index, filters)
    return RecordListing(records=[
        RecordSummary(id=rid, title=record.title, label=record.label)
        for rid, record in iter_matching(index, resolved, substring)
    ])


def list_values(
    index: ExploreIndex,
    facet: Facet,
    filters: Sequence[FacetFilter] = (),
    substring: Optional[str] = None,
) -> ValueListing:
    """
    Distinct values of ``facet`` among the records matching ``filters``.

    Values are deduplicated by rank (keyed ``rank + 1`` since key 0 means an
    empty slot) and returned in rank order, which is alphabetical.
    """
    facet = Facet(facet)
    # Every filter is validated, then the one on the listed facet is dropped.
    resolved = [r for r in resolve_filters(index, filters) if r[0] is not facet]
    multi_valued = FACET_INFO[facet].multi_valued

    seen: HashMap32[int] = HashMap32()
    found: List[FacetValue] = []
    has_unknown = False

    for _, record in iter_matching(index, resolved, substring):
        primary = record.by[facet]
        if primary is None:
            has_unknown = True
            continue
        values = record.values_for(facet) if multi_valued else [primary]
        for value in values:
            if seen.get(value.rank + 1):
                continue
            seen.set(value.rank + 1, 1)
            found.append(value)

    # Overflow values arrive out of rank order.
    found.sort(key=lambda v: v.rank)
    return ValueListing(
        facet=facet,
        values=[FacetValueItem(rank=v.rank, text=v.text) for v in found],
        has_unknown=has_unknown,
    )
