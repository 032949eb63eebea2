"""
Metadata Normalizer

Turns raw metadata fields ("Platform, Action", "Square Enix, Inc.") into
deduplicated facet values.

Splitting:
  multi-valued facets split on '/', ',' and '|'; every other facet keeps the
  whole field as one segment.  Segments are trimmed of spaces, company-like
  facets additionally lose one trailing " Inc", " Ltd" or " The" (with or
  without a dot).

Dedup:
  values are keyed by a case-insensitive FNV hash over the segment bytes,
  counting only bytes in ['0', 255].  Spaces and punctuation below '0'
  therefore never distinguish two values ("Dr. Mario" == "Dr Mario").
  Values are stored with their first-seen spelling.
"""

from typing import List, Optional, Tuple

from loguru import logger

from .arena import Arena
from .buffer import GrowBuffer
from .hashmap import HashMap32, hash_nocase_filtered
from .models import FACET_COUNT, FACET_INFO, ExploreRecord, Facet, FacetTable, FacetValue

DELIMITERS = "/,|"
COMPANY_SUFFIXES = ("inc", "ltd", "the")

# Only bytes in this range take part in the dedup hash.
HASH_FIRST = ord("0")
HASH_LAST = 255


# ---------------------------------------------------------------------------
# Splitting
# ---------------------------------------------------------------------------

def _suffix_len_at(text: str, i: int, end: int) -> int:
    """Length of an Inc/Ltd/The word (plus optional dot) starting at ``i``."""
    if text[i:i + 3].lower() not in COMPANY_SUFFIXES:
        return 0
    return 4 if i + 3 < end and text[i + 3] == "." else 3


def _trailing_suffix_len(text: str, start: int, end: int) -> int:
    """Length of a space-preceded company suffix ending at ``end``."""
    i = end - (4 if text[end - 1] == "." else 3)
    if i - 1 < start or text[i - 1] != " ":
        return 0
    return _suffix_len_at(text, i, end)


def split_facet_text(text: str, multi_valued: bool = False, company: bool = False) -> List[str]:
    """
    Split and trim a raw field into its non-empty segments.

    The first character is never treated as a delimiter.  After a comma in a
    company field, a suffix word directly following it ("Foo, Inc.") is
    swallowed together with the comma.
    """
    segments: List[str] = []
    n = len(text)
    if not n:
        return segments

    start = 0
    p = 1
    while True:
        if p < n and (not multi_valued or text[p] not in DELIMITERS):
            p += 1
            continue

        nxt = p
        while start < p and text[start] == " ":
            start += 1
        end = p
        while end > start and text[end - 1] == " ":
            end -= 1

        if company and end - start > 5:
            end -= _trailing_suffix_len(text, start, end)
            while end > start and text[end - 1] == " ":
                end -= 1

        if end > start:
            segments.append(text[start:end])

        if nxt >= n:
            return segments

        if company and text[nxt] == ",":
            q = nxt + 1
            while q < n and text[q] == " ":
                q += 1
            q += _suffix_len_at(text, q, n)
            while q < n and text[q] == " ":
                q += 1
            if q >= n:
                return segments
            if text[q] in DELIMITERS:
                nxt = q

        start = nxt + 1
        p = start


def normalized_hash(segment: str) -> int:
    """Dedup key of a segment: case-insensitive, bytes below '0' ignored."""
    return hash_nocase_filtered(segment.encode("utf-8"), HASH_FIRST, HASH_LAST)


def normalize_value(text: str, facet: Facet) -> List[str]:
    """Split ``text`` the way ``facet`` would be split during a build."""
    info = FACET_INFO[facet]
    return split_facet_text(text, info.multi_valued, info.company)


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

def sort_key(text: str) -> Tuple[bytes, bytes]:
    """Case-insensitive (ASCII) byte order, ties broken on the raw first byte."""
    data = text.encode("utf-8")
    return data.lower(), data[:1]


# ---------------------------------------------------------------------------
# Interning
# ---------------------------------------------------------------------------

class FacetInterner:
    """
    Builds the facet tables of one index.

    Owns the per-facet dedup maps for the duration of a build; the tables and
    the arena are handed over to the index by ``finish()``.
    """

    def __init__(self, arena: Arena, tables: Optional[List[FacetTable]] = None) -> None:
        self.arena = arena
        self.tables = tables or [FacetTable(f) for f in Facet]
        self._maps: List[HashMap32[FacetValue]] = [HashMap32() for _ in range(FACET_COUNT)]

    def intern(self, facet: Facet, segment: str) -> FacetValue:
        """Return the FacetValue for ``segment``, creating it on first sight."""
        key = normalized_hash(segment)
        dedup = self._maps[facet]
        value = dedup.get(key)
        if value is None:
            ref = self.arena.store(segment.encode("utf-8"))
            value = FacetValue(ref, facet, self.arena.read(ref).decode("utf-8"))
            self.tables[facet].values.append(value)
            dedup.set(key, value)
        return value

    def add(
        self,
        record: ExploreRecord,
        facet: Facet,
        text: Optional[str],
        split_buf: Optional[GrowBuffer[FacetValue]],
    ) -> None:
        """
        Associate the values of ``text`` with ``record``.

        The first value becomes the record's primary association; further
        values (multi-valued facets only) go to ``split_buf``.
        """
        if not text:
            self.tables[facet].has_unknown = True
            return

        info = FACET_INFO[facet]
        if not info.multi_valued:
            split_buf = None

        for segment in split_facet_text(text, info.multi_valued, info.company):
            value = self.intern(facet, segment)
            if record.by[facet] is None:
                record.by[facet] = value
            elif split_buf is not None:
                split_buf.append(value)

        # Nothing survived trimming (e.g. "  , ").
        if record.by[facet] is None:
            self.tables[facet].has_unknown = True

    def finish(self) -> List[FacetTable]:
        """Sort every table, assign ranks and drop the dedup maps."""
        for table in self.tables:
            table.values.sort(key=lambda v: sort_key(v.text))
            for rank, value in enumerate(table.values):
                value.rank = rank
        for dedup in self._maps:
            dedup.free()
        logger.debug(
            "Facet tables sorted: "
            + ", ".join(f"{FACET_INFO[t.facet].name}={len(t)}" for t in self.tables)
        )
        return self.tables
