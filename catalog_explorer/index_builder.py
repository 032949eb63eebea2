"""
Index Builder

Merges playlists and metadata databases into an ExploreIndex:

1. Collect usable playlist entries (crc, db name and label all present),
   grouped by metadata database.  Each database is opened once; one that
   fails to open is remembered as invalid and skipped from then on.
   Playlists that contribute nothing are released straight away.
2. Drain every opened database.  Records are matched to playlist entries by
   crc; the facet fields (plus the System facet derived from the entry's
   core) are normalized into the facet tables.
3. Sort facet tables (assigning ranks) and the record list.

Every database handle is closed before ``build_index`` returns; on failure the
retained playlists are released as well.
"""

from typing import Any, List, Mapping, NamedTuple, Optional

from loguru import logger

from .arena import Arena
from .buffer import GrowBuffer
from .errors import SourceUnavailableError
from .hashmap import HashMap32
from .models import (
    FACET_BY_KEY,
    FACET_COUNT,
    FACET_INFO,
    BuildStats,
    CoreInfo,
    ExploreRecord,
    Facet,
    FacetTable,
    FacetValue,
    PlaylistEntry,
)
from .normalizer import FacetInterner, sort_key
from .sources import CoreRegistry, MetadataDatabase, MetadataProvider, Playlist, PlaylistProvider

# Stored in the db-name map for databases that failed to open.
INVALID_DATABASE = -1

_HEX_DIGITS = "0123456789abcdefABCDEF"


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def parse_crc32(text: str) -> int:
    """
    Parse the leading hex number of a playlist crc field ('A1B2C3D4|crc').

    Mirrors strtoul(..., 16): leading blanks and an optional 0x prefix are
    accepted, parsing stops at the first non-hex character.  Returns 0 when
    nothing parses.
    """
    s = (text or "").lstrip()
    if s[:2].lower() == "0x":
        s = s[2:]
    end = 0
    while end < len(s) and s[end] in _HEX_DIGITS:
        end += 1
    if not end:
        return 0
    return int(s[:end], 16) & 0xFFFFFFFF


def record_crc32(value: Any) -> Optional[int]:
    """crc of a metadata record: 4 big-endian bytes, an int or a hex string."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) < 4:
            return None
        return int.from_bytes(bytes(value[:4]), "big")
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value & 0xFFFFFFFF
    if isinstance(value, str):
        return parse_crc32(value)
    return None


def facet_field_text(facet: Facet, value: Any) -> Optional[str]:
    """Text to normalize for a raw field value, or None when unusable."""
    if FACET_INFO[facet].numeric:
        if isinstance(value, bool) or not isinstance(value, int) or not value:
            return None
        return str(value)
    if isinstance(value, str):
        return value
    return None


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------

class ExploreIndex:
    """Ready-to-query index. Owns its arena and the retained playlists."""

    def __init__(
        self,
        arena: Arena,
        tables: List[FacetTable],
        records: GrowBuffer[ExploreRecord],
        playlists: GrowBuffer[Playlist],
        stats: BuildStats,
    ) -> None:
        self.arena = arena
        self.tables = tables
        self.records = records
        self.playlists = playlists
        self.stats = stats

    def table(self, facet: Facet) -> FacetTable:
        return self.tables[facet]

    def value(self, facet: Facet, rank: int) -> FacetValue:
        return self.tables[facet].values[rank]

    def free(self) -> None:
        """Release retained playlists and every arena block."""
        for playlist in self.playlists:
            playlist.release()
        self.playlists.free()
        self.records.free()
        for table in self.tables:
            table.values.free()
        self.arena.free_all()

    def __repr__(self) -> str:
        return (
            f"ExploreIndex({len(self.records)} records, "
            f"{len(self.playlists)} playlists, {self.arena!r})"
        )


class _EntryRef(NamedTuple):
    entry: PlaylistEntry
    playlist: Playlist
    index: int


class _OpenDatabase:
    __slots__ = ("name", "handle", "entries")

    def __init__(self, name: str, handle: MetadataDatabase) -> None:
        self.name = name
        self.handle = handle
        self.entries: HashMap32[_EntryRef] = HashMap32()


def _merge_record(
    db: _OpenDatabase,
    item: Any,
    interner: FacetInterner,
    cores: HashMap32[CoreInfo],
    split_buf: GrowBuffer[FacetValue],
) -> Optional[ExploreRecord]:
    """Turn one metadata record into an ExploreRecord, or None to skip it."""
    if not isinstance(item, Mapping):
        logger.debug(f"Skipping malformed record in {db.name}: {type(item).__name__}")
        return None

    crc: Optional[int] = None
    original_title: Optional[str] = None
    fields: List[Optional[str]] = [None] * FACET_COUNT

    for key, value in item.items():
        if not isinstance(key, str):
            continue
        if key == "crc":
            crc = record_crc32(value)
            continue
        if key == "original_title":
            if isinstance(value, str):
                original_title = value
            continue
        facet = FACET_BY_KEY.get(key)
        if facet is not None:
            fields[facet] = facet_field_text(facet, value)

    if crc is None:
        logger.debug(f"Skipping record without crc in {db.name}")
        return None
    ref = db.entries.get(crc)
    if ref is None:
        return None

    record = ExploreRecord(ref.entry, ref.playlist, ref.index)
    for facet in Facet:
        if facet is Facet.SYSTEM:
            continue
        interner.add(record, facet, fields[facet], split_buf)

    core = cores.str_get(ref.entry.core_name) if ref.entry.core_name else None
    interner.add(record, Facet.SYSTEM, core.system_name if core else None, None)

    if original_title:
        title_ref = interner.arena.store(original_title.encode("utf-8"))
        record.original_title = interner.arena.read(title_ref).decode("utf-8")

    if len(split_buf):
        record.split = split_buf.snapshot()
        split_buf.clear()

    return record


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------

def build_index(
    playlist_provider: PlaylistProvider,
    metadata_provider: MetadataProvider,
    core_registry: Optional[CoreRegistry] = None,
) -> ExploreIndex:
    """Build a fresh index from the given collaborators."""
    arena = Arena()
    interner = FacetInterner(arena)
    records: GrowBuffer[ExploreRecord] = GrowBuffer()
    retained: GrowBuffer[Playlist] = GrowBuffer()
    stats = BuildStats()

    databases: GrowBuffer[_OpenDatabase] = GrowBuffer()
    db_slots: HashMap32[int] = HashMap32()

    try:
        # --- Index all playlists ---
        for playlist in playlist_provider.playlists():
            used = 0
            for i in range(playlist.size()):
                entry = playlist.get(i)
                if not entry.crc32 or not entry.db_name or not entry.label:
                    continue

                slot = db_slots.str_get(entry.db_name)
                if slot is None:
                    try:
                        handle = metadata_provider.open(entry.db_name)
                    except (SourceUnavailableError, OSError, ValueError) as e:
                        logger.warning(f"Metadata database {entry.db_name} unavailable, skipping: {e}")
                        db_slots.str_set(entry.db_name, INVALID_DATABASE)
                        stats.databases_unavailable += 1
                        continue
                    databases.append(_OpenDatabase(entry.db_name, handle))
                    slot = len(databases) - 1
                    db_slots.str_set(entry.db_name, slot)

                if slot == INVALID_DATABASE:
                    continue

                databases[slot].entries.set(parse_crc32(entry.crc32), _EntryRef(entry, playlist, i))
                used += 1

            if used:
                retained.append(playlist)
            else:
                playlist.release()
                stats.playlists_discarded += 1

        # --- Core registry ---
        cores: HashMap32[CoreInfo] = HashMap32()
        if core_registry is not None:
            for core in core_registry.cores():
                cores.str_set(core.display_name, core)

        # --- Load metadata of every referenced database ---
        split_buf: GrowBuffer[FacetValue] = GrowBuffer()
        for db in databases:
            for item in db.handle.records():
                record = _merge_record(db, item, interner, cores, split_buf)
                if record is not None:
                    records.append(record)
        split_buf.free()
        cores.free()
    except Exception:
        for playlist in retained:
            playlist.release()
        raise
    finally:
        stats.databases = len(databases)
        for db in databases:
            db.handle.close()
            db.entries.free()
        databases.free()
        db_slots.free()

    # --- Sort ---
    tables = interner.finish()
    records.sort(key=lambda r: sort_key(r.entry.label))

    stats.playlists = len(retained)
    stats.records = len(records)
    stats.values = {FACET_INFO[t.facet].name: len(t) for t in tables}
    stats.arena_bytes = arena.bytes_allocated

    logger.info(
        f"Explore index built: {stats.records} records from {stats.playlists} playlists "
        f"({stats.playlists_discarded} discarded, {stats.databases_unavailable} databases unavailable)"
    )
    return ExploreIndex(arena, tables, records, retained, stats)
