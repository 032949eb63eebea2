"""
Explorer Handle

Caller-owned handle holding at most one live ExploreIndex.  Every operation
of the surrounding UI layer goes through it:

    explorer = Explorer(playlists, metadata, cores)
    explorer.build()
    explorer.list_facets()
    explorer.list_values(Facet.GENRE)
    explorer.list_records([FacetFilter(facet=Facet.GENRE, rank=0)], "mario")
    explorer.resolve_record(3)
    explorer.teardown()

Queries issued while nothing is built return empty results.
"""

from typing import List, Optional, Sequence

from loguru import logger

from .errors import RecordNotFoundError
from .filters import list_records, list_values
from .index_builder import ExploreIndex, build_index
from .models import (
    FACET_INFO,
    BuildStats,
    Facet,
    FacetFilter,
    FacetSummary,
    RecordListing,
    ResolvedRecord,
    ValueListing,
)
from .sources import CoreRegistry, MetadataProvider, PlaylistProvider


class Explorer:
    """Builds, queries and tears down one faceted index."""

    def __init__(
        self,
        playlist_provider: PlaylistProvider,
        metadata_provider: MetadataProvider,
        core_registry: Optional[CoreRegistry] = None,
    ) -> None:
        self.playlist_provider = playlist_provider
        self.metadata_provider = metadata_provider
        self.core_registry = core_registry
        self._index: Optional[ExploreIndex] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_built(self) -> bool:
        return self._index is not None

    @property
    def index(self) -> Optional[ExploreIndex]:
        return self._index

    @property
    def stats(self) -> BuildStats:
        return self._index.stats if self._index else BuildStats()

    def build(self) -> BuildStats:
        """Build the index unless one is already live."""
        if self._index is not None:
            logger.debug("Explore index already built, reusing it.")
            return self._index.stats
        self._index = build_index(
            self.playlist_provider,
            self.metadata_provider,
            self.core_registry,
        )
        return self._index.stats

    def teardown(self) -> None:
        """Release the index and every playlist it retained."""
        if self._index is None:
            return
        index, self._index = self._index, None
        index.free()
        logger.info("Explore index released.")

    def rebuild(self) -> BuildStats:
        self.teardown()
        return self.build()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_facets(self, active_filters: Sequence[FacetFilter] = ()) -> List[FacetSummary]:
        """
        Facets that can be drilled into.

        Facets without values are left out, as are facets already narrowed
        by ``active_filters``.
        """
        if self._index is None:
            return []
        used = {Facet(f.facet) for f in active_filters}
        out: List[FacetSummary] = []
        for table in self._index.tables:
            if not len(table) or table.facet in used:
                continue
            info = FACET_INFO[table.facet]
            summary = FacetSummary(
                facet=table.facet,
                name=info.name,
                key=info.key,
                count=len(table),
                has_unknown=table.has_unknown,
            )
            if info.numeric:
                summary.min_value = table.values[0].text
                summary.max_value = table.values[-1].text
            out.append(summary)
        return out

    def list_values(
        self,
        facet: Facet,
        active_filters: Sequence[FacetFilter] = (),
        substring: Optional[str] = None,
    ) -> ValueListing:
        if self._index is None:
            return ValueListing(facet=facet)
        return list_values(self._index, facet, active_filters, substring)

    def list_records(
        self,
        active_filters: Sequence[FacetFilter] = (),
        substring: Optional[str] = None,
    ) -> RecordListing:
        if self._index is None:
            return RecordListing()
        return list_records(self._index, active_filters, substring)

    def resolve_record(self, record_id: int) -> ResolvedRecord:
        """Content path and label of a record, for the launcher."""
        if self._index is None or not 0 <= record_id < len(self._index.records):
            raise RecordNotFoundError(record_id)
        record = self._index.records[record_id]
        entry = record.entry
        return ResolvedRecord(
            id=record_id,
            path=entry.path,
            label=entry.label,
            title=record.title,
            playlist_path=getattr(record.playlist, "path", "") or "",
            entry_index=record.entry_index,
            core_name=entry.core_name,
            db_name=entry.db_name,
        )

    def __repr__(self) -> str:
        return f"Explorer({self._index!r})" if self._index else "Explorer(not built)"
