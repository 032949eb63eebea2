"""
Data Models for the Catalog Explorer

Facet definitions, the interned index structures (FacetValue, FacetTable,
ExploreRecord) and the pydantic models handed out by queries and consumed
from collaborators.
"""

from enum import IntEnum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .arena import ArenaRef
from .buffer import GrowBuffer


# ---------------------------------------------------------------------------
# Facet table
# ---------------------------------------------------------------------------

class Facet(IntEnum):
    DEVELOPER = 0
    PUBLISHER = 1
    RELEASE_YEAR = 2
    PLAYER_COUNT = 3
    GENRE = 4
    ORIGIN = 5
    REGION = 6
    FRANCHISE = 7
    TAGS = 8
    SYSTEM = 9


class FacetInfo(BaseModel):
    """Static description of one facet kind."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Display name, e.g. 'Release Year'")
    key: str = Field(..., description="Field name in the metadata records")
    multi_valued: bool = Field(False, description="Split on '/', ',' and '|'")
    company: bool = Field(False, description="Strip Inc/Ltd/The suffixes")
    numeric: bool = Field(False, description="Integer field formatted as text")


FACET_INFO: Dict[Facet, FacetInfo] = {
    Facet.DEVELOPER:    FacetInfo(name="Developer",    key="developer",   multi_valued=True, company=True),
    Facet.PUBLISHER:    FacetInfo(name="Publisher",    key="publisher",   multi_valued=True, company=True),
    Facet.RELEASE_YEAR: FacetInfo(name="Release Year", key="releaseyear", numeric=True),
    Facet.PLAYER_COUNT: FacetInfo(name="Player Count", key="users",       numeric=True),
    Facet.GENRE:        FacetInfo(name="Genre",        key="genre",       multi_valued=True),
    Facet.ORIGIN:       FacetInfo(name="Origin",       key="origin"),
    Facet.REGION:       FacetInfo(name="Region",       key="region"),
    Facet.FRANCHISE:    FacetInfo(name="Franchise",    key="franchise"),
    Facet.TAGS:         FacetInfo(name="Tags",         key="tags",        multi_valued=True),
    Facet.SYSTEM:       FacetInfo(name="System",       key="system"),
}

FACET_COUNT = len(Facet)

# Metadata field name -> facet. SYSTEM is derived from the core registry,
# never read from the metadata record.
FACET_BY_KEY: Dict[str, Facet] = {
    info.key: facet for facet, info in FACET_INFO.items() if facet is not Facet.SYSTEM
}


def facet_from_key(key: str) -> Optional[Facet]:
    """Resolve a facet from its metadata key ('genre') or enum name ('GENRE')."""
    k = key.strip()
    for facet, info in FACET_INFO.items():
        if k.lower() == info.key or k.upper() == facet.name:
            return facet
    return None


# ---------------------------------------------------------------------------
# Collaborator records
# ---------------------------------------------------------------------------

class PlaylistEntry(BaseModel):
    """One entry of an external playlist."""

    path: str = Field("", description="Content path handed to the launcher")
    label: str = Field("", description="Display label")
    crc32: str = Field("", description="Content hash, hex, e.g. 'A1B2C3D4|crc'")
    db_name: str = Field("", description="Metadata database name, e.g. 'Nintendo - SNES.rdb'")
    core_name: str = Field("", description="Display name of the associated core")
    core_path: str = Field("", description="Path of the associated core")


class CoreInfo(BaseModel):
    """Core registry entry: display name and the system it emulates."""

    display_name: str
    system_name: Optional[str] = None


# ---------------------------------------------------------------------------
# Index structures
# ---------------------------------------------------------------------------

class FacetValue:
    """
    Interned facet string.

    ``ref`` is the arena handle holding the bytes and is the value's
    identity: an index creates exactly one FacetValue per handle.  ``rank``
    is assigned once the facet table has been sorted.
    """

    __slots__ = ("ref", "facet", "text", "rank")

    def __init__(self, ref: ArenaRef, facet: Facet, text: str) -> None:
        self.ref = ref
        self.facet = facet
        self.text = text
        self.rank = -1

    def __repr__(self) -> str:
        return f"FacetValue({self.facet.name}, {self.text!r}, rank={self.rank})"


class FacetTable:
    """All values of one facet, sorted after the build."""

    __slots__ = ("facet", "values", "has_unknown")

    def __init__(self, facet: Facet) -> None:
        self.facet = facet
        self.values: GrowBuffer[FacetValue] = GrowBuffer()
        self.has_unknown = False

    def __len__(self) -> int:
        return len(self.values)

    def __repr__(self) -> str:
        return (
            f"FacetTable({self.facet.name}, {len(self.values)} values, "
            f"has_unknown={self.has_unknown})"
        )


class ExploreRecord:
    """One content entry with its facet associations."""

    __slots__ = ("entry", "playlist", "entry_index", "by", "split", "original_title")

    def __init__(self, entry: PlaylistEntry, playlist, entry_index: int) -> None:
        self.entry = entry              # owned by the retained playlist
        self.playlist = playlist
        self.entry_index = entry_index
        self.by: List[Optional[FacetValue]] = [None] * FACET_COUNT
        self.split: Optional[Tuple[FacetValue, ...]] = None
        self.original_title: Optional[str] = None

    @property
    def label(self) -> str:
        return self.entry.label

    @property
    def title(self) -> str:
        return self.original_title or self.entry.label

    def values_for(self, facet: Facet) -> List[FacetValue]:
        """Primary value followed by the overflow values of ``facet``."""
        primary = self.by[facet]
        if primary is None:
            return []
        out = [primary]
        if self.split:
            out.extend(v for v in self.split if v.facet is facet)
        return out

    def __repr__(self) -> str:
        return f"ExploreRecord({self.entry.label!r})"


# ---------------------------------------------------------------------------
# Query models
# ---------------------------------------------------------------------------

class FacetFilter(BaseModel):
    """A selected facet value; ``rank=None`` selects the unknown bucket."""

    model_config = ConfigDict(frozen=True)

    facet: Facet
    rank: Optional[int] = Field(None, ge=0, description="Rank of the value, None = unknown")

    @property
    def is_unknown(self) -> bool:
        return self.rank is None


class FacetSummary(BaseModel):
    facet: Facet
    name: str
    key: str
    count: int = Field(..., description="Number of distinct values")
    has_unknown: bool = False
    min_value: Optional[str] = Field(None, description="First value (numeric facets only)")
    max_value: Optional[str] = Field(None, description="Last value (numeric facets only)")


class FacetValueItem(BaseModel):
    rank: int
    text: str


class ValueListing(BaseModel):
    facet: Facet
    values: List[FacetValueItem] = Field(default_factory=list)
    has_unknown: bool = False


class RecordSummary(BaseModel):
    id: int = Field(..., description="Position in the sorted record list")
    title: str = Field(..., description="Override title, else the playlist label")
    label: str


class RecordListing(BaseModel):
    records: List[RecordSummary] = Field(default_factory=list)

    @property
    def ids(self) -> List[int]:
        return [r.id for r in self.records]

    def __len__(self) -> int:
        return len(self.records)


class ResolvedRecord(BaseModel):
    id: int
    path: str
    label: str
    title: str
    playlist_path: str = ""
    entry_index: int = Field(0, description="Position of the entry inside its playlist")
    core_name: str = ""
    db_name: str = ""


class BuildStats(BaseModel):
    playlists: int = 0
    playlists_discarded: int = 0
    databases: int = 0
    databases_unavailable: int = 0
    records: int = 0
    values: Dict[str, int] = Field(default_factory=dict)
    arena_bytes: int = 0
