"""
Collaborator Contracts and Adapters

The explorer never reads playlists, metadata databases or core info itself;
it talks to three providers:

* PlaylistProvider  -- yields opened playlists (size/get/release)
* MetadataProvider  -- opens a metadata database by name and iterates its
                       records as field bags
* CoreRegistry      -- lists cores with the system they emulate

In-memory implementations are used for embedding and tests; the directory
implementations read plain JSON files and back the HTTP app.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Protocol, Sequence

from loguru import logger

from .errors import SourceUnavailableError
from .models import CoreInfo, PlaylistEntry


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------

class Playlist(Protocol):
    path: str

    def size(self) -> int: ...

    def get(self, index: int) -> PlaylistEntry: ...

    def release(self) -> None: ...


class PlaylistProvider(Protocol):
    def playlists(self) -> Iterable[Playlist]: ...


class MetadataDatabase(Protocol):
    def records(self) -> Iterator[Any]: ...

    def close(self) -> None: ...


class MetadataProvider(Protocol):
    def open(self, db_name: str) -> MetadataDatabase: ...


class CoreRegistry(Protocol):
    def cores(self) -> Iterable[CoreInfo]: ...


# ---------------------------------------------------------------------------
# In-memory adapters
# ---------------------------------------------------------------------------

def _as_entry(item: Any) -> PlaylistEntry:
    if isinstance(item, PlaylistEntry):
        return item
    return PlaylistEntry(**item)


class MemoryPlaylist:
    """Playlist held in memory. ``release()`` only flips ``released``."""

    def __init__(self, entries: Sequence[Any], path: str = "") -> None:
        self.path = path
        self._entries: List[PlaylistEntry] = [_as_entry(e) for e in entries]
        self.released = False

    def size(self) -> int:
        return len(self._entries)

    def get(self, index: int) -> PlaylistEntry:
        return self._entries[index]

    def release(self) -> None:
        self.released = True

    def __repr__(self) -> str:
        return f"MemoryPlaylist({self.path!r}, {len(self._entries)} entries)"


class MemoryPlaylistProvider:
    def __init__(self, playlists: Iterable[MemoryPlaylist]) -> None:
        self._playlists = list(playlists)

    def playlists(self) -> Iterable[MemoryPlaylist]:
        # A released playlist is reopened on the next build.
        for pl in self._playlists:
            pl.released = False
            yield pl


class MemoryDatabase:
    def __init__(self, records: Sequence[Any]) -> None:
        self._records = records
        self.closed = False

    def records(self) -> Iterator[Any]:
        return iter(self._records)

    def close(self) -> None:
        self.closed = True


class MemoryMetadataProvider:
    """Databases keyed by name; unknown names are unavailable."""

    def __init__(self, databases: Mapping[str, Sequence[Any]]) -> None:
        self._databases = dict(databases)
        self.requested: List[str] = []
        self.opened: List[MemoryDatabase] = []

    def open(self, db_name: str) -> MemoryDatabase:
        self.requested.append(db_name)
        if db_name not in self._databases:
            raise SourceUnavailableError(db_name, "no such database")
        db = MemoryDatabase(self._databases[db_name])
        self.opened.append(db)
        return db


class MemoryCoreRegistry:
    def __init__(self, systems: Mapping[str, Optional[str]]) -> None:
        self._cores = [CoreInfo(display_name=k, system_name=v) for k, v in systems.items()]

    def cores(self) -> Iterable[CoreInfo]:
        return list(self._cores)


# ---------------------------------------------------------------------------
# JSON directory adapters
# ---------------------------------------------------------------------------

class JsonPlaylist(MemoryPlaylist):
    """A ``.lpl`` JSON playlist: ``{"items": [{...}, ...]}``."""

    @classmethod
    def load(cls, path: Path) -> "JsonPlaylist":
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        items = data.get("items", [])
        if not isinstance(items, list):
            raise ValueError(f"\"items\" must be a list, got {type(items).__name__}")
        entries = []
        for item in items:
            if not isinstance(item, dict):
                continue
            entries.append(PlaylistEntry(
                path=str(item.get("path") or ""),
                label=str(item.get("label") or ""),
                crc32=str(item.get("crc32") or ""),
                db_name=str(item.get("db_name") or ""),
                core_name=str(item.get("core_name") or ""),
                core_path=str(item.get("core_path") or ""),
            ))
        return cls(entries, path=str(path))


class DirectoryPlaylistProvider:
    """Every ``*.lpl`` file of a directory, in name order."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def playlists(self) -> Iterator[JsonPlaylist]:
        if not self.directory.is_dir():
            logger.warning(f"Playlist directory not found at {self.directory}, no playlists loaded.")
            return
        for path in sorted(self.directory.iterdir()):
            if path.suffix.lower() != ".lpl":
                continue
            try:
                playlist = JsonPlaylist.load(path)
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable playlist {path.name}: {e}")
                continue
            yield playlist


class DirectoryMetadataProvider:
    """
    ``<database dir>/<db name without extension>.json`` holding a JSON list
    of records, e.g. ``[{"crc": "A1B2C3D4", "genre": "Action", ...}]``.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def path_for(self, db_name: str) -> Path:
        return self.directory / f"{Path(db_name).stem}.json"

    def open(self, db_name: str) -> MemoryDatabase:
        path = self.path_for(db_name)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise SourceUnavailableError(db_name, str(e)) from e
        if not isinstance(data, list):
            raise SourceUnavailableError(db_name, "expected a list of records")
        return MemoryDatabase(data)


class JsonCoreRegistry:
    """``{"Core Display Name": "System Name", ...}``; missing file = no cores."""

    def __init__(self, path: Optional[Path]) -> None:
        self.path = Path(path) if path else None

    def cores(self) -> List[CoreInfo]:
        if self.path is None:
            return []
        try:
            data: Dict[str, Any] = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load core info from {self.path}: {e}")
            return []
        if not isinstance(data, dict):
            return []
        return [
            CoreInfo(display_name=str(k), system_name=str(v) if v else None)
            for k, v in data.items()
        ]
