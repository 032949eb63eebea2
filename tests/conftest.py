"""Shared catalog fixture: two usable playlists, one pointing at a missing database."""

import pytest
from catalog_explorer.explorer import Explorer
from catalog_explorer.sources import (
    MemoryCoreRegistry,
    MemoryMetadataProvider,
    MemoryPlaylist,
    MemoryPlaylistProvider,
)

SNES_DB = "Nintendo - SNES.rdb"
MD_DB = "Sega - Mega Drive.rdb"
MISSING_DB = "Missing.rdb"

SNES_SYSTEM = "Super Nintendo Entertainment System"
MD_SYSTEM = "Sega Mega Drive"

# Record ids after sorting by label.
DKC, CLONE, SONIC, SMW = 0, 1, 2, 3


def make_entry(path, label, crc32, db_name, core_name=""):
    return {
        "path": path,
        "label": label,
        "crc32": crc32,
        "db_name": db_name,
        "core_name": core_name,
    }


def make_playlists():
    snes = MemoryPlaylist([
        make_entry("/roms/smw.sfc", "Super Mario World", "AAAA0001|crc", SNES_DB, "Snes9x"),
        make_entry("/roms/dkc.sfc", "Donkey Kong Country", "AAAA0002|crc", SNES_DB, "Snes9x"),
        make_entry("/roms/nohash.sfc", "No Hash", "", SNES_DB, "Snes9x"),
    ], path="/pl/snes.lpl")
    md = MemoryPlaylist([
        make_entry("/roms/sonic.md", "Sonic the Hedgehog", "BBBB0001|crc", MD_DB, "Genesis Plus GX"),
        make_entry("/roms/clone.md", "mario clone", "BBBB0002|crc", MD_DB, "Unknown Core"),
    ], path="/pl/md.lpl")
    lost = MemoryPlaylist([
        make_entry("/roms/lost.bin", "Lost", "CCCC0001", MISSING_DB),
        make_entry("/roms/lost2.bin", "Lost Too", "CCCC0002", MISSING_DB),
    ], path="/pl/lost.lpl")
    return [snes, md, lost]


def make_databases():
    return {
        SNES_DB: [
            {
                "crc": bytes.fromhex("AAAA0001"),
                "name": "Super Mario World",
                "genre": "Platform, Action",
                "developer": "Nintendo",
                "publisher": "Nintendo",
                "releaseyear": 1990,
                "users": 2,
                "region": "USA",
                "franchise": "Mario",
            },
            {
                "crc": bytes.fromhex("AAAA0002"),
                "genre": "action",
                "developer": "Rare Ltd.",
                "publisher": "NINTENDO",
                "releaseyear": 1994,
                "users": 0,
                "original_title": "Super Donkey Kong",
            },
            # Not referenced by any playlist.
            {"crc": bytes.fromhex("DEAD0000"), "genre": "Puzzle"},
            "not a record",
            {"genre": "RPG"},
        ],
        MD_DB: [
            {
                "crc": 0xBBBB0001,
                "genre": "Platform",
                "developer": "Sega",
                "publisher": "Sega Enterprises Ltd.",
                "releaseyear": 1991,
                "users": 1,
                "region": "Europe",
            },
            {
                "crc": "BBBB0002",
                "genre": "",
                "developer": "Square Enix, Inc.",
                "releaseyear": "1992",
            },
        ],
    }


def make_cores():
    return MemoryCoreRegistry({
        "Snes9x": SNES_SYSTEM,
        "Genesis Plus GX": MD_SYSTEM,
    })


@pytest.fixture
def playlists():
    return make_playlists()


@pytest.fixture
def metadata():
    return MemoryMetadataProvider(make_databases())


@pytest.fixture
def explorer(playlists, metadata):
    return Explorer(MemoryPlaylistProvider(playlists), metadata, make_cores())


@pytest.fixture
def built(explorer):
    explorer.build()
    yield explorer
    explorer.teardown()
