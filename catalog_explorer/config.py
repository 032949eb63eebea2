"""
Configuration

Read from environment variables:

  EXPLORE_PLAYLIST_DIR   directory of *.lpl JSON playlists   (./playlists)
  EXPLORE_DATABASE_DIR   directory of <db>.json metadata     (./database)
  EXPLORE_CORE_INFO      JSON {core name: system name}       (unset)
  EXPLORE_PORT           HTTP port                           (8899)
  EXPLORE_LOG_LEVEL      loguru level for the stderr sink    (INFO)
"""

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import BaseModel, Field

from .explorer import Explorer
from .sources import DirectoryMetadataProvider, DirectoryPlaylistProvider, JsonCoreRegistry


class ExploreConfig(BaseModel):
    playlist_dir: Path = Field(Path("playlists"), description="Directory of .lpl playlists")
    database_dir: Path = Field(Path("database"), description="Directory of metadata JSON files")
    core_info_path: Optional[Path] = Field(None, description="Core name -> system name JSON")
    port: int = Field(8899, ge=1, le=65535)
    log_level: str = Field("INFO")

    @classmethod
    def from_env(cls) -> "ExploreConfig":
        core_info = os.environ.get("EXPLORE_CORE_INFO")
        return cls(
            playlist_dir=Path(os.environ.get("EXPLORE_PLAYLIST_DIR", "playlists")),
            database_dir=Path(os.environ.get("EXPLORE_DATABASE_DIR", "database")),
            core_info_path=Path(core_info) if core_info else None,
            port=int(os.environ.get("EXPLORE_PORT", "8899")),
            log_level=os.environ.get("EXPLORE_LOG_LEVEL", "INFO").upper(),
        )

    def create_explorer(self) -> Explorer:
        if self.core_info_path is None:
            logger.info("EXPLORE_CORE_INFO not set, System facet disabled.")
        return Explorer(
            DirectoryPlaylistProvider(self.playlist_dir),
            DirectoryMetadataProvider(self.database_dir),
            JsonCoreRegistry(self.core_info_path),
        )

    def configure_logging(self) -> None:
        logger.remove()
        logger.add(sys.stderr, level=self.log_level)
