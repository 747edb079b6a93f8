"""
Song catalog.

Loaded once from a JSON fixture and never mutated. The fixture layout is::

    {
      "artistAddress": "<catalog owner>",
      "artists": {"<address>": {"name": ..., "secretContent": {...}}},
      "songs": [{"id": ..., "title": ..., "requiredTokens": ..., ...}]
    }
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from midnight_lace.errors import ArtistNotFound, ItemNotFound
from midnight_lace.models import Artist, Song

logger = logging.getLogger(__name__)


class CatalogProvider:
    def __init__(self, songs: List[Song], artists: Optional[List[Artist]] = None, artist_address: str = ""):
        self._songs: Tuple[Song, ...] = tuple(songs)
        self._by_id: Dict[str, Song] = {}
        for song in self._songs:
            if song.id in self._by_id:
                raise ValueError(f"Duplicate song id in catalog: {song.id!r}")
            self._by_id[song.id] = song

        self._artists: Dict[str, Artist] = {a.address: a for a in (artists or [])}
        self.artist_address = artist_address

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogProvider":
        artist_address = data.get("artistAddress", "")
        artists = [
            Artist(
                address=address,
                name=info.get("name", ""),
                secret_content=info.get("secretContent", {}),
            )
            for address, info in data.get("artists", {}).items()
        ]
        songs = [Song.from_dict(item, default_artist_address=artist_address) for item in data.get("songs", [])]
        return cls(songs, artists, artist_address)

    @classmethod
    def from_file(cls, path: str) -> "CatalogProvider":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        catalog = cls.from_dict(data)
        logger.info(f"Catalog loaded from {path}: {len(catalog)} songs, {len(catalog.artists())} artists")
        return catalog

    def list(self) -> List[Song]:
        return list(self._songs)

    def find_by_id(self, song_id: str) -> Song:
        song = self._by_id.get(song_id)
        if song is None:
            raise ItemNotFound(song_id)
        return song

    def artists(self) -> List[Artist]:
        return list(self._artists.values())

    def find_artist(self, address: str) -> Artist:
        artist = self._artists.get(address)
        if artist is None:
            raise ArtistNotFound(address)
        return artist

    def __len__(self) -> int:
        return len(self._songs)
