"""
ArtworkDB Builder.

Builds the legacy ArtworkDB binary (mhfd → mhsd → mhli/mhii/mhif, mhla)
that device firmware reads when syncing track artwork.

Usage:
    from ArtworkDB_Builder import ArtworkEntry, build_artworkdb, write_artworkdb

    entries = [
        ArtworkEntry(image_id=100, song_dbid=123456789012345,
                     artwork_hash="31/0b86e0...", file_size=20000),
    ]
    data = build_artworkdb(entries)            # bytes, no I/O

    # Or straight onto a mounted device:
    write_artworkdb("/media/device", entries)  # <root>/iTunes_Control/Artwork/ArtworkDB

    # Entries from local music files (dbid → path):
    from ArtworkDB_Builder import entries_from_files
    entries = entries_from_files({12345: "/home/user/Music/song.mp3"})
"""

from .artwork_writer import (
    ArtworkEntry,
    artworkdb_path,
    build_artworkdb,
    build_empty_artworkdb,
    next_image_id,
    write_artworkdb,
)
from .art_extractor import art_hash, entries_from_files, extract_art, is_decodable_image
from .chunk import Chunk
from .validation import ArtworkDBValidationError, check_representable, validate_entries

__all__ = [
    'ArtworkEntry',
    'artworkdb_path',
    'build_artworkdb',
    'build_empty_artworkdb',
    'next_image_id',
    'write_artworkdb',
    'art_hash',
    'entries_from_files',
    'extract_art',
    'is_decodable_image',
    'Chunk',
    'ArtworkDBValidationError',
    'check_representable',
    'validate_entries',
]
