"""
Extract embedded artwork from music files using mutagen, and turn it into
ArtworkEntry records for the builder.

Supports: MP3, M4A/AAC, FLAC, OGG Vorbis, OPUS, AIFF, plus whatever
mutagen.File() can open.  Returns raw image bytes (typically JPEG or PNG).
"""

import base64
import hashlib
import io
import logging
import os
from pathlib import Path
from typing import Optional

import mutagen
from mutagen.aiff import AIFF
from mutagen.flac import FLAC, Picture
from mutagen.mp3 import MP3
from mutagen.mp4 import MP4
from mutagen.oggopus import OggOpus
from mutagen.oggvorbis import OggVorbis
from PIL import Image

from .artwork_writer import ArtworkEntry

logger = logging.getLogger(__name__)


def extract_art(file_path: str) -> Optional[bytes]:
    """
    Extract the first embedded artwork image from a music file.

    Args:
        file_path: Path to the music file

    Returns:
        Raw image bytes (JPEG/PNG) or None if no art found
    """
    ext = Path(file_path).suffix.lower()

    try:
        if ext == '.mp3':
            return _extract_mp3(file_path)
        elif ext in ('.m4a', '.m4p', '.aac', '.alac'):
            return _extract_mp4(file_path)
        elif ext == '.flac':
            return _extract_flac(file_path)
        elif ext == '.ogg':
            return _extract_vorbis_picture(OggVorbis(file_path))
        elif ext == '.opus':
            return _extract_vorbis_picture(OggOpus(file_path))
        elif ext in ('.aif', '.aiff'):
            return _extract_id3_apic(AIFF(file_path))
        else:
            return _extract_generic(file_path)
    except Exception as e:
        logger.warning(f"ART: Failed to extract art from {file_path}: {e}")
        return None


def _extract_id3_apic(audio) -> Optional[bytes]:
    """First non-empty APIC frame of an ID3-tagged file."""
    if audio.tags is None:
        return None
    for key in audio.tags:
        if key.startswith('APIC'):
            frame = audio.tags[key]
            if frame.data:
                return frame.data
    return None


def _extract_mp3(path: str) -> Optional[bytes]:
    return _extract_id3_apic(MP3(path))


def _extract_mp4(path: str) -> Optional[bytes]:
    """Extract art from M4A/AAC (covr atom)."""
    audio = MP4(path)
    if audio.tags is None:
        return None

    covers = audio.tags.get('covr', [])
    if covers:
        return bytes(covers[0])
    return None


def _extract_flac(path: str) -> Optional[bytes]:
    audio = FLAC(path)
    if audio.pictures:
        return audio.pictures[0].data
    return None


def _extract_vorbis_picture(audio) -> Optional[bytes]:
    """Extract art from Vorbis comment METADATA_BLOCK_PICTURE."""
    pictures = audio.get('metadata_block_picture', [])
    if not pictures:
        return None
    try:
        return Picture(base64.b64decode(pictures[0])).data
    except Exception as e:
        logger.debug(f"ART: unreadable METADATA_BLOCK_PICTURE: {e}")
        return None


def _extract_generic(path: str) -> Optional[bytes]:
    """Try generic mutagen extraction."""
    audio = mutagen.File(path)
    if audio is None or audio.tags is None:
        return None

    # ID3 APIC
    for key in audio.tags.keys():
        if isinstance(key, str) and key.startswith('APIC'):
            frame = audio.tags[key]
            if getattr(frame, 'data', None):
                return frame.data

    # MP4 covr
    if 'covr' in audio.tags:
        covers = audio.tags['covr']
        if covers:
            return bytes(covers[0])

    return None


def is_decodable_image(art_bytes: bytes) -> bool:
    """Check that art bytes are an image Pillow can identify."""
    try:
        with Image.open(io.BytesIO(art_bytes)) as img:
            img.verify()
        return True
    except Exception:
        return False


def art_hash(art_bytes: bytes) -> str:
    """
    MD5 of artwork bytes.

    Kept on ArtworkEntry.artwork_hash for the caller; the ArtworkDB does not
    store it.
    """
    return hashlib.md5(art_bytes).hexdigest()


def entries_from_files(pc_file_paths: dict, start_img_id: int = 100) -> list[ArtworkEntry]:
    """
    Create one ArtworkEntry per track that has usable embedded art.

    Args:
        pc_file_paths: Dict mapping track dbid → music file path.  Its
                       iteration order is the order of the entries.
        start_img_id: Image ID of the first entry (default 100, matching
                      iTunes); following entries count up from it

    Returns:
        Entries in input order.  Tracks without art are skipped and do not
        consume an image ID.  Identical images are not shared.
    """
    entries = []
    img_id = start_img_id

    tracks_missing = 0
    tracks_no_art = 0
    tracks_bad_art = 0

    for dbid, path in pc_file_paths.items():
        if not os.path.exists(path):
            tracks_missing += 1
            logger.warning(f"ART: file not found for dbid {dbid}: {path}")
            continue

        art_bytes = extract_art(path)
        if not art_bytes:
            tracks_no_art += 1
            logger.debug(f"ART: no embedded art in {path}")
            continue

        if not is_decodable_image(art_bytes):
            tracks_bad_art += 1
            logger.warning(f"ART: embedded art in {path} is not a readable image")
            continue

        entries.append(ArtworkEntry(
            image_id=img_id,
            song_dbid=dbid,
            artwork_hash=art_hash(art_bytes),
            file_size=len(art_bytes),
        ))
        img_id += 1

    logger.info(f"ART STATS: {len(pc_file_paths)} tracks, "
                f"{len(entries)} with art, "
                f"{tracks_no_art} without art, "
                f"{tracks_bad_art} unreadable art, "
                f"{tracks_missing} missing files")
    return entries
