"""
ArtworkDB builder.

Builds the legacy ArtworkDB binary that device firmware still expects at
/iTunes_Control/Artwork/ArtworkDB when syncing track artwork.

ArtworkDB structure:
    mhfd (file header, 2 sections)
      mhsd type=1 → mhli → mhii[] (one per entry, in input order)
        Each mhii has exactly one mhif child carrying the artwork file size
      mhsd type=2 → mhla (empty, albums are never written)

All integers are little-endian.  Each chunk is zero-padded to its fixed
header length and its children follow the padding.
"""

import logging
import os
import stat
import tempfile
from dataclasses import dataclass
from typing import Iterable

from .chunk import Chunk, TOTAL_LENGTH
from .constants import (
    ARTWORK_DIR_NAME,
    ARTWORKDB_FILENAME,
    DEFAULT_CONTROL_DIR,
    DEFAULT_NEXT_IMAGE_ID_BASE,
    MHFD_HEADER_SIZE,
    MHIF_CORRELATION_ID,
    MHIF_HEADER_SIZE,
    MHII_CHILD_COUNT,
    MHII_HEADER_SIZE,
    MHLA_HEADER_SIZE,
    MHLI_HEADER_SIZE,
    MHSD_HEADER_SIZE,
    MHSD_TYPE_ALBUMS,
    MHSD_TYPE_IMAGES,
)
from .validation import check_representable, validate_entries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtworkEntry:
    """
    One track's artwork record for the ArtworkDB.

    Attributes:
        image_id: u32, unique within one file (not checked unless strict)
        song_dbid: u64 item pid of the track in the media library
        artwork_hash: Content-addressed path of the artwork asset.  It is
            NOT written into the ArtworkDB; it only travels with the entry
            for the caller's bookkeeping and does not survive a build.
        file_size: u32 byte size of the artwork asset (written into both
            the mhii and its mhif)
    """
    image_id: int
    song_dbid: int
    artwork_hash: str
    file_size: int


def _mhif(file_size: int) -> Chunk:
    """MHIF (file info), nested under each mhii."""
    return Chunk('mhif', MHIF_HEADER_SIZE, [
        (8, 'I', TOTAL_LENGTH),
        (12, 'I', MHIF_CORRELATION_ID),   # correlationID
        (16, 'I', file_size),             # image size
    ])


def _mhii(entry: ArtworkEntry) -> Chunk:
    """MHII (image item) with its single mhif child."""
    return Chunk('mhii', MHII_HEADER_SIZE, [
        (8, 'I', TOTAL_LENGTH),
        (12, 'I', MHII_CHILD_COUNT),      # child count
        (16, 'I', entry.image_id),        # imgId
        (20, 'Q', entry.song_dbid),       # songId (item pid)
        # offset 28: unk1 = 0
        (32, 'I', entry.file_size),       # source image size
    ], [_mhif(entry.file_size)])


def _mhli(entries: list[ArtworkEntry]) -> Chunk:
    """MHLI (image list).  Offset 8 is the image count, not a total length."""
    return Chunk('mhli', MHLI_HEADER_SIZE, [
        (8, 'I', len(entries)),
    ], [_mhii(entry) for entry in entries])


def _mhla() -> Chunk:
    """Empty MHLA (album list)."""
    return Chunk('mhla', MHLA_HEADER_SIZE, [
        (8, 'I', 0),                      # album count
    ])


def _mhsd(ds_type: int, child: Chunk) -> Chunk:
    """MHSD (dataset) wrapping one list chunk."""
    return Chunk('mhsd', MHSD_HEADER_SIZE, [
        (8, 'I', TOTAL_LENGTH),
        (12, 'I', ds_type),
    ], [child])


def _mhfd(datasets: list[Chunk], next_mhii_id: int) -> Chunk:
    """MHFD (file header), the root of the tree."""
    return Chunk('mhfd', MHFD_HEADER_SIZE, [
        (8, 'I', TOTAL_LENGTH),
        # offset 12: unk1 = 0
        # offset 16: unk2 = 0
        (20, 'I', len(datasets)),         # childCount
        # offset 24: unk3 = 0
        (28, 'I', next_mhii_id),          # next_mhii_id
    ], datasets)


def next_image_id(entries: Iterable[ArtworkEntry]) -> int:
    """Highest image_id + 1, or 1001 for an empty database."""
    return max((e.image_id for e in entries), default=DEFAULT_NEXT_IMAGE_ID_BASE) + 1


def build_artworkdb_tree(entries: Iterable[ArtworkEntry]) -> Chunk:
    """Assemble the chunk tree for entries without serializing it."""
    entries = list(entries)
    datasets = [
        _mhsd(MHSD_TYPE_IMAGES, _mhli(entries)),
        _mhsd(MHSD_TYPE_ALBUMS, _mhla()),
    ]
    return _mhfd(datasets, next_image_id(entries))


def build_artworkdb(entries: Iterable[ArtworkEntry], strict: bool = False) -> bytes:
    """
    Build a complete ArtworkDB file.

    Args:
        entries: Artwork entries, written in the given order
        strict: Reject duplicate image IDs and zero file sizes instead of
                writing them as-is

    Returns:
        The file content, ready to be written verbatim to the device

    Raises:
        ArtworkDBValidationError: a value does not fit its field, or (when
            strict) an entry violates a caller-owned invariant
    """
    entries = list(entries)
    if strict:
        validate_entries(entries)
    else:
        check_representable(entries)

    root = build_artworkdb_tree(entries)
    data = root.to_bytes()

    logger.debug(f"ART: built ArtworkDB with {len(entries)} images, "
                 f"next_mhii_id={next_image_id(entries)}, {len(data)} bytes")
    return data


def build_empty_artworkdb() -> bytes:
    """Build the skeleton ArtworkDB: both sections present, no images, no albums."""
    return build_artworkdb([])


def artworkdb_path(device_root: str, control_dir: str = DEFAULT_CONTROL_DIR) -> str:
    """Path of the ArtworkDB on a mounted device."""
    return os.path.join(device_root, control_dir, ARTWORK_DIR_NAME, ARTWORKDB_FILENAME)


def _file_mode(path: str) -> int:
    """Mode for the new database: the old file's, else 0o666 minus the umask."""
    if os.path.exists(path):
        return stat.S_IMODE(os.stat(path).st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_artworkdb(
    device_root: str,
    entries: Iterable[ArtworkEntry],
    strict: bool = False,
    control_dir: str = DEFAULT_CONTROL_DIR,
) -> str:
    """
    Build an ArtworkDB and write it to a mounted device.

    The data is built before anything is touched on disk, written to a
    temporary file in the Artwork directory and then moved over the old
    database.

    Args:
        device_root: Device mount point (e.g. "E:" or "/media/device")
        entries: Artwork entries, in order
        strict: Passed through to build_artworkdb
        control_dir: Name of the control directory under device_root

    Returns:
        Path of the written ArtworkDB
    """
    data = build_artworkdb(entries, strict=strict)

    path = artworkdb_path(device_root, control_dir)
    artwork_dir = os.path.dirname(path)
    os.makedirs(artwork_dir, exist_ok=True)

    mode = _file_mode(path)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{ARTWORKDB_FILENAME}.", dir=artwork_dir)
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except OSError:
        logger.error(f"ART: failed to write ArtworkDB to {path}")
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise

    logger.info(f"Wrote ArtworkDB: {len(data)} bytes to {path}")
    return path
