"""
Input checks for ArtworkDB builds.

Two levels:
- check_representable(): values the wire format cannot encode at all
  (always run by the builder)
- validate_entries(): the stricter caller-owned invariants (unique image
  IDs, non-empty artwork), run when a build is requested with strict=True
"""

import logging
from typing import Optional, Sequence, TYPE_CHECKING

from .constants import (
    DEFAULT_NEXT_IMAGE_ID_BASE,
    MHFD_HEADER_SIZE,
    MHIF_HEADER_SIZE,
    MHII_HEADER_SIZE,
    MHLA_HEADER_SIZE,
    MHLI_HEADER_SIZE,
    MHSD_HEADER_SIZE,
    UINT32_MAX,
    UINT64_MAX,
)

if TYPE_CHECKING:
    from .artwork_writer import ArtworkEntry

logger = logging.getLogger(__name__)


class ArtworkDBValidationError(ValueError):
    """Raised when entries cannot be written into an ArtworkDB."""

    def __init__(self, message: str, entry_index: Optional[int] = None,
                 image_id: Optional[int] = None):
        super().__init__(message)
        self.entry_index = entry_index
        self.image_id = image_id


def image_block_size() -> int:
    """Bytes taken by one mhii together with its mhif."""
    return MHII_HEADER_SIZE + MHIF_HEADER_SIZE


def total_file_size(image_count: int) -> int:
    """Size of an ArtworkDB holding image_count entries."""
    section1 = MHSD_HEADER_SIZE + MHLI_HEADER_SIZE + image_count * image_block_size()
    section2 = MHSD_HEADER_SIZE + MHLA_HEADER_SIZE
    return MHFD_HEADER_SIZE + section1 + section2


def _check_uint(value, limit: int, name: str, index: int, image_id) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ArtworkDBValidationError(
            f"entry {index}: {name} must be an integer, got {type(value).__name__}",
            entry_index=index, image_id=image_id)
    if value < 0 or value > limit:
        raise ArtworkDBValidationError(
            f"entry {index}: {name}={value} does not fit in "
            f"{limit.bit_length()} unsigned bits",
            entry_index=index, image_id=image_id)


def check_representable(entries: Sequence["ArtworkEntry"]) -> None:
    """
    Make sure every value fits the field it is written into.

    Covers the u32 image count, u32 image_id/file_size, u64 song_dbid, the
    derived next image ID and the u32 total length fields.
    """
    if len(entries) > UINT32_MAX:
        raise ArtworkDBValidationError(
            f"{len(entries)} entries exceed the 32-bit image count field")

    for index, entry in enumerate(entries):
        image_id = entry.image_id
        _check_uint(image_id, UINT32_MAX, "image_id", index, image_id)
        _check_uint(entry.song_dbid, UINT64_MAX, "song_dbid", index, image_id)
        _check_uint(entry.file_size, UINT32_MAX, "file_size", index, image_id)

    max_id = max((e.image_id for e in entries), default=DEFAULT_NEXT_IMAGE_ID_BASE)
    if max_id + 1 > UINT32_MAX:
        raise ArtworkDBValidationError(
            f"next image ID {max_id + 1} does not fit in 32 bits",
            image_id=max_id)

    if total_file_size(len(entries)) > UINT32_MAX:
        raise ArtworkDBValidationError(
            f"{len(entries)} images of {image_block_size()} bytes each "
            f"overflow the 32-bit file length field")


def validate_entries(entries: Sequence["ArtworkEntry"]) -> None:
    """
    Reject entries violating the caller-owned invariants.

    Raises:
        ArtworkDBValidationError: on the first problem found; nothing is
        written in that case.
    """
    check_representable(entries)

    seen: dict[int, int] = {}  # image_id -> first index
    for index, entry in enumerate(entries):
        if entry.image_id in seen:
            raise ArtworkDBValidationError(
                f"entry {index}: duplicate image_id {entry.image_id} "
                f"(first used by entry {seen[entry.image_id]})",
                entry_index=index, image_id=entry.image_id)
        seen[entry.image_id] = index

        if entry.file_size == 0:
            raise ArtworkDBValidationError(
                f"entry {index}: image_id {entry.image_id} has file_size 0",
                entry_index=index, image_id=entry.image_id)

    logger.debug(f"ART: validated {len(entries)} artwork entries")
