"""
Minimal ArtworkDB reader used by the tests.

Walks the bytes produced by build_artworkdb and recomputes every chunk's
total length from its children, so the size fields can be checked against
what is actually there.  Not part of the package API.
"""

import struct

from .constants import chunk_type_map


def _u32(data, offset) -> int:
    return struct.unpack("<I", data[offset: offset + 4])[0]


def parse_chunk(data, offset) -> dict:
    """
    Parse the chunk at offset and all of its children.

    Returns a dict with the common fields (tag, offset, headerLength,
    declaredLength, computedLength, children) plus the tag-specific ones.
    declaredLength is None for chunks whose offset 8 is a count.
    """
    chunk_type = data[offset: offset + 4].decode("ascii")
    header_length = _u32(data, offset + 4)

    chunk = {
        "tag": chunk_type,
        "offset": offset,
        "headerLength": header_length,
        "declaredLength": None,
        "children": [],
    }

    match chunk_type:
        case "mhfd":
            chunk["declaredLength"] = _u32(data, offset + 8)
            chunk["unk1"] = _u32(data, offset + 12)
            chunk["unk2"] = _u32(data, offset + 16)
            child_count = _u32(data, offset + 20)
            chunk["childCount"] = child_count
            chunk["unk3"] = _u32(data, offset + 24)
            chunk["next_mhii_id"] = _u32(data, offset + 28)
        case "mhsd":
            chunk["declaredLength"] = _u32(data, offset + 8)
            chunk["datasetType"] = _u32(data, offset + 12)
            child_count = 1
        case "mhli":
            child_count = _u32(data, offset + 8)
            chunk["imageCount"] = child_count
        case "mhii":
            chunk["declaredLength"] = _u32(data, offset + 8)
            child_count = _u32(data, offset + 12)
            chunk["childCount"] = child_count
            chunk["imgId"] = _u32(data, offset + 16)
            chunk["songId"] = struct.unpack("<Q", data[offset + 20: offset + 28])[0]
            chunk["unk1"] = _u32(data, offset + 28)
            chunk["srcImgSize"] = _u32(data, offset + 32)
        case "mhif":
            chunk["declaredLength"] = _u32(data, offset + 8)
            chunk["correlationID"] = _u32(data, offset + 12)
            chunk["imgSize"] = _u32(data, offset + 16)
            child_count = 0
        case "mhla":
            chunk["albumCount"] = _u32(data, offset + 8)
            child_count = chunk["albumCount"]
        case _:
            raise ValueError(f"Unknown chunk type: {chunk_type} at offset {offset}")

    next_offset = offset + header_length
    for _ in range(child_count):
        child = parse_chunk(data, next_offset)
        chunk["children"].append(child)
        next_offset += child["computedLength"]

    chunk["computedLength"] = next_offset - offset
    return chunk


def parse_artworkdb(data: bytes) -> dict:
    """Parse a whole ArtworkDB, checking that it ends exactly where mhfd says."""
    root = parse_chunk(data, 0)
    if root["tag"] != "mhfd":
        raise ValueError(f"Not an ArtworkDB: starts with {root['tag']!r}")
    if root["computedLength"] != len(data):
        raise ValueError(f"Chunks cover {root['computedLength']} bytes "
                         f"but the file has {len(data)}")
    return root


def iter_chunks(chunk: dict):
    """Depth-first walk over a parsed chunk and its descendants."""
    yield chunk
    for child in chunk["children"]:
        yield from iter_chunks(child)


def section(root: dict, dataset_type: int) -> dict:
    """The list chunk (mhli / mhla) inside the mhsd of the given type."""
    for mhsd in root["children"]:
        if mhsd["datasetType"] == dataset_type:
            child = mhsd["children"][0]
            assert child["tag"] == chunk_type_map[dataset_type]
            return child
    raise KeyError(dataset_type)


def read_images(data: bytes) -> list[tuple[int, int, int]]:
    """(imgId, songId, srcImgSize) for every mhii, in file order."""
    root = parse_artworkdb(data)
    mhli = section(root, 1)
    return [(mhii["imgId"], mhii["songId"], mhii["srcImgSize"])
            for mhii in mhli["children"]]
