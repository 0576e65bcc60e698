# Header sizes (fixed by the device firmware, all little-endian)
MHFD_HEADER_SIZE = 0x84  # 132 bytes
MHSD_HEADER_SIZE = 0x60  # 96 bytes
MHLI_HEADER_SIZE = 0x5C  # 92 bytes
MHII_HEADER_SIZE = 0x98  # 152 bytes
MHIF_HEADER_SIZE = 0x7C  # 124 bytes
MHLA_HEADER_SIZE = 0x5C  # 92 bytes

# maps the chunk header marker to a readable name
identifier_readable_map = {
    "mhfd": "Data File",
    "mhsd": "Data Set",
    "mhli": "Image List",
    "mhii": "Image Item",
    "mhif": "File Info",
    "mhla": "Photo Album List",
}

header_size_map = {
    "mhfd": MHFD_HEADER_SIZE,
    "mhsd": MHSD_HEADER_SIZE,
    "mhli": MHLI_HEADER_SIZE,
    "mhii": MHII_HEADER_SIZE,
    "mhif": MHIF_HEADER_SIZE,
    "mhla": MHLA_HEADER_SIZE,
}

# Dataset types
MHSD_TYPE_IMAGES = 1
MHSD_TYPE_ALBUMS = 2

# maps the id used in mhsd to the child list marker
chunk_type_map = {
    MHSD_TYPE_IMAGES: "mhli",
    MHSD_TYPE_ALBUMS: "mhla",
}

# each mhii owns exactly one mhif
MHII_CHILD_COUNT = 1

# mhif correlationID (3uTools writes 0 here)
MHIF_CORRELATION_ID = 0

# next_mhii_id written when there are no images is this + 1
DEFAULT_NEXT_IMAGE_ID_BASE = 1000

# Location of the database on the device: <root>/iTunes_Control/Artwork/ArtworkDB
DEFAULT_CONTROL_DIR = "iTunes_Control"
ARTWORK_DIR_NAME = "Artwork"
ARTWORKDB_FILENAME = "ArtworkDB"

UINT32_MAX = 0xFFFFFFFF
UINT64_MAX = 0xFFFFFFFFFFFFFFFF
