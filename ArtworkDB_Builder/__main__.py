"""
Write an ArtworkDB for a mounted device.

Usage:
    python -m ArtworkDB_Builder /media/device song1.mp3 song2.m4a
    python -m ArtworkDB_Builder /media/device 1234567890=song1.mp3 --start-id 200 --strict
    python -m ArtworkDB_Builder /media/device            # empty skeleton
"""

import argparse
import logging
import sys

from .artwork_writer import write_artworkdb
from .art_extractor import entries_from_files
from .constants import DEFAULT_CONTROL_DIR
from .validation import ArtworkDBValidationError

logger = logging.getLogger(__name__)


def parse_track_args(tracks: list[str]) -> dict[int, str]:
    """
    Map "DBID=PATH" / "PATH" arguments to {dbid: path}.

    Plain paths get their 1-based position as dbid.

    Raises:
        ValueError: two arguments end up with the same dbid
    """
    pc_file_paths = {}
    for position, arg in enumerate(tracks, start=1):
        dbid_str, sep, path = arg.partition('=')
        if sep and dbid_str.isascii() and dbid_str.isdigit():
            dbid = int(dbid_str)
        else:
            dbid, path = position, arg

        if dbid in pc_file_paths:
            raise ValueError(f"dbid {dbid} used by both {pc_file_paths[dbid]!r} and {path!r}")
        pc_file_paths[dbid] = path
    return pc_file_paths


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="python -m ArtworkDB_Builder",
        description="Build an ArtworkDB from embedded album art and write it to a device.")
    parser.add_argument("device_root", help="Device mount point")
    parser.add_argument("tracks", nargs="*", metavar="[DBID=]PATH",
                        help="Music files to take artwork from")
    parser.add_argument("--start-id", type=int, default=100,
                        help="Image ID of the first entry (default: 100)")
    parser.add_argument("--strict", action="store_true",
                        help="Reject duplicate image IDs and empty artwork")
    parser.add_argument("--control-dir", default=DEFAULT_CONTROL_DIR,
                        help=f"Control directory under the device root (default: {DEFAULT_CONTROL_DIR})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")

    try:
        pc_file_paths = parse_track_args(args.tracks)
    except ValueError as e:
        parser.error(str(e))

    entries = entries_from_files(pc_file_paths, start_img_id=args.start_id)

    try:
        path = write_artworkdb(args.device_root, entries,
                               strict=args.strict, control_dir=args.control_dir)
    except ArtworkDBValidationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    print(f"{path}: {len(entries)} images")
    return 0


if __name__ == "__main__":
    sys.exit(main())
