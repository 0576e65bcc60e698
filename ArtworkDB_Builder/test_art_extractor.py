"""Tests for artwork extraction and entry creation."""

import base64
import hashlib
import io
import logging
import struct
from types import SimpleNamespace

import pytest
from mutagen.flac import FLAC, Picture
from mutagen.id3 import APIC, ID3
from mutagen.mp4 import MP4Cover
from PIL import Image

from . import art_extractor
from .art_extractor import art_hash, entries_from_files, extract_art, is_decodable_image
from .artwork_writer import ArtworkEntry


def _png_bytes(color=(255, 0, 0)) -> bytes:
    buf = io.BytesIO()
    Image.new('RGB', (8, 8), color).save(buf, format='PNG')
    return buf.getvalue()


def _picture(data: bytes) -> Picture:
    pic = Picture()
    pic.type = 3  # front cover
    pic.mime = "image/png"
    pic.data = data
    return pic


def _id3_with_cover(data: bytes) -> ID3:
    tags = ID3()
    tags.add(APIC(encoding=3, mime="image/png", type=3, desc="Cover", data=data))
    return tags


def _write_flac(path) -> None:
    """A FLAC file holding only a STREAMINFO block (44.1 kHz, 2 ch, 16 bit, 1 s)."""
    streaminfo = struct.pack(">HH", 4096, 4096) + bytes(6)
    streaminfo += struct.pack(">Q", (44100 << 44) | (1 << 41) | (15 << 36) | 44100)
    streaminfo += bytes(16)
    path.write_bytes(b"fLaC" + bytes([0x80]) + len(streaminfo).to_bytes(3, "big") + streaminfo)


@pytest.fixture
def music_files(tmp_path):
    """Three placeholder music files; their art comes from a patched extract_art."""
    paths = {}
    for dbid, name in [(111, "a.mp3"), (222, "b.m4a"), (333, "c.flac")]:
        path = tmp_path / name
        path.write_bytes(b"\x00" * 16)
        paths[dbid] = str(path)
    return paths


# ---------------------------------------------------------------------------
# extract_art
# ---------------------------------------------------------------------------

class TestExtractArt:
    def test_corrupt_mp3_returns_none(self, tmp_path, caplog):
        path = tmp_path / "broken.mp3"
        path.write_bytes(b"definitely not mpeg audio")
        with caplog.at_level(logging.WARNING):
            assert extract_art(str(path)) is None
        assert "Failed to extract art" in caplog.text

    def test_missing_file_returns_none(self, tmp_path):
        assert extract_art(str(tmp_path / "missing.flac")) is None

    def test_unknown_format_returns_none(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        assert extract_art(str(path)) is None


class TestExtractArtFormats:
    def test_id3_apic(self):
        png = _png_bytes()
        audio = SimpleNamespace(tags=_id3_with_cover(png))
        assert art_extractor._extract_id3_apic(audio) == png

    def test_id3_without_tags(self):
        assert art_extractor._extract_id3_apic(SimpleNamespace(tags=None)) is None

    def test_id3_without_picture(self):
        assert art_extractor._extract_id3_apic(SimpleNamespace(tags=ID3())) is None

    def test_vorbis_metadata_block_picture(self):
        png = _png_bytes((0, 255, 0))
        block = base64.b64encode(_picture(png).write()).decode("ascii")
        assert art_extractor._extract_vorbis_picture({"metadata_block_picture": [block]}) == png

    def test_vorbis_unreadable_picture(self):
        assert art_extractor._extract_vorbis_picture({"metadata_block_picture": ["!!!"]}) is None

    def test_vorbis_without_picture(self):
        assert art_extractor._extract_vorbis_picture({}) is None

    @pytest.mark.parametrize("filename, reader", [
        ("song.mp3", "MP3"),
        ("song.aiff", "AIFF"),
    ])
    def test_id3_formats_dispatch(self, filename, reader, monkeypatch):
        png = _png_bytes()
        monkeypatch.setattr(art_extractor, reader,
                            lambda p: SimpleNamespace(tags=_id3_with_cover(png)))
        assert extract_art(filename) == png

    @pytest.mark.parametrize("filename, reader", [
        ("song.ogg", "OggVorbis"),
        ("song.opus", "OggOpus"),
    ])
    def test_ogg_formats_dispatch(self, filename, reader, monkeypatch):
        png = _png_bytes()
        block = base64.b64encode(_picture(png).write()).decode("ascii")
        monkeypatch.setattr(art_extractor, reader,
                            lambda p: {"metadata_block_picture": [block]})
        assert extract_art(filename) == png

    def test_mp4_covr(self, monkeypatch):
        png = _png_bytes()
        cover = MP4Cover(png, imageformat=MP4Cover.FORMAT_PNG)
        monkeypatch.setattr(art_extractor, "MP4",
                            lambda p: SimpleNamespace(tags={"covr": [cover]}))
        assert extract_art("song.m4a") == png

    def test_mp4_without_covr(self, monkeypatch):
        monkeypatch.setattr(art_extractor, "MP4", lambda p: SimpleNamespace(tags={}))
        assert extract_art("song.m4a") is None

    def test_generic_id3(self, monkeypatch):
        png = _png_bytes()
        monkeypatch.setattr(art_extractor.mutagen, "File",
                            lambda p: SimpleNamespace(tags=_id3_with_cover(png)))
        assert extract_art("song.wav") == png

    def test_generic_covr(self, monkeypatch):
        png = _png_bytes()
        monkeypatch.setattr(art_extractor.mutagen, "File",
                            lambda p: SimpleNamespace(tags={"covr": [MP4Cover(png)]}))
        assert extract_art("song.wma") == png

    def test_flac_file(self, tmp_path):
        png = _png_bytes((0, 0, 255))
        path = tmp_path / "song.flac"
        _write_flac(path)
        audio = FLAC(str(path))
        audio.add_picture(_picture(png))
        audio.save()

        assert extract_art(str(path)) == png

    def test_flac_file_without_picture(self, tmp_path):
        path = tmp_path / "song.flac"
        _write_flac(path)
        assert extract_art(str(path)) is None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestArtHelpers:
    def test_art_hash_is_md5(self):
        data = _png_bytes()
        assert art_hash(data) == hashlib.md5(data).hexdigest()

    def test_decodable_png(self):
        assert is_decodable_image(_png_bytes())

    def test_garbage_is_not_decodable(self):
        assert not is_decodable_image(b"\x00\x01\x02 not an image")


# ---------------------------------------------------------------------------
# entries_from_files
# ---------------------------------------------------------------------------

class TestEntriesFromFiles:
    def test_one_entry_per_track_in_order(self, music_files, monkeypatch):
        art = {path: _png_bytes((i * 40, 0, 0)) for i, path in enumerate(music_files.values())}
        monkeypatch.setattr(art_extractor, "extract_art", lambda p: art[p])

        entries = entries_from_files(music_files, start_img_id=100)

        assert [e.song_dbid for e in entries] == [111, 222, 333]
        assert [e.image_id for e in entries] == [100, 101, 102]
        for entry, path in zip(entries, music_files.values()):
            assert isinstance(entry, ArtworkEntry)
            assert entry.file_size == len(art[path])
            assert entry.artwork_hash == art_hash(art[path])

    def test_identical_art_is_not_shared(self, music_files, monkeypatch):
        same = _png_bytes()
        monkeypatch.setattr(art_extractor, "extract_art", lambda p: same)

        entries = entries_from_files(music_files)

        assert len(entries) == 3
        assert len({e.image_id for e in entries}) == 3

    def test_skips_tracks_without_usable_art(self, music_files, monkeypatch):
        paths = list(music_files.values())
        art = {paths[0]: None, paths[1]: b"junk", paths[2]: _png_bytes()}
        monkeypatch.setattr(art_extractor, "extract_art", lambda p: art[p])

        entries = entries_from_files(music_files, start_img_id=7)

        assert [(e.image_id, e.song_dbid) for e in entries] == [(7, 333)]

    def test_missing_files_are_skipped(self, tmp_path, monkeypatch, caplog):
        calls = []
        monkeypatch.setattr(art_extractor, "extract_art", lambda p: calls.append(p))

        with caplog.at_level(logging.WARNING):
            entries = entries_from_files({5: str(tmp_path / "gone.mp3")})

        assert entries == []
        assert calls == []
        assert "file not found" in caplog.text

    def test_real_flac_file(self, tmp_path):
        png = _png_bytes()
        path = tmp_path / "tagged.flac"
        _write_flac(path)
        audio = FLAC(str(path))
        audio.add_picture(_picture(png))
        audio.save()

        entries = entries_from_files({987654321: str(path)}, start_img_id=500)

        assert entries == [ArtworkEntry(image_id=500, song_dbid=987654321,
                                        artwork_hash=art_hash(png), file_size=len(png))]
