import io
from unittest.mock import MagicMock

import pytest
from PIL import Image

from shared.constants import DEFAULT_COVER_URL
from shared.errors import ServiceError
from setup_tool.audio import AudioProcessor
from setup_tool.uploader import SongUploader
from conftest import make_track


def png_bytes(size=(1600, 1200)):
    out = io.BytesIO()
    Image.new("RGB", size, (200, 40, 40)).save(out, format="PNG")
    return out.getvalue()


@pytest.fixture
def music_dir(tmp_path):
    (tmp_path / "album").mkdir()
    (tmp_path / "album" / "one.mp3").write_bytes(b"not really audio")
    (tmp_path / "album" / "two.flac").write_bytes(b"not really audio")
    (tmp_path / "album" / "notes.txt").write_text("liner notes")
    return tmp_path


@pytest.fixture
def api():
    api = MagicMock()
    api.upload_file.side_effect = lambda path: f"http://cdn.test/{path.rsplit('/', 1)[-1]}"
    api.create_song.side_effect = lambda title, artist, genre, audio_url, cover_url: make_track(
        title, title=title, artist=artist, genre=genre)
    return api


def test_compress_cover_downscales_to_jpeg():
    data = AudioProcessor.compress_cover(png_bytes())
    with Image.open(io.BytesIO(data)) as img:
        assert img.format == "JPEG"
        assert img.size == (800, 600)


def test_compress_cover_rejects_garbage():
    assert AudioProcessor.compress_cover(b"definitely not an image") is None


def test_metadata_falls_back_for_untagged_file(music_dir):
    metadata = AudioProcessor.extract_metadata(str(music_dir / "album" / "one.mp3"))
    assert metadata["title"] == "one"
    assert metadata["artist"] == "Unknown Artist"
    assert metadata["genre"] == "Unknown Genre"
    assert AudioProcessor.extract_cover_art(str(music_dir / "album" / "one.mp3")) is None


def test_scan_finds_supported_files(music_dir, api):
    files = SongUploader(api).scan([str(music_dir)])
    assert sorted(f.name for f in files) == ["one.mp3", "two.flac"]


def test_upload_song_uses_default_cover(music_dir, api):
    track = SongUploader(api).upload_song(music_dir / "album" / "one.mp3", genre="Jazz")
    api.create_song.assert_called_once_with(
        "one", "Unknown Artist", "Jazz", "http://cdn.test/one.mp3", DEFAULT_COVER_URL)
    assert track.genre == "Jazz"


def test_upload_song_with_cover_file(music_dir, api):
    cover = music_dir / "cover.png"
    cover.write_bytes(png_bytes((400, 400)))
    api.upload_bytes.return_value = "http://cdn.test/one.jpg"

    SongUploader(api).upload_song(music_dir / "album" / "one.mp3", cover_path=str(cover))

    data, filename, content_type = api.upload_bytes.call_args.args
    assert filename == "one.jpg"
    assert content_type == "image/jpeg"
    assert api.create_song.call_args.args[4] == "http://cdn.test/one.jpg"


def test_failed_cover_upload_falls_back(music_dir, api):
    cover = music_dir / "cover.png"
    cover.write_bytes(png_bytes((100, 100)))
    api.upload_bytes.side_effect = ServiceError("Upload failed", 500)

    SongUploader(api).upload_song(music_dir / "album" / "one.mp3", cover_path=str(cover))

    assert api.create_song.call_args.args[4] == DEFAULT_COVER_URL


def test_batch_continues_after_failure(music_dir, api):
    def upload_file(path):
        if path.endswith(".flac"):
            raise ServiceError("Upload failed", 500)
        return "http://cdn.test/one.mp3"

    api.upload_file.side_effect = upload_file
    results = SongUploader(api).run([str(music_dir)], parallel=2)

    assert [r.path.name for r in results] == ["one.mp3", "two.flac"]
    assert results[0].ok
    assert not results[1].ok
    assert results[1].error == "Upload failed"
