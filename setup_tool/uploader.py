"""
Upload engine for adding songs to the catalog.
Reads tags, pushes audio and cover through the backend upload endpoint and
registers each song.
"""

import concurrent.futures
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from rich.progress import Progress

from shared.constants import DEFAULT_COVER_URL
from shared.errors import ServiceError
from shared.models import Track
from player.api_client import ApiClient
from setup_tool.audio import AudioProcessor

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    path: Path
    track: Optional[Track] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.track is not None


class SongUploader:
    """Handles scanning and uploading of song files."""

    def __init__(self, api: ApiClient, default_cover_url: str = DEFAULT_COVER_URL):
        self.api = api
        self.default_cover_url = default_cover_url

    def scan(self, paths: Iterable[str]) -> List[Path]:
        """
        Collect supported audio files from files and (recursively) directories.
        """
        files: List[Path] = []
        for path in paths:
            path_obj = Path(path).expanduser().resolve()
            if not path_obj.exists():
                logger.warning(f"Not found: {path}")
                continue

            if path_obj.is_file():
                if AudioProcessor.is_supported_format(str(path_obj)):
                    files.append(path_obj)
                continue

            for root, _, filenames in os.walk(str(path_obj)):
                for filename in sorted(filenames):
                    file_path = Path(root) / filename
                    if AudioProcessor.is_supported_format(str(file_path)):
                        files.append(file_path)
        return files

    def upload_song(self, file_path: Path, title: Optional[str] = None,
                    artist: Optional[str] = None, genre: Optional[str] = None,
                    cover_path: Optional[str] = None) -> Track:
        """
        Upload one song: audio first, then the cover, then the catalog entry.

        Explicit title/artist/genre override the file's tags.

        Raises:
            ServiceError: If the audio upload or song creation fails
        """
        metadata = AudioProcessor.extract_metadata(str(file_path))
        title = title or metadata['title']
        artist = artist or metadata['artist']
        genre = genre or metadata['genre']

        audio_url = self.api.upload_file(str(file_path))
        cover_url = self._upload_cover(file_path, cover_path)

        track = self.api.create_song(title, artist, genre, audio_url, cover_url)
        logger.info(f"Uploaded {track.title} by {track.artist} ({track.id})")
        return track

    def _upload_cover(self, file_path: Path, cover_path: Optional[str]) -> str:
        if cover_path:
            image_data = Path(cover_path).read_bytes()
        else:
            image_data = AudioProcessor.extract_cover_art(str(file_path))
        if not image_data:
            return self.default_cover_url

        compressed = AudioProcessor.compress_cover(image_data)
        if compressed is None:
            return self.default_cover_url

        try:
            return self.api.upload_bytes(compressed, f"{file_path.stem}.jpg", "image/jpeg")
        except ServiceError as e:
            logger.warning(f"Cover upload failed for {file_path.name}, using default cover: {e.message}")
            return self.default_cover_url

    def run(self, paths: Iterable[str], parallel: int = 2,
            progress: Optional[Progress] = None) -> List[UploadResult]:
        """Upload every supported file under ``paths``. One failure does not stop the batch."""
        files = self.scan(paths)
        if not files:
            return []

        if progress:
            task = progress.add_task(f"[green]Uploading {len(files)} files...", total=len(files))

        results: List[UploadResult] = []
        with ThreadPoolExecutor(max_workers=parallel) as executor:
            future_to_file = {executor.submit(self.upload_song, f): f for f in files}

            for future in concurrent.futures.as_completed(future_to_file):
                file_path = future_to_file[future]
                try:
                    results.append(UploadResult(file_path, track=future.result()))
                except (ServiceError, OSError) as e:
                    logger.error(f"Failed to upload {file_path.name}: {e}")
                    results.append(UploadResult(file_path, error=str(e)))
                if progress:
                    progress.advance(task)

        order = {f: i for i, f in enumerate(files)}
        results.sort(key=lambda r: order[r.path])
        return results
