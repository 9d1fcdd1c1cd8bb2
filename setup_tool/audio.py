"""
Audio file processing utilities.

This module reads song tags and embedded cover art for the admin upload flow,
and prepares covers for upload.
"""

import io
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from mutagen import File as MutagenFile, MutagenError
from mutagen.flac import FLAC
from mutagen.id3 import ID3, ID3NoHeaderError
from mutagen.mp3 import MP3
from mutagen.mp4 import MP4
from mutagen.oggvorbis import OggVorbis
from PIL import Image, UnidentifiedImageError

from shared.constants import COVER_JPEG_QUALITY, COVER_MAX_SIZE, SUPPORTED_AUDIO_FORMATS

logger = logging.getLogger(__name__)

UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_GENRE = "Unknown Genre"


class AudioProcessor:
    """Handler for audio file operations."""

    @staticmethod
    def is_supported_format(file_path: str) -> bool:
        return Path(file_path).suffix.lower() in SUPPORTED_AUDIO_FORMATS

    @staticmethod
    def extract_metadata(file_path: str) -> Dict[str, Any]:
        """
        Extract metadata from audio file using mutagen.

        Args:
            file_path: Path to audio file

        Returns:
            Dictionary with metadata:
                - title: Song title (file name without extension if untagged)
                - artist: Artist name
                - genre: Genre
                - duration: Duration in seconds
                - cover_art: Boolean indicating if cover art is present
        """
        metadata = {
            'title': Path(file_path).stem,
            'artist': UNKNOWN_ARTIST,
            'genre': UNKNOWN_GENRE,
            'duration': 0,
            'cover_art': False,
        }
        try:
            audio = MutagenFile(file_path, easy=False)
        except (MutagenError, OSError) as e:
            logger.warning(f"Failed to read tags from {file_path}: {e}")
            return metadata
        if audio is None:
            logger.warning(f"Unrecognised audio file: {file_path}")
            return metadata

        if getattr(audio, 'info', None) is not None and hasattr(audio.info, 'length'):
            metadata['duration'] = int(audio.info.length)

        tags = audio.tags
        if isinstance(audio, MP3):
            if tags:
                AudioProcessor._set(metadata, 'title', tags.get('TIT2'))
                AudioProcessor._set(metadata, 'artist', tags.get('TPE1'))
                AudioProcessor._set(metadata, 'genre', tags.get('TCON'))
                metadata['cover_art'] = any(key.startswith('APIC') for key in tags.keys())

        elif isinstance(audio, (FLAC, OggVorbis)):
            if tags:
                AudioProcessor._set(metadata, 'title', tags.get('title'))
                AudioProcessor._set(metadata, 'artist', tags.get('artist'))
                AudioProcessor._set(metadata, 'genre', tags.get('genre'))
            if isinstance(audio, FLAC):
                metadata['cover_art'] = bool(audio.pictures)

        elif isinstance(audio, MP4):
            if tags:
                AudioProcessor._set(metadata, 'title', tags.get('\xa9nam'))
                AudioProcessor._set(metadata, 'artist', tags.get('\xa9ART'))
                AudioProcessor._set(metadata, 'genre', tags.get('\xa9gen'))
                metadata['cover_art'] = 'covr' in tags

        return metadata

    @staticmethod
    def _set(metadata: Dict[str, Any], key: str, value) -> None:
        # ID3 frames and Vorbis comments both hold a list of strings
        if value is None:
            return
        if hasattr(value, 'text'):
            value = value.text
        if isinstance(value, list):
            value = value[0] if value else None
        text = str(value).strip() if value is not None else ""
        if text:
            metadata[key] = text

    @staticmethod
    def extract_cover_art(file_path: str) -> Optional[bytes]:
        """
        Extract embedded album art from audio file.

        Returns:
            Image data as bytes, or None if no cover art found
        """
        ext = Path(file_path).suffix.lower()
        try:
            if ext == '.mp3':
                try:
                    audio = ID3(file_path)
                except ID3NoHeaderError:
                    return None
                for key in audio.keys():
                    if key.startswith('APIC'):
                        return audio[key].data

            elif ext == '.flac':
                audio = FLAC(file_path)
                if audio.pictures:
                    return audio.pictures[0].data

            elif ext in ('.m4a', '.mp4'):
                audio = MP4(file_path)
                if audio.tags and 'covr' in audio.tags:
                    return bytes(audio.tags['covr'][0])

            return None

        except (MutagenError, OSError) as e:
            logger.warning(f"Error extracting cover art from {file_path}: {e}")
            return None

    @staticmethod
    def compress_cover(image_data: bytes, max_size=COVER_MAX_SIZE,
                       quality: int = COVER_JPEG_QUALITY) -> Optional[bytes]:
        """
        Downscale a cover to fit ``max_size`` (keeping aspect ratio) and re-encode as JPEG.

        Returns:
            JPEG bytes, or None if the data is not a readable image
        """
        try:
            with Image.open(io.BytesIO(image_data)) as img:
                img = img.convert('RGB')
                img.thumbnail(max_size, Image.Resampling.LANCZOS)
                out = io.BytesIO()
                img.save(out, format='JPEG', quality=quality, optimize=True)
                return out.getvalue()
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Could not process cover image: {e}")
            return None
