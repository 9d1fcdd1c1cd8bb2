"""
Shared constants used across the platform.
"""

# Audio formats accepted by the admin upload flow
SUPPORTED_AUDIO_FORMATS = [
    ".mp3", ".flac", ".ogg", ".m4a", ".wav",
    ".opus", ".aac"
]

AUDIO_CONTENT_TYPES = {
    ".mp3": "audio/mpeg",
    ".flac": "audio/flac",
    ".ogg": "audio/ogg",
    ".opus": "audio/ogg",
    ".m4a": "audio/mp4",
    ".aac": "audio/aac",
    ".wav": "audio/wav",
}

# History settings
HISTORY_MAX_ENTRIES = 50
RECENTLY_PLAYED_MAX_ENTRIES = 6

# Catalog settings
CATALOG_CACHE_TTL_SECONDS = 5 * 60
RECENTLY_ADDED_LIMIT = 12

# Likes are pulled from the server on this cadence
DEFAULT_LIKE_SYNC_INTERVAL = 60  # seconds

# Cover art is downscaled before upload
COVER_MAX_SIZE = (800, 800)
COVER_JPEG_QUALITY = 70
DEFAULT_COVER_URL = "https://default-cover-url.jpg"

# Upload settings
UPLOAD_FOLDER = "songs"
MAX_UPLOAD_SIZE = 50 * 1024 * 1024  # 50MB, same as the JSON body limit

# Player defaults
DEFAULT_VOLUME = 1.0
PLAY_START_TIMEOUT = 15  # seconds to wait for mpv to leave core-idle

# Configuration paths
DEFAULT_CONFIG_DIR = "~/.config/revify"
DEFAULT_DATA_DIR = "~/.local/share/revify"
LOCAL_STATE_FILENAME = "player_state.json"
DATABASE_FILENAME = "revify.db"

# Network Settings
DEFAULT_API_URL = "http://localhost:5000"
DEFAULT_PORT = 5000
DEFAULT_NETWORK_TIMEOUT = 30  # seconds

# Accounts
MIN_USERNAME_LENGTH = 3
PASSWORD_HASH_ITERATIONS = 390000
