"""
REST API Server for Revify.
Serves the song catalog, accounts, likes and playlists to the player and admin tool,
and proxies uploads to the configured asset host.
"""

import base64
import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import unquote_to_bytes

from flask import Blueprint, Flask, current_app, jsonify, request, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.exceptions import HTTPException

from shared.config import CORS_ORIGINS, PORT, STORAGE_PROVIDER, storage_credentials
from shared.constants import MAX_UPLOAD_SIZE, MIN_USERNAME_LENGTH, UPLOAD_FOLDER
from shared.crypto import hash_password, verify_password
from shared.database import DatabaseManager
from shared.errors import NotFound, ServiceError
from shared.models import StorageProvider
from setup_tool.local_provider import LocalStorageProvider
from setup_tool.provider_factory import StorageProviderFactory

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__)
socketio = SocketIO(cors_allowed_origins="*")


def create_app(database: Optional[DatabaseManager] = None, storage=None) -> Flask:
    """
    Build the Flask application.

    Args:
        database: Store to use; defaults to the configured SQLite file
        storage: Asset host; defaults to the configured provider, connected lazily
    """
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_SIZE
    app.config["REVIFY_DATABASE"] = database
    app.config["REVIFY_STORAGE"] = storage

    CORS(app, origins=CORS_ORIGINS)
    app.register_blueprint(api)
    socketio.init_app(app)

    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        return jsonify({"message": e.message}), e.status or 500

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"message": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.exception("Server error")
        return jsonify({"message": "Internal server error"}), 500

    return app


def get_db() -> DatabaseManager:
    if current_app.config.get("REVIFY_DATABASE") is None:
        logger.info("Opening database...")
        current_app.config["REVIFY_DATABASE"] = DatabaseManager()
    return current_app.config["REVIFY_DATABASE"]


def get_storage():
    if current_app.config.get("REVIFY_STORAGE") is None:
        provider_type = StorageProvider(STORAGE_PROVIDER)
        logger.info(f"Connecting to {StorageProviderFactory.get_provider_name(provider_type)}...")
        provider = StorageProviderFactory.connect(provider_type, storage_credentials())
        if provider is None:
            raise ServiceError("Storage provider is not available", 503)
        current_app.config["REVIFY_STORAGE"] = provider
    return current_app.config["REVIFY_STORAGE"]


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def parse_data_url(data_url: str) -> Tuple[bytes, str]:
    """
    Decode a ``data:`` URL into bytes and its content type.

    Raises:
        ValueError: If the string is not a data URL or the payload is corrupt
    """
    header, sep, payload = data_url.partition(",")
    if not sep or not header.startswith("data:"):
        raise ValueError("Invalid data URL")
    meta = header[len("data:"):]
    if meta.endswith(";base64"):
        content_type = meta[:-len(";base64")]
        data = base64.b64decode(payload, validate=True)
    else:
        content_type = meta
        data = unquote_to_bytes(payload)
    return data, content_type or "application/octet-stream"


def _absolute_url(url: str) -> str:
    # Local storage hands out server-relative paths
    if url.startswith("/"):
        return request.host_url.rstrip("/") + url
    return url


# --- General ---

@api.route('/')
def home():
    return "Revify API is running"


@api.route('/api/health')
def health_check():
    return jsonify({"status": "healthy"})


# --- Song Endpoints ---

@api.route('/api/songs', methods=['GET'])
def list_songs():
    return jsonify([t.to_api_dict() for t in get_db().get_all_songs()])


@api.route('/api/songs/<song_id>', methods=['GET'])
def get_song(song_id):
    track = get_db().get_song(song_id)
    if not track:
        raise NotFound("Song not found")
    return jsonify(track.to_api_dict())


@api.route('/api/songs', methods=['POST'])
def create_song():
    data = _json_body()
    missing = [k for k in ("title", "artist", "genre", "audioUrl", "coverUrl")
               if not str(data.get(k) or "").strip()]
    if missing:
        return jsonify({"message": f"Missing required fields: {', '.join(missing)}"}), 400

    track = get_db().add_song(
        title=data["title"].strip(),
        artist=data["artist"].strip(),
        genre=data["genre"].strip(),
        audio_url=data["audioUrl"],
        cover_url=data["coverUrl"],
    )
    logger.info(f"Song added: {track.title} ({track.id})")
    socketio.emit('library_updated')
    return jsonify(track.to_api_dict()), 201


@api.route('/api/songs/<song_id>', methods=['DELETE'])
def delete_song(song_id):
    if not get_db().delete_song(song_id):
        raise NotFound("Song not found")
    logger.info(f"Song deleted: {song_id}")
    socketio.emit('library_updated')
    return jsonify({"message": "Song deleted"})


# --- Upload Endpoints ---

@api.route('/api/upload', methods=['POST'])
def upload():
    """Store a multipart ``file`` or a JSON ``data`` URL on the asset host. Returns ``{url}``."""
    upload_file = request.files.get('file')
    if upload_file is not None:
        data = upload_file.read()
        content_type = upload_file.mimetype or "application/octet-stream"
        ext = Path(upload_file.filename or "").suffix.lower()
    else:
        data_url = _json_body().get('data')
        if not data_url:
            return jsonify({"message": "No file uploaded"}), 400
        try:
            data, content_type = parse_data_url(data_url)
        except ValueError as e:
            return jsonify({"message": str(e)}), 400
        ext = ""

    if not ext:
        ext = mimetypes.guess_extension(content_type) or ""

    key = f"{UPLOAD_FOLDER}/{uuid.uuid4().hex}{ext}"
    storage = get_storage()
    if not storage.upload_bytes(data, key, content_type=content_type):
        return jsonify({"message": "Upload failed"}), 500

    logger.info(f"Uploaded {len(data)} bytes to {key}")
    return jsonify({"url": _absolute_url(storage.get_public_url(key))})


@api.route('/media/<path:key>', methods=['GET'])
def serve_media(key):
    storage = get_storage()
    if not isinstance(storage, LocalStorageProvider):
        raise NotFound("Media is served by the asset host")
    return send_from_directory(storage.base_path, key)


# --- Account Endpoints ---

@api.route('/api/auth/register', methods=['POST'])
def register():
    data = _json_body()
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    if len(username) < MIN_USERNAME_LENGTH or not password:
        return jsonify({"message": f"Username must be at least {MIN_USERNAME_LENGTH} characters and password is required"}), 400

    db = get_db()
    if not db.create_user(username, hash_password(password)):
        return jsonify({"message": "Username already exists"}), 409

    logger.info(f"User registered: {username}")
    return jsonify(db.get_user(username).to_dict()), 201


@api.route('/api/auth/login', methods=['POST'])
def login():
    data = _json_body()
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    db = get_db()
    stored = db.get_password_hash(username)
    if not stored or not verify_password(password, stored):
        return jsonify({"message": "Invalid username or password"}), 401
    return jsonify(db.get_user(username).to_dict())


@api.route('/api/users/<username>', methods=['GET'])
def get_user(username):
    user = get_db().get_user(username)
    if not user:
        raise NotFound("User not found")
    return jsonify(user.to_dict())


# --- Like Endpoints ---

def _require_user(db: DatabaseManager, username: str):
    if not db.user_exists(username):
        raise NotFound("User not found")


@api.route('/api/users/<username>/likes/<song_id>', methods=['POST'])
def like_song(username, song_id):
    db = get_db()
    _require_user(db, username)
    if not db.get_song(song_id) or not db.add_like(username, song_id):
        raise NotFound("Song not found")
    return jsonify(db.get_user(username).to_dict())


@api.route('/api/users/<username>/likes/<song_id>', methods=['DELETE'])
def unlike_song(username, song_id):
    db = get_db()
    _require_user(db, username)
    db.remove_like(username, song_id)
    return jsonify(db.get_user(username).to_dict())


# --- Playlist Endpoints ---

def _require_playlist(db: DatabaseManager, username: str, playlist_id: str):
    _require_user(db, username)
    playlist = db.get_playlist(username, playlist_id)
    if not playlist:
        raise NotFound("Playlist not found")
    return playlist


@api.route('/api/users/<username>/playlists', methods=['GET'])
def list_playlists(username):
    db = get_db()
    _require_user(db, username)
    return jsonify([p.to_dict() for p in db.get_playlists(username)])


@api.route('/api/users/<username>/playlists', methods=['POST'])
def create_playlist(username):
    db = get_db()
    _require_user(db, username)
    name = (_json_body().get('name') or '').strip()
    if not name:
        return jsonify({"message": "name is required"}), 400
    playlist = db.create_playlist(username, name)
    return jsonify(playlist.to_dict()), 201


@api.route('/api/users/<username>/playlists/<playlist_id>', methods=['GET'])
def get_playlist(username, playlist_id):
    return jsonify(_require_playlist(get_db(), username, playlist_id).to_dict())


@api.route('/api/users/<username>/playlists/<playlist_id>', methods=['PUT'])
def rename_playlist(username, playlist_id):
    db = get_db()
    _require_playlist(db, username, playlist_id)
    name = (_json_body().get('name') or '').strip()
    if not name:
        return jsonify({"message": "name is required"}), 400
    db.rename_playlist(username, playlist_id, name)
    return jsonify(db.get_playlist(username, playlist_id).to_dict())


@api.route('/api/users/<username>/playlists/<playlist_id>', methods=['DELETE'])
def delete_playlist(username, playlist_id):
    db = get_db()
    _require_playlist(db, username, playlist_id)
    db.delete_playlist(username, playlist_id)
    return jsonify({"message": "Playlist deleted"})


@api.route('/api/users/<username>/playlists/<playlist_id>/songs', methods=['POST'])
def add_song_to_playlist(username, playlist_id):
    db = get_db()
    _require_playlist(db, username, playlist_id)
    song_id = _json_body().get('songId')
    if not song_id:
        return jsonify({"message": "songId is required"}), 400
    if not db.get_song(song_id) or not db.add_song_to_playlist(playlist_id, song_id):
        raise NotFound("Song not found")
    return jsonify(db.get_playlist(username, playlist_id).to_dict())


@api.route('/api/users/<username>/playlists/<playlist_id>/songs/<song_id>', methods=['DELETE'])
def remove_song_from_playlist(username, playlist_id, song_id):
    db = get_db()
    _require_playlist(db, username, playlist_id)
    db.remove_song_from_playlist(playlist_id, song_id)
    return jsonify(db.get_playlist(username, playlist_id).to_dict())


# --- Server Management ---

def start_api(port: int = PORT, debug: bool = False):
    print("--- Revify API Boot Sequence ---")
    print(f"Target Port: {port}")

    app = create_app()
    with app.app_context():
        get_db()
        logger.info("API: Database initialized.")

    print(f"Local:  http://localhost:{port}/")
    socketio.run(app, host='0.0.0.0', port=port, debug=debug, allow_unsafe_werkzeug=True)


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    start_api()


if __name__ == '__main__':
    main()
