"""
API server for SolanaPod.

Thin routes over the blob store (list, find, upload), the merged music
library, and the playback relay the native shell listens to.
"""

import logging
import os
import time
from typing import Optional

from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO

from shared.catalog import build_catalog
from shared.constants import LIST_BLOBS_LIMIT, RESOLVE_BLOBS_LIMIT, UPLOAD_PREFIX, APP_NAME
from shared.playback_state import get_state as get_playback_state, put_state as put_playback_state, get_scope_from_request
from blob_tool.provider_factory import StorageProviderFactory
from blob_tool.storage_provider import BlobStore, BlobStoreError, filter_audio, find_blob
from player.library import merge_blob_tracks, find_song

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)
socketio = SocketIO(app, cors_allowed_origins="*")

# Global instances
blob_store: Optional[BlobStore] = None


def get_store() -> BlobStore:
    """Return the configured blob store, connecting on first use."""
    global blob_store
    if blob_store is None:
        blob_store = StorageProviderFactory.from_config()
    return blob_store


def set_store(store: Optional[BlobStore]) -> None:
    """Replace the blob store (None forces a reconnect on next use)."""
    global blob_store
    blob_store = store


def _error_message(error: Exception, default: str) -> str:
    return str(error) or default


@app.route('/api/health')
def health_check():
    return jsonify({"status": "healthy"})


@app.route('/')
def home():
    return jsonify({
        "status": "online",
        "service": f"{APP_NAME} API",
        "version": "1.0.0"
    })


# --- Blob Store Endpoints ---

@app.route('/api/list-blobs', methods=['GET'])
def list_blobs():
    """Blob pathnames and URLs, optionally under ?prefix=."""
    prefix = request.args.get('prefix', '')
    try:
        blobs = get_store().list_blobs(prefix=prefix or None, limit=LIST_BLOBS_LIMIT)
        return jsonify({"pathnames": [b.to_track() for b in blobs]})
    except Exception as e:
        logger.error("[list-blobs] %s", e)
        return jsonify({"error": _error_message(e, "List failed")}), 500


@app.route('/api/blob-resolve', methods=['GET'])
def blob_resolve():
    """
    First blob whose pathname contains every term of ?q= (case-insensitive).
    Lookup failures are reported as found=false rather than an error status.
    """
    q = (request.args.get('q') or '').strip().lower()
    if not q:
        return jsonify({"error": "Missing q (search query)"}), 400
    try:
        blobs = get_store().list_blobs(limit=RESOLVE_BLOBS_LIMIT)
        match = find_blob(blobs, q)
        if match is None:
            return jsonify({"found": False, "pathnames": [b.pathname for b in blobs]})
        return jsonify({"found": True, "pathname": match.pathname, "url": match.url})
    except Exception as e:
        logger.error("[blob-resolve] %s", e)
        return jsonify({"found": False, "error": _error_message(e, "Resolve failed")}), 200


@app.route('/api/audio/tracks', methods=['GET'])
def audio_tracks():
    """Every audio blob in the store, for merging into the library."""
    try:
        blobs = get_store().list_blobs(limit=LIST_BLOBS_LIMIT)
        return jsonify({"tracks": [b.to_track() for b in filter_audio(blobs)]})
    except Exception as e:
        logger.error("[audio/tracks] %s", e)
        return jsonify({"error": _error_message(e, "List failed")}), 500


@app.route('/api/audio/resolve/<song_id>', methods=['GET'])
def audio_resolve(song_id):
    """Current store URL for a catalog song that carries search terms."""
    ref = find_song(build_catalog(), song_id)
    if ref is None or not ref[2].resolve_query:
        return jsonify({"error": "Unknown song"}), 404
    try:
        blobs = get_store().list_blobs(limit=RESOLVE_BLOBS_LIMIT)
        match = find_blob(blobs, ref[2].resolve_query)
        if match is None:
            return jsonify({"error": "Not found", "pathnames": [b.pathname for b in blobs]}), 404
        return jsonify({"url": match.url, "pathname": match.pathname})
    except Exception as e:
        logger.error("[audio/resolve] %s", e)
        return jsonify({"error": _error_message(e, "Failed")}), 500


@app.route('/api/upload', methods=['POST'])
def upload():
    """
    Multipart upload: "file" plus optional "path". Without a path the blob
    goes to uploads/<epoch ms>-<filename>.
    """
    try:
        file = request.files.get('file')
        if file is None or not file.filename:
            return jsonify({"error": "Missing file"}), 400
        path = (request.form.get('path') or '').strip()
        filename = os.path.basename(file.filename)
        blob_path = path or f"{UPLOAD_PREFIX}/{int(time.time() * 1000)}-{filename}"
        blob = get_store().put(blob_path, file.read(), content_type=file.mimetype)
        return jsonify({"url": blob.url})
    except Exception as e:
        logger.error("[upload] %s", e)
        return jsonify({"error": _error_message(e, "Upload failed")}), 500


# --- Library Endpoints ---

@app.route('/api/library', methods=['GET'])
def get_library():
    """Static catalog merged with the store's audio tracks."""
    library = build_catalog()
    try:
        blobs = filter_audio(get_store().list_blobs(limit=LIST_BLOBS_LIMIT))
        library = merge_blob_tracks(library, [b.to_track() for b in blobs])
    except BlobStoreError as e:
        logger.warning("[library] store unavailable, serving catalog only: %s", e)
    return jsonify({"artists": [a.to_dict() for a in library]})


# --- Playback Relay ---

@app.route('/api/playback', methods=['GET'])
def get_playback():
    scope = get_scope_from_request()
    state = get_playback_state(scope, request.args.get('device_id'))
    if state is None:
        return jsonify({"error": "No playback"}), 404
    return jsonify(state)


@app.route('/api/playback', methods=['POST'])
def post_playback():
    payload = request.get_json(silent=True)
    state = put_playback_state(get_scope_from_request(), payload or {})
    if state is None:
        return jsonify({"error": "Expected a playback message"}), 400
    socketio.emit('playback', state)
    return jsonify({"status": "ok"})


# --- Server Management ---

def start_api(port: int = 3000, debug: bool = False):
    logger.info("Starting %s API on 0.0.0.0:%s", APP_NAME, port)
    try:
        get_store()
        logger.info("Blob store connected")
    except BlobStoreError as e:
        logger.warning("Blob store unavailable: %s", e)
    socketio.run(app, host='0.0.0.0', port=port, debug=debug, allow_unsafe_werkzeug=True)


if __name__ == '__main__':
    start_api()
