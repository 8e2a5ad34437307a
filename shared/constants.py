"""
Shared constants used across the pod, the API server and the shell.
"""

# Audio server
DEFAULT_AUDIO_BASE_URL = "https://py2n3vivgwmjcs3y.public.blob.vercel-storage.com"

# Audio formats recognised as tracks in the blob store
AUDIO_EXTENSIONS = ["mp3", "wav", "m4a", "ogg", "aac", "flac"]

# Blob listing limits
LIST_BLOBS_LIMIT = 500
RESOLVE_BLOBS_LIMIT = 1000
UPLOAD_PREFIX = "uploads"

# Library merge
UNKNOWN_ARTIST = "Unknown Artist"
MERGED_ALBUM_NAME = "Tracks"
BLOB_SONG_ID_PREFIX = "blob-"

# Playback
DEFAULT_VOLUME = 50
VOLUME_STEP = 10
TIME_UPDATE_INTERVAL = 0.25  # seconds
HIDE_UI_DELAY = 5.0  # seconds in now playing before the chrome hides
PLAYBACK_HEARTBEAT_SECONDS = 2.0

# Click wheel
DEFAULT_SCROLL_THRESHOLD = 0.3  # radians
LONG_PRESS_SECONDS = 3.0

# Snake
SNAKE_GRID_SIZE = 14
SNAKE_TICK_SECONDS = 0.120
SNAKE_FOOD_ATTEMPTS = 100

# Native shell
SHELL_MIN_SPLASH_SECONDS = 1.0
SHELL_POLL_SECONDS = 1.0

# Device
DEFAULT_DEVICE_NAME = "Solana iPod"
APP_NAME = "SolanaPod"

# Configuration paths
DEFAULT_CONFIG_DIR = "~/.config/solanapod"
CONFIG_FILENAME = "config.json"

# Network Settings
DEFAULT_API_PORT = 3000
DEFAULT_API_URL = f"http://localhost:{DEFAULT_API_PORT}"
DEFAULT_NETWORK_TIMEOUT = 10  # seconds

# S3 Provider endpoints
CLOUDFLARE_R2_ENDPOINT_TEMPLATE = "https://{account_id}.r2.cloudflarestorage.com"
