"""
SolanaPod

A click-wheel music player: a catalog merged with audio files from a blob
store (Cloudflare R2 or a local folder), played locally or through a
companion native shell.

Repository Structure:
- blob_tool/: CLI and providers for the blob store
- player/: pod controller, playback context, engines and terminal UI
- shell/: native shell that mirrors pod playback
- shared/: models, config, catalog and the API server
- tests/: unit tests

License: MIT
"""
