"""
Runtime configuration for the pod, the API server and the blob tool.

Values come from the environment (a local .env is honoured), falling back
to the saved store config written by ``blob_tool init``.
"""

import json
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from shared.constants import (
    CONFIG_FILENAME,
    DEFAULT_API_URL,
    DEFAULT_AUDIO_BASE_URL,
    DEFAULT_API_PORT,
    DEFAULT_CONFIG_DIR,
)
from shared.models import StorageProvider

load_dotenv()


def config_path() -> Path:
    return Path(DEFAULT_CONFIG_DIR).expanduser() / CONFIG_FILENAME


def audio_base_url() -> str:
    """Base URL all song keys are relative to. Never has a trailing slash."""
    base = os.getenv("AUDIO_BASE_URL") or DEFAULT_AUDIO_BASE_URL
    return base.rstrip("/")


def api_url() -> str:
    return (os.getenv("SOLANAPOD_API_URL") or DEFAULT_API_URL).rstrip("/")


def api_port() -> int:
    try:
        return int(os.getenv("SOLANAPOD_PORT", DEFAULT_API_PORT))
    except ValueError:
        return DEFAULT_API_PORT


def pinned_track_path() -> Optional[str]:
    """Explicit blob path for the pinned song, skipping the resolve call."""
    value = (os.getenv("PINNED_TRACK_PATH") or "").strip()
    return value or None


@dataclass
class StoreConfig:
    """
    Blob store configuration.

    For R2 the credentials are an account id plus an access key pair; for
    the local provider only ``base_path`` matters.
    """
    provider: StorageProvider
    bucket: str = ""
    account_id: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    public_url: str = ""
    base_path: str = ""

    def credentials(self) -> Dict[str, str]:
        """Credentials dictionary handed to ``authenticate``."""
        if self.provider == StorageProvider.LOCAL:
            return {'base_path': self.base_path, 'bucket': self.bucket, 'public_url': self.public_url}
        return {
            'account_id': self.account_id,
            'access_key_id': self.access_key_id,
            'secret_access_key': self.secret_access_key,
            'bucket': self.bucket,
            'public_url': self.public_url,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['provider'] = self.provider.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StoreConfig':
        import dataclasses
        field_names = {f.name for f in dataclasses.fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in field_names}
        filtered_data['provider'] = StorageProvider(filtered_data.get('provider', 'r2'))
        return cls(**filtered_data)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'StoreConfig':
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def from_env(cls, saved: Optional['StoreConfig'] = None) -> Optional['StoreConfig']:
        """
        Build config from environment variables layered over ``saved``.

        Returns None when neither the environment nor the saved file name a
        provider.
        """
        base = saved.to_dict() if saved else {}
        env_map = {
            'provider': "BLOB_PROVIDER",
            'bucket': "R2_BUCKET",
            'account_id': "R2_ACCOUNT_ID",
            'access_key_id': "R2_ACCESS_KEY_ID",
            'secret_access_key': "R2_SECRET_ACCESS_KEY",
            'public_url': "R2_PUBLIC_URL",
            'base_path': "BLOB_LOCAL_PATH",
        }
        for key, env_name in env_map.items():
            value = os.getenv(env_name)
            if value:
                base[key] = value

        if 'provider' not in base:
            if base.get('base_path'):
                base['provider'] = StorageProvider.LOCAL.value
            elif base.get('account_id'):
                base['provider'] = StorageProvider.CLOUDFLARE_R2.value
            else:
                return None
        try:
            return cls.from_dict(base)
        except ValueError:
            choices = ", ".join(p.value for p in StorageProvider)
            raise ValueError(f"Unknown BLOB_PROVIDER {base['provider']!r} (expected one of: {choices})")

    def save(self, path: Optional[Path] = None) -> Path:
        target = path or config_path()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.to_json())
        return target


def load_store_config(path: Optional[Path] = None) -> Optional[StoreConfig]:
    """
    Load the saved config (if any) and overlay the environment.

    A corrupt saved file is ignored; an unknown provider name raises
    ValueError.
    """
    saved = None
    source = path or config_path()
    if source.exists():
        try:
            saved = StoreConfig.from_json(source.read_text())
        except (ValueError, KeyError):
            saved = None
    return StoreConfig.from_env(saved)
