from __future__ import annotations

import hashlib
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Protocol

import boto3
from botocore.exceptions import ClientError
from cryptography.fernet import Fernet, InvalidToken


# Environment variable names for convenience configuration
ENV_BUCKET = "GARDEN_SIG_BUCKET"
ENV_PREFIX = "GARDEN_SIG_PREFIX"
ENV_FERNET_KEY = "GARDEN_FERNET_KEY"
ENV_STORE_DIR = "GARDEN_STORE_DIR"

DEFAULT_PREFIX = "decrypt-sigs/"


class KeyValueStore(Protocol):
    """String key-value storage scoped to one origin/user by the host."""

    def get(self, key: str) -> Optional[str]: ...

    def put(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore:
    """Process-local store; contents are lost on reload."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        self._data[key] = value

    def __len__(self) -> int:
        return len(self._data)


def _default_store_file() -> Path:
    base = os.environ.get(ENV_STORE_DIR)
    if base:
        return Path(base) / "garden_kv.json"
    return Path(".cache") / "garden_kv.json"


class JsonFileKeyValueStore:
    """
    Tiny JSON-file store: { key: value, ... }.

    - Loaded lazily on first access; a corrupt file is treated as empty.
    - Every `put` rewrites the whole file. Intended for local development.
    """

    def __init__(self, path: Optional[os.PathLike[str] | str] = None) -> None:
        self._path = Path(path) if path else _default_store_file()
        self._data: Dict[str, str] = {}
        self._loaded = False

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self._path.exists():
            return
        try:
            with self._path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError):
            self._data = {}
            return
        if isinstance(raw, dict):
            self._data = {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        self._ensure_loaded()
        return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        self._ensure_loaded()
        self._data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, sort_keys=True)


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a urlsafe base64-encoded 32-byte key."""
    if isinstance(key, str):
        key_bytes = key.encode("utf-8")
    else:
        key_bytes = key
    return Fernet(key_bytes)


@dataclass
class S3Location:
    bucket: str
    prefix: str

    def object_key(self, key: str) -> str:
        # Store keys embed addresses and separators; hash them into a flat name.
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return f"{self.prefix}{digest}"


class S3KeyValueStore:
    """
    S3-backed key-value store, values encrypted at rest using Fernet.

    Each key maps to one object `{prefix}{sha256(key)}`. Values hold the
    decryption keypair, so they are never written in the clear.

    - `get(key)` returns None when the object does not exist.
    - `get(key)` raises ValueError when the stored bytes cannot be decrypted.

    Environment variables (optional)
    - `GARDEN_SIG_BUCKET`: S3 bucket
    - `GARDEN_SIG_PREFIX`: object key prefix (default "decrypt-sigs/")
    - `GARDEN_FERNET_KEY`: urlsafe base64-encoded key for Fernet
    """

    def __init__(
        self,
        *,
        s3: Optional[object] = None,
        bucket: str,
        fernet_key: str | bytes,
        prefix: str = DEFAULT_PREFIX,
        region_name: Optional[str] = None,
    ) -> None:
        self._s3 = s3 or boto3.client("s3", region_name=region_name)
        self._loc = S3Location(bucket=bucket, prefix=prefix)
        self._fernet = _to_fernet(fernet_key)

    @classmethod
    def from_env(cls) -> "S3KeyValueStore":
        bucket = os.environ.get(ENV_BUCKET)
        fkey = os.environ.get(ENV_FERNET_KEY)
        prefix = os.environ.get(ENV_PREFIX) or DEFAULT_PREFIX
        if not bucket or not fkey:
            missing = [name for name, val in [(ENV_BUCKET, bucket), (ENV_FERNET_KEY, fkey)] if not val]
            raise RuntimeError(
                f"Missing required environment variables for S3 signature store: {', '.join(missing)}"
            )
        return cls(bucket=bucket, fernet_key=fkey, prefix=prefix)

    def get(self, key: str) -> Optional[str]:
        try:
            resp = self._s3.get_object(Bucket=self._loc.bucket, Key=self._loc.object_key(key))
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404"):
                return None
            raise

        body = resp["Body"].read()
        try:
            return self._fernet.decrypt(body).decode("utf-8")
        except InvalidToken as ex:
            raise ValueError("Failed to decrypt stored value: invalid Fernet token") from ex

    def put(self, key: str, value: str) -> None:
        ciphertext = self._fernet.encrypt(value.encode("utf-8"))
        self._s3.put_object(
            Bucket=self._loc.bucket,
            Key=self._loc.object_key(key),
            Body=ciphertext,
            ContentType="application/octet-stream",
        )


__all__ = [
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "S3KeyValueStore",
]
