from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field

from common.gateway import ENV_GATEWAY_URL, GardenGatewayClient
from common.interfaces import ChainWriter, FheInstance, WalletContext
from state.kv_store import (
    DEFAULT_PREFIX,
    ENV_BUCKET,
    ENV_FERNET_KEY,
    ENV_PREFIX,
    JsonFileKeyValueStore,
    KeyValueStore,
    S3KeyValueStore,
)
from state.signatures import DEFAULT_DURATION_DAYS
from .controller import GardenController
from .deployments import Deployments
from .session import DEFAULT_MATURITY_THRESHOLD


ENV_DEPLOYMENTS = "GARDEN_DEPLOYMENTS"
ENV_MATURITY_THRESHOLD = "GARDEN_MATURITY_THRESHOLD"
ENV_SIGNATURE_DAYS = "GARDEN_SIGNATURE_DAYS"


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _require(v: Optional[str], what: str) -> str:
    if not v:
        raise RuntimeError(f"Missing required configuration: {what}")
    return v


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as ex:
        raise RuntimeError(f"Invalid integer for {name}: {raw!r}") from ex


class GardenSettings(BaseModel):
    """
    Runtime configuration of a garden controller.

    Environment
    - GARDEN_GATEWAY_URL (required): base URL of the read gateway
    - GARDEN_DEPLOYMENTS: JSON object of chain id -> contract address
    - GARDEN_MATURITY_THRESHOLD: decrypted growth needed to mark mature (default 100)
    - GARDEN_SIGNATURE_DAYS: validity of new decryption signatures (default 365)
    - GARDEN_SIG_BUCKET / GARDEN_SIG_PREFIX / GARDEN_FERNET_KEY: S3 signature
      store; when the bucket is unset signatures go to a local JSON file
    """

    gateway_url: str
    deployments_json: Optional[str] = None
    maturity_threshold: int = Field(default=DEFAULT_MATURITY_THRESHOLD, ge=0)
    signature_days: int = Field(default=DEFAULT_DURATION_DAYS, gt=0)
    sig_bucket: Optional[str] = None
    sig_prefix: str = DEFAULT_PREFIX
    fernet_key: Optional[str] = None

    @classmethod
    def from_env(cls) -> "GardenSettings":
        bucket = _getenv(ENV_BUCKET)
        fernet_key = _getenv(ENV_FERNET_KEY)
        if bucket:
            fernet_key = _require(fernet_key, ENV_FERNET_KEY)
        return cls(
            gateway_url=_require(_getenv(ENV_GATEWAY_URL), ENV_GATEWAY_URL),
            deployments_json=_getenv(ENV_DEPLOYMENTS),
            maturity_threshold=_getenv_int(ENV_MATURITY_THRESHOLD, DEFAULT_MATURITY_THRESHOLD),
            signature_days=_getenv_int(ENV_SIGNATURE_DAYS, DEFAULT_DURATION_DAYS),
            sig_bucket=bucket,
            sig_prefix=_getenv(ENV_PREFIX, DEFAULT_PREFIX) or DEFAULT_PREFIX,
            fernet_key=fernet_key,
        )

    def deployments(self) -> Deployments:
        return Deployments.from_json(self.deployments_json)

    def signature_store(self, *, s3: Optional[object] = None) -> KeyValueStore:
        if self.sig_bucket:
            return S3KeyValueStore(
                s3=s3,
                bucket=self.sig_bucket,
                fernet_key=_require(self.fernet_key, ENV_FERNET_KEY),
                prefix=self.sig_prefix,
            )
        return JsonFileKeyValueStore()


def build_controller(
    settings: GardenSettings,
    *,
    wallet: WalletContext,
    writer: Optional[ChainWriter] = None,
    instance: Optional[FheInstance] = None,
    reader: Optional[GardenGatewayClient] = None,
    storage: Optional[KeyValueStore] = None,
) -> GardenController:
    """Wire a controller from settings; the caller owns (and closes) the reader."""
    return GardenController(
        wallet=wallet,
        deployments=settings.deployments(),
        storage=storage if storage is not None else settings.signature_store(),
        reader=reader if reader is not None else GardenGatewayClient(settings.gateway_url),
        writer=writer,
        instance=instance,
        maturity_threshold=settings.maturity_threshold,
        signature_days=settings.signature_days,
    )


__all__ = ["GardenSettings", "build_controller"]
