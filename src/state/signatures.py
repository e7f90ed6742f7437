from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional, Sequence

from pydantic import ValidationError

from common.interfaces import FheInstance, Signer
from .kv_store import KeyValueStore
from .models import DecryptionSignature


logger = logging.getLogger(__name__)

DEFAULT_DURATION_DAYS = 365


def signature_storage_key(user_address: str, contract_addresses: Sequence[str]) -> str:
    """Key of the cached signature for one user and one contract set.

    Contract order and address case do not matter.
    """
    contracts = ",".join(sorted({a.lower() for a in contract_addresses}))
    return f"decrypt-sig:{user_address.lower()}:{contracts}"


async def _load(
    storage: KeyValueStore, key: str, user_address: str, contract_addresses: List[str], now: float
) -> Optional[DecryptionSignature]:
    try:
        raw = await asyncio.to_thread(storage.get, key)
    except ValueError:
        logger.warning("Stored decryption signature unreadable; re-signing", exc_info=True)
        return None
    if raw is None:
        return None
    try:
        sig = DecryptionSignature.model_validate_json(raw)
    except ValidationError:
        logger.warning("Stored decryption signature malformed; re-signing")
        return None
    if not sig.covers(user_address, contract_addresses):
        return None
    if not sig.is_valid(now):
        logger.info("Stored decryption signature expired at %s", sig.expires_at)
        return None
    return sig


async def _sign(
    instance: FheInstance,
    contract_addresses: List[str],
    signer: Signer,
    *,
    duration_days: int,
    now: float,
) -> DecryptionSignature:
    keypair = instance.generate_keypair()
    contracts = sorted({a.lower() for a in contract_addresses})
    start = int(now)
    eip712 = instance.create_eip712(keypair["publicKey"], contracts, start, duration_days)
    signature = await signer.sign_typed_data(eip712["domain"], eip712["types"], eip712["message"])
    return DecryptionSignature(
        public_key=keypair["publicKey"],
        private_key=keypair["privateKey"],
        signature=signature,
        contract_addresses=contracts,
        user_address=signer.address,
        start_timestamp=start,
        duration_days=duration_days,
    )


async def load_or_sign(
    instance: FheInstance,
    contract_addresses: Sequence[str],
    signer: Signer,
    storage: KeyValueStore,
    *,
    duration_days: int = DEFAULT_DURATION_DAYS,
    clock: Callable[[], float] = time.time,
) -> Optional[DecryptionSignature]:
    """
    Return a usable decryption signature for `signer` over `contract_addresses`.

    - Reuses the stored signature when it covers the same user and contract
      set and `now < start_timestamp + duration_days`.
    - Otherwise runs the signing ceremony (may prompt the user), persists the
      result to `storage`, and returns it.
    - Returns None if the signer rejects or fails the request. Callers treat
      that as terminal for the current attempt.
    """
    contracts = list(contract_addresses)
    user_address = signer.address
    key = signature_storage_key(user_address, contracts)

    cached = await _load(storage, key, user_address, contracts, clock())
    if cached is not None:
        return cached

    try:
        sig = await _sign(instance, contracts, signer, duration_days=duration_days, now=clock())
    except Exception:
        logger.warning("Signing ceremony failed for %s", user_address, exc_info=True)
        return None

    await asyncio.to_thread(storage.put, key, sig.model_dump_json())
    return sig


__all__ = ["DEFAULT_DURATION_DAYS", "load_or_sign", "signature_storage_key"]
