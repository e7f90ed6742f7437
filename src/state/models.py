from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


SECONDS_PER_DAY = 86_400

# Canonical handle of a ciphertext slot that was never written.
ZERO_HANDLE = "0x" + "00" * 32


def is_unwritten(handle: Optional[str]) -> bool:
    """True for a missing handle or the zero handle."""
    return not handle or handle == ZERO_HANDLE


class PlantInfo(BaseModel):
    """Public metadata of one plant as returned by `getPlantInfo(id)`."""

    plant_id: int = Field(..., ge=0)
    owner: str
    planted_at: int = Field(..., description="Block timestamp of the plant call")
    is_mature: bool = False


class PlantSnapshot(PlantInfo):
    growth_handle: Optional[str] = Field(
        default=None,
        description="Ciphertext handle of the growth value; None when never written",
    )


class ClearValue(BaseModel):
    """Plaintext known for one ciphertext handle.

    Only meaningful while `handle` is still the live growth handle; a new
    handle makes the entry stale and its plaintext must not be reused.
    """

    handle: str
    clear: int


class EncryptedInput(BaseModel):
    handles: List[str]
    input_proof: str


class TxReceipt(BaseModel):
    status: Optional[int] = None

    def ok(self) -> bool:
        return self.status == 1


def _normalize_addresses(addresses: List[str]) -> List[str]:
    return sorted({a.lower() for a in addresses})


class DecryptionSignature(BaseModel):
    """
    User-decryption authorization produced by the signing ceremony.

    Fields
    - public_key / private_key: re-encryption keypair generated by the SDK.
    - signature: EIP-712 signature of the user over (public_key, contracts, window).
    - contract_addresses: contracts the signature covers, sorted and lower-cased.
    - user_address: signer that produced the signature.
    - start_timestamp: unix seconds at which validity starts.
    - duration_days: validity length in days.

    Persisted as JSON in a host-supplied key-value store and reused while
    `is_valid()` holds for the same user and contract set.
    """

    public_key: str
    private_key: str
    signature: str
    contract_addresses: List[str]
    user_address: str
    start_timestamp: int
    duration_days: int = Field(..., gt=0)

    @field_validator("contract_addresses")
    @classmethod
    def _sorted_addresses(cls, v: List[str]) -> List[str]:
        return _normalize_addresses(v)

    @property
    def expires_at(self) -> int:
        return self.start_timestamp + self.duration_days * SECONDS_PER_DAY

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at

    def covers(self, user_address: str, contract_addresses: List[str]) -> bool:
        return (
            self.user_address.lower() == user_address.lower()
            and self.contract_addresses == _normalize_addresses(contract_addresses)
        )


__all__ = [
    "ClearValue",
    "DecryptionSignature",
    "EncryptedInput",
    "PlantInfo",
    "PlantSnapshot",
    "SECONDS_PER_DAY",
    "TxReceipt",
    "ZERO_HANDLE",
    "is_unwritten",
]
