"""
Interfaces of the collaborators the garden controller drives.

The controller owns none of these: the host wires in a chain reader and
writer, the FHE SDK instance, the wallet's signer and live context, and a
key-value store. Everything that suspends is a coroutine.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from state.models import EncryptedInput, PlantInfo, TxReceipt


class ChainReader(Protocol):
    async def total_plants(self, contract_address: str) -> int: ...

    async def get_plant_info(self, contract_address: str, plant_id: int) -> PlantInfo: ...

    async def get_growth(self, contract_address: str, plant_id: int) -> Optional[str]: ...


class Transaction(Protocol):
    hash: str

    async def wait(self) -> Optional[TxReceipt]: ...


class Signer(Protocol):
    address: str

    async def sign_typed_data(
        self, domain: Dict[str, Any], types: Dict[str, Any], message: Dict[str, Any]
    ) -> str: ...


class ChainWriter(Protocol):
    async def plant(
        self,
        contract_address: str,
        signer: Signer,
        weather: str,
        fertility: str,
        water_level: str,
        weather_proof: str,
        fertility_proof: str,
        water_level_proof: str,
    ) -> Transaction: ...

    async def calculate_growth(
        self,
        contract_address: str,
        signer: Signer,
        plant_id: int,
        time_factor: str,
        time_proof: str,
    ) -> Transaction: ...

    async def mark_as_mature(self, contract_address: str, signer: Signer, plant_id: int) -> Transaction: ...


class EncryptedInputBuilder(Protocol):
    def add32(self, value: int) -> None: ...

    async def encrypt(self) -> EncryptedInput: ...


class FheInstance(Protocol):
    def create_encrypted_input(self, contract_address: str, user_address: str) -> EncryptedInputBuilder: ...

    def generate_keypair(self) -> Dict[str, str]:
        """Return {"publicKey": ..., "privateKey": ...}."""
        ...

    def create_eip712(
        self,
        public_key: str,
        contract_addresses: List[str],
        start_timestamp: int,
        duration_days: int,
    ) -> Dict[str, Any]:
        """Return {"domain": ..., "types": ..., "message": ...}."""
        ...

    async def user_decrypt(
        self,
        pairs: List[Dict[str, str]],
        private_key: str,
        public_key: str,
        signature: str,
        contract_addresses: List[str],
        user_address: str,
        start_timestamp: int,
        duration_days: int,
    ) -> Dict[str, int]: ...


class WalletContext(Protocol):
    """Live view of the connected wallet, re-read after every suspension."""

    @property
    def chain_id(self) -> Optional[int]: ...

    @property
    def signer(self) -> Optional[Signer]: ...

    def same_chain(self, chain_id: Optional[int]) -> bool: ...

    def same_signer(self, signer: Optional[Signer]) -> bool: ...
