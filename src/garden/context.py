from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from common.interfaces import Signer


T = TypeVar("T")


@dataclass(frozen=True)
class Context:
    """The (chain, contract, signer) tuple an async operation was started under."""

    chain_id: Optional[int]
    contract_address: Optional[str]
    signer: Optional[Signer]
    plant_id: Optional[int] = None


@dataclass(frozen=True)
class Settled(Generic[T]):
    """Outcome of one suspension point: the awaited value and whether the
    captured context was still live when it resolved."""

    value: Optional[T]
    stale: bool


def same_address(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return a is b
    return a.lower() == b.lower()


class LiveWallet:
    """
    Mutable wallet context for hosts without their own provider bridge.

    The host calls `switch_chain` / `switch_signer` when the wallet reports a
    change; the controller only reads.
    """

    def __init__(self, chain_id: Optional[int] = None, signer: Optional[Signer] = None) -> None:
        self._chain_id = chain_id
        self._signer = signer

    @property
    def chain_id(self) -> Optional[int]:
        return self._chain_id

    @property
    def signer(self) -> Optional[Signer]:
        return self._signer

    def switch_chain(self, chain_id: Optional[int]) -> None:
        self._chain_id = chain_id

    def switch_signer(self, signer: Optional[Signer]) -> None:
        self._signer = signer

    def same_chain(self, chain_id: Optional[int]) -> bool:
        return chain_id is not None and chain_id == self._chain_id

    def same_signer(self, signer: Optional[Signer]) -> bool:
        if signer is None or self._signer is None:
            return False
        return same_address(signer.address, self._signer.address)


__all__ = ["Context", "LiveWallet", "Settled", "same_address"]
