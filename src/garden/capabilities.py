from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from state.models import ZERO_HANDLE
from .guards import Pipeline
from .session import GardenSession, GardenState


@dataclass(frozen=True)
class Readiness:
    """Which external prerequisites are currently available."""

    contract_address: Optional[str]
    has_instance: bool
    has_signer: bool
    has_writer: bool

    @property
    def writable(self) -> bool:
        return bool(self.contract_address) and self.has_instance and self.has_signer

    @property
    def submittable(self) -> bool:
        """Encrypted transactions can be built and sent."""
        return self.writable and self.has_writer


def readiness_of(session: GardenSession) -> Readiness:
    return Readiness(
        contract_address=session.contract_address,
        has_instance=session.instance is not None,
        has_signer=session.wallet.signer is not None,
        has_writer=session.writer is not None,
    )


# -------------------- Pure capability checks --------------------

def is_decrypted(state: GardenState) -> bool:
    """The cached plaintext belongs to the live growth handle."""
    return (
        bool(state.growth_handle)
        and state.clear_growth is not None
        and state.growth_handle == state.clear_growth.handle
    )


def can_plant(state: GardenState, ready: Readiness) -> bool:
    return ready.submittable and not state.guards.in_flight(Pipeline.PLANT)


def can_grow(state: GardenState, ready: Readiness) -> bool:
    return (
        ready.submittable
        and state.selected_plant_id is not None
        and not state.guards.in_flight(Pipeline.GROW)
        and not state.is_mature
    )


def can_decrypt(state: GardenState, ready: Readiness) -> bool:
    handle = state.growth_handle
    cached = state.clear_growth.handle if state.clear_growth is not None else None
    return (
        ready.writable
        and not state.guards.refreshing()
        and not state.guards.in_flight(Pipeline.DECRYPT)
        and bool(handle)
        and handle != ZERO_HANDLE
        and handle != cached
    )


def can_mark_mature(state: GardenState, ready: Readiness, *, threshold: int) -> bool:
    """Maturity is checked client side: the growth value must be decrypted
    for the live handle and reach `threshold`."""
    return (
        bool(ready.contract_address)
        and ready.has_signer
        and ready.has_writer
        and state.selected_plant_id is not None
        and not state.is_mature
        and not state.guards.in_flight(Pipeline.MATURE)
        and is_decrypted(state)
        and state.clear_growth is not None
        and state.clear_growth.clear >= threshold
    )


__all__ = [
    "Readiness",
    "can_decrypt",
    "can_grow",
    "can_mark_mature",
    "can_plant",
    "is_decrypted",
    "readiness_of",
]
