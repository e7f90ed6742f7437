from __future__ import annotations

import enum
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from common.interfaces import ChainReader, ChainWriter, FheInstance, WalletContext
from state.kv_store import KeyValueStore
from state.models import ClearValue
from state.signatures import DEFAULT_DURATION_DAYS
from .context import Context, Settled, same_address
from .deployments import Deployments
from .guards import OperationGuards


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MATURITY_THRESHOLD = 100


class DecryptPhase(enum.Enum):
    IDLE = "idle"
    AWAITING_SIGNATURE = "awaiting_signature"
    DECRYPTING = "decrypting"
    DONE = "done"


@dataclass
class GardenState:
    """Process-local mirror of the contract plus pipeline bookkeeping.

    Rebuilt from the chain on reload; nothing here is persisted.
    """

    plant_count: Optional[int] = None
    selected_plant_id: Optional[int] = None
    growth_handle: Optional[str] = None
    clear_growth: Optional[ClearValue] = None
    is_mature: bool = False
    decrypt_phase: DecryptPhase = DecryptPhase.IDLE
    message: str = ""
    guards: OperationGuards = field(default_factory=OperationGuards)


class GardenSession:
    """
    Collaborators and state shared by the mirror, mutation and decryption
    components of one controller.

    All writes to `state` happen on the event loop thread. A component that
    suspends must call `is_stale()` (or `settle()`) before applying anything
    it computed against a captured `Context`.
    """

    def __init__(
        self,
        *,
        wallet: WalletContext,
        deployments: Deployments,
        storage: KeyValueStore,
        reader: Optional[ChainReader] = None,
        writer: Optional[ChainWriter] = None,
        instance: Optional[FheInstance] = None,
        rng: Optional[random.Random] = None,
        maturity_threshold: int = DEFAULT_MATURITY_THRESHOLD,
        signature_days: int = DEFAULT_DURATION_DAYS,
        listener: Optional[Callable[[GardenState], None]] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.wallet = wallet
        self.deployments = deployments
        self.storage = storage
        self.reader = reader
        self.writer = writer
        self.instance = instance
        self.rng = rng or random.Random()
        self.maturity_threshold = maturity_threshold
        self.signature_days = signature_days
        self.state = GardenState()
        self.clock = clock or time.time
        self._listener = listener

    # -------- live context --------
    @property
    def contract_address(self) -> Optional[str]:
        return self.deployments.address_for(self.wallet.chain_id)

    def capture(self, *, with_plant: bool = False) -> Context:
        return Context(
            chain_id=self.wallet.chain_id,
            contract_address=self.contract_address,
            signer=self.wallet.signer,
            plant_id=self.state.selected_plant_id if with_plant else None,
        )

    def is_stale(self, ctx: Context, *, check_signer: bool = True, check_plant: bool = False) -> bool:
        if not same_address(ctx.contract_address, self.contract_address):
            return True
        if not self.wallet.same_chain(ctx.chain_id):
            return True
        if check_signer and not self.wallet.same_signer(ctx.signer):
            return True
        if check_plant and ctx.plant_id != self.state.selected_plant_id:
            return True
        return False

    async def settle(
        self,
        ctx: Context,
        step: Awaitable[T],
        *,
        check_signer: bool = True,
        check_plant: bool = False,
    ) -> Settled[T]:
        """Await one suspension point, then compare `ctx` against live context."""
        value = await step
        stale = self.is_stale(ctx, check_signer=check_signer, check_plant=check_plant)
        return Settled(value=value, stale=stale)

    # -------- observable surface --------
    def say(self, message: str, *, level: int = logging.INFO) -> None:
        self.state.message = message
        logger.log(level, message)
        self.changed()

    def changed(self) -> None:
        if self._listener is not None:
            self._listener(self.state)


__all__ = ["DEFAULT_MATURITY_THRESHOLD", "DecryptPhase", "GardenSession", "GardenState"]
