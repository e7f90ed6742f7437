from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional

from common.interfaces import ChainReader, ChainWriter, FheInstance, WalletContext
from state.kv_store import KeyValueStore
from state.models import ClearValue, PlantSnapshot
from state.signatures import DEFAULT_DURATION_DAYS
from . import capabilities
from .decryption import DecryptionWorkflow
from .deployments import Deployments
from .guards import Pipeline
from .listing import fetch_garden
from .mirror import RemoteStateMirror
from .mutations import MutationPipeline
from .session import DEFAULT_MATURITY_THRESHOLD, DecryptPhase, GardenSession, GardenState


logger = logging.getLogger(__name__)


class GardenController:
    """
    Client-side synchronization controller for one garden contract.

    The presentation layer calls the coroutines below and reads the
    properties. Capabilities are recomputed from current state on every
    access. `listener` is called with the state after each change.

    Usage
        controller = GardenController(wallet=wallet, deployments=deployments,
                                      storage=MemoryKeyValueStore(), reader=reader,
                                      writer=writer, instance=instance)
        await controller.refresh_plant_count()
        await controller.plant()
        await controller.select_plant(0)
        await controller.grow()
        await controller.decrypt_growth_handle()
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
        self._session = GardenSession(
            wallet=wallet,
            deployments=deployments,
            storage=storage,
            reader=reader,
            writer=writer,
            instance=instance,
            rng=rng,
            maturity_threshold=maturity_threshold,
            signature_days=signature_days,
            listener=listener,
            clock=clock,
        )
        self._mirror = RemoteStateMirror(self._session)
        self._mutations = MutationPipeline(self._session, self._mirror)
        self._decryption = DecryptionWorkflow(self._session)
        self.check_deployment()

    # --------------- Operations ---------------
    async def refresh_plant_count(self) -> None:
        await self._mirror.refresh_plant_count()

    async def refresh_growth_handle(self) -> None:
        await self._mirror.refresh_growth_handle()

    async def refresh_plant_info(self) -> None:
        await self._mirror.refresh_plant_info()

    async def select_plant(self, plant_id: Optional[int]) -> None:
        await self._mirror.select_plant(plant_id)

    async def plant(self) -> None:
        await self._mutations.plant()

    async def grow(self) -> None:
        await self._mutations.grow()

    async def mark_mature(self) -> None:
        await self._mutations.mark_mature()

    async def decrypt_growth_handle(self) -> None:
        await self._decryption.decrypt_growth_handle()

    async def list_plants(self, *, owner: Optional[str] = None) -> List[PlantSnapshot]:
        """Snapshot every plant of the current deployment; empty if the
        chain or contract changed while reading."""
        s = self._session
        count = s.state.plant_count
        if s.reader is None or not s.contract_address or not count:
            return []
        ctx = s.capture()
        res = await s.settle(
            ctx, fetch_garden(s.reader, ctx.contract_address, count, owner=owner), check_signer=False
        )
        if res.stale:
            logger.info("Ignoring stale garden listing")
            return []
        return res.value

    def check_deployment(self) -> bool:
        """Surface a message when the live chain has no deployment."""
        deployed = self.is_deployed
        if not deployed:
            self._session.say(
                f"MysteryGarden deployment not found for chainId={self._session.wallet.chain_id}."
            )
        return deployed

    # --------------- Observable state ---------------
    @property
    def state(self) -> GardenState:
        return self._session.state

    @property
    def contract_address(self) -> Optional[str]:
        return self._session.contract_address

    @property
    def is_deployed(self) -> bool:
        return bool(self._session.contract_address)

    @property
    def message(self) -> str:
        return self.state.message

    @property
    def plant_count(self) -> Optional[int]:
        return self.state.plant_count

    @property
    def selected_plant_id(self) -> Optional[int]:
        return self.state.selected_plant_id

    @property
    def handle(self) -> Optional[str]:
        return self.state.growth_handle

    @property
    def clear_growth(self) -> Optional[ClearValue]:
        return self.state.clear_growth

    @property
    def clear(self) -> Optional[int]:
        cv = self.state.clear_growth
        return cv.clear if cv is not None else None

    @property
    def is_mature(self) -> bool:
        return self.state.is_mature

    @property
    def decrypt_phase(self) -> DecryptPhase:
        return self.state.decrypt_phase

    @property
    def is_refreshing(self) -> bool:
        return self.state.guards.refreshing()

    @property
    def is_planting(self) -> bool:
        return self.state.guards.in_flight(Pipeline.PLANT)

    @property
    def is_growing(self) -> bool:
        return self.state.guards.in_flight(Pipeline.GROW)

    @property
    def is_decrypting(self) -> bool:
        return self.state.guards.in_flight(Pipeline.DECRYPT)

    @property
    def is_decrypted(self) -> bool:
        return capabilities.is_decrypted(self.state)

    @property
    def can_plant(self) -> bool:
        return capabilities.can_plant(self.state, capabilities.readiness_of(self._session))

    @property
    def can_grow(self) -> bool:
        return capabilities.can_grow(self.state, capabilities.readiness_of(self._session))

    @property
    def can_decrypt(self) -> bool:
        return capabilities.can_decrypt(self.state, capabilities.readiness_of(self._session))

    @property
    def can_mark_mature(self) -> bool:
        return capabilities.can_mark_mature(
            self.state,
            capabilities.readiness_of(self._session),
            threshold=self._session.maturity_threshold,
        )


__all__ = ["GardenController"]
