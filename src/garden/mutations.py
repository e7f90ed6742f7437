from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from common.interfaces import Transaction
from common.weighted import grow_factors, plant_factors
from state.models import EncryptedInput
from .capabilities import can_mark_mature, readiness_of
from .context import Context
from .guards import Pipeline
from .mirror import RemoteStateMirror
from .session import GardenSession


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Op:
    pipeline: Pipeline
    name: str
    start: str
    ignored: str


PLANT = _Op(Pipeline.PLANT, "Plant", "Start planting...", "Ignore plant")
GROW = _Op(Pipeline.GROW, "Grow", "Start growing...", "Ignore grow")
MATURE = _Op(Pipeline.MATURE, "Mark as mature", "Marking plant as mature...", "Ignore mark as mature")


class MutationPipeline:
    """
    Encrypt, submit and confirm pipelines for plant, grow and mark-as-mature.

    Each operation is single-flight on its own guard; different operations
    may overlap. The captured context is re-checked after encryption and
    after inclusion, and a stale run never triggers a refresh.
    """

    def __init__(self, session: GardenSession, mirror: RemoteStateMirror) -> None:
        self._s = session
        self._mirror = mirror

    # --------------- Internal ---------------
    async def _run(self, op: _Op, ctx: Context, body: Callable[[Context], Awaitable[bool]]) -> bool:
        s = self._s
        with s.state.guards.hold(op.pipeline) as acquired:
            if not acquired:
                return False
            s.say(op.start)
            try:
                return await body(ctx)
            except Exception as e:
                logger.warning("%s pipeline raised", op.name, exc_info=True)
                s.say(f"{op.name} Failed! {e}", level=logging.WARNING)
                return False
            finally:
                s.changed()

    async def _encrypt(self, op: _Op, ctx: Context, values: list[int]) -> EncryptedInput | None:
        """Encrypt `values` as one batch; None when the context drifted meanwhile."""
        s = self._s
        builder = s.instance.create_encrypted_input(ctx.contract_address, ctx.signer.address)
        for v in values:
            builder.add32(v)
        res = await s.settle(ctx, builder.encrypt())
        if res.stale:
            s.say(op.ignored)
            return None
        enc = res.value
        if len(enc.handles) != len(values):
            raise ValueError(f"expected {len(values)} encrypted handles, got {len(enc.handles)}")
        return enc

    async def _confirm(self, op: _Op, ctx: Context, tx: Transaction) -> bool:
        s = self._s
        s.say(f"Wait for tx:{tx.hash}...")
        res = await s.settle(ctx, tx.wait())
        receipt = res.value
        status = receipt.status if receipt is not None else None
        succeeded = receipt is not None and receipt.ok()
        if succeeded:
            s.say(f"{op.name} completed status={status}")
        else:
            s.say(f"{op.name} transaction failed status={status}", level=logging.WARNING)
        if res.stale:
            s.say(op.ignored)
            return False
        return succeeded

    def _writable(self) -> bool:
        return readiness_of(self._s).submittable

    # --------------- Public API ---------------
    async def plant(self) -> None:
        """Plant a new seed with weighted random weather, fertility and water level."""
        s = self._s
        if s.state.guards.in_flight(Pipeline.PLANT) or not self._writable():
            return

        async def body(ctx: Context) -> bool:
            factors = list(plant_factors(s.rng))
            enc = await self._encrypt(PLANT, ctx, factors)
            if enc is None:
                return False
            s.say("Call plant...")
            weather, fertility, water_level = enc.handles
            # One batch, one proof: the same proof fills every proof slot.
            proof = enc.input_proof
            tx = await s.writer.plant(
                ctx.contract_address, ctx.signer, weather, fertility, water_level, proof, proof, proof
            )
            return await self._confirm(PLANT, ctx, tx)

        if await self._run(PLANT, s.capture(), body):
            await self._mirror.refresh_plant_count()

    async def grow(self) -> None:
        """Advance the selected plant by one encrypted time factor."""
        s = self._s
        if s.state.selected_plant_id is None or s.state.is_mature:
            return
        if s.state.guards.in_flight(Pipeline.GROW) or not self._writable():
            return

        async def body(ctx: Context) -> bool:
            enc = await self._encrypt(GROW, ctx, grow_factors(s.rng))
            if enc is None:
                return False
            s.say("Call calculateGrowth...")
            tx = await s.writer.calculate_growth(
                ctx.contract_address, ctx.signer, ctx.plant_id, enc.handles[0], enc.input_proof
            )
            return await self._confirm(GROW, ctx, tx)

        if await self._run(GROW, s.capture(with_plant=True), body):
            await self._mirror.refresh_growth_handle()

    async def mark_mature(self) -> None:
        """Finalize the selected plant once its decrypted growth reaches the threshold."""
        s = self._s
        if s.state.guards.in_flight(Pipeline.MATURE):
            return
        if not can_mark_mature(s.state, readiness_of(s), threshold=s.maturity_threshold):
            return

        async def body(ctx: Context) -> bool:
            tx = await s.writer.mark_as_mature(ctx.contract_address, ctx.signer, ctx.plant_id)
            if not await self._confirm(MATURE, ctx, tx):
                return False
            s.say("Plant marked as mature!")
            return True

        if await self._run(MATURE, s.capture(with_plant=True), body):
            await asyncio.gather(self._mirror.refresh_growth_handle(), self._mirror.refresh_plant_info())


__all__ = ["MutationPipeline"]
