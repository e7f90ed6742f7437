from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from .context import Context
from .guards import Pipeline
from .session import GardenSession


logger = logging.getLogger(__name__)


class RemoteStateMirror:
    """
    Read-only cache of plant count, selected plant metadata and growth handle.

    Each refresh is single-flight on its own guard, performs one read, and
    applies the result only if chain, contract and selected plant are still
    the ones it was started for. Failures are surfaced as a message; nothing
    is retried automatically.
    """

    def __init__(self, session: GardenSession) -> None:
        self._s = session

    def _reader_ready(self) -> bool:
        s = self._s
        return bool(s.contract_address) and s.wallet.chain_id is not None and s.reader is not None

    async def _refresh(
        self,
        pipeline: Pipeline,
        label: str,
        fetch: Callable[[Context], Awaitable[Any]],
        apply: Callable[[Any], None],
        *,
        check_plant: bool,
    ) -> None:
        s = self._s
        ctx = s.capture(with_plant=check_plant)
        with s.state.guards.hold(pipeline) as acquired:
            if not acquired:
                return
            s.changed()
            try:
                res = await s.settle(ctx, fetch(ctx), check_signer=False, check_plant=check_plant)
            except Exception as e:
                logger.warning("%s failed", label, exc_info=True)
                s.state.message = f"MysteryGarden.{label} call failed! error={e}"
            else:
                logger.debug("%s=%r", label, res.value)
                if res.stale:
                    logger.info("Ignoring stale %s result", label)
                else:
                    apply(res.value)
        s.changed()

    # --------------- Public API ---------------
    async def refresh_plant_count(self) -> None:
        s = self._s
        if s.state.guards.in_flight(Pipeline.COUNT):
            return
        if not self._reader_ready():
            s.state.plant_count = None
            s.changed()
            return

        def apply(value: Any) -> None:
            s.state.plant_count = int(value)

        await self._refresh(
            Pipeline.COUNT,
            "totalPlants()",
            lambda ctx: s.reader.total_plants(ctx.contract_address),
            apply,
            check_plant=False,
        )

    async def refresh_growth_handle(self) -> None:
        s = self._s
        if s.state.guards.in_flight(Pipeline.HANDLE):
            return
        if s.state.selected_plant_id is None or not self._reader_ready():
            s.state.growth_handle = None
            s.changed()
            return

        def apply(value: Optional[str]) -> None:
            s.state.growth_handle = value or None

        await self._refresh(
            Pipeline.HANDLE,
            "getGrowth()",
            lambda ctx: s.reader.get_growth(ctx.contract_address, ctx.plant_id),
            apply,
            check_plant=True,
        )

    async def refresh_plant_info(self) -> None:
        s = self._s
        if s.state.guards.in_flight(Pipeline.INFO):
            return
        if s.state.selected_plant_id is None or not self._reader_ready():
            s.state.is_mature = False
            s.changed()
            return

        def apply(value: Any) -> None:
            s.state.is_mature = bool(value.is_mature)

        await self._refresh(
            Pipeline.INFO,
            "getPlantInfo()",
            lambda ctx: s.reader.get_plant_info(ctx.contract_address, ctx.plant_id),
            apply,
            check_plant=True,
        )

    async def select_plant(self, plant_id: Optional[int]) -> None:
        """Switch the focused plant and reload its metadata and handle."""
        if plant_id is not None and plant_id < 0:
            raise ValueError("plant_id must be >= 0")
        s = self._s
        s.state.selected_plant_id = plant_id
        s.state.is_mature = False
        s.state.growth_handle = None
        s.changed()
        if plant_id is None:
            return
        await asyncio.gather(self.refresh_growth_handle(), self.refresh_plant_info())


__all__ = ["RemoteStateMirror"]
