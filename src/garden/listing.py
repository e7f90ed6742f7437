from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from common.interfaces import ChainReader
from state.models import PlantSnapshot, is_unwritten


logger = logging.getLogger(__name__)


async def _snapshot(reader: ChainReader, contract_address: str, plant_id: int) -> Optional[PlantSnapshot]:
    try:
        info = await reader.get_plant_info(contract_address, plant_id)
    except Exception:
        logger.info("getPlantInfo(%s) failed; skipping", plant_id, exc_info=True)
        return None
    try:
        handle = await reader.get_growth(contract_address, plant_id)
    except Exception:
        logger.info("getGrowth(%s) failed; listing without handle", plant_id, exc_info=True)
        handle = None
    return PlantSnapshot(
        **info.model_dump(),
        growth_handle=None if is_unwritten(handle) else handle,
    )


async def fetch_garden(
    reader: ChainReader,
    contract_address: str,
    plant_count: int,
    *,
    owner: Optional[str] = None,
) -> List[PlantSnapshot]:
    """Read info and growth handle for plants `0 .. plant_count - 1`.

    Plants whose info read fails are left out. `owner` filters
    case-insensitively.
    """
    results = await asyncio.gather(
        *(_snapshot(reader, contract_address, i) for i in range(plant_count))
    )
    plants = [p for p in results if p is not None]
    if owner is not None:
        plants = [p for p in plants if p.owner.lower() == owner.lower()]
    return plants


__all__ = ["fetch_garden"]
