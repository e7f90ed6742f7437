from __future__ import annotations

import asyncio

from fakes import ADDRESS, ALICE, BOB, FakeChain, FakeFhe, _Plant
from garden.listing import fetch_garden
from state.models import ZERO_HANDLE


def _chain() -> FakeChain:
    chain = FakeChain(FakeFhe())
    chain.plants = [
        _Plant(owner=ALICE, planted_at=10, factors=[1, 1, 1], handle="0x" + "11" * 32),
        _Plant(owner=BOB, planted_at=11, factors=[1, 1, 1], handle=ZERO_HANDLE, is_mature=True),
        _Plant(owner=ALICE.upper().replace("0X", "0x"), planted_at=12, factors=[1, 1, 1]),
    ]
    return chain


def test_lists_every_plant():
    plants = asyncio.run(fetch_garden(_chain(), ADDRESS, 3))

    assert [p.plant_id for p in plants] == [0, 1, 2]
    assert plants[0].growth_handle == "0x" + "11" * 32
    assert plants[1].growth_handle is None
    assert plants[1].is_mature
    assert plants[2].growth_handle is None


def test_owner_filter_is_case_insensitive():
    plants = asyncio.run(fetch_garden(_chain(), ADDRESS, 3, owner=ALICE))
    assert [p.plant_id for p in plants] == [0, 2]


def test_failed_reads():
    class _Flaky(FakeChain):
        async def get_plant_info(self, contract_address, plant_id):
            if plant_id == 1:
                raise ConnectionError("timeout")
            return await super().get_plant_info(contract_address, plant_id)

        async def get_growth(self, contract_address, plant_id):
            if plant_id == 0:
                raise ConnectionError("timeout")
            return await super().get_growth(contract_address, plant_id)

    chain = _Flaky(FakeFhe())
    chain.plants = _chain().plants

    plants = asyncio.run(fetch_garden(chain, ADDRESS, 3))

    assert [p.plant_id for p in plants] == [0, 2]
    assert plants[0].growth_handle is None
