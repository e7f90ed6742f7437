from __future__ import annotations

import asyncio

from fakes import ADDRESS, ALICE, BOB, OTHER_CHAIN_ID, FakeSigner, MinRandom, _Plant, make_harness, wait_until
from garden.guards import Pipeline
from state.models import TxReceipt


def test_plant_encrypts_one_batch_and_duplicates_proof():
    h = make_harness()

    asyncio.run(h.controller.plant())

    assert h.chain.count("plant") == 1
    _, address, weather, fertility, water, wp, fp, wlp = h.chain.calls[0]
    assert address == ADDRESS
    assert wp == fp == wlp == "proof-1"
    assert len(h.fhe.batches) == 1
    batch = h.fhe.batches[0]
    assert batch.contract_address == ADDRESS
    assert batch.user_address == ALICE
    assert batch.values == [8, 8, 8]  # MaxRandom draws the top of 1..8
    assert [h.fhe.plaintexts[x] for x in (weather, fertility, water)] == [8, 8, 8]

    # Success refreshes the count.
    assert h.controller.plant_count == 1
    assert h.controller.message == "Plant completed status=1"
    assert not h.controller.is_planting


def test_plant_messages_in_order():
    h = make_harness()
    asyncio.run(h.controller.plant())
    assert h.messages[-4:] == [
        "Start planting...",
        "Call plant...",
        "Wait for tx:0xtx1...",
        "Plant completed status=1",
    ]


def test_plant_requires_signer_instance_and_deployment():
    h = make_harness()
    h.wallet.switch_signer(None)
    asyncio.run(h.controller.plant())
    assert h.chain.calls == []
    assert not h.controller.can_plant

    h = make_harness()
    h.wallet.switch_chain(999)
    asyncio.run(h.controller.plant())
    assert h.chain.calls == []


def test_plant_is_single_flight():
    h = make_harness()

    async def scenario():
        gate = h.fhe.block("encrypt")
        first = asyncio.create_task(h.controller.plant())
        await asyncio.sleep(0)
        assert h.controller.is_planting
        assert not h.controller.can_plant

        await h.controller.plant()  # dropped
        gate.set()
        await first

    asyncio.run(scenario())
    assert h.chain.count("plant") == 1
    assert len(h.fhe.batches) == 1
    assert h.controller.can_plant


def test_plant_aborts_before_submit_when_signer_changes():
    h = make_harness()

    async def scenario():
        gate = h.fhe.block("encrypt")
        task = asyncio.create_task(h.controller.plant())
        await asyncio.sleep(0)
        h.wallet.switch_signer(FakeSigner(BOB))
        gate.set()
        await task

    asyncio.run(scenario())
    assert h.chain.calls == []
    assert h.controller.message == "Ignore plant"
    assert not h.controller.is_planting


def test_plant_stale_after_inclusion_skips_refresh():
    h = make_harness()

    async def scenario():
        h.chain.wait_gate = asyncio.Event()
        task = asyncio.create_task(h.controller.plant())
        await wait_until(lambda: h.chain.count("plant") == 1)
        h.wallet.switch_chain(OTHER_CHAIN_ID)
        h.chain.wait_gate.set()
        await task

    asyncio.run(scenario())
    assert h.chain.count("plant") == 1
    assert "total_plants" not in h.chain.reads
    assert h.controller.plant_count is None
    assert h.controller.message == "Ignore plant"


def test_plant_failure_releases_guard():
    h = make_harness()
    h.chain.failures["plant"] = RuntimeError("execution reverted")

    asyncio.run(h.controller.plant())

    assert h.controller.message == "Plant Failed! execution reverted"
    assert not h.controller.is_planting
    assert h.controller.state.guards.in_flight(Pipeline.PLANT) is False

    asyncio.run(h.controller.plant())
    assert h.controller.plant_count == 1


def test_reverted_plant_surfaces_status_without_refresh():
    h = make_harness()
    h.chain.next_status = 0

    asyncio.run(h.controller.plant())

    assert h.controller.message == "Plant transaction failed status=0"
    assert "total_plants" not in h.chain.reads
    assert not h.controller.is_planting


def test_receipt_without_status_counts_as_failure():
    h = make_harness()
    h.chain.next_status = None

    asyncio.run(h.controller.plant())

    assert h.controller.message == "Plant transaction failed status=None"
    assert "total_plants" not in h.chain.reads


def test_receipt_ok():
    assert TxReceipt(status=1).ok()
    assert not TxReceipt(status=0).ok()
    assert not TxReceipt().ok()


def test_grow_requires_selection():
    h = make_harness()
    asyncio.run(h.controller.grow())
    assert h.chain.calls == []
    assert not h.controller.can_grow


def test_grow_updates_handle_of_selected_plant():
    h = make_harness(rng=MinRandom())
    h.chain.plants.append(_Plant(owner=ALICE, planted_at=1, factors=[2, 3, 4]))

    async def scenario():
        await h.controller.select_plant(0)
        assert h.controller.handle is None
        await h.controller.grow()

    asyncio.run(scenario())
    (call,) = [c for c in h.chain.calls if c[0] == "calculate_growth"]
    _, address, plant_id, time_handle, proof = call
    assert (address, plant_id) == (ADDRESS, 0)
    assert h.fhe.plaintexts[time_handle] == 1
    assert proof == "proof-1"
    assert h.controller.handle == h.chain.plants[0].handle
    assert h.fhe.plaintexts[h.controller.handle] == 24
    assert h.controller.message == "Grow completed status=1"


def test_grow_and_plant_pipelines_overlap():
    h = make_harness()
    h.chain.plants.append(_Plant(owner=ALICE, planted_at=1, factors=[1, 1, 1]))

    async def scenario():
        await h.controller.select_plant(0)
        gate = h.chain.block("plant")
        planting = asyncio.create_task(h.controller.plant())
        await wait_until(lambda: h.controller.is_planting and len(h.fhe.batches) == 1)
        await h.controller.grow()
        assert h.chain.count("calculate_growth") == 1
        assert h.controller.is_planting
        gate.set()
        await planting

    asyncio.run(scenario())
    assert h.chain.count("plant") == 1


def test_grow_refused_for_mature_plant():
    h = make_harness()
    h.chain.plants.append(_Plant(owner=ALICE, planted_at=1, factors=[1, 1, 1], is_mature=True))

    async def scenario():
        await h.controller.select_plant(0)
        await h.controller.grow()

    asyncio.run(scenario())
    assert h.controller.is_mature
    assert not h.controller.can_grow
    assert h.chain.count("calculate_growth") == 0


def test_no_writer_disables_plant_and_grow():
    h = make_harness(with_writer=False)
    h.chain.plants.append(_Plant(owner=ALICE, planted_at=1, factors=[1, 1, 1]))

    async def scenario():
        await h.controller.select_plant(0)
        assert not h.controller.can_plant
        assert not h.controller.can_grow
        await h.controller.plant()
        await h.controller.grow()

    asyncio.run(scenario())
    assert h.chain.calls == []
    assert h.fhe.batches == []
