from __future__ import annotations

import json

import pytest

from garden.deployments import ZERO_ADDRESS, Deployment, Deployments

ADDR = "0x" + "ab" * 20


def test_from_json_accepts_plain_and_object_entries():
    raw = json.dumps(
        {
            "31337": ADDR,
            "11155111": {"address": "0x" + "cd" * 20, "chainName": "sepolia", "chainId": 11155111},
        }
    )
    d = Deployments.from_json(raw)

    assert d.address_for(31337) == ADDR
    entry = d.get(11155111)
    assert entry == Deployment(chain_id=11155111, address="0x" + "cd" * 20, chain_name="sepolia")


def test_zero_address_means_not_deployed():
    d = Deployments.from_json(json.dumps({"1": ZERO_ADDRESS, "2": ZERO_ADDRESS.upper().replace("0X", "0x")}))
    assert d.get(1) is None
    assert d.address_for(2) is None


def test_unknown_or_missing_chain():
    d = Deployments.from_json(json.dumps({"31337": ADDR}))
    assert d.address_for(1) is None
    assert d.address_for(None) is None


def test_bad_entries_are_skipped():
    d = Deployments.from_json(json.dumps({"mainnet": ADDR, "5": {"chainName": "goerli"}, "7": 12, "8": ADDR}))
    assert d.address_for(5) is None
    assert d.address_for(7) is None
    assert d.address_for(8) == ADDR


def test_empty_input_gives_empty_registry():
    assert Deployments.from_json(None).address_for(31337) is None
    assert Deployments.from_json("").address_for(31337) is None


@pytest.mark.parametrize("raw", ["[1, 2]", "not json", '"0xabc"'])
def test_non_object_rejected(raw):
    with pytest.raises(ValueError):
        Deployments.from_json(raw)
