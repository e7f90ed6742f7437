from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional


ZERO_ADDRESS = "0x" + "00" * 20


@dataclass(frozen=True)
class Deployment:
    chain_id: int
    address: str
    chain_name: Optional[str] = None


class Deployments:
    """Contract address per chain id; the zero address means "not deployed"."""

    def __init__(self, entries: Optional[Dict[int, Deployment]] = None) -> None:
        self._entries: Dict[int, Deployment] = dict(entries or {})

    @classmethod
    def from_json(cls, raw: Optional[str]) -> "Deployments":
        """Parse `{"<chainId>": "0x.."}` or `{"<chainId>": {"address": "0x..", "chainName": ".."}}`.

        Entries with a non-numeric chain id or no address are skipped.
        Empty input yields an empty registry.
        """
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
        except ValueError as ex:
            raise ValueError("Deployments must be a JSON object") from ex
        if not isinstance(data, dict):
            raise ValueError("Deployments must be a JSON object")

        entries: Dict[int, Deployment] = {}
        for key, value in data.items():
            try:
                chain_id = int(key)
            except (TypeError, ValueError):
                continue
            entry = cls._parse_entry(chain_id, value)
            if entry is not None:
                entries[chain_id] = entry
        return cls(entries)

    @staticmethod
    def _parse_entry(chain_id: int, value: Any) -> Optional[Deployment]:
        if isinstance(value, str):
            return Deployment(chain_id=chain_id, address=value)
        if isinstance(value, dict) and isinstance(value.get("address"), str):
            return Deployment(
                chain_id=int(value.get("chainId", chain_id)),
                address=value["address"],
                chain_name=value.get("chainName"),
            )
        return None

    def get(self, chain_id: Optional[int]) -> Optional[Deployment]:
        if chain_id is None:
            return None
        entry = self._entries.get(chain_id)
        if entry is None or entry.address.lower() == ZERO_ADDRESS:
            return None
        return entry

    def address_for(self, chain_id: Optional[int]) -> Optional[str]:
        entry = self.get(chain_id)
        return entry.address if entry else None


__all__ = ["Deployment", "Deployments", "ZERO_ADDRESS"]
