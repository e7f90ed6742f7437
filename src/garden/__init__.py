"""
Client-side synchronization controller for the encrypted garden contract.

Modules:
- controller: public facade (`GardenController`)
- mirror: cached reads of plant count, plant info and growth handle
- mutations: plant / grow / mark-as-mature pipelines
- decryption: growth handle -> plaintext with cached signatures
- capabilities: pure can-* checks
- session, context, guards: shared state, staleness checks, single-flight guards
- deployments, listing, config: registry, garden snapshot, env settings
"""

from .context import LiveWallet
from .controller import GardenController
from .deployments import Deployments

__all__ = ["Deployments", "GardenController", "LiveWallet"]
