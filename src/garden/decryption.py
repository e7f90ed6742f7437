from __future__ import annotations

import logging

from state.models import ClearValue, ZERO_HANDLE
from state.signatures import load_or_sign
from .context import Context
from .guards import Pipeline
from .session import DecryptPhase, GardenSession


logger = logging.getLogger(__name__)


class DecryptionWorkflow:
    """
    Turns the selected plant's growth handle into a cached plaintext.

    Phases: IDLE -> AWAITING_SIGNATURE -> DECRYPTING -> DONE. Any abort goes
    back to IDLE. A decryption signature is reused from the key-value store
    when still valid, so the user is only prompted when it is missing or
    expired.
    """

    def __init__(self, session: GardenSession) -> None:
        self._s = session

    async def decrypt_growth_handle(self) -> None:
        s = self._s
        st = s.state
        if st.guards.in_flight(Pipeline.DECRYPT) or st.guards.refreshing():
            return
        if not s.contract_address or s.instance is None or s.wallet.signer is None:
            return

        handle = st.growth_handle
        if st.clear_growth is not None and handle == st.clear_growth.handle:
            return

        if not handle:
            st.clear_growth = None
            s.changed()
            return

        # A never-written slot decrypts to zero without a round trip.
        if handle == ZERO_HANDLE:
            st.clear_growth = ClearValue(handle=handle, clear=0)
            st.decrypt_phase = DecryptPhase.DONE
            s.changed()
            return

        ctx = s.capture(with_plant=True)
        with st.guards.hold(Pipeline.DECRYPT) as acquired:
            if not acquired:
                return
            st.decrypt_phase = DecryptPhase.AWAITING_SIGNATURE
            s.say("Start decrypt")
            committed = False
            try:
                committed = await self._decrypt(ctx, handle)
            except Exception as e:
                logger.warning("userDecrypt pipeline raised", exc_info=True)
                s.say(f"FHEVM decryption failed! error={e}", level=logging.WARNING)
            finally:
                st.decrypt_phase = DecryptPhase.DONE if committed else DecryptPhase.IDLE
        s.changed()

    async def _decrypt(self, ctx: Context, handle: str) -> bool:
        s = self._s
        signed = await s.settle(
            ctx,
            load_or_sign(
                s.instance,
                [ctx.contract_address],
                ctx.signer,
                s.storage,
                duration_days=s.signature_days,
                clock=s.clock,
            ),
            check_plant=True,
        )
        sig = signed.value
        if sig is None:
            s.say("Unable to build FHEVM decryption signature", level=logging.WARNING)
            return False
        if signed.stale:
            s.say("Ignore FHEVM decryption")
            return False

        s.state.decrypt_phase = DecryptPhase.DECRYPTING
        s.say("Call FHEVM userDecrypt...")
        res = await s.settle(
            ctx,
            s.instance.user_decrypt(
                [{"handle": handle, "contractAddress": ctx.contract_address}],
                sig.private_key,
                sig.public_key,
                sig.signature,
                sig.contract_addresses,
                sig.user_address,
                sig.start_timestamp,
                sig.duration_days,
            ),
            check_plant=True,
        )
        s.say("FHEVM userDecrypt completed!")
        if res.stale:
            s.say("Ignore FHEVM decryption")
            return False
        if handle not in res.value:
            raise ValueError(f"userDecrypt result has no entry for handle {handle}")

        s.state.clear_growth = ClearValue(handle=handle, clear=int(res.value[handle]))
        s.say(f"Growth handle clear value is {s.state.clear_growth.clear}")
        return True


__all__ = ["DecryptionWorkflow"]
