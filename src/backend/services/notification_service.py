"""
One-time code notification dispatcher.

Delivers a code through every channel for which a voter has an address.
Delivery runs as a detached asyncio task held by the dispatcher until it
finishes; a failed delivery becomes an audit event and never reaches the
request that triggered it.
"""

import asyncio
from typing import Any, Optional, Protocol

import structlog

from models.audit_log import AuditAction
from models.verification import DeliveryMethod
from models.voter import EligibleVoter
from services.audit_service import ActorType, AuditTrail

logger = structlog.get_logger(__name__)


class DeliveryChannel(Protocol):
    """Transport capable of delivering a one-time code to an address."""

    name: str
    label: str

    def address_for(self, voter: EligibleVoter) -> Optional[str]: ...

    async def send(self, address: str, code: str, context: dict[str, Any]) -> bool: ...


_FAILURE_ACTIONS = {
    "email": AuditAction.OTP_EMAIL_FAILED,
    "sms": AuditAction.OTP_SMS_FAILED,
}


class NotificationDispatcher:
    """
    Fire-and-forget delivery of one-time codes.

    Features:
    - Resolves which channels a voter can be reached on
    - Runs each delivery as a tracked background task
    - Audits failed deliveries
    - Drains or cancels outstanding tasks on shutdown
    """

    def __init__(self, channels: list[DeliveryChannel], audit_trail: AuditTrail):
        self.channels = channels
        self.audit_trail = audit_trail
        self._tasks: set[asyncio.Task] = set()

    def routes_for(self, voter: EligibleVoter) -> list[tuple[DeliveryChannel, str]]:
        """Channels the voter has an address for, with that address."""
        routes = []
        for channel in self.channels:
            address = channel.address_for(voter)
            if address:
                routes.append((channel, address))
        return routes

    @staticmethod
    def method_for(routes: list[tuple[DeliveryChannel, str]]) -> DeliveryMethod:
        names = {channel.name for channel, _ in routes}
        if names == {"email"}:
            return DeliveryMethod.EMAIL
        if names == {"sms"}:
            return DeliveryMethod.SMS
        return DeliveryMethod.BOTH

    def dispatch(
        self,
        voter: EligibleVoter,
        routes: list[tuple[DeliveryChannel, str]],
        code: str,
        context: dict[str, Any],
    ) -> asyncio.Task:
        """Schedule delivery in the background and return the task."""
        task = asyncio.create_task(self._deliver(voter.id, voter.reg_no, routes, code, context))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver(
        self,
        voter_id: str,
        reg_no: str,
        routes: list[tuple[DeliveryChannel, str]],
        code: str,
        context: dict[str, Any],
    ) -> None:
        for channel, address in routes:
            try:
                sent = await channel.send(address, code, context)
                error = None if sent else "delivery_rejected"
            except Exception as e:
                sent = False
                error = str(e)

            if sent:
                logger.info("otp_delivered", channel=channel.name, reg_no=reg_no)
                continue

            logger.warning("otp_delivery_failed", channel=channel.name, reg_no=reg_no, error=error)
            await self.audit_trail.record(
                actor_type=ActorType.VOTER,
                actor_id=voter_id,
                action=_FAILURE_ACTIONS.get(channel.name, f"OTP_{channel.name.upper()}_FAILED"),
                entity="EligibleVoter",
                entity_id=voter_id,
                payload={"regNo": reg_no, "channel": channel.name, "error": error},
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every outstanding delivery to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self, timeout: float = 10.0) -> None:
        """Give outstanding deliveries `timeout` seconds, then cancel the rest."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(list(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("otp_deliveries_cancelled", count=len(pending))
