"""Sends absence SMS in one gateway batch and maps results back onto notifications."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Protocol, Sequence

from .eligibility import format_gateway_date
from .models import STATUS_FAILED, STATUS_SENT, NotificationRecord
from .sms_client import SmsBatchResult, SmsRecipient, SmsResult

logger = logging.getLogger(__name__)


class SmsGateway(Protocol):
    async def send_batch(self, recipients: List[SmsRecipient]) -> SmsBatchResult: ...


def build_recipients(notifications: Sequence[NotificationRecord], day: str) -> List[SmsRecipient]:
    gateway_date = format_gateway_date(day)
    return [
        SmsRecipient(phone=n.phone, template_vars=[str(len(n.missed_sessions)), gateway_date])
        for n in notifications
    ]


def result_status(result: SmsResult) -> str:
    if result.success:
        return STATUS_SENT
    return result.error or STATUS_FAILED


def apply_results(
    notifications: Sequence[NotificationRecord],
    results: Sequence[SmsResult],
    sent_at: Optional[datetime] = None,
) -> None:
    """Attach gateway result ``i`` to notification ``i``.

    The gateway echoes no correlation id, so alignment is purely positional.
    On a length mismatch the surplus notifications stay ``pending`` and
    surplus results are dropped.
    """

    if len(results) != len(notifications):
        logger.warning(
            "Gateway returned %d results for %d recipients; unmatched notifications stay pending",
            len(results),
            len(notifications),
        )
    sent_at = sent_at or datetime.now(timezone.utc)
    for notification, result in zip(notifications, results):
        notification.guid = result.guid
        notification.status = result_status(result)
        notification.sent_at = sent_at


class NotificationDispatcher:
    def __init__(self, gateway: SmsGateway, operator_phones: Sequence[str] = ()) -> None:
        self.gateway = gateway
        self.operator_phones = tuple(operator_phones)

    async def dispatch(self, notifications: Sequence[NotificationRecord], day: str) -> SmsBatchResult:
        """Send one batch for ``notifications`` and update them in place.

        Raises whatever the gateway client raises; nothing is updated in that case.
        """

        recipients = build_recipients(notifications, day)
        logger.info("Sending %d SMS notifications for %s", len(recipients), day)
        batch = await self.gateway.send_batch(recipients)
        if batch.message or batch.summary:
            logger.info("Gateway response: %s %s", batch.message or "", batch.summary or "")

        apply_results(notifications, batch.results)
        await self.notify_operators(batch.results)
        return batch

    async def notify_operators(self, results: Sequence[SmsResult]) -> None:
        if not self.operator_phones:
            return
        success_count = sum(1 for result in results if result.success)
        failed_count = len(results) - success_count
        template_vars = [f"\n--Success: {success_count}--\n", f"\n--Failed: {failed_count}--"]
        recipients = [SmsRecipient(phone=phone, template_vars=template_vars) for phone in self.operator_phones]
        try:
            await self.gateway.send_batch(recipients)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to send operator summary: %s", exc)


__all__ = ["NotificationDispatcher", "SmsGateway", "apply_results", "build_recipients", "result_status"]
