"""
Notification fan-out: one alert plus one push per recipient.

Each recipient is an independent unit of work. All units run concurrently
(bounded by FANOUT_MAX_CONCURRENCY) and are joined without short-circuiting,
so one recipient's failure never affects another. The alert row is the
durable record; push delivery is best effort on top of it and is skipped
when the alert already existed from an earlier run.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field

import httpx

from app.config import settings
from app.features.proximity_graph.domain import (
    AlertRecord,
    NotificationMessage,
    TransientDeliveryFailure,
)
from app.features.proximity_graph.repository import AlertRepository, DeviceTokenRepository
from app.infrastructure.observability.logging import get_logger
from app.services.push_gateway import PushGatewayError, push_gateway

logger = get_logger(__name__)


@dataclass(slots=True)
class RecipientOutcome:
    user_id: str
    alert_written: bool = False
    alert_duplicate: bool = False
    device_tokens: int = 0
    pushes_sent: int = 0
    pushes_failed: int = 0
    stale_tokens_pruned: int = 0
    error: str | None = None


@dataclass(slots=True)
class FanoutResult:
    source_content_id: str
    recipients: int = 0
    alerts_written: int = 0
    alerts_duplicate: int = 0
    pushes_sent: int = 0
    pushes_failed: int = 0
    stale_tokens_pruned: int = 0
    failed_recipients: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "source_content_id": self.source_content_id,
            "recipients": self.recipients,
            "alerts_written": self.alerts_written,
            "alerts_duplicate": self.alerts_duplicate,
            "pushes_sent": self.pushes_sent,
            "pushes_failed": self.pushes_failed,
            "stale_tokens_pruned": self.stale_tokens_pruned,
            "failed_recipients": len(self.failed_recipients),
        }


class NotificationFanout:
    def __init__(
        self,
        alerts=AlertRepository,
        devices=DeviceTokenRepository,
        gateway=None,
        *,
        device_token_limit: int | None = None,
        max_concurrency: int | None = None,
    ):
        self._alerts = alerts
        self._devices = devices
        self._gateway = gateway or push_gateway
        self._device_token_limit = device_token_limit or settings.DEVICE_TOKEN_LOOKUP_LIMIT
        self._max_concurrency = max_concurrency or settings.FANOUT_MAX_CONCURRENCY

    async def deliver(
        self, recipients: Iterable[str], message: NotificationMessage
    ) -> FanoutResult:
        """Fan `message` out to every distinct recipient."""
        unique_recipients = sorted(set(recipients))
        result = FanoutResult(source_content_id=message.source_content_id)
        result.recipients = len(unique_recipients)
        if not unique_recipients:
            return result

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _bounded(user_id: str) -> RecipientOutcome:
            async with semaphore:
                return await self._deliver_to_recipient(user_id, message)

        outcomes = await asyncio.gather(
            *(_bounded(user_id) for user_id in unique_recipients),
            return_exceptions=True,
        )

        for user_id, outcome in zip(unique_recipients, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "Recipient fan-out crashed",
                    user_id=user_id,
                    source_content_id=message.source_content_id,
                    error=str(outcome),
                )
                result.failed_recipients.append(user_id)
                continue

            result.alerts_written += int(outcome.alert_written)
            result.alerts_duplicate += int(outcome.alert_duplicate)
            result.pushes_sent += outcome.pushes_sent
            result.pushes_failed += outcome.pushes_failed
            result.stale_tokens_pruned += outcome.stale_tokens_pruned
            if outcome.error:
                result.failed_recipients.append(user_id)

        logger.info("Notification fan-out finished", **result.to_dict())
        return result

    async def _deliver_to_recipient(
        self, user_id: str, message: NotificationMessage
    ) -> RecipientOutcome:
        outcome = RecipientOutcome(user_id=user_id)

        try:
            inserted = await self._alerts.insert_alert(AlertRecord.for_recipient(user_id, message))
        except Exception as exc:
            logger.error(
                "Alert persistence failed",
                user_id=user_id,
                source_content_id=message.source_content_id,
                error=str(exc),
            )
            outcome.error = f"alert: {exc}"
            return outcome

        if not inserted:
            outcome.alert_duplicate = True
            return outcome
        outcome.alert_written = True

        try:
            await self._push_to_devices(outcome, message)
        except TransientDeliveryFailure as exc:
            logger.warning(
                "Push delivery failed",
                user_id=user_id,
                source_content_id=message.source_content_id,
                error=exc.message,
            )
            outcome.error = exc.message
        except Exception as exc:
            logger.error(
                "Push delivery crashed",
                user_id=user_id,
                source_content_id=message.source_content_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            outcome.error = f"push: {exc}"

        return outcome

    async def _push_to_devices(self, outcome: RecipientOutcome, message: NotificationMessage) -> None:
        tokens = await self._devices.tokens_for_user(
            outcome.user_id, limit=self._device_token_limit
        )
        outcome.device_tokens = len(tokens)
        if not tokens:
            return

        try:
            response = await self._gateway.send_multicast(
                tokens,
                title=message.title,
                body=message.body,
                data=message.data,
            )
        except (PushGatewayError, httpx.HTTPError) as exc:
            raise TransientDeliveryFailure(f"push: {exc}") from exc

        outcome.pushes_sent = response.success_count
        outcome.pushes_failed = response.failure_count

        if response.failure_count:
            logger.warning(
                "Push delivery partially failed",
                user_id=outcome.user_id,
                failed=response.failure_count,
                sent=response.success_count,
            )

        stale = response.stale_tokens()
        if stale:
            outcome.stale_tokens_pruned = await self._devices.delete_tokens(outcome.user_id, stale)
