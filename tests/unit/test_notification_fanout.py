"""
Fan-out tests: alert persistence per recipient, push isolation, stale token
pruning.
"""

import pytest

from app.features.proximity_graph.domain import AlertType, NotificationMessage
from app.features.proximity_graph.pipeline.notification_fanout import NotificationFanout
from app.services.push_gateway import BatchResponse, PushGatewayError, SendResult
from tests.fakes import FakeAlertRepository, FakeDeviceRepository


def _message(source="post-1"):
    return NotificationMessage(
        title="New plan from your network",
        body="Coffee?",
        route="/putrace/posts",
        source_content_id=source,
        alert_type=AlertType.NEW_POST,
        data={"route": "/putrace/posts", "postId": source, "type": "new_post"},
    )


class FakeGateway:
    def __init__(self, fail_for=(), raise_for=(), stale=()):
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)
        self.stale = set(stale)
        self.sent = []

    async def send_multicast(self, tokens, *, title, body, data=None):
        if self.raise_for & set(tokens):
            raise PushGatewayError("gateway unavailable")
        self.sent.append(list(tokens))
        responses = []
        for token in tokens:
            if token in self.stale:
                responses.append(SendResult(token=token, success=False, error_code="UNREGISTERED"))
            elif token in self.fail_for:
                responses.append(SendResult(token=token, success=False, error_code="INTERNAL"))
            else:
                responses.append(SendResult(token=token, success=True, message_id=f"m-{token}"))
        return BatchResponse(responses=responses)


@pytest.mark.asyncio
async def test_one_alert_per_recipient_even_when_push_fails():
    alerts = FakeAlertRepository()
    devices = FakeDeviceRepository({"B": ["tok-b"], "C": ["tok-c"], "D": []})
    gateway = FakeGateway(raise_for={"tok-b"})
    fanout = NotificationFanout(alerts, devices, gateway)

    result = await fanout.deliver(["B", "C", "D", "C"], _message())

    assert sorted(r.recipient_user_id for r in alerts.records) == ["B", "C", "D"]
    assert result.recipients == 3
    assert result.alerts_written == 3
    assert result.pushes_sent == 1
    assert result.failed_recipients == ["B"]


@pytest.mark.asyncio
async def test_alert_failure_is_isolated_to_its_recipient():
    alerts = FakeAlertRepository(fail_for={"B"})
    devices = FakeDeviceRepository({"C": ["tok-c"]})
    fanout = NotificationFanout(alerts, devices, FakeGateway())

    result = await fanout.deliver(["B", "C"], _message())

    assert [r.recipient_user_id for r in alerts.records] == ["C"]
    assert result.pushes_sent == 1
    assert result.failed_recipients == ["B"]


@pytest.mark.asyncio
async def test_refan_out_does_not_duplicate_alerts_or_pushes():
    alerts = FakeAlertRepository()
    gateway = FakeGateway()
    fanout = NotificationFanout(alerts, FakeDeviceRepository({"B": ["tok-b"]}), gateway)

    await fanout.deliver(["B"], _message())
    second = await fanout.deliver(["B"], _message())

    assert len(alerts.records) == 1
    assert len(gateway.sent) == 1
    assert second.alerts_duplicate == 1


@pytest.mark.asyncio
async def test_stale_tokens_are_pruned():
    devices = FakeDeviceRepository({"B": ["good", "gone", "flaky"]})
    gateway = FakeGateway(fail_for={"flaky"}, stale={"gone"})
    fanout = NotificationFanout(FakeAlertRepository(), devices, gateway)

    result = await fanout.deliver(["B"], _message())

    assert devices.tokens["B"] == ["good", "flaky"]
    assert result.stale_tokens_pruned == 1
    assert result.pushes_sent == 1
    assert result.pushes_failed == 2


@pytest.mark.asyncio
async def test_alert_copies_message_fields():
    alerts = FakeAlertRepository()
    fanout = NotificationFanout(alerts, FakeDeviceRepository(), FakeGateway())

    await fanout.deliver(["B"], _message("post-9"))

    record = alerts.records[0]
    assert record.source_content_id == "post-9"
    assert record.type is AlertType.NEW_POST
    assert record.route == "/putrace/posts"


@pytest.mark.asyncio
async def test_empty_recipient_set_is_a_noop():
    alerts = FakeAlertRepository()
    result = await NotificationFanout(alerts, FakeDeviceRepository(), FakeGateway()).deliver([], _message())

    assert result.recipients == 0
    assert alerts.records == []
