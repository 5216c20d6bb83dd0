import json
import logging

import httpx
import pytest

from utils.messaging import LoggingMessageSink, WebhookMessageSink


async def test_webhook_posts_topic_and_message():
    received = []

    def handler(request: httpx.Request):
        received.append(json.loads(request.content))
        return httpx.Response(202)

    sink = WebhookMessageSink("http://hooks.test/orders", transport=httpx.MockTransport(handler))
    await sink.send("orders", "New order 42")

    assert len(received) == 1
    assert received[0]["topic"] == "orders"
    assert received[0]["message"] == "New order 42"
    assert received[0]["sent_at"]


async def test_webhook_error_status_is_raised(caplog):
    sink = WebhookMessageSink(
        "http://hooks.test/orders",
        transport=httpx.MockTransport(lambda request: httpx.Response(500, text="queue down")),
    )

    with caplog.at_level(logging.ERROR):
        with pytest.raises(httpx.HTTPStatusError):
            await sink.send("orders", "New order 42")

    assert "queue down" in caplog.text


async def test_webhook_connection_error_is_raised():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    sink = WebhookMessageSink("http://hooks.test/orders", transport=httpx.MockTransport(handler))

    with pytest.raises(httpx.RequestError):
        await sink.send("orders", "New order 42")


async def test_logging_sink(caplog):
    with caplog.at_level(logging.INFO, logger="utils.messaging"):
        await LoggingMessageSink().send("orders", "New order 42")

    assert "[orders] New order 42" in caplog.text
