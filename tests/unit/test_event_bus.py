import logging
from typing import Optional

import pytest
from pydantic import BaseModel

from servicehub.events import (
    EventBus,
    EventMetrics,
    Events,
    get_event_metadata,
    register_event,
    registry,
    validate_event_payload,
)
from servicehub.events.payloads import ContactCreatedPayload


def contact_payload(**overrides):
    payload = {"workspace_id": "ws-1", "contact_id": "c-1", "contact": {"name": "Ada"}}
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_handlers_run_in_subscription_order():
    bus = EventBus()
    calls = []

    async def first(payload):
        calls.append(("first", payload["contact_id"]))

    def second(payload):
        calls.append(("second", payload["contact_id"]))

    bus.on(Events.CONTACT_CREATED, first)
    bus.on(Events.CONTACT_CREATED, second)

    bus.emit(Events.CONTACT_CREATED, contact_payload())
    assert calls == []  # dispatch is asynchronous

    await bus.drain()
    assert calls == [("first", "c-1"), ("second", "c-1")]


@pytest.mark.asyncio
async def test_failing_handler_is_isolated_and_reported():
    bus = EventBus()
    delivered = []
    errors = []

    async def broken(payload):
        raise RuntimeError("boom")

    bus.on(Events.CONTACT_CREATED, broken)
    bus.on(Events.CONTACT_CREATED, lambda payload: delivered.append(payload["contact_id"]))
    bus.on(Events.ERROR, errors.append)

    bus.emit(Events.CONTACT_CREATED, contact_payload())
    await bus.drain()

    assert delivered == ["c-1"]
    assert len(errors) == 1
    assert errors[0]["event_name"] == Events.CONTACT_CREATED
    assert str(errors[0]["error"]) == "boom"
    assert errors[0]["payload"]["contact_id"] == "c-1"


@pytest.mark.asyncio
async def test_failing_error_handler_does_not_loop():
    bus = EventBus()
    calls = []

    def broken(payload):
        calls.append(payload)
        raise RuntimeError("still broken")

    bus.on(Events.ERROR, broken)
    bus.emit(Events.ERROR, {"event_name": "x", "error": "e"}, skip_validation=True)
    await bus.drain(timeout=1)

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_once_handler_fires_a_single_time():
    bus = EventBus()
    calls = []
    bus.once(Events.CONTACT_CREATED, calls.append)

    bus.emit(Events.CONTACT_CREATED, contact_payload())
    bus.emit(Events.CONTACT_CREATED, contact_payload())
    await bus.drain()

    assert len(calls) == 1
    assert bus.listener_count(Events.CONTACT_CREATED) == 0


@pytest.mark.asyncio
async def test_unsubscribe_and_off():
    bus = EventBus()
    calls = []
    unsubscribe = bus.on(Events.CONTACT_CREATED, calls.append)
    bus.on(Events.BOOKING_DELETED, calls.append)

    unsubscribe()
    bus.emit(Events.CONTACT_CREATED, contact_payload())
    await bus.drain()
    assert calls == []

    bus.off(Events.BOOKING_DELETED)
    assert bus.listener_count(Events.BOOKING_DELETED) == 0

    bus.off()
    assert bus.event_names() == []


def test_default_error_listener_is_registered():
    bus = EventBus()
    assert bus.listener_count(Events.ERROR) == 1
    assert Events.ERROR in bus.event_names()


@pytest.mark.asyncio
async def test_middleware_wraps_delivery_in_order():
    bus = EventBus()
    trace = []

    async def outer(event_name, payload, call_next):
        trace.append("outer-before")
        await call_next()
        trace.append("outer-after")

    async def inner(event_name, payload, call_next):
        trace.append("inner")
        await call_next()

    bus.use(outer)
    bus.use(inner)
    bus.on(Events.CONTACT_CREATED, lambda payload: trace.append("handler"))

    bus.emit(Events.CONTACT_CREATED, contact_payload())
    await bus.drain()

    assert trace == ["outer-before", "inner", "handler", "outer-after"]


@pytest.mark.asyncio
async def test_middleware_can_stop_delivery():
    bus = EventBus()
    calls = []

    async def gate(event_name, payload, call_next):
        if payload.get("workspace_id") != "blocked":
            await call_next()

    bus.use(gate)
    bus.on(Events.CONTACT_CREATED, calls.append)

    bus.emit(Events.CONTACT_CREATED, contact_payload(workspace_id="blocked"))
    bus.emit(Events.CONTACT_CREATED, contact_payload())
    await bus.drain()

    assert [c["workspace_id"] for c in calls] == ["ws-1"]


@pytest.mark.asyncio
async def test_invalid_payload_is_logged_but_still_delivered(caplog):
    bus = EventBus()
    calls = []
    bus.on(Events.BOOKING_CREATED, calls.append)

    with caplog.at_level(logging.WARNING, logger="servicehub.events.bus"):
        bus.emit(Events.BOOKING_CREATED, {"workspace_id": "ws-1", "booking_id": "b-1"})
        await bus.drain()

    assert len(calls) == 1
    assert "missing fields: booking, contact_id" in caplog.text


@pytest.mark.asyncio
async def test_emit_accepts_payload_models():
    bus = EventBus()
    calls = []
    bus.on(Events.CONTACT_CREATED, calls.append)

    bus.emit(Events.CONTACT_CREATED, ContactCreatedPayload(**contact_payload(), source="import"))
    await bus.drain()

    assert calls[0]["contact_id"] == "c-1"
    assert calls[0]["source"] == "import"


def test_emit_without_running_loop_dispatches_inline():
    bus = EventBus()
    calls = []

    async def handler(payload):
        calls.append(payload["contact_id"])

    bus.on(Events.CONTACT_CREATED, handler)
    bus.emit(Events.CONTACT_CREATED, contact_payload())

    assert calls == ["c-1"]


@pytest.mark.asyncio
async def test_metrics_middleware_counts_dispatches():
    bus = EventBus()
    metrics = EventMetrics()
    bus.use(metrics)

    bus.emit(Events.CONTACT_CREATED, contact_payload())
    bus.emit(Events.CONTACT_CREATED, contact_payload())
    await bus.drain()

    stats = metrics.snapshot()[Events.CONTACT_CREATED]
    assert stats["emitted"] == 2
    assert stats["delivered"] == 2
    assert stats["dispatch_seconds"] >= 0


def test_registry_required_fields():
    metadata = get_event_metadata(Events.BOOKING_CREATED)
    assert metadata.required_fields == ("workspace_id", "booking_id", "booking", "contact_id")

    assert validate_event_payload(Events.BOOKING_DELETED, {"workspace_id": "ws-1", "booking_id": None}) == [
        "booking_id"
    ]
    assert validate_event_payload("something.unregistered", {}) == []


def test_register_event_adds_validation(monkeypatch):
    monkeypatch.setattr(registry, "_REGISTRY", dict(registry._REGISTRY))

    class InvoicePaidPayload(BaseModel):
        workspace_id: str
        invoice_id: str
        note: Optional[str] = None

    metadata = register_event("invoice.paid", InvoicePaidPayload, "Invoice paid")

    assert metadata.required_fields == ("workspace_id", "invoice_id")
    assert get_event_metadata("invoice.paid").description == "Invoice paid"
    assert validate_event_payload("invoice.paid", {"workspace_id": "ws-1"}) == ["invoice_id"]
