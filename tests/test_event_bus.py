"""Tests for the event bus and signal catalog."""

import pytest
from unittest.mock import AsyncMock

from charityhub.app.exceptions import InvalidSignalPayloadError, UnknownSignalError
from charityhub.app.services.events import EventBus, Signal, get_signal, parse_payload
from charityhub.app.services.events.signals import (
    BlockchainConfirmedPayload,
    CampaignGoalReachedPayload,
)


class TestEventBus:
    """Tests for publish/subscribe."""

    @pytest.mark.asyncio
    async def test_delivers_to_subscribers_in_order(self):
        bus = EventBus()
        calls = []

        async def first(signal, payload):
            calls.append(("first", signal, payload))

        async def second(signal, payload):
            calls.append(("second", signal, payload))

        bus.subscribe(Signal.DONATION_ERROR, first)
        bus.subscribe("donation:error", second)

        delivered = await bus.publish("donation:error", {"message": "x"})

        assert delivered == 2
        assert [c[0] for c in calls] == ["first", "second"]
        assert calls[0][1] is Signal.DONATION_ERROR

    @pytest.mark.asyncio
    async def test_other_signals_not_delivered(self):
        bus = EventBus()
        handler = AsyncMock()
        bus.subscribe(Signal.DONATION_SUCCESS, handler)

        assert await bus.publish(Signal.DONATION_ERROR) == 0
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failing_handler_is_isolated(self):
        bus = EventBus()
        broken = AsyncMock(side_effect=RuntimeError("boom"))
        healthy = AsyncMock()
        bus.subscribe(Signal.SYSTEM_MAINTENANCE, broken)
        bus.subscribe(Signal.SYSTEM_MAINTENANCE, healthy)

        delivered = await bus.publish(Signal.SYSTEM_MAINTENANCE, {})

        assert delivered == 1
        healthy.assert_awaited_once_with(Signal.SYSTEM_MAINTENANCE, {})

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        bus = EventBus()
        handler = AsyncMock()
        unsubscribe = bus.subscribe(Signal.DONATION_PENDING, handler)
        assert bus.subscriber_count(Signal.DONATION_PENDING) == 1

        unsubscribe()

        assert bus.subscriber_count(Signal.DONATION_PENDING) == 0
        assert bus.unsubscribe(Signal.DONATION_PENDING, handler) is False

    def test_unknown_signal_rejected(self):
        with pytest.raises(ValueError):
            EventBus().subscribe("donation:refunded", AsyncMock())


class TestSignalCatalog:
    """Tests for signal lookup and payload validation."""

    def test_catalog_names(self):
        assert {s.value for s in Signal} == {
            "donation:success",
            "donation:pending",
            "donation:error",
            "blockchain:confirmed",
            "blockchain:pending",
            "campaign:goal-reached",
            "system:maintenance",
        }

    def test_get_unknown_signal(self):
        with pytest.raises(UnknownSignalError):
            get_signal("donation:refunded")

    def test_wire_aliases(self):
        payload = parse_payload(
            "blockchain:confirmed",
            {"donationId": "donation_123", "amount": 0.005, "currency": "BTC"},
        )
        assert isinstance(payload, BlockchainConfirmedPayload)
        assert payload.donation_id == "donation_123"
        assert payload.to_wire() == {
            "donationId": "donation_123",
            "amount": 0.005,
            "currency": "BTC",
        }

    def test_field_names_accepted(self):
        payload = parse_payload(Signal.CAMPAIGN_GOAL_REACHED, {"campaign_name": "Water"})
        assert isinstance(payload, CampaignGoalReachedPayload)
        assert payload.campaign_name == "Water"

    def test_missing_fields_rejected(self):
        with pytest.raises(InvalidSignalPayloadError) as exc_info:
            parse_payload(Signal.DONATION_SUCCESS, {"amount": 10})
        fields = {tuple(e["loc"]) for e in exc_info.value.errors}
        assert ("currency",) in fields
        assert ("method",) in fields

    def test_negative_amount_rejected(self):
        with pytest.raises(InvalidSignalPayloadError):
            parse_payload(
                Signal.DONATION_PENDING, {"amount": -1, "currency": "USD"}
            )

    def test_optional_payload(self):
        payload = parse_payload(Signal.DONATION_ERROR, None)
        assert payload.message is None
