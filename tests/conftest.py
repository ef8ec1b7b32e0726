"""Shared fixtures."""

from __future__ import annotations

import pytest

from fakes import FakeChain, RecordingChannel
from pumpwatch.notifier.fanout import NotificationFanout
from pumpwatch.storage import AlertRegistry, SubscriberRegistry


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def subscribers() -> SubscriberRegistry:
    return SubscriberRegistry()


@pytest.fixture
def alerts() -> AlertRegistry:
    return AlertRegistry()


@pytest.fixture
def fanout(
    channel: RecordingChannel,
    subscribers: SubscriberRegistry,
    alerts: AlertRegistry,
) -> NotificationFanout:
    return NotificationFanout(channel, subscribers, alerts, send_timeout=0.2)
