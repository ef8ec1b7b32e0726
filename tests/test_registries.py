"""Unit tests for the subscriber and alert registries."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from fakes import TOKEN_A, TOKEN_B, TOKEN_C
from pumpwatch.core.types import Language
from pumpwatch.storage import AlertRegistry, SubscriberRegistry


# ---------------------------------------------------------------
# SubscriberRegistry
# ---------------------------------------------------------------


class TestSubscriberRegistry:
    def test_defaults_on_first_sight(self, subscribers: SubscriberRegistry) -> None:
        prefs = subscribers.subscribe(1)
        assert prefs.require_media_link is False
        assert prefs.mc_threshold_usd is None
        assert prefs.language is Language.EN

    def test_subscribe_is_idempotent(self, subscribers: SubscriberRegistry) -> None:
        subscribers.subscribe(1)
        subscribers.subscribe(1)
        assert len(subscribers) == 1
        assert subscribers.subscribers() == [1]

    def test_prefs_survive_unsubscribe(self, subscribers: SubscriberRegistry) -> None:
        subscribers.subscribe(1)
        subscribers.set_language(1, "zh")
        assert subscribers.unsubscribe(1) is True
        assert subscribers.unsubscribe(1) is False
        assert 1 not in subscribers
        assert subscribers.prefs(1).language is Language.ZH

    def test_language_falls_back_to_english(self, subscribers: SubscriberRegistry) -> None:
        assert subscribers.set_language(1, "ZH") is Language.ZH
        assert subscribers.set_language(1, "fr") is Language.EN
        assert subscribers.set_language(1, None) is Language.EN

    def test_toggle_media_filter(self, subscribers: SubscriberRegistry) -> None:
        assert subscribers.toggle_media_filter(1) is True
        assert subscribers.prefs(1).require_media_link is True
        assert subscribers.toggle_media_filter(1) is False

    def test_threshold_is_floored(self, subscribers: SubscriberRegistry) -> None:
        assert subscribers.set_threshold(1, 1500.9) == 1500
        assert subscribers.prefs(1).mc_threshold_usd == 1500

    @pytest.mark.parametrize("bad", [0, -5, 0.4, float("nan"), float("inf"), True])
    def test_threshold_rejects_non_positive(
        self, subscribers: SubscriberRegistry, bad: float
    ) -> None:
        with pytest.raises(ValueError):
            subscribers.set_threshold(1, bad)
        assert subscribers.prefs(1).mc_threshold_usd is None

    def test_clear_threshold(self, subscribers: SubscriberRegistry) -> None:
        subscribers.set_threshold(1, 100)
        subscribers.clear_threshold(1)
        assert subscribers.prefs(1).mc_threshold_usd is None


# ---------------------------------------------------------------
# AlertRegistry
# ---------------------------------------------------------------


class TestAlertRegistry:
    def test_enroll_is_idempotent(self, alerts: AlertRegistry) -> None:
        assert alerts.enroll(TOKEN_A, 1) is True
        assert alerts.enroll(TOKEN_A, 1) is False
        assert alerts.subscribers_of(TOKEN_A) == [1]
        assert len(alerts) == 1

    def test_keys_are_case_insensitive(self, alerts: AlertRegistry) -> None:
        mixed = "0xAbCdEf0000000000000000000000000000000001"
        alerts.enroll(mixed, 1)
        assert alerts.is_watched(mixed.lower())
        assert alerts.is_watched(mixed.upper().replace("0X", "0x"))
        assert alerts.tokens() == [mixed.lower()]

    def test_unenroll_last_subscriber_deletes_entry(self, alerts: AlertRegistry) -> None:
        alerts.enroll(TOKEN_A, 1)
        alerts.enroll(TOKEN_A, 2)

        assert alerts.unenroll(TOKEN_A, 1) is True
        assert alerts.is_watched(TOKEN_A)

        assert alerts.unenroll(TOKEN_A, 2) is True
        assert alerts.is_watched(TOKEN_A) is False
        assert len(alerts) == 0

    def test_unenroll_unknown_is_noop(self, alerts: AlertRegistry) -> None:
        assert alerts.unenroll(TOKEN_A, 1) is False
        alerts.enroll(TOKEN_A, 1)
        assert alerts.unenroll(TOKEN_A, 2) is False
        assert alerts.subscribers_of(TOKEN_A) == [1]

    def test_clear_all_garbage_collects(self, alerts: AlertRegistry) -> None:
        alerts.enroll(TOKEN_A, 1)
        alerts.enroll(TOKEN_B, 1)
        alerts.enroll(TOKEN_B, 2)
        alerts.enroll(TOKEN_C, 2)

        assert alerts.clear_all(1) == 2
        assert alerts.is_watched(TOKEN_A) is False
        assert alerts.subscribers_of(TOKEN_B) == [2]
        assert alerts.count_for(1) == 0
        assert sorted(alerts.tokens()) == [TOKEN_B, TOKEN_C]

    def test_enroll_everywhere(self, alerts: AlertRegistry) -> None:
        alerts.enroll(TOKEN_A, 1)
        alerts.enroll(TOKEN_B, 2)
        assert alerts.enroll_everywhere(2) == 1
        assert alerts.count_for(2) == 2
        assert alerts.enroll_everywhere(2) == 0

    def test_tokens_for_reports_first_touch(self) -> None:
        stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
        registry = AlertRegistry(clock=lambda: stamp)
        registry.enroll(TOKEN_A, 7)
        assert registry.tokens_for(7) == [(TOKEN_A, stamp)]
        assert registry.tokens_for(8) == []
