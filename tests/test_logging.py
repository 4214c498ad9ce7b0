"""
Tests for event shipping to OpenObserve and the cleaner job.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import requests

from trafficfines.src import cleaner, loggers, openobserve
from trafficfines.src.db import AccessToken
from trafficfines.src.enums import AppID
from trafficfines.src.schemas import RequestInfo

REQUEST = RequestInfo(method="POST", path="/admin/violation", app_id=AppID.ADMIN)


class TestOpenObserve:
    def test_disabled_sends_nothing(self):
        with patch.object(openobserve.requests, "post") as post:
            assert openobserve.logEvent({"a": 1}) is None
        post.assert_not_called()

    def test_enabled_posts_json(self, monkeypatch):
        monkeypatch.setattr(openobserve, "OPENOBSERVE_ENABLED", True)
        with patch.object(openobserve.requests, "post") as post:
            openobserve.logEvent({"when": datetime(2025, 1, 1)})
        url = post.call_args.args[0]
        assert url.endswith("/_json")
        assert "2025-01-01" in post.call_args.kwargs["data"]
        assert post.call_args.kwargs["timeout"] == openobserve.OPENOBSERVE_TIMEOUT

    def test_unreachable_server_is_tolerated(self, monkeypatch):
        monkeypatch.setattr(openobserve, "OPENOBSERVE_ENABLED", True)
        with patch.object(openobserve.requests, "post") as post:
            post.side_effect = requests.ConnectionError("refused")
            assert openobserve.logEvent({"a": 1}) is None


class TestEventContext:
    def test_public_event(self):
        with patch.object(openobserve, "logEvent") as ship:
            loggers.logEvent(None, REQUEST, {"id": 7})
        event = ship.call_args.args[0]
        assert event["_path"] == "/admin/violation"
        assert event["_method"] == "POST"
        assert event["id"] == 7
        assert "_user_id" not in event

    def test_authenticated_event(self):
        token = AccessToken(user_id=3)
        with patch.object(openobserve, "logEvent") as ship:
            loggers.logEvent(token, REQUEST, {})
        assert ship.call_args.args[0]["_user_id"] == 3


class TestCleaner:
    def test_expired_tokens_are_removed(self, session, owner):
        now = datetime.now(timezone.utc)
        session.add_all(
            [
                AccessToken(user_id=owner.id, expires_in=1, expires_at=now - timedelta(hours=1)),
                AccessToken(user_id=owner.id, expires_in=1, expires_at=now + timedelta(hours=1)),
            ]
        )
        session.commit()

        assert cleaner.removeExpiredTokens(session) == 1
        assert session.query(AccessToken).count() == 1

    def test_expired_otps_are_removed(self, resetOTP, clock):
        resetOTP.issue("ram@gmail.com")
        clock.advance(301)
        assert cleaner.removeExpiredOTPs(resetOTP) == 1

    def test_main_never_raises(self, resetOTP):
        with patch.object(cleaner, "removeExpiredTokens", side_effect=RuntimeError("db down")):
            cleaner.main(resetOTP)
