import datetime as dt
import json
import unittest

from fastapi.testclient import TestClient

from civic_assistant.aggregator import EnvironmentalAggregator
from civic_assistant.api import format_file_size
from civic_assistant.cache_store import InMemoryCacheStore
from civic_assistant.chat import ChatOrchestrator
from civic_assistant.config import Settings
from civic_assistant.domain import AISource
from civic_assistant.errors import UpstreamError
from civic_assistant.main import create_app
from civic_assistant.providers import build_providers
from civic_assistant.rate_limiter import SlidingWindowRateLimiter
from civic_assistant.services import Services

LOCATION = {"lat": 39.7684, "lng": -86.1581, "address": "Indianapolis, IN"}


class CannedCompleter:
    """Every provider gets the same JSON; unknown fields are ignored by each payload."""

    def __init__(self, error=None):
        self.error = error
        self.calls = 0

    def complete(self, prompt, *, system=None):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return (
            '{"temperature": 72, "aqi": 42, "quality": "Good", "conditions": "Clear", '
            '"pollenCount": "Low", "incidents": [], "bankHolidays": []}'
        )


class FakeBackend:
    def __init__(self, source, reply="ok", error=None):
        self.source = source
        self.reply = reply
        self.error = error
        self.calls = []

    def respond(self, query, history, user_context, attachment=None):
        self.calls.append((query, list(history), user_context, attachment))
        if self.error is not None:
            raise self.error
        return self.reply


class _ApiTestCase(unittest.TestCase):
    settings_overrides = {}

    def setUp(self):
        self.settings = Settings(_env_file=None, **self.settings_overrides)
        self.completer = CannedCompleter()
        self.cache = InMemoryCacheStore()
        self.live = FakeBackend(AISource.LIVE, "live reply")
        self.general = FakeBackend(AISource.GENERAL, "general reply")
        self.services = Services(
            settings=self.settings,
            cache=self.cache,
            environment_limiter=SlidingWindowRateLimiter(
                self.settings.rate_limit_max_calls, self.settings.rate_limit_window_seconds
            ),
            chat_limiter=SlidingWindowRateLimiter(
                self.settings.chat_rate_limit_max_calls, self.settings.rate_limit_window_seconds
            ),
            aggregator=EnvironmentalAggregator(
                build_providers(self.completer, self.cache, self.settings),
                self.cache,
                max_workers=6,
            ),
            chat=ChatOrchestrator({AISource.LIVE: self.live, AISource.GENERAL: self.general}),
        )
        self.addCleanup(self.services.aggregator.shutdown)
        self.client = TestClient(create_app(services=self.services), raise_server_exceptions=False)


class TestEnvironmentalData(_ApiTestCase):
    def test_end_to_end_snapshot(self):
        before = dt.datetime.now(dt.timezone.utc)
        resp = self.client.post(
            "/environmental-data",
            json={"location": LOCATION, "userPreferences": {"allergies": ["ragweed"], "bloodGroup": "O+"}},
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()

        self.assertEqual(body["weather"]["temperature"], 72)
        self.assertIsInstance(body["airQuality"]["aqi"], int)
        self.assertGreaterEqual(body["airQuality"]["aqi"], 0)
        self.assertEqual(body["traffic"]["conditions"], "Clear")
        self.assertIn("markets", body)
        self.assertEqual(body["unavailable"], [])
        self.assertEqual(body["location"], LOCATION)

        last_updated = dt.datetime.fromisoformat(body["lastUpdated"].replace("Z", "+00:00"))
        self.assertLess(abs((last_updated - before).total_seconds()), 1.0)

    def test_repeat_is_byte_identical_and_skips_upstream(self):
        first = self.client.post("/environmental-data", json={"location": LOCATION})
        calls = self.completer.calls
        second = self.client.post("/environmental-data", json={"location": LOCATION})

        self.assertEqual(first.content, second.content)
        self.assertEqual(self.completer.calls, calls)

    def test_upstream_outage_still_returns_200(self):
        self.completer.error = UpstreamError("down")
        resp = self.client.post("/environmental-data", json={"location": LOCATION})

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["weather"]["temperature"], "N/A")
        self.assertEqual(len(body["unavailable"]), 6)

    def test_missing_location(self):
        for payload in ({}, {"location": {"lat": 39.77, "lng": -86.16}}, {"location": None}):
            with self.subTest(payload=payload):
                resp = self.client.post("/environmental-data", json=payload)
                self.assertEqual(resp.status_code, 400)
                self.assertEqual(resp.json()["error"], "Missing required location data")
                self.assertEqual(
                    resp.json()["required"], ["location.lat", "location.lng", "location.address"]
                )
        self.assertEqual(self.completer.calls, 0)

    def test_malformed_body(self):
        resp = self.client.post(
            "/environmental-data", content=b"not json", headers={"Content-Type": "application/json"}
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Invalid request payload")

    def test_unexpected_error_is_generic_500(self):
        class BrokenAggregator:
            def aggregate(self, location, user_context=None):
                raise RuntimeError("boom")

            def shutdown(self):
                pass

        self.services.aggregator = BrokenAggregator()
        resp = self.client.post("/environmental-data", json={"location": LOCATION})

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["error"], "Internal server error")


class TestRateLimiting(_ApiTestCase):
    settings_overrides = {"rate_limit_max_calls": 2, "chat_rate_limit_max_calls": 1}

    def test_third_call_is_rejected(self):
        for _ in range(2):
            self.assertEqual(self.client.post("/environmental-data", json={"location": LOCATION}).status_code, 200)

        resp = self.client.post("/environmental-data", json={"location": LOCATION})

        self.assertEqual(resp.status_code, 429)
        self.assertEqual(resp.json()["error"], "Rate limit exceeded")
        self.assertGreaterEqual(int(resp.headers["Retry-After"]), 1)

    def test_invalid_requests_do_not_consume_budget(self):
        for _ in range(5):
            self.client.post("/environmental-data", json={})
        resp = self.client.post("/environmental-data", json={"location": LOCATION})
        self.assertEqual(resp.status_code, 200)

    def test_chat_has_its_own_budget(self):
        self.assertEqual(self.client.post("/chat/send", data={"message": "hi"}).status_code, 200)
        self.assertEqual(self.client.post("/chat/send", data={"message": "hi"}).status_code, 429)
        self.assertEqual(self.client.post("/environmental-data", json={"location": LOCATION}).status_code, 200)


class TestForwardedFor(_ApiTestCase):
    settings_overrides = {"rate_limit_max_calls": 1, "trust_forwarded_for": True}

    def test_forwarded_clients_are_separate(self):
        for ip in ("203.0.113.1", "203.0.113.2"):
            resp = self.client.post(
                "/environmental-data", json={"location": LOCATION}, headers={"X-Forwarded-For": f"{ip}, 10.0.0.1"}
            )
            self.assertEqual(resp.status_code, 200)


class TestChatSend(_ApiTestCase):
    settings_overrides = {"max_user_message_chars": 200, "max_upload_bytes": 16}

    def test_live_routing(self):
        resp = self.client.post(
            "/chat/send",
            data={
                "message": "What's the weather like today in Indianapolis?",
                "conversationHistory": json.dumps([
                    {"role": "user", "parts": [{"text": "hello"}]},
                    {"role": "model", "parts": [{"text": "hi, how can I help?"}]},
                ]),
                "userData": json.dumps({"name": "Ada", "zipCode": "46204"}),
            },
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["response"], "live reply")
        self.assertEqual(body["aiSource"], "live")
        self.assertIn("timestamp", body)

        _, history, user_context, _ = self.live.calls[0]
        self.assertEqual(len(history), 2)
        self.assertEqual(user_context.zip_code, "46204")

    def test_fallback_is_reported(self):
        self.live.error = UpstreamError("down")
        resp = self.client.post("/chat/send", data={"message": "latest news downtown"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["aiSource"], "general")
        self.assertEqual(resp.json()["response"], "general reply")

    def test_both_backends_fail(self):
        self.live.error = UpstreamError("down")
        self.general.error = UpstreamError("down too")

        resp = self.client.post("/chat/send", data={"message": "Explain how property tax assessments work"})

        self.assertEqual(resp.status_code, 500)
        body = resp.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["error"], "Failed to generate AI response")
        self.assertEqual(body["aiSource"], "live")
        self.assertIn("message", body)

    def test_empty_and_long_messages(self):
        self.assertEqual(self.client.post("/chat/send", data={"message": "   "}).status_code, 400)
        self.assertEqual(self.client.post("/chat/send", data={}).status_code, 400)
        self.assertEqual(self.client.post("/chat/send", data={"message": "x" * 201}).status_code, 400)

    def test_bad_history_json(self):
        resp = self.client.post("/chat/send", data={"message": "hi", "conversationHistory": "[not json"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Invalid JSON in conversationHistory or userData")

    def test_attachment_reaches_backend(self):
        resp = self.client.post(
            "/chat/send",
            data={"message": "What does this say?"},
            files={"file": ("note.txt", b"hello", "text/plain")},
        )
        self.assertEqual(resp.status_code, 200)
        attachment = self.general.calls[0][3]
        self.assertEqual(attachment.mime_type, "text/plain")
        self.assertEqual(attachment.data, b"hello")

    def test_unsupported_attachment(self):
        resp = self.client.post(
            "/chat/send",
            data={"message": "What is this?"},
            files={"file": ("a.zip", b"PK", "application/zip")},
        )
        self.assertEqual(resp.status_code, 400)

    def test_oversize_attachment(self):
        resp = self.client.post(
            "/chat/send",
            data={"message": "What is this?"},
            files={"file": ("big.txt", b"x" * 17, "text/plain")},
        )
        self.assertEqual(resp.status_code, 413)


class TestUploadAndIntrospection(_ApiTestCase):
    def test_upload_reports_file_info(self):
        resp = self.client.post("/chat/upload", files={"file": ("note.txt", b"hello", "text/plain")})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.json()["file"],
            {"filename": "note.txt", "mimetype": "text/plain", "size": 5, "sizeFormatted": "5 Bytes"},
        )

    def test_upload_without_file(self):
        self.assertEqual(self.client.post("/chat/upload").status_code, 400)

    def test_health(self):
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "healthy")
        self.assertEqual(resp.json()["environment"], "development")

    def test_cache_stats_and_clear(self):
        self.client.post("/environmental-data", json={"location": LOCATION})

        stats = self.client.get("/cache/stats").json()
        self.assertEqual(stats["stats"]["keys"], 7)
        self.assertEqual(stats["rateLimiting"]["activeClients"], 1)
        self.assertTrue(any(k["key"].startswith("snapshot:") for k in stats["keys"]))

        self.assertEqual(self.client.delete("/cache/clear").status_code, 200)
        self.assertEqual(self.client.get("/cache/stats").json()["stats"]["keys"], 0)

    def test_format_file_size(self):
        self.assertEqual(format_file_size(0), "0 Bytes")
        self.assertEqual(format_file_size(1536), "1.5 KB")
        self.assertEqual(format_file_size(10 * 1024 * 1024), "10 MB")


class TestProduction(_ApiTestCase):
    settings_overrides = {"environment": "production"}

    def test_introspection_hidden(self):
        self.assertEqual(self.client.get("/cache/stats").status_code, 404)
        self.assertEqual(self.client.delete("/cache/clear").status_code, 404)

    def test_chat_failure_hides_details(self):
        self.live.error = UpstreamError("secret upstream detail")
        self.general.error = UpstreamError("secret upstream detail")
        body = self.client.post("/chat/send", data={"message": "hello"}).json()
        self.assertNotIn("message", body)


if __name__ == "__main__":
    unittest.main()
