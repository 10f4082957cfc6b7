import os
import tempfile
import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest import mock

from fastapi.testclient import TestClient

from app import db, webhooks
from app.conversation import messages
from app.conversation.engine import ConversationEngine
from app.conversation.session_store import (
    ConversationState,
    InMemorySessionStore,
    SqlSessionStore,
)
from app.main import app
from app.outbound.dry_run import DryRunSendGateway
from app.webhooks import get_conversation_engine


def _payload(sender="15551234", body="hi"):
    message = {"from": sender, "id": "wamid.X", "type": "text"}
    if body is not None:
        message["text"] = {"body": body}
    return {
        "object": "whatsapp_business_account",
        "entry": [{"changes": [{"value": {"messages": [message]}}]}],
    }


class WebhookVerificationTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(app)

    def _verify(self, mode, token, challenge="1158201444"):
        return self.client.get(
            "/webhooks/whatsapp",
            params={"hub.mode": mode, "hub.verify_token": token, "hub.challenge": challenge},
        )

    def test_challenge_echoed_when_token_matches(self):
        with mock.patch.dict("os.environ", {"WHATSAPP_VERIFY_TOKEN": "secret"}):
            resp = self._verify("subscribe", "secret")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.text, "1158201444")

    def test_wrong_token_or_mode_is_forbidden(self):
        with mock.patch.dict("os.environ", {"WHATSAPP_VERIFY_TOKEN": "secret"}):
            self.assertEqual(self._verify("subscribe", "nope").status_code, 403)
            self.assertEqual(self._verify("unsubscribe", "secret").status_code, 403)

    def test_unset_secret_is_forbidden(self):
        with mock.patch.dict("os.environ", {"WHATSAPP_VERIFY_TOKEN": ""}):
            self.assertEqual(self.client.get("/webhooks/whatsapp").status_code, 403)


class WebhookDeliveryTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemorySessionStore()
        self.gateway = DryRunSendGateway()
        self.catalog = mock.Mock()
        self.engine = ConversationEngine(
            store=self.store,
            catalog=self.catalog,
            gateway=self.gateway,
        )
        app.dependency_overrides[get_conversation_engine] = lambda: self.engine
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_message_drives_conversation(self):
        resp = self.client.post("/webhooks/whatsapp", json=_payload(body="Hi"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.text, "OK")
        self.assertEqual(self.store.get("15551234").state, ConversationState.ROLE_SELECTION)
        self.assertEqual(self.gateway.texts_to("15551234"), [messages.WELCOME_TEXT])

        self.client.post("/webhooks/whatsapp", json=_payload(body="2"))
        self.assertEqual(self.store.get("15551234").state, ConversationState.VENDOR_MENU)

    def test_payload_without_messages_is_acknowledged(self):
        status_update = {"entry": [{"changes": [{"value": {"statuses": [{"status": "read"}]}}]}]}
        for body in (status_update, {}, {"entry": []}, []):
            resp = self.client.post("/webhooks/whatsapp", json=body)
            self.assertEqual(resp.status_code, 200)
            self.assertEqual(resp.text, "OK")
        self.assertEqual(self.gateway.sent, [])
        self.assertEqual(len(self.store), 0)

    def test_non_json_body_is_acknowledged(self):
        resp = self.client.post(
            "/webhooks/whatsapp",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.gateway.sent, [])

    def test_media_message_is_processed_as_empty_text(self):
        self.client.post("/webhooks/whatsapp", json=_payload(body=None))
        self.assertEqual(self.store.get("15551234").state, ConversationState.ROLE_SELECTION)

    def test_processing_error_is_still_acknowledged(self):
        broken = mock.Mock()
        broken.handle_message.side_effect = RuntimeError("boom")
        app.dependency_overrides[get_conversation_engine] = lambda: broken

        with self.assertLogs("webhooks", level="ERROR"):
            resp = self.client.post("/webhooks/whatsapp", json=_payload())
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.text, "OK")


class WebhookEngineWiringTests(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        url = "sqlite:///" + os.path.join(self.temp_dir.name, "fresh.db")
        self.env = mock.patch.dict(
            "os.environ",
            {"DATABASE_URL": url, "SESSION_BACKEND": "database", "OUTBOUND_MODE": "dry_run"},
        )
        self.env.start()
        db._engine = None
        webhooks._engine = None
        self.client = TestClient(app)

    def tearDown(self):
        webhooks._engine = None
        if db._engine is not None:
            db._engine.dispose()
        db._engine = None
        self.env.stop()
        self.temp_dir.cleanup()

    def test_database_sessions_work_on_a_fresh_database(self):
        resp = self.client.post("/webhooks/whatsapp", json=_payload(body="hi"))
        self.assertEqual(resp.status_code, 200)

        engine = webhooks.get_conversation_engine()
        self.assertEqual(engine._gateway.texts_to("15551234"), [messages.WELCOME_TEXT])

        self.client.post("/webhooks/whatsapp", json=_payload(body="1"))
        stored = SqlSessionStore(db.get_session_factory()).get("15551234")
        self.assertEqual(stored.state, ConversationState.FARMER_MENU)

    def test_concurrent_first_requests_share_one_engine(self):
        with ThreadPoolExecutor(max_workers=8) as pool:
            engines = list(pool.map(lambda _: webhooks.get_conversation_engine(), range(16)))
        self.assertEqual(len({id(e) for e in engines}), 1)


class HealthTests(unittest.TestCase):
    def test_liveness(self):
        resp = TestClient(app).get("/health")
        self.assertEqual(resp.json(), {"status": "ok"})

    def test_db_probe_reports_unhealthy(self):
        with mock.patch("app.db.test_db_connection", side_effect=RuntimeError("DATABASE_URL is not set")):
            resp = TestClient(app).get("/health/db")
        self.assertEqual(resp.json()["database"], "unhealthy")


if __name__ == "__main__":
    unittest.main()
