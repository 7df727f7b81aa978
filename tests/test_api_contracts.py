import json
import os
import tempfile
from unittest import TestCase
from unittest.mock import patch

from fastapi.testclient import TestClient

from erpchat.backend.adapters import sqlite_adapter
from erpchat.backend.dispatch.types import Answer, ToolCall, ToolCalls
from erpchat.backend.main import create_app
from erpchat.backend.runtime import RESET_REPLY, START_UNLICENSED, build_runtime
from erpchat.backend.settings import Settings


class _RoutingReasoning:
	"""Maps a message to a fixed decision and composes by joining results."""

	def __init__(self, routes):
		self.routes = routes

	def decide(self, context, message, tools, timeout_s):
		return self.routes.get(message, Answer("Hello!"))

	def compose(self, context, message, calls, results, tools=None, timeout_s=25.0):
		return "\n".join(result.text for result in results)


_CREDENTIALS = json.dumps(
	[
		{"key": "full-key", "name": "reporting", "rate_limit": 100},
		{"key": "cash-key", "name": "cash only", "allowed_operations": ["cash_balance"], "rate_limit": 2},
	]
)


class ApiContractsTests(TestCase):
	def setUp(self) -> None:
		self._tmp = tempfile.TemporaryDirectory()
		db_path = os.path.join(self._tmp.name, "erp.db")
		sqlite_adapter.insert_rows(
			"cash_accounts",
			[{"cash_name": "Merkez Kasa", "currency": "TL", "balance": 1250.5}],
			db_path,
		)
		sqlite_adapter.insert_rows(
			"bank_accounts",
			[
				{"bank_name": f"Garanti BBVA {index}", "account_name": "Vadesiz", "currency": "TL", "balance": 100.0 * index}
				for index in range(15)
			],
			db_path,
		)
		settings = Settings(
			provider_mode="local",
			db_path=db_path,
			export_dir=os.path.join(self._tmp.name, "exports"),
			export_cleanup_delay_s=0,
			admin_users=["900"],
			bootstrap_users=["u1"],
		)
		reasoning = _RoutingReasoning(
			{
				"cash": ToolCalls(calls=[ToolCall("getCashBalance")]),
				"banks": ToolCalls(calls=[ToolCall("getBankBalances")]),
			}
		)
		with patch.dict(os.environ, {"ERPCHAT_GATEWAY_CREDENTIALS": _CREDENTIALS}):
			self.runtime = build_runtime(settings, reasoning=reasoning)
		self.client = TestClient(create_app(self.runtime))

	def tearDown(self) -> None:
		self.runtime.shutdown(wait=True)
		self._tmp.cleanup()

	def test_chat_message_runs_tools_and_records_history(self) -> None:
		response = self.client.post("/api/chat/message", json={"user_id": "u1", "text": "cash"})
		self.assertEqual(response.status_code, 200)
		payload = response.json()
		self.assertTrue(payload["ok"])
		reply = payload["data"]["reply"]
		self.assertEqual(reply["outcome"], "answered_with_tools")
		self.assertEqual(reply["state"], "idle")
		self.assertIn("Merkez Kasa", reply["text"])
		self.assertIn("X-Request-ID", response.headers)

		history = self.client.get("/api/chat/history/u1").json()["data"]["turns"]
		self.assertEqual([turn["role"] for turn in history], ["user", "model"])

		self.client.post("/api/chat/reset", json={"user_id": "u1"})
		self.assertEqual(self.client.get("/api/chat/history/u1").json()["data"]["turns"], [])

	def test_unlicensed_user_gets_license_reply(self) -> None:
		response = self.client.post("/api/chat/message", json={"user_id": "stranger", "text": "cash"})
		self.assertEqual(response.json()["data"]["reply"]["outcome"], "license_required")

	def test_large_result_arrives_as_document_in_outbox(self) -> None:
		response = self.client.post("/api/chat/message", json={"user_id": "u1", "text": "banks"})
		self.assertIn("being sent as a document", response.json()["data"]["reply"]["text"])
		self.runtime.exports.shutdown(wait=True)

		items = self.client.get("/api/chat/outbox/u1").json()["data"]["items"]
		documents = [item for item in items if item["kind"] == "document"]
		self.assertEqual(len(documents), 1)
		self.assertTrue(documents[0]["file_name"].endswith(".pdf"))
		self.assertIn("15 records", documents[0]["text"])
		self.assertEqual(self.client.get("/api/chat/outbox/u1").json()["data"]["items"], [])

	def test_telegram_update_delivers_reply_to_outbox(self) -> None:
		update = {
			"update_id": 1,
			"message": {
				"message_id": 7,
				"from": {"id": 555, "username": "ayse", "first_name": "Ayşe"},
				"chat": {"id": 555},
				"text": "hello",
			},
		}
		self.runtime.gate.create_license("555")
		response = self.client.post("/api/chat/telegram", json=update)
		self.assertEqual(response.json()["data"], {"handled": True, "outcome": "answered"})
		items = self.client.get("/api/chat/outbox/555").json()["data"]["items"]
		self.assertEqual([item["text"] for item in items if item["kind"] == "text"], ["Hello!"])
		self.assertEqual(self.runtime.gate.get_license("555").username, "ayse")

	def _telegram(self, text: str, user_id: int = 555, username: str = "ayse") -> dict:
		update = {
			"update_id": 2,
			"message": {
				"message_id": 8,
				"from": {"id": user_id, "username": username, "first_name": "Ayşe"},
				"chat": {"id": user_id},
				"text": text,
			},
		}
		return self.client.post("/api/chat/telegram", json=update).json()["data"]

	def _outbox_texts(self, user_id: str) -> list:
		items = self.client.get(f"/api/chat/outbox/{user_id}").json()["data"]["items"]
		return [item["text"] for item in items if item["kind"] == "text"]

	def test_telegram_reset_command_clears_history_without_dispatch(self) -> None:
		self.runtime.gate.create_license("555")
		self._telegram("hello")
		self.assertEqual(len(self.runtime.sessions.get_history("555")), 2)
		self._outbox_texts("555")

		data = self._telegram("/reset")
		self.assertEqual(data, {"handled": True, "command": "/reset"})
		self.assertEqual(self.runtime.sessions.get_history("555"), [])
		self.assertEqual(self._outbox_texts("555"), [RESET_REPLY])

	def test_telegram_start_command_shows_user_id(self) -> None:
		data = self._telegram("/start@erp_bot", user_id=777, username="mehmet")
		self.assertEqual(data["command"], "/start")
		texts = self._outbox_texts("777")
		self.assertEqual(len(texts), 1)
		self.assertIn("Your user id: 777", texts[0])
		self.assertIn("@mehmet", texts[0])
		self.assertIn(START_UNLICENSED, texts[0])
		self.assertEqual(self.runtime.sessions.get_history("777"), [])

	def test_telegram_unknown_command_is_not_dispatched(self) -> None:
		self.runtime.gate.create_license("555")
		data = self._telegram("/balances now")
		self.assertEqual(data["command"], "/balances")
		self.assertEqual(self.runtime.sessions.get_history("555"), [])
		self.assertIn("Unknown command /balances", self._outbox_texts("555")[0])

	def test_unlicensed_telegram_user_is_told_their_id(self) -> None:
		data = self._telegram("cash", user_id=888)
		self.assertEqual(data["outcome"], "license_required")
		self.assertIn("888", self._outbox_texts("888")[0])

	def test_output_preference_validation(self) -> None:
		ok = self.client.post(
			"/api/chat/preferences",
			json={"user_id": "u1", "report_kind": "bank_balances", "format": "text"},
		)
		self.assertEqual(ok.status_code, 200)
		self.assertTrue(self.runtime.preferences.prefers_text("u1", "bank_balances"))

		bad = self.client.post(
			"/api/chat/preferences",
			json={"user_id": "u1", "report_kind": "payroll", "format": "text"},
		)
		self.assertEqual(bad.status_code, 400)
		self.assertEqual(bad.json()["error"]["code"], "invalid_report_kind")

	def test_validation_errors_use_error_envelope(self) -> None:
		response = self.client.post("/api/chat/message", json={"text": "cash"})
		self.assertEqual(response.status_code, 422)
		payload = response.json()
		self.assertFalse(payload["ok"])
		self.assertEqual(payload["error"]["code"], "validation_error")

	def test_admin_routes_require_admin_header(self) -> None:
		denied = self.client.get("/api/admin/users")
		self.assertEqual(denied.status_code, 403)
		self.assertEqual(denied.json()["error"]["code"], "admin_required")

		headers = {"X-Admin-User": "900"}
		created = self.client.post("/api/admin/users", json={"user_id": "42", "capabilities": ["getCashBalance"]}, headers=headers)
		self.assertEqual(created.json()["data"]["outcome"], "created")
		granted = self.client.post("/api/admin/users/42/grant", json={"capability": "getBankBalances"}, headers=headers)
		self.assertEqual(granted.json()["data"]["outcome"], "granted")
		again = self.client.post("/api/admin/users/42/grant", json={"capability": "getBankBalances"}, headers=headers)
		self.assertEqual(again.json()["data"]["outcome"], "already_granted")

		missing = self.client.post("/api/admin/users/404/activate", headers=headers)
		self.assertEqual(missing.status_code, 404)
		invalid = self.client.post("/api/admin/users/42/grant", json={"capability": "nope"}, headers=headers)
		self.assertEqual(invalid.status_code, 400)

		stats = self.client.get("/api/admin/stats", headers=headers).json()["data"]
		self.assertEqual(stats["licenses"]["total_users"], 2)

	def test_query_endpoint_enforces_keys_allow_list_and_rate(self) -> None:
		no_key = self.client.post("/api/query", json={"operation": "cash_balance"})
		self.assertEqual(no_key.status_code, 401)
		self.assertEqual(no_key.json()["error"]["code"], "INVALID_API_KEY")

		forbidden = self.client.post("/api/query", json={"operation": "bank_balances"}, headers={"X-API-Key": "cash-key"})
		self.assertEqual(forbidden.status_code, 403)

		allowed = self.client.post("/api/query", json={"operation": "cash_balance"}, headers={"X-API-Key": "cash-key"})
		self.assertEqual(allowed.status_code, 200)
		self.assertEqual(allowed.json()["data"]["record_count"], 1)

		limited = self.client.post("/api/query", json={"operation": "cash_balance"}, headers={"X-API-Key": "cash-key"})
		self.assertEqual(limited.status_code, 429)

	def test_query_catalog_and_parameters(self) -> None:
		headers = {"X-API-Key": "full-key"}
		catalog = self.client.get("/api/query/catalog", headers=headers).json()["data"]["operations"]
		self.assertIn("quote_detail", [item["name"] for item in catalog])

		missing = self.client.post("/api/query", json={"operation": "quote_detail"}, headers=headers)
		self.assertEqual(missing.status_code, 400)
		self.assertEqual(missing.json()["error"]["code"], "MISSING_PARAMETER")

		unknown = self.client.post("/api/query", json={"operation": "drop_everything"}, headers=headers)
		self.assertEqual(unknown.status_code, 400)

		filtered = self.client.post(
			"/api/query",
			json={"operation": "bank_balances", "params": {"currency": "USD"}},
			headers=headers,
		)
		self.assertEqual(filtered.json()["data"]["rows"], [])

	def test_health_endpoints(self) -> None:
		summary = self.client.get("/api/health/summary").json()["data"]
		self.assertEqual(summary["gateway"], "local")
		self.assertEqual(summary["messenger"], "OutboxMessenger")
		query_health = self.client.get("/api/query/health")
		self.assertEqual(query_health.status_code, 200)
