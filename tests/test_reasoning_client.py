import json
from types import SimpleNamespace
from unittest import TestCase

import httpx
from openai import APITimeoutError

from erpchat.backend.adapters.reasoning_client import (
	LocalReasoningClient,
	OpenAIReasoningClient,
	tool_results_message,
)
from erpchat.backend.dispatch.tools import tool_schemas
from erpchat.backend.dispatch.types import Answer, ReasoningError, ReasoningTimeout, ToolCall, ToolCalls, ToolResult
from erpchat.backend.services.session_store import Turn


class _FakeResponses:
	def __init__(self, response=None, error: Exception | None = None):
		self.response = response
		self.error = error
		self.requests = []

	def create(self, **kwargs):
		self.requests.append(kwargs)
		if self.error is not None:
			raise self.error
		return self.response


def _client(response=None, error: Exception | None = None):
	responses = _FakeResponses(response, error)
	return SimpleNamespace(responses=responses), responses


class OpenAIReasoningClientTests(TestCase):
	def test_decide_parses_function_calls(self) -> None:
		response = SimpleNamespace(
			output=[
				SimpleNamespace(type="reasoning"),
				SimpleNamespace(
					type="function_call",
					name="getBankBalances",
					arguments=json.dumps({"currency": "USD"}),
					call_id="call_1",
				),
				{"type": "function_call", "name": "getCashBalance", "arguments": "not json", "call_id": "call_2"},
			],
			output_text="",
		)
		fake, responses = _client(response)
		reasoning = OpenAIReasoningClient(api_key="", model="gpt-test", client=fake)
		context = [Turn(role="user", content="hi"), Turn(role="model", content="hello")]
		decision = reasoning.decide(context, "bank balances in usd", tool_schemas(), 30.0)

		self.assertIsInstance(decision, ToolCalls)
		self.assertEqual(decision.calls[0], ToolCall("getBankBalances", {"currency": "USD"}, "call_1"))
		self.assertEqual(decision.calls[1].arguments, {})
		request = responses.requests[0]
		self.assertEqual(request["model"], "gpt-test")
		self.assertEqual(request["timeout"], 30.0)
		self.assertEqual(len(request["tools"]), 12)
		self.assertEqual([item["role"] for item in request["input"]], ["system", "user", "assistant", "user"])

	def test_decide_returns_plain_answer(self) -> None:
		fake, _ = _client(SimpleNamespace(output=[], output_text="  Hello there  "))
		decision = OpenAIReasoningClient(api_key="", model="m", client=fake).decide([], "hi", [], 30.0)
		self.assertEqual(decision, Answer("Hello there"))

	def test_compose_sends_results_without_tools(self) -> None:
		message = SimpleNamespace(type="message", content=[SimpleNamespace(type="output_text", text="Balances are fine.")])
		fake, responses = _client(SimpleNamespace(output=[message], output_text=None))
		call = ToolCall("getCashBalance", {}, "c1")
		text = OpenAIReasoningClient(api_key="", model="m", client=fake).compose(
			[],
			"cash?",
			[call],
			[ToolResult(call=call, text="Main: 5 TL")],
			tools=None,
			timeout_s=25.0,
		)

		self.assertEqual(text, "Balances are fine.")
		request = responses.requests[0]
		self.assertNotIn("tools", request)
		self.assertEqual(request["timeout"], 25.0)
		self.assertIn("Main: 5 TL", request["input"][-1]["content"])

	def test_compose_rejects_empty_text(self) -> None:
		fake, _ = _client(SimpleNamespace(output=[], output_text=""))
		with self.assertRaises(ReasoningError):
			OpenAIReasoningClient(api_key="", model="m", client=fake).compose([], "x", [], [])

	def test_timeouts_map_to_reasoning_timeout(self) -> None:
		api_timeout = APITimeoutError(request=httpx.Request("POST", "https://api.openai.com/v1/responses"))
		for error in (api_timeout, TimeoutError("slow")):
			fake, _ = _client(error=error)
			with self.assertRaises(ReasoningTimeout):
				OpenAIReasoningClient(api_key="", model="m", client=fake).decide([], "x", [], 1.0)

	def test_other_errors_map_to_reasoning_error(self) -> None:
		fake, _ = _client(error=RuntimeError("boom"))
		with self.assertRaises(ReasoningError) as ctx:
			OpenAIReasoningClient(api_key="", model="m", client=fake).decide([], "x", [], 1.0)
		self.assertNotIsInstance(ctx.exception, ReasoningTimeout)
		self.assertEqual(ctx.exception.status_code, 502)

	def test_api_key_required_without_client(self) -> None:
		with self.assertRaises(ReasoningError) as ctx:
			OpenAIReasoningClient(api_key="", model="m")
		self.assertEqual(ctx.exception.status_code, 503)

	def test_tool_results_message_is_json_payload(self) -> None:
		call = ToolCall("getCustomerInfo", {"customerName": "Yılmaz"})
		message = tool_results_message([call], [ToolResult(call=call, text="Yılmaz İnşaat")])
		payload = json.loads(message.split("\n", 1)[1])
		self.assertEqual(payload["tool_results"][0]["arguments"], {"customerName": "Yılmaz"})
		self.assertEqual(payload["tool_results"][0]["result"], "Yılmaz İnşaat")


class LocalReasoningClientTests(TestCase):
	def setUp(self) -> None:
		self.client = LocalReasoningClient()
		self.tools = tool_schemas()

	def _decide(self, message: str):
		return self.client.decide([], message, self.tools, 30.0)

	def test_routes_keywords_to_tools(self) -> None:
		self.assertEqual(self._decide("What are our bank balances?").calls[0].name, "getBankBalances")
		self.assertEqual(self._decide("Show the stock report").calls[0].name, "getStockReport")
		self.assertEqual(self._decide("credit card limits please").calls[0].name, "getCreditCardLimits")

	def test_quote_number_routes_to_detail(self) -> None:
		decision = self._decide("Open quote TEK-2024-1050")
		self.assertEqual(decision.calls[0], ToolCall("getQuoteDetail", {"quoteNumber": "TEK-2024-1050"}))

	def test_balance_status_argument(self) -> None:
		decision = self._decide("List debtor customers")
		self.assertEqual(decision.calls[0].name, "getBalanceList")
		self.assertEqual(decision.calls[0].arguments, {"balanceStatus": "debtor"})

	def test_unavailable_tools_are_skipped(self) -> None:
		decision = self.client.decide([], "bank balances", [], 30.0)
		self.assertIsInstance(decision, Answer)

	def test_compose_joins_results(self) -> None:
		call = ToolCall("getCashBalance")
		text = self.client.compose([], "cash", [call, call], [ToolResult(call, "a"), ToolResult(call, " "), ToolResult(call, "b")])
		self.assertEqual(text, "a\n\nb")
