from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from erpchat.backend.adapters.query_gateway import QueryGateway
from erpchat.backend.dispatch.types import ToolCall
from erpchat.backend.services import entity_resolver, formatting
from erpchat.backend.services.export_scheduler import ExportScheduler
from erpchat.backend.services.result_materializer import PendingExport, ResultMaterializer


LOGGER = logging.getLogger(__name__)

Handler = Callable[[str, Mapping[str, Any]], str]


def _arg(arguments: Mapping[str, Any], name: str) -> Optional[str]:
	value = arguments.get(name)
	if value is None:
		return None
	text = str(value).strip()
	return text or None


def _titled(kind: str, *filters: Optional[str]) -> str:
	base = formatting.report_format(kind).title
	extra = [item for item in filters if item]
	if not extra:
		return base
	return f"{base} - {' / '.join(extra)}"


def _suggestion_reply(label: str, term: str, suggestions: List[str]) -> str:
	lines = [f"No {label} exactly matching \"{term}\" was found. Did you mean:"]
	lines.extend(f"{index}. {item}" for index, item in enumerate(suggestions, start=1))
	lines.append("Please confirm which one you meant.")
	return "\n".join(lines)


def _not_found_reply(label: str, term: str, unfiltered_hint: str) -> str:
	return f"No {label} named \"{term}\" was found. {unfiltered_hint}"


class ToolHandlers:
	"""Per-tool logic. Each handler returns the tool's textual result.

	Named lookups that come back empty consult the entity resolver and answer
	with suggestions; they never repeat the first fetch.
	"""

	def __init__(self, gateway: QueryGateway, materializer: ResultMaterializer, exports: ExportScheduler):
		self.gateway = gateway
		self.materializer = materializer
		self.exports = exports
		self._handlers: Dict[str, Handler] = {
			"getBankBalances": self.bank_balances,
			"getStockReport": self.stock_report,
			"getCustomerInfo": self.customer_info,
			"getCreditCardLimits": self.credit_card_limits,
			"getCashBalance": self.cash_balance,
			"getQuoteReport": self.quote_report,
			"getQuoteDetail": self.quote_detail,
			"getCustomerMovement": self.customer_movement,
			"getBalanceList": self.balance_list,
			"testConnection": self.test_connection,
			"requestDocument": self.request_document,
			"setOutputPreference": self.set_output_preference,
		}

	def names(self) -> List[str]:
		return list(self._handlers)

	def run(self, user_id: str, call: ToolCall) -> str:
		handler = self._handlers.get(call.name)
		if handler is None:
			return f"Unknown tool: {call.name}."
		LOGGER.info("Tool call: user=%s tool=%s", user_id, call.name)
		return handler(str(user_id), call.arguments)

	def _fetch(self, operation: str, params: Optional[Mapping[str, Any]] = None):
		result = self.gateway.execute(operation, params or {})
		if not result.success:
			LOGGER.warning("Gateway failure: operation=%s error=%s", operation, result.error_message)
		return result

	def _failure(self, label: str, error_message: str) -> str:
		return f"Could not retrieve {label}. Error: {error_message}"

	def _deliver(self, user_id: str, kind: str, title: str, rows: List[Dict[str, Any]]) -> str:
		if rows:
			self.materializer.preferences.remember(user_id, kind, title, rows)
		materialized = self.materializer.decide(rows, kind, user_id, title=title)
		if materialized.export is not None:
			self.exports.schedule(materialized.export)
		return materialized.inline_text

	def _candidates(self, operation: str, column: str) -> List[Dict[str, Any]]:
		result = self._fetch(operation)
		if not result.success:
			return []
		return entity_resolver.distinct_names(result.rows, column)

	def _resolve_or_hint(self, label: str, term: str, candidates: List[Dict[str, Any]], unfiltered_hint: str) -> str:
		resolution = entity_resolver.resolve(candidates, term)
		if resolution.suggestions:
			return _suggestion_reply(label, term, resolution.suggestions)
		return _not_found_reply(label, term, unfiltered_hint)

	def bank_balances(self, user_id: str, arguments: Mapping[str, Any]) -> str:
		bank_name = _arg(arguments, "bankName")
		currency = _arg(arguments, "currency")
		result = self._fetch("bank_balances", {"currency": currency})
		if not result.success:
			return self._failure("bank balances", result.error_message)

		rows = result.rows
		if bank_name:
			wanted = entity_resolver.normalize_text(bank_name)
			rows = [row for row in result.rows if wanted in entity_resolver.normalize_text(row.get("bank_name"))]
			if not rows:
				return self._resolve_or_hint(
					"bank",
					bank_name,
					entity_resolver.distinct_names(result.rows, "bank_name"),
					"Ask for all bank balances without a bank filter to see every account.",
				)
		return self._deliver(user_id, "bank_balances", _titled("bank_balances", bank_name, currency), rows)

	def stock_report(self, user_id: str, arguments: Mapping[str, Any]) -> str:
		product = _arg(arguments, "productName")
		warehouse = _arg(arguments, "warehouse")
		result = self._fetch("stock_report", {"stock_name": product, "warehouse": warehouse})
		if not result.success:
			return self._failure("the stock report", result.error_message)
		if not result.rows and product:
			return self._resolve_or_hint(
				"product",
				product,
				self._candidates("stock_report", "stock_name"),
				"Ask for the stock report without a product filter to see all items.",
			)
		return self._deliver(user_id, "stock_report", _titled("stock_report", product, warehouse), result.rows)

	def customer_info(self, user_id: str, arguments: Mapping[str, Any]) -> str:
		customer = _arg(arguments, "customerName")
		result = self._fetch("customer_info", {"customer_name": customer})
		if not result.success:
			return self._failure("customer information", result.error_message)
		if not result.rows and customer:
			return self._resolve_or_hint(
				"customer",
				customer,
				self._candidates("customer_names", "customer_name"),
				"Ask for customer information without a name to list all accounts.",
			)
		return self._deliver(user_id, "customer_info", _titled("customer_info", customer), result.rows)

	def credit_card_limits(self, user_id: str, arguments: Mapping[str, Any]) -> str:
		result = self._fetch("credit_card_limits")
		if not result.success:
			return self._failure("credit card limits", result.error_message)
		return self._deliver(user_id, "credit_card_limits", _titled("credit_card_limits"), result.rows)

	def cash_balance(self, user_id: str, arguments: Mapping[str, Any]) -> str:
		result = self._fetch("cash_balance")
		if not result.success:
			return self._failure("cash balances", result.error_message)
		return self._deliver(user_id, "cash_balance", _titled("cash_balance"), result.rows)

	def quote_report(self, user_id: str, arguments: Mapping[str, Any]) -> str:
		customer = _arg(arguments, "customerName")
		status = _arg(arguments, "quoteStatus")
		result = self._fetch("quote_report", {"customer_name": customer, "status": status})
		if not result.success:
			return self._failure("the quote report", result.error_message)
		if not result.rows and customer:
			return self._resolve_or_hint(
				"customer",
				customer,
				self._candidates("customer_names", "customer_name"),
				"Ask for the quote report without a customer filter to see all quotes.",
			)
		return self._deliver(user_id, "quote_report", _titled("quote_report", customer, status), result.rows)

	def quote_detail(self, user_id: str, arguments: Mapping[str, Any]) -> str:
		quote_no = _arg(arguments, "quoteNumber") or ""
		result = self._fetch("quote_detail", {"quote_no": quote_no})
		if not result.success:
			return self._failure(f"quote {quote_no}", result.error_message)
		if not result.rows:
			return self._resolve_or_hint(
				"quote",
				quote_no,
				self._candidates("quote_report", "quote_no"),
				"Ask for the quote report to see the available quote numbers.",
			)
		return self._deliver(user_id, "quote_detail", _titled("quote_detail", quote_no), result.rows)

	def customer_movement(self, user_id: str, arguments: Mapping[str, Any]) -> str:
		customer = _arg(arguments, "customerName")
		start_date = _arg(arguments, "startDate")
		end_date = _arg(arguments, "endDate")
		result = self._fetch(
			"customer_movement",
			{"customer_name": customer, "start_date": start_date, "end_date": end_date},
		)
		if not result.success:
			return self._failure("customer movements", result.error_message)
		if not result.rows and customer:
			return self._resolve_or_hint(
				"customer",
				customer,
				self._candidates("customer_names", "customer_name"),
				"Ask for customer movements without a customer filter or widen the date range.",
			)
		period = f"{start_date or '...'} to {end_date or '...'}" if (start_date or end_date) else None
		return self._deliver(user_id, "customer_movement", _titled("customer_movement", customer, period), result.rows)

	def balance_list(self, user_id: str, arguments: Mapping[str, Any]) -> str:
		status = _arg(arguments, "balanceStatus")
		group = _arg(arguments, "groupFilter")
		customer = _arg(arguments, "customerName")
		result = self._fetch("balance_list", {"balance_status": status, "group_name": group})
		if not result.success:
			return self._failure("the balance list", result.error_message)

		rows = result.rows
		if customer:
			wanted = entity_resolver.normalize_text(customer)
			rows = [row for row in rows if wanted in entity_resolver.normalize_text(row.get("customer_name"))]
			if not rows:
				return self._resolve_or_hint(
					"customer",
					customer,
					entity_resolver.distinct_names(result.rows, "customer_name"),
					"Ask for the balance list without a customer filter to see all balances.",
				)
		return self._deliver(user_id, "balance_list", _titled("balance_list", status, group, customer), rows)

	def test_connection(self, user_id: str, arguments: Mapping[str, Any]) -> str:
		result = self._fetch("connection_test")
		if not result.success:
			return self._failure("the connection status", result.error_message)
		return "The connection to the ERP data service is working."

	def request_document(self, user_id: str, arguments: Mapping[str, Any]) -> str:
		last = self.materializer.preferences.last_result(user_id)
		if last is None or not last.rows:
			return "There is no recent result to send as a document. Ask for a report first."
		self.exports.schedule(PendingExport(user_id=user_id, kind=last.kind, title=last.title, rows=list(last.rows)))
		return f"The document \"{last.title}\" ({len(last.rows)} records) is being prepared and will be sent shortly."

	def set_output_preference(self, user_id: str, arguments: Mapping[str, Any]) -> str:
		output_format = _arg(arguments, "format")
		kind = _arg(arguments, "reportKind")
		last = self.materializer.preferences.last_result(user_id)
		if kind is None:
			kind = last.kind if last else None
		if kind is None:
			return "Tell me which report the preference is for, e.g. setOutputPreference(format='text', reportKind='bank_balances')."
		self.materializer.preferences.set_format(user_id, kind, output_format)  # type: ignore[arg-type]
		title = formatting.report_format(kind).title
		if output_format == "document":
			return f"From now on {title} results will be sent as documents."
		confirmation = f"From now on {title} results will be shown in full as text."
		if last is not None and last.kind == kind and last.rows:
			return f"{confirmation}\n\n{formatting.render_full(last.rows, last.kind, last.title)}"
		return confirmation
