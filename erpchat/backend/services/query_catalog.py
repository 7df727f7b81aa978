from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple


ParamType = Literal["string", "date", "integer"]


@dataclass(frozen=True)
class QueryParam:
	name: str
	type: ParamType = "string"
	required: bool = False
	description: str = ""

	def as_dict(self) -> Dict[str, object]:
		return {
			"name": self.name,
			"type": self.type,
			"required": self.required,
			"description": self.description,
		}


@dataclass(frozen=True)
class QueryDefinition:
	"""A named read-only statement.

	User values only ever reach the database as bound named parameters; every
	declared parameter is bound, absent ones as NULL.
	"""

	name: str
	description: str
	sql: str
	params: Tuple[QueryParam, ...] = field(default_factory=tuple)

	def as_dict(self) -> Dict[str, object]:
		return {
			"name": self.name,
			"description": self.description,
			"params": [param.as_dict() for param in self.params],
		}


_CURRENCY = QueryParam("currency", description="Currency code such as TL, USD or EUR.")
_START_DATE = QueryParam("start_date", "date", description="Inclusive start date, YYYY-MM-DD.")
_END_DATE = QueryParam("end_date", "date", description="Inclusive end date, YYYY-MM-DD.")


_QUERIES: Tuple[QueryDefinition, ...] = (
	QueryDefinition(
		name="bank_balances",
		description="Bank account balances, optionally filtered by bank name and currency.",
		sql="""
			SELECT bank_name, account_name, currency, balance
			FROM bank_accounts
			WHERE (:bank_name IS NULL OR bank_name LIKE '%' || :bank_name || '%')
				AND (:currency IS NULL OR UPPER(currency) = UPPER(:currency))
			ORDER BY bank_name, account_name
		""",
		params=(QueryParam("bank_name", description="Partial bank name."), _CURRENCY),
	),
	QueryDefinition(
		name="stock_report",
		description="Stock quantities per warehouse.",
		sql="""
			SELECT stock_code, stock_name, warehouse, quantity
			FROM stock_items
			WHERE (:stock_name IS NULL OR stock_name LIKE '%' || :stock_name || '%')
				AND (:warehouse IS NULL OR warehouse LIKE '%' || :warehouse || '%')
			ORDER BY stock_name, warehouse
		""",
		params=(
			QueryParam("stock_name", description="Partial product name."),
			QueryParam("warehouse", description="Partial warehouse name."),
		),
	),
	QueryDefinition(
		name="customer_info",
		description="Customer account totals and balance.",
		sql="""
			SELECT customer_name, currency, total_debit, total_credit,
				total_debit - total_credit AS balance
			FROM customers
			WHERE (:customer_name IS NULL OR customer_name LIKE '%' || :customer_name || '%')
			ORDER BY customer_name
		""",
		params=(QueryParam("customer_name", description="Partial customer name."),),
	),
	QueryDefinition(
		name="customer_names",
		description="Distinct customer names, used for name suggestions.",
		sql="SELECT DISTINCT customer_name FROM customers ORDER BY customer_name",
	),
	QueryDefinition(
		name="credit_card_limits",
		description="Company credit card limits and usage.",
		sql="""
			SELECT card_name, bank_name, card_limit, used, card_limit - used AS available
			FROM credit_cards
			WHERE (:bank_name IS NULL OR bank_name LIKE '%' || :bank_name || '%')
			ORDER BY bank_name, card_name
		""",
		params=(QueryParam("bank_name", description="Partial bank name."),),
	),
	QueryDefinition(
		name="cash_balance",
		description="Cash register balances.",
		sql="""
			SELECT cash_name, currency, balance
			FROM cash_accounts
			WHERE (:currency IS NULL OR UPPER(currency) = UPPER(:currency))
			ORDER BY cash_name
		""",
		params=(_CURRENCY,),
	),
	QueryDefinition(
		name="quote_report",
		description="Sales quotes with totals, optionally filtered by customer, status and date range.",
		sql="""
			SELECT q.quote_no, q.customer_name, q.quote_date, q.status,
				COALESCE(SUM(l.quantity * l.unit_price), 0) AS total, q.currency
			FROM quotes q
			LEFT JOIN quote_lines l ON l.quote_no = q.quote_no
			WHERE (:customer_name IS NULL OR q.customer_name LIKE '%' || :customer_name || '%')
				AND (:status IS NULL OR LOWER(q.status) = LOWER(:status))
				AND (:start_date IS NULL OR q.quote_date >= :start_date)
				AND (:end_date IS NULL OR q.quote_date <= :end_date)
			GROUP BY q.quote_no
			ORDER BY q.quote_date DESC, q.quote_no
		""",
		params=(
			QueryParam("customer_name", description="Partial customer name."),
			QueryParam("status", description="Quote status such as open, approved or rejected."),
			_START_DATE,
			_END_DATE,
		),
	),
	QueryDefinition(
		name="quote_detail",
		description="Line items of one quote.",
		sql="""
			SELECT l.product_name, l.quantity, l.unit_price,
				l.quantity * l.unit_price AS line_total, q.currency
			FROM quote_lines l
			JOIN quotes q ON q.quote_no = l.quote_no
			WHERE q.quote_no = :quote_no
			ORDER BY l.id
		""",
		params=(QueryParam("quote_no", required=True, description="Quote number."),),
	),
	QueryDefinition(
		name="customer_movement",
		description="Account movements of customers within a date range.",
		sql="""
			SELECT movement_date, document_no, customer_name, description, debit, credit, currency
			FROM customer_movements
			WHERE (:customer_name IS NULL OR customer_name LIKE '%' || :customer_name || '%')
				AND (:start_date IS NULL OR movement_date >= :start_date)
				AND (:end_date IS NULL OR movement_date <= :end_date)
			ORDER BY movement_date, id
		""",
		params=(QueryParam("customer_name", description="Partial customer name."), _START_DATE, _END_DATE),
	),
	QueryDefinition(
		name="balance_list",
		description="Customer balances with debtor or creditor status.",
		sql="""
			SELECT customer_name, group_name, total_debit - total_credit AS balance, currency,
				CASE
					WHEN total_debit - total_credit > 0 THEN 'debtor'
					WHEN total_debit - total_credit < 0 THEN 'creditor'
					ELSE 'settled'
				END AS balance_status
			FROM customers
			WHERE (:group_name IS NULL OR group_name LIKE '%' || :group_name || '%')
				AND (:balance_status IS NULL OR LOWER(:balance_status) = CASE
					WHEN total_debit - total_credit > 0 THEN 'debtor'
					WHEN total_debit - total_credit < 0 THEN 'creditor'
					ELSE 'settled'
				END)
			ORDER BY ABS(total_debit - total_credit) DESC, customer_name
		""",
		params=(
			QueryParam("group_name", description="Partial customer group name."),
			QueryParam("balance_status", description="debtor, creditor or settled."),
		),
	),
	QueryDefinition(
		name="connection_test",
		description="Checks that the data store answers.",
		sql="SELECT COUNT(*) AS table_count FROM sqlite_master WHERE type = 'table'",
	),
)

CATALOG: Dict[str, QueryDefinition] = {query.name: query for query in _QUERIES}


def get_query(name: str) -> Optional[QueryDefinition]:
	return CATALOG.get(name)


def list_queries() -> List[Dict[str, object]]:
	return [query.as_dict() for query in _QUERIES]
