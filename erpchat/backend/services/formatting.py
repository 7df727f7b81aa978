from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Sequence


Row = Mapping[str, Any]


def parse_amount(value: Any) -> float:
	"""Parse numbers that may arrive in the source locale (``3.649.961,09``)."""

	if isinstance(value, bool):
		return 0.0
	if isinstance(value, (int, float)):
		return float(value)
	if value is None:
		return 0.0
	text = str(value).strip()
	if not text or text == "-":
		return 0.0
	if "," in text:
		text = text.replace(".", "").replace(",", ".")
	try:
		return float(text)
	except ValueError:
		return 0.0


def format_amount(value: Any) -> str:
	number = parse_amount(value)
	if number != number or number in (float("inf"), float("-inf")):
		return "0,00"
	grouped = f"{abs(number):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
	return f"-{grouped}" if number < 0 else grouped


def _text(row: Row, key: str, default: str = "N/A") -> str:
	value = row.get(key)
	if value is None:
		return default
	cleaned = str(value).strip()
	return cleaned or default


def totals_by_currency(rows: Sequence[Row], amount_key: str = "balance") -> str:
	totals: Dict[str, float] = defaultdict(float)
	for row in rows:
		currency = _text(row, "currency", "TL")
		totals[currency] += parse_amount(row.get(amount_key))
	if not totals:
		return "0,00"
	return ", ".join(f"{format_amount(amount)} {currency}" for currency, amount in sorted(totals.items()))


def _bank_line(index: int, row: Row) -> str:
	currency = _text(row, "currency", "TL")
	return (
		f"{index}. {_text(row, 'bank_name')} - {_text(row, 'account_name', '')}".rstrip(" -")
		+ f"\n   Balance: {format_amount(row.get('balance'))} {currency}"
	)


def _stock_line(index: int, row: Row) -> str:
	return (
		f"{index}. {_text(row, 'stock_name')} ({_text(row, 'stock_code')})\n"
		f"   {_text(row, 'warehouse', 'Unknown warehouse')}: {format_amount(row.get('quantity'))} units"
	)


def _customer_line(index: int, row: Row) -> str:
	currency = _text(row, "currency", "TL")
	return (
		f"{index}. {_text(row, 'customer_name')}\n"
		f"   Debit: {format_amount(row.get('total_debit'))} {currency}"
		f" | Credit: {format_amount(row.get('total_credit'))} {currency}"
		f" | Balance: {format_amount(row.get('balance'))} {currency}"
	)


def _card_line(index: int, row: Row) -> str:
	return (
		f"{index}. {_text(row, 'card_name')} ({_text(row, 'bank_name')})\n"
		f"   Limit: {format_amount(row.get('card_limit'))} | Used: {format_amount(row.get('used'))}"
		f" | Available: {format_amount(row.get('available'))}"
	)


def _cash_line(index: int, row: Row) -> str:
	return f"{index}. {_text(row, 'cash_name')}: {format_amount(row.get('balance'))} {_text(row, 'currency', 'TL')}"


def _quote_line(index: int, row: Row) -> str:
	return (
		f"{index}. {_text(row, 'quote_no')} - {_text(row, 'customer_name')}\n"
		f"   {_text(row, 'quote_date', '')} {_text(row, 'status', '')} | "
		f"Total: {format_amount(row.get('total'))} {_text(row, 'currency', 'TL')}"
	)


def _quote_item_line(index: int, row: Row) -> str:
	return (
		f"{index}. {_text(row, 'product_name')}: {format_amount(row.get('quantity'))} x "
		f"{format_amount(row.get('unit_price'))} = {format_amount(row.get('line_total'))} {_text(row, 'currency', 'TL')}"
	)


def _movement_line(index: int, row: Row) -> str:
	return (
		f"{index}. {_text(row, 'movement_date', '')} {_text(row, 'document_no', '')} {_text(row, 'customer_name')}\n"
		f"   {_text(row, 'description', '')} | Debit: {format_amount(row.get('debit'))}"
		f" | Credit: {format_amount(row.get('credit'))} {_text(row, 'currency', 'TL')}"
	)


def _balance_line(index: int, row: Row) -> str:
	return (
		f"{index}. {_text(row, 'customer_name')} [{_text(row, 'group_name', '-')}]\n"
		f"   Balance: {format_amount(row.get('balance'))} {_text(row, 'currency', 'TL')} ({_text(row, 'balance_status', '-')})"
	)


def _generic_line(index: int, row: Row) -> str:
	fields = ", ".join(f"{key}: {value}" for key, value in row.items() if value not in (None, ""))
	return f"{index}. {fields}"


def _bank_summary(rows: Sequence[Row]) -> List[str]:
	banks = {_text(row, "bank_name") for row in rows}
	currencies = {_text(row, "currency", "TL") for row in rows}
	return [
		f"Total: {len(rows)} accounts, {len(banks)} banks, {len(currencies)} currencies",
		f"Overall balance: {totals_by_currency(rows)}",
	]


def _stock_summary(rows: Sequence[Row]) -> List[str]:
	products = {_text(row, "stock_code") for row in rows}
	quantity = sum(parse_amount(row.get("quantity")) for row in rows)
	return [f"Total: {len(products)} products in {len(rows)} rows", f"Total quantity: {format_amount(quantity)}"]


def _customer_summary(rows: Sequence[Row]) -> List[str]:
	return [f"Total: {len(rows)} customer accounts", f"Net balance: {totals_by_currency(rows)}"]


def _movement_summary(rows: Sequence[Row]) -> List[str]:
	debit = sum(parse_amount(row.get("debit")) for row in rows)
	credit = sum(parse_amount(row.get("credit")) for row in rows)
	return [
		f"Total: {len(rows)} movements",
		f"Debit: {format_amount(debit)} | Credit: {format_amount(credit)} | Net: {format_amount(debit - credit)}",
	]


def _quote_summary(rows: Sequence[Row]) -> List[str]:
	quotes = {_text(row, "quote_no") for row in rows}
	return [f"Total: {len(quotes)} quotes in {len(rows)} rows", f"Quoted amount: {totals_by_currency(rows, 'total')}"]


def _quote_detail_summary(rows: Sequence[Row]) -> List[str]:
	return [f"Total: {len(rows)} line items", f"Quote total: {totals_by_currency(rows, 'line_total')}"]


def _card_summary(rows: Sequence[Row]) -> List[str]:
	available = sum(parse_amount(row.get("available")) for row in rows)
	return [f"Total: {len(rows)} cards", f"Available limit: {format_amount(available)}"]


def _generic_summary(rows: Sequence[Row]) -> List[str]:
	return [f"Total: {len(rows)} records"]


@dataclass(frozen=True)
class ReportFormat:
	title: str
	not_found: str
	render_row: Callable[[int, Row], str]
	summarize: Callable[[Sequence[Row]], List[str]]


REPORT_FORMATS: Dict[str, ReportFormat] = {
	"bank_balances": ReportFormat("Bank Balances", "No bank balances were found.", _bank_line, _bank_summary),
	"stock_report": ReportFormat("Stock Report", "No stock records were found.", _stock_line, _stock_summary),
	"customer_info": ReportFormat("Customer Accounts", "No customer accounts were found.", _customer_line, _customer_summary),
	"credit_card_limits": ReportFormat("Credit Card Limits", "No credit card limits were found.", _card_line, _card_summary),
	"cash_balance": ReportFormat("Cash Balances", "No cash balances were found.", _cash_line, _customer_summary),
	"quote_report": ReportFormat("Quote Report", "No quotes were found.", _quote_line, _quote_summary),
	"quote_detail": ReportFormat("Quote Detail", "No quote lines were found.", _quote_item_line, _quote_detail_summary),
	"customer_movement": ReportFormat("Customer Movements", "No customer movements were found.", _movement_line, _movement_summary),
	"balance_list": ReportFormat("Balance List", "No balances matched the filters.", _balance_line, _customer_summary),
}

_GENERIC_FORMAT = ReportFormat("Report", "No records were found.", _generic_line, _generic_summary)


def report_format(kind: str) -> ReportFormat:
	return REPORT_FORMATS.get(kind, _GENERIC_FORMAT)


def render_full(rows: Sequence[Row], kind: str, title: str | None = None) -> str:
	fmt = report_format(kind)
	if not rows:
		return fmt.not_found
	lines = [title or fmt.title, ""]
	lines.extend(fmt.render_row(index, row) for index, row in enumerate(rows, start=1))
	return "\n".join(lines)


def render_summary(rows: Sequence[Row], kind: str, title: str | None = None) -> str:
	fmt = report_format(kind)
	if not rows:
		return fmt.not_found
	lines = [f"{title or fmt.title} (summary)", ""]
	lines.extend(fmt.summarize(rows))
	return "\n".join(lines)
