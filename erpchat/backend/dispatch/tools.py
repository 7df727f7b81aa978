from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple


JsonType = Literal["string", "integer", "number", "boolean"]

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class ToolParam:
	name: str
	type: JsonType = "string"
	description: str = ""
	required: bool = False
	enum: Tuple[str, ...] = ()
	date: bool = False


@dataclass(frozen=True)
class ToolSpec:
	name: str
	description: str
	params: Tuple[ToolParam, ...] = field(default_factory=tuple)
	example: str = ""

	@property
	def required(self) -> List[str]:
		return [param.name for param in self.params if param.required]

	def schema(self) -> Dict[str, Any]:
		properties: Dict[str, Any] = {}
		for param in self.params:
			entry: Dict[str, Any] = {"type": param.type, "description": param.description}
			if param.enum:
				entry["enum"] = list(param.enum)
			properties[param.name] = entry
		return {
			"type": "function",
			"name": self.name,
			"description": self.description,
			"parameters": {
				"type": "object",
				"properties": properties,
				"required": self.required,
			},
		}

	def usage(self) -> str:
		parts = []
		for param in self.params:
			marker = "" if param.required else "?"
			parts.append(f"{param.name}{marker}")
		hint = f"Usage: {self.name}({', '.join(parts)})"
		if self.example:
			hint += f". Example: {self.example}"
		return hint


_PYTHON_TYPES = {
	"string": (str,),
	"integer": (int,),
	"number": (int, float),
	"boolean": (bool,),
}


def validate_arguments(spec: ToolSpec, arguments: Mapping[str, Any]) -> Optional[str]:
	"""Return a usage hint when the arguments do not fit the declared schema."""

	for param in spec.params:
		value = arguments.get(param.name)
		if value is None or (isinstance(value, str) and not value.strip()):
			if param.required:
				return f"Missing required argument '{param.name}'. {spec.usage()}"
			continue
		expected = _PYTHON_TYPES[param.type]
		if not isinstance(value, expected) or (param.type != "boolean" and isinstance(value, bool)):
			return f"Argument '{param.name}' must be a {param.type}. {spec.usage()}"
		if param.enum and str(value) not in param.enum:
			return f"Argument '{param.name}' must be one of: {', '.join(param.enum)}. {spec.usage()}"
		if param.date and not _DATE_RE.match(str(value).strip()):
			return f"Argument '{param.name}' must be a YYYY-MM-DD date. {spec.usage()}"
	return None


REPORT_KINDS = (
	"bank_balances",
	"stock_report",
	"customer_info",
	"credit_card_limits",
	"cash_balance",
	"quote_report",
	"quote_detail",
	"customer_movement",
	"balance_list",
)


TOOL_SPECS: Tuple[ToolSpec, ...] = (
	ToolSpec(
		name="getBankBalances",
		description="Bank account balances. Use when the user asks about bank balances, cash position at banks or account balances.",
		params=(
			ToolParam("bankName", description="Bank name to filter by, e.g. 'garanti', 'ziraat'."),
			ToolParam("currency", description="Currency to filter by, e.g. 'TL', 'USD', 'EUR'."),
		),
	),
	ToolSpec(
		name="getStockReport",
		description="Stock levels per warehouse. Use for stock, product, material or inventory questions.",
		params=(
			ToolParam("productName", description="Product name to search for."),
			ToolParam("warehouse", description="Warehouse name to filter by."),
		),
	),
	ToolSpec(
		name="getCustomerInfo",
		description="Customer accounts with debit, credit and balance. Use for customer account questions.",
		params=(ToolParam("customerName", description="Customer name to search for."),),
	),
	ToolSpec(
		name="getCreditCardLimits",
		description="Company credit card limits and available amounts.",
	),
	ToolSpec(
		name="getCashBalance",
		description="Cash register balances.",
	),
	ToolSpec(
		name="getQuoteReport",
		description="Sales quote list with totals. Use for quote status or quotes of a customer.",
		params=(
			ToolParam("customerName", description="Customer name to filter by."),
			ToolParam("quoteStatus", description="Quote status such as open, approved or rejected."),
		),
	),
	ToolSpec(
		name="getQuoteDetail",
		description="Line items of one quote. Use when the user asks to open a specific quote number.",
		params=(ToolParam("quoteNumber", description="Quote number, e.g. 'TEK-2023-1050'.", required=True),),
		example="getQuoteDetail(quoteNumber='TEK-2023-1050')",
	),
	ToolSpec(
		name="getCustomerMovement",
		description="Account movements of a customer within an optional date range.",
		params=(
			ToolParam("customerName", description="Customer name to search for."),
			ToolParam("startDate", description="Start date in YYYY-MM-DD format.", date=True),
			ToolParam("endDate", description="End date in YYYY-MM-DD format.", date=True),
		),
	),
	ToolSpec(
		name="getBalanceList",
		description="Customer balance list filtered by group, name or debtor/creditor status.",
		params=(
			ToolParam(
				"balanceStatus",
				description="Balance status filter.",
				enum=("debtor", "creditor", "settled"),
			),
			ToolParam("groupFilter", description="Customer group filter, partial match."),
			ToolParam("customerName", description="Customer name filter, partial match."),
		),
	),
	ToolSpec(
		name="testConnection",
		description="Checks the connection to the ERP data service.",
	),
	ToolSpec(
		name="requestDocument",
		description="Sends the user's last query result as a document. Use when the user asks for a PDF or file.",
	),
	ToolSpec(
		name="setOutputPreference",
		description="Remembers whether results should arrive as text or as documents for a report kind.",
		params=(
			ToolParam("format", description="Preferred output format.", required=True, enum=("text", "document")),
			ToolParam(
				"reportKind",
				description="Report kind the preference applies to. Defaults to the last result's kind.",
				enum=REPORT_KINDS,
			),
		),
		example="setOutputPreference(format='text', reportKind='bank_balances')",
	),
)

TOOLS_BY_NAME: Dict[str, ToolSpec] = {spec.name: spec for spec in TOOL_SPECS}

ALL_CAPABILITIES: Tuple[str, ...] = tuple(spec.name for spec in TOOL_SPECS)


def tool_schemas() -> List[Dict[str, Any]]:
	return [spec.schema() for spec in TOOL_SPECS]
