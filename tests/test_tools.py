from unittest import TestCase

from erpchat.backend.dispatch.tools import (
	ALL_CAPABILITIES,
	REPORT_KINDS,
	TOOLS_BY_NAME,
	tool_schemas,
	validate_arguments,
)


class ToolSchemaTests(TestCase):
	def test_every_tool_is_a_capability(self) -> None:
		self.assertEqual(len(ALL_CAPABILITIES), 12)
		self.assertEqual(set(ALL_CAPABILITIES), set(TOOLS_BY_NAME))
		self.assertIn("requestDocument", ALL_CAPABILITIES)

	def test_schemas_are_function_tools(self) -> None:
		schemas = {schema["name"]: schema for schema in tool_schemas()}
		detail = schemas["getQuoteDetail"]
		self.assertEqual(detail["type"], "function")
		self.assertEqual(detail["parameters"]["required"], ["quoteNumber"])
		status = schemas["getBalanceList"]["parameters"]["properties"]["balanceStatus"]
		self.assertEqual(status["enum"], ["debtor", "creditor", "settled"])
		kinds = schemas["setOutputPreference"]["parameters"]["properties"]["reportKind"]["enum"]
		self.assertEqual(kinds, list(REPORT_KINDS))

	def test_usage_marks_optional_parameters(self) -> None:
		usage = TOOLS_BY_NAME["getCustomerMovement"].usage()
		self.assertEqual(usage, "Usage: getCustomerMovement(customerName?, startDate?, endDate?)")


class ValidateArgumentsTests(TestCase):
	def test_missing_required_argument(self) -> None:
		hint = validate_arguments(TOOLS_BY_NAME["getQuoteDetail"], {})
		self.assertIn("Missing required argument 'quoteNumber'", hint)
		self.assertIn("Example: getQuoteDetail(quoteNumber='TEK-2023-1050')", hint)

	def test_blank_required_argument_counts_as_missing(self) -> None:
		hint = validate_arguments(TOOLS_BY_NAME["getQuoteDetail"], {"quoteNumber": "  "})
		self.assertIn("Missing required argument", hint)

	def test_wrong_type(self) -> None:
		hint = validate_arguments(TOOLS_BY_NAME["getBankBalances"], {"bankName": 42})
		self.assertIn("must be a string", hint)

	def test_enum_mismatch(self) -> None:
		hint = validate_arguments(TOOLS_BY_NAME["getBalanceList"], {"balanceStatus": "owing"})
		self.assertIn("must be one of: debtor, creditor, settled", hint)

	def test_bad_date(self) -> None:
		hint = validate_arguments(TOOLS_BY_NAME["getCustomerMovement"], {"startDate": "01.05.2024"})
		self.assertIn("YYYY-MM-DD", hint)

	def test_valid_arguments(self) -> None:
		self.assertIsNone(
			validate_arguments(
				TOOLS_BY_NAME["getCustomerMovement"],
				{"customerName": "Yılmaz", "startDate": "2024-05-01", "endDate": "2024-05-31"},
			)
		)
		self.assertIsNone(validate_arguments(TOOLS_BY_NAME["getCashBalance"], {}))
