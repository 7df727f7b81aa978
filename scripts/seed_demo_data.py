from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Dict, List


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
	sys.path.insert(0, str(REPO_ROOT))

from erpchat.backend import constants  # noqa: E402
from erpchat.backend.adapters import sqlite_adapter  # noqa: E402


def _demo_rows() -> Dict[str, List[Dict[str, object]]]:
	return {
		"bank_accounts": [
			{"bank_name": "Garanti BBVA", "account_name": "Main TL", "currency": "TL", "balance": 1250430.55},
			{"bank_name": "Garanti BBVA", "account_name": "Export USD", "currency": "USD", "balance": 84210.00},
			{"bank_name": "Ziraat Bankası", "account_name": "Payroll", "currency": "TL", "balance": 356120.10},
			{"bank_name": "Akbank", "account_name": "Operations", "currency": "TL", "balance": 98765.43},
			{"bank_name": "Türkiye İş Bankası", "account_name": "EUR Reserve", "currency": "EUR", "balance": 45000.00},
			{"bank_name": "Yapı Kredi", "account_name": "Collections", "currency": "TL", "balance": -12500.00},
		],
		"stock_items": [
			{"stock_code": "PRF-40", "stock_name": "Steel Profile 40x40", "warehouse": "Central", "quantity": 1200},
			{"stock_code": "PRF-40", "stock_name": "Steel Profile 40x40", "warehouse": "Izmir", "quantity": 340},
			{"stock_code": "SHT-2", "stock_name": "Galvanized Sheet 2mm", "warehouse": "Central", "quantity": 85},
			{"stock_code": "BLT-M8", "stock_name": "Bolt M8", "warehouse": "Central", "quantity": 15000},
		],
		"customers": [
			{"customer_name": "Yılmaz İnşaat A.Ş.", "group_name": "1 - CUSTOMER", "currency": "TL", "total_debit": 540000, "total_credit": 410000},
			{"customer_name": "Öztürk Gıda Ltd.", "group_name": "1 - CUSTOMER", "currency": "TL", "total_debit": 120000, "total_credit": 135500},
			{"customer_name": "Çelik Makina San.", "group_name": "2 - SUPPLIER", "currency": "TL", "total_debit": 80000, "total_credit": 80000},
			{"customer_name": "Şahin Tekstil", "group_name": "1 - CUSTOMER", "currency": "USD", "total_debit": 22000, "total_credit": 9000},
		],
		"credit_cards": [
			{"card_name": "Corporate Bonus", "bank_name": "Garanti BBVA", "card_limit": 150000, "used": 43210.5},
			{"card_name": "Business World", "bank_name": "Yapı Kredi", "card_limit": 75000, "used": 74000},
		],
		"cash_accounts": [
			{"cash_name": "Head Office Cash", "currency": "TL", "balance": 18450.75},
			{"cash_name": "USD Safe", "currency": "USD", "balance": 3200.00},
		],
		"quotes": [
			{"quote_no": "TEK-2024-1050", "customer_name": "Yılmaz İnşaat A.Ş.", "quote_date": "2024-05-02", "status": "open", "description": "Roof profiles", "currency": "TL"},
			{"quote_no": "TEK-2024-1051", "customer_name": "Şahin Tekstil", "quote_date": "2024-05-10", "status": "approved", "description": "Shelving", "currency": "USD"},
		],
		"quote_lines": [
			{"quote_no": "TEK-2024-1050", "product_name": "Steel Profile 40x40", "quantity": 200, "unit_price": 145.5},
			{"quote_no": "TEK-2024-1050", "product_name": "Bolt M8", "quantity": 2000, "unit_price": 1.2},
			{"quote_no": "TEK-2024-1051", "product_name": "Galvanized Sheet 2mm", "quantity": 40, "unit_price": 38.0},
		],
		"customer_movements": [
			{"customer_name": "Yılmaz İnşaat A.Ş.", "movement_date": "2024-05-03", "document_no": "FT-9001", "description": "Sales invoice", "debit": 240000, "credit": 0, "currency": "TL"},
			{"customer_name": "Yılmaz İnşaat A.Ş.", "movement_date": "2024-05-20", "document_no": "TH-311", "description": "Collection", "debit": 0, "credit": 110000, "currency": "TL"},
			{"customer_name": "Öztürk Gıda Ltd.", "movement_date": "2024-05-08", "document_no": "FT-9004", "description": "Sales invoice", "debit": 120000, "credit": 0, "currency": "TL"},
		],
	}


def main() -> int:
	parser = argparse.ArgumentParser(description="Create the ERP tables and load demo rows.")
	parser.add_argument("--db", default=constants.DEFAULT_DB_PATH, help="SQLite database path.")
	args = parser.parse_args()

	sqlite_adapter.init_db(args.db)
	for table in sqlite_adapter.TABLES:
		rows = _demo_rows().get(table, [])
		count = sqlite_adapter.insert_rows(table, rows, args.db)
		print(f"{table}: {count} rows")
	return 0


if __name__ == "__main__":
	raise SystemExit(main())
