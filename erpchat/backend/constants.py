APP_NAME = "ERP Chat Dispatch Service"
APP_VERSION = "1.0.0"
DEFAULT_CORS_ALLOW_ORIGINS = [
	"http://localhost",
	"http://127.0.0.1",
	"http://localhost:3000",
]
DEFAULT_TRUSTED_HOSTS = [
	"127.0.0.1",
	"localhost",
	"testserver",
]
DEFAULT_DB_PATH = "erp_data.db"
DEFAULT_EXPORT_DIR = "exports"
SQLITE_BUSY_TIMEOUT_MS = 5000

SESSION_MAX_EXCHANGES = 20
SESSION_CONTEXT_TURNS = 10

DECIDE_TIMEOUT_S = 30.0
COMPOSE_TIMEOUT_S = 25.0
GATEWAY_TIMEOUT_S = 20.0

MESSAGE_CHUNK_LIMIT = 4000
MESSAGE_CHUNK_DELAY_S = 0.5

SUGGESTION_LIMIT = 5
MIN_TOKEN_LENGTH = 3

INLINE_CHAR_BUDGET = 3500
DEFAULT_INLINE_ROW_THRESHOLD = 10
INLINE_ROW_THRESHOLDS = {
	"bank_balances": 10,
	"customer_info": 10,
	"balance_list": 10,
	"credit_card_limits": 10,
	"cash_balance": 10,
	"stock_report": 15,
	"customer_movement": 12,
	"quote_detail": 12,
	"quote_report": 5,
}

EXPORT_WORKERS = 2
EXPORT_CLEANUP_DELAY_S = 5.0

OUTBOX_MAX_ITEMS = 200

RATE_WINDOW_S = 60.0
