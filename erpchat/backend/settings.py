from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, List, Literal

from erpchat.backend import constants


ProviderMode = Literal["auto", "openai", "local"]

_DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"


def _str_env(name: str, default: str = "") -> str:
	return os.getenv(name, default).strip() or default


def _int_env(name: str, default: int, minimum: int = 1) -> int:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = int(raw)
	except ValueError:
		return default
	return value if value >= minimum else default


def _float_env(name: str, default: float, minimum: float = 0.0) -> float:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = float(raw)
	except ValueError:
		return default
	return value if value >= minimum else default


def _csv_env(name: str) -> List[str]:
	raw = os.getenv(name, "")
	return [item.strip() for item in raw.split(",") if item.strip()]


def provider_mode() -> ProviderMode:
	mode = os.getenv("ERPCHAT_PROVIDER_MODE", "auto").strip().lower() or "auto"
	if mode not in {"auto", "openai", "local"}:
		return "auto"
	return mode  # type: ignore[return-value]


def resolved_provider_mode(configured_mode: ProviderMode) -> ProviderMode:
	if configured_mode in {"local", "openai"}:
		return configured_mode
	has_openai_key = bool(os.getenv("OPENAI_API_KEY", "").strip())
	return "openai" if has_openai_key else "local"


@dataclass
class Settings:
	provider_mode: ProviderMode = "auto"
	openai_model: str = _DEFAULT_OPENAI_MODEL
	decide_timeout_s: float = constants.DECIDE_TIMEOUT_S
	compose_timeout_s: float = constants.COMPOSE_TIMEOUT_S
	session_max_exchanges: int = constants.SESSION_MAX_EXCHANGES
	session_context_turns: int = constants.SESSION_CONTEXT_TURNS
	inline_char_budget: int = constants.INLINE_CHAR_BUDGET
	inline_row_thresholds: Dict[str, int] = field(default_factory=lambda: dict(constants.INLINE_ROW_THRESHOLDS))
	export_dir: str = constants.DEFAULT_EXPORT_DIR
	export_workers: int = constants.EXPORT_WORKERS
	export_cleanup_delay_s: float = constants.EXPORT_CLEANUP_DELAY_S
	pdf_font_path: str = ""
	db_path: str = constants.DEFAULT_DB_PATH
	gateway_url: str = ""
	gateway_api_key: str = ""
	gateway_timeout_s: float = constants.GATEWAY_TIMEOUT_S
	telegram_bot_token: str = ""
	admin_users: List[str] = field(default_factory=list)
	bootstrap_users: List[str] = field(default_factory=list)


def load_settings() -> Settings:
	return Settings(
		provider_mode=resolved_provider_mode(provider_mode()),
		openai_model=_str_env("ERPCHAT_OPENAI_MODEL", _DEFAULT_OPENAI_MODEL),
		decide_timeout_s=_float_env("ERPCHAT_DECIDE_TIMEOUT_S", constants.DECIDE_TIMEOUT_S, minimum=1.0),
		compose_timeout_s=_float_env("ERPCHAT_COMPOSE_TIMEOUT_S", constants.COMPOSE_TIMEOUT_S, minimum=1.0),
		session_max_exchanges=_int_env("ERPCHAT_SESSION_MAX_EXCHANGES", constants.SESSION_MAX_EXCHANGES),
		session_context_turns=_int_env("ERPCHAT_SESSION_CONTEXT_TURNS", constants.SESSION_CONTEXT_TURNS, minimum=2),
		inline_char_budget=_int_env("ERPCHAT_INLINE_CHAR_BUDGET", constants.INLINE_CHAR_BUDGET, minimum=200),
		export_dir=_str_env("ERPCHAT_EXPORT_DIR", constants.DEFAULT_EXPORT_DIR),
		export_workers=_int_env("ERPCHAT_EXPORT_WORKERS", constants.EXPORT_WORKERS),
		export_cleanup_delay_s=_float_env("ERPCHAT_EXPORT_CLEANUP_DELAY_S", constants.EXPORT_CLEANUP_DELAY_S),
		pdf_font_path=_str_env("ERPCHAT_PDF_FONT"),
		db_path=_str_env("ERPCHAT_DB_PATH", constants.DEFAULT_DB_PATH),
		gateway_url=_str_env("ERPCHAT_GATEWAY_URL"),
		gateway_api_key=_str_env("ERPCHAT_GATEWAY_API_KEY"),
		gateway_timeout_s=_float_env("ERPCHAT_GATEWAY_TIMEOUT_S", constants.GATEWAY_TIMEOUT_S, minimum=1.0),
		telegram_bot_token=_str_env("ERPCHAT_TELEGRAM_BOT_TOKEN"),
		admin_users=_csv_env("ERPCHAT_ADMIN_USERS"),
		bootstrap_users=_csv_env("ERPCHAT_LICENSED_USERS"),
	)
