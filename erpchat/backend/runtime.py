from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from typing import Dict, Optional

from erpchat.backend.adapters.messaging import Messenger, OutboxMessenger, TelegramMessenger
from erpchat.backend.adapters.pdf_renderer import PdfRenderer
from erpchat.backend.adapters.query_gateway import HttpQueryGateway, LocalQueryGateway, QueryGateway
from erpchat.backend.adapters.reasoning_client import LocalReasoningClient, OpenAIReasoningClient
from erpchat.backend.dispatch.handlers import ToolHandlers
from erpchat.backend.dispatch.loop import DispatchLoop
from erpchat.backend.dispatch.tools import ALL_CAPABILITIES
from erpchat.backend.dispatch.types import DispatchReply, ReasoningClient
from erpchat.backend.services.admin_service import AdminService
from erpchat.backend.services.credential_service import Credential, CredentialRegistry, credentials_from_env
from erpchat.backend.services.export_scheduler import ExportScheduler
from erpchat.backend.services.permission_gate import PermissionGate
from erpchat.backend.services.query_service import QueryService
from erpchat.backend.services.result_materializer import PreferenceStore, ResultMaterializer
from erpchat.backend.services.session_store import SessionStore
from erpchat.backend.settings import Settings, load_settings


LOGGER = logging.getLogger(__name__)

_LOCAL_RATE_LIMIT = 1000

RESET_REPLY = "Conversation history cleared. Ask a new question whenever you are ready."
START_REPLY = "Welcome to the ERP assistant.\nYour user id: {user_id}\nUsername: {username}\n{status}"
START_LICENSED = "Your license is active. Ask about bank balances, stock, customers, quotes or cash."
START_UNLICENSED = "You do not have a license yet. Send this user id to your administrator to request access."
UNKNOWN_COMMAND = "Unknown command {command}. Available commands: /start, /reset."


def is_command(text: Optional[str]) -> bool:
	return (text or "").strip().startswith("/")


@dataclass
class Runtime:
	"""Owns every piece of mutable state for one service instance."""

	settings: Settings
	sessions: SessionStore
	gate: PermissionGate
	preferences: PreferenceStore
	messenger: Messenger
	exports: ExportScheduler
	query_service: QueryService
	gateway: QueryGateway
	loop: DispatchLoop
	admin: AdminService

	def chat(
		self,
		user_id: str,
		text: str,
		*,
		username: Optional[str] = None,
		first_name: Optional[str] = None,
		deliver: bool = False,
	) -> DispatchReply:
		self.gate.update_profile(user_id, username=username, first_name=first_name)
		reply = self.loop.handle_message(user_id, text)
		if deliver:
			self._deliver(user_id, reply.text)
		return reply

	def command(
		self,
		user_id: str,
		text: str,
		*,
		username: Optional[str] = None,
		first_name: Optional[str] = None,
		deliver: bool = False,
	) -> Dict[str, str]:
		"""Handle a bot command without involving the dispatch loop."""

		user_id = str(user_id)
		name = text.strip().split()[0].split("@", 1)[0].lower()
		if name == "/reset":
			self.reset(user_id)
			reply = RESET_REPLY
		elif name == "/start":
			self.gate.update_profile(user_id, username=username, first_name=first_name)
			status = START_LICENSED if self.gate.has_active_license(user_id) else START_UNLICENSED
			reply = START_REPLY.format(user_id=user_id, username=f"@{username}" if username else "-", status=status)
		else:
			reply = UNKNOWN_COMMAND.format(command=name)
		LOGGER.info("Command handled: user=%s command=%s", user_id, name)
		if deliver:
			self._deliver(user_id, reply)
		return {"command": name, "text": reply}

	def _deliver(self, user_id: str, text: str) -> None:
		try:
			self.messenger.send_text(str(user_id), text)
		except Exception:
			LOGGER.exception("Reply delivery failed: user=%s", user_id)

	def reset(self, user_id: str) -> None:
		self.sessions.reset(user_id)

	def shutdown(self, wait: bool = True) -> None:
		self.exports.shutdown(wait=wait)


def _reasoning_client(settings: Settings) -> ReasoningClient:
	if settings.provider_mode == "openai":
		return OpenAIReasoningClient(api_key=os.getenv("OPENAI_API_KEY", "").strip(), model=settings.openai_model)
	return LocalReasoningClient()


def _messenger(settings: Settings) -> Messenger:
	if settings.telegram_bot_token:
		return TelegramMessenger(settings.telegram_bot_token)
	return OutboxMessenger()


def build_runtime(
	settings: Optional[Settings] = None,
	*,
	reasoning: Optional[ReasoningClient] = None,
	messenger: Optional[Messenger] = None,
	gateway: Optional[QueryGateway] = None,
) -> Runtime:
	settings = settings or load_settings()

	registry = CredentialRegistry(credentials_from_env())
	query_service = QueryService(registry, settings.db_path)
	if gateway is None:
		if settings.gateway_url:
			gateway = HttpQueryGateway(
				settings.gateway_url,
				settings.gateway_api_key,
				timeout_s=settings.gateway_timeout_s,
			)
		else:
			local_key = uuid.uuid4().hex
			registry.add(Credential(key=local_key, name="local-dispatch", rate_limit=_LOCAL_RATE_LIMIT))
			gateway = LocalQueryGateway(query_service, local_key)

	sessions = SessionStore(settings.session_max_exchanges, settings.session_context_turns)
	gate = PermissionGate(ALL_CAPABILITIES)
	for user_id in settings.bootstrap_users:
		gate.create_license(user_id)

	preferences = PreferenceStore()
	materializer = ResultMaterializer(
		preferences,
		thresholds=settings.inline_row_thresholds,
		char_budget=settings.inline_char_budget,
	)
	messenger = messenger or _messenger(settings)
	exports = ExportScheduler(
		PdfRenderer(settings.export_dir, font_path=settings.pdf_font_path or None),
		messenger,
		workers=settings.export_workers,
		cleanup_delay_s=settings.export_cleanup_delay_s,
	)
	loop = DispatchLoop(
		sessions,
		gate,
		reasoning or _reasoning_client(settings),
		ToolHandlers(gateway, materializer, exports),
		messenger,
		decide_timeout_s=settings.decide_timeout_s,
		compose_timeout_s=settings.compose_timeout_s,
	)
	LOGGER.info(
		"Runtime ready: provider=%s gateway=%s messenger=%s",
		settings.provider_mode,
		"http" if settings.gateway_url else "local",
		messenger.__class__.__name__,
	)
	return Runtime(
		settings=settings,
		sessions=sessions,
		gate=gate,
		preferences=preferences,
		messenger=messenger,
		exports=exports,
		query_service=query_service,
		gateway=gateway,
		loop=loop,
		admin=AdminService(gate, sessions, settings.admin_users),
	)


def current_runtime(request) -> Runtime:
	return request.app.state.runtime
