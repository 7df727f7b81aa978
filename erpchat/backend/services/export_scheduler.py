from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from threading import Lock, Timer
from typing import Dict, Literal, Optional

from erpchat.backend import constants
from erpchat.backend.adapters.messaging import Messenger
from erpchat.backend.adapters.pdf_renderer import DocumentRenderer
from erpchat.backend.services.result_materializer import PendingExport


LOGGER = logging.getLogger(__name__)

ExportStatus = Literal["delivered", "failed"]


def export_caption(export: PendingExport, generated_at: Optional[datetime] = None) -> str:
	stamp = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M")
	return f"{export.title}\n{len(export.rows)} records\nGenerated {stamp}"


class ExportScheduler:
	"""Fire-and-forget document exports on a bounded worker pool.

	Each job renders and delivers, then hands the artifact to a cleanup timer
	so the worker is free for the next job. A failed job notifies the user
	once; jobs are never retried. Shutdown removes artifacts still waiting for
	their timer.
	"""

	def __init__(
		self,
		renderer: DocumentRenderer,
		messenger: Messenger,
		*,
		workers: int = constants.EXPORT_WORKERS,
		cleanup_delay_s: float = constants.EXPORT_CLEANUP_DELAY_S,
	):
		self._renderer = renderer
		self._messenger = messenger
		self._cleanup_delay_s = max(0.0, cleanup_delay_s)
		self._executor = ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="export")
		self._pending = 0
		self._cleanups: Dict[Path, Timer] = {}
		self._lock = Lock()
		self._closed = False

	def schedule(self, export: PendingExport) -> Future:
		with self._lock:
			if self._closed:
				raise RuntimeError("Export scheduler is shut down.")
			self._pending += 1
		future = self._executor.submit(self._run, export)
		future.add_done_callback(self._on_done)
		LOGGER.info("Export scheduled: user=%s kind=%s rows=%d", export.user_id, export.kind, len(export.rows))
		return future

	def pending_count(self) -> int:
		with self._lock:
			return self._pending

	def pending_cleanups(self) -> int:
		with self._lock:
			return len(self._cleanups)

	def shutdown(self, wait: bool = True) -> None:
		with self._lock:
			self._closed = True
		self._executor.shutdown(wait=wait, cancel_futures=not wait)
		with self._lock:
			timers = dict(self._cleanups)
			self._cleanups.clear()
		for artifact, timer in timers.items():
			timer.cancel()
			self._remove(artifact)

	def _on_done(self, _future: Future) -> None:
		with self._lock:
			self._pending = max(0, self._pending - 1)

	def _run(self, export: PendingExport) -> ExportStatus:
		artifact: Optional[Path] = None
		try:
			artifact = self._renderer.render(export.rows, export.title, export.kind)
			self._messenger.send_document(export.user_id, str(artifact), export_caption(export))
			LOGGER.info("Export delivered: user=%s kind=%s", export.user_id, export.kind)
			return "delivered"
		except Exception as exc:
			LOGGER.exception("Export failed: user=%s kind=%s", export.user_id, export.kind)
			self._notify_failure(export, exc)
			return "failed"
		finally:
			if artifact is not None:
				self._schedule_cleanup(artifact)

	def _notify_failure(self, export: PendingExport, exc: Exception) -> None:
		try:
			self._messenger.send_text(
				export.user_id,
				f"The document for \"{export.title}\" could not be created or delivered. "
				f"The summary above is still valid. Error: {exc}",
			)
		except Exception:
			LOGGER.exception("Export failure notice could not be delivered: user=%s", export.user_id)

	def _schedule_cleanup(self, artifact: Path) -> None:
		if not self._cleanup_delay_s:
			self._remove(artifact)
			return
		timer = Timer(self._cleanup_delay_s, self._expire, args=(artifact,))
		timer.daemon = True
		with self._lock:
			self._cleanups[artifact] = timer
		timer.start()

	def _expire(self, artifact: Path) -> None:
		with self._lock:
			self._cleanups.pop(artifact, None)
		self._remove(artifact)

	def _remove(self, artifact: Path) -> None:
		try:
			artifact.unlink(missing_ok=True)
		except OSError:
			LOGGER.warning("Export artifact could not be removed: %s", artifact)
