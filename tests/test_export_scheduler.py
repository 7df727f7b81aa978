import tempfile
import threading
import time
from datetime import datetime
from pathlib import Path
from unittest import TestCase

from erpchat.backend.services.export_scheduler import ExportScheduler, export_caption
from erpchat.backend.services.result_materializer import PendingExport


class _FakeRenderer:
	def __init__(self, output_dir: Path, *, error: Exception | None = None, gate: threading.Event | None = None):
		self.output_dir = output_dir
		self.error = error
		self.gate = gate
		self.rendered = []
		self.started = threading.Event()

	def render(self, rows, title, kind) -> Path:
		self.started.set()
		if self.gate is not None:
			self.gate.wait(timeout=5)
		if self.error is not None:
			raise self.error
		path = self.output_dir / f"{kind}_{len(self.rendered)}.pdf"
		path.write_bytes(b"%PDF-1.4 fake")
		self.rendered.append(path)
		return path


class _RecordingMessenger:
	def __init__(self, *, document_error: Exception | None = None):
		self.document_error = document_error
		self.documents = []
		self.texts = []
		self.lock = threading.Lock()

	def send_text(self, user_id: str, text: str) -> None:
		with self.lock:
			self.texts.append((user_id, text))

	def send_document(self, user_id: str, file_path: str, caption: str) -> None:
		if self.document_error is not None:
			raise self.document_error
		with self.lock:
			self.documents.append((user_id, file_path, caption, Path(file_path).exists()))

	def send_typing(self, user_id: str) -> None:
		pass


def _export(rows: int = 20) -> PendingExport:
	return PendingExport(user_id="u1", kind="bank_balances", title="Bank Balances", rows=[{"n": index} for index in range(rows)])


class ExportSchedulerTests(TestCase):
	def setUp(self) -> None:
		self._tmp = tempfile.TemporaryDirectory()
		self.output_dir = Path(self._tmp.name)

	def tearDown(self) -> None:
		self._tmp.cleanup()

	def _scheduler(self, renderer, messenger, workers: int = 2, cleanup_delay_s: float = 5.0) -> ExportScheduler:
		return ExportScheduler(renderer, messenger, workers=workers, cleanup_delay_s=cleanup_delay_s)

	def test_delivers_document_then_removes_artifact(self) -> None:
		renderer = _FakeRenderer(self.output_dir)
		messenger = _RecordingMessenger()
		scheduler = self._scheduler(renderer, messenger)
		status = scheduler.schedule(_export()).result(timeout=5)

		self.assertEqual(status, "delivered")
		self.assertEqual(len(messenger.documents), 1)
		user_id, file_path, caption, existed = messenger.documents[0]
		self.assertEqual(user_id, "u1")
		self.assertTrue(existed)
		self.assertIn("20 records", caption)
		self.assertTrue(Path(file_path).exists())
		self.assertEqual(scheduler.pending_cleanups(), 1)
		self.assertEqual(messenger.texts, [])

		scheduler.shutdown()
		self.assertFalse(Path(file_path).exists())
		self.assertEqual(scheduler.pending_cleanups(), 0)

	def test_cleanup_timer_removes_artifact_after_delay(self) -> None:
		renderer = _FakeRenderer(self.output_dir)
		scheduler = self._scheduler(renderer, _RecordingMessenger(), cleanup_delay_s=0.1)
		scheduler.schedule(_export()).result(timeout=5)
		artifact = renderer.rendered[0]

		deadline = time.monotonic() + 5
		while artifact.exists() and time.monotonic() < deadline:
			time.sleep(0.02)
		self.assertFalse(artifact.exists())
		self.assertEqual(scheduler.pending_cleanups(), 0)
		scheduler.shutdown()

	def test_cleanup_delay_does_not_hold_workers(self) -> None:
		renderer = _FakeRenderer(self.output_dir)
		messenger = _RecordingMessenger()
		scheduler = self._scheduler(renderer, messenger, workers=1, cleanup_delay_s=1.0)
		started = time.monotonic()
		futures = [scheduler.schedule(_export(rows=index + 1)) for index in range(3)]
		for future in futures:
			future.result(timeout=5)
		elapsed = time.monotonic() - started
		scheduler.shutdown()

		self.assertEqual(len(messenger.documents), 3)
		self.assertLess(elapsed, 0.9)
		self.assertTrue(all(not path.exists() for path in renderer.rendered))

	def test_render_failure_notifies_user_once_without_retry(self) -> None:
		renderer = _FakeRenderer(self.output_dir, error=RuntimeError("layout exploded"))
		messenger = _RecordingMessenger()
		scheduler = self._scheduler(renderer, messenger)
		with self.assertLogs("erpchat.backend.services.export_scheduler", level="ERROR"):
			status = scheduler.schedule(_export()).result(timeout=5)
		scheduler.shutdown()

		self.assertEqual(status, "failed")
		self.assertEqual(len(messenger.texts), 1)
		self.assertIn("layout exploded", messenger.texts[0][1])
		self.assertEqual(messenger.documents, [])
		self.assertEqual(renderer.rendered, [])

	def test_delivery_failure_still_cleans_up(self) -> None:
		renderer = _FakeRenderer(self.output_dir)
		messenger = _RecordingMessenger(document_error=ConnectionError("bot api down"))
		scheduler = self._scheduler(renderer, messenger)
		with self.assertLogs("erpchat.backend.services.export_scheduler", level="ERROR"):
			status = scheduler.schedule(_export()).result(timeout=5)
		scheduler.shutdown()

		self.assertEqual(status, "failed")
		self.assertEqual(len(renderer.rendered), 1)
		self.assertFalse(renderer.rendered[0].exists())
		self.assertIn("bot api down", messenger.texts[0][1])

	def test_shutdown_with_wait_drains_all_jobs(self) -> None:
		renderer = _FakeRenderer(self.output_dir)
		messenger = _RecordingMessenger()
		scheduler = self._scheduler(renderer, messenger, workers=1)
		futures = [scheduler.schedule(_export(rows=index + 1)) for index in range(3)]
		scheduler.shutdown(wait=True)

		self.assertTrue(all(future.done() for future in futures))
		self.assertEqual(len(messenger.documents), 3)
		self.assertEqual(scheduler.pending_count(), 0)

	def test_shutdown_without_wait_discards_queued_jobs(self) -> None:
		gate = threading.Event()
		renderer = _FakeRenderer(self.output_dir, gate=gate)
		messenger = _RecordingMessenger()
		scheduler = self._scheduler(renderer, messenger, workers=1)
		first = scheduler.schedule(_export())
		self.assertTrue(renderer.started.wait(timeout=5))
		queued = [scheduler.schedule(_export()) for _ in range(2)]
		scheduler.shutdown(wait=False)
		gate.set()

		self.assertEqual(first.result(timeout=5), "delivered")
		self.assertTrue(all(future.cancelled() for future in queued))
		self.assertEqual(len(messenger.documents), 1)

	def test_schedule_after_shutdown_is_rejected(self) -> None:
		scheduler = self._scheduler(_FakeRenderer(self.output_dir), _RecordingMessenger())
		scheduler.shutdown()
		with self.assertRaises(RuntimeError):
			scheduler.schedule(_export())

	def test_caption_summarizes_rows_and_time(self) -> None:
		caption = export_caption(_export(rows=7), generated_at=datetime(2024, 5, 1, 14, 5))
		self.assertEqual(caption, "Bank Balances\n7 records\nGenerated 2024-05-01 14:05")
