from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, List, Mapping, Optional, Protocol, Sequence, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from erpchat.backend.services.formatting import format_amount


LOGGER = logging.getLogger(__name__)

_SAFE_NAME_RE = re.compile(r"[^A-Za-z0-9]+")

_REGULAR_FONT = "ErpSans"
_BOLD_FONT = "ErpSans-Bold"
_FALLBACK_FONTS = ("Helvetica", "Helvetica-Bold")
# The base-14 fonts are WinAnsi encoded and cannot draw ı, İ, ş, Ş, ğ or Ğ.
FONT_CANDIDATES: Tuple[str, ...] = (
	"/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
	"/usr/share/fonts/dejavu/DejaVuSans.ttf",
	"/usr/share/fonts/TTF/DejaVuSans.ttf",
	"/usr/share/fonts/dejavu-sans-fonts/DejaVuSans.ttf",
	"/usr/local/share/fonts/DejaVuSans.ttf",
	"/Library/Fonts/DejaVuSans.ttf",
	"C:/Windows/Fonts/DejaVuSans.ttf",
	"C:/Windows/Fonts/arial.ttf",
)


class DocumentRenderer(Protocol):
	def render(self, rows: Sequence[Mapping[str, Any]], title: str, kind: str) -> Path:
		...


def find_unicode_font(configured: Optional[str] = None) -> Optional[Path]:
	candidates = ([configured] if configured else []) + list(FONT_CANDIDATES)
	for candidate in candidates:
		path = Path(candidate)
		if path.is_file():
			return path
	return None


def _bold_variant(font_path: Path) -> Path:
	bold = font_path.with_name(f"{font_path.stem}-Bold{font_path.suffix}")
	return bold if bold.is_file() else font_path


def register_fonts(font_path: Optional[Path]) -> Tuple[str, str]:
	"""Register the TrueType family once and return (regular, bold) names."""

	if font_path is None:
		LOGGER.warning("No Unicode TrueType font found; exported documents fall back to Helvetica.")
		return _FALLBACK_FONTS
	registered = set(pdfmetrics.getRegisteredFontNames())
	try:
		if _REGULAR_FONT not in registered:
			pdfmetrics.registerFont(TTFont(_REGULAR_FONT, str(font_path)))
		if _BOLD_FONT not in registered:
			pdfmetrics.registerFont(TTFont(_BOLD_FONT, str(_bold_variant(font_path))))
	except Exception:
		LOGGER.exception("Font %s could not be registered; falling back to Helvetica.", font_path)
		return _FALLBACK_FONTS
	return _REGULAR_FONT, _BOLD_FONT


def _columns(rows: Sequence[Mapping[str, Any]]) -> List[str]:
	columns: List[str] = []
	for row in rows:
		for key in row.keys():
			if key not in columns:
				columns.append(key)
	return columns


def _cell(value: Any) -> str:
	if value is None:
		return ""
	if isinstance(value, float):
		return format_amount(value)
	return str(value)


def _heading(column: str) -> str:
	return column.replace("_", " ").title()


class PdfRenderer:
	"""Renders result rows into a landscape A4 table document."""

	def __init__(self, output_dir: str | Path, *, font_path: Optional[str] = None):
		self.output_dir = Path(output_dir)
		self.font_name, self.bold_font_name = register_fonts(find_unicode_font(font_path))

	def artifact_path(self, title: str) -> Path:
		stem = _SAFE_NAME_RE.sub("_", title).strip("_") or "report"
		stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
		return self.output_dir / f"{stem}_{stamp}_{uuid.uuid4().hex[:8]}.pdf"

	def render(self, rows: Sequence[Mapping[str, Any]], title: str, kind: str) -> Path:
		self.output_dir.mkdir(parents=True, exist_ok=True)
		output_path = self.artifact_path(title)
		styles = getSampleStyleSheet()
		title_style = ParagraphStyle("ExportTitle", parent=styles["Heading1"], fontName=self.bold_font_name)
		body_style = ParagraphStyle("ExportBody", parent=styles["Normal"], fontName=self.font_name)
		cell_style = ParagraphStyle(
			"ExportCell",
			parent=styles["BodyText"],
			fontName=self.font_name,
			fontSize=7,
			leading=9,
		)
		header_style = ParagraphStyle("ExportHeader", parent=cell_style, fontName=self.bold_font_name, textColor=colors.white)

		story: list = [
			Paragraph(escape(title), title_style),
			Paragraph(
				escape(f"{len(rows)} records | generated {datetime.now().strftime('%Y-%m-%d %H:%M')}"),
				body_style,
			),
			Spacer(1, 10),
		]
		columns = _columns(rows)
		if columns:
			data = [[Paragraph(escape(_heading(column)), header_style) for column in columns]]
			for row in rows:
				data.append([Paragraph(escape(_cell(row.get(column))), cell_style) for column in columns])
			table = Table(data, repeatRows=1)
			table.setStyle(
				TableStyle(
					[
						("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1f3a5f")),
						("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
						("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f2f5f9")]),
						("VALIGN", (0, 0), (-1, -1), "TOP"),
					]
				)
			)
			story.append(table)
		else:
			story.append(Paragraph("No records.", body_style))

		doc = SimpleDocTemplate(str(output_path), pagesize=landscape(A4), title=title, subject=kind)
		doc.build(story)
		return output_path
