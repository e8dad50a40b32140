"""PDF export of a roadmap with its completion state.

Text is laid out top to bottom with an explicit vertical cursor (mm from the
top edge of an A4 page). Before a block is written the cursor is compared with
a break threshold for that part of the document; past it, the block starts on
a new page. A block that fits on a page is never split; one taller than a page
continues on the following pages, broken between lines.

With a TrueType font the export keeps every character the font has a glyph
for, and picks the richest status markers it can draw. The core font only
covers Latin-1. Characters a font cannot draw are written as ``?`` and
reported in the log.

Only milestones, week headers, tasks and mentor tips are exported; resources
and reflections stay in the app.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import FrozenSet, Iterable, List, Optional

from fontTools.ttLib import TTFont
from fpdf import FPDF
from loguru import logger

from models import Roadmap
from planner import progress_percent

APP_SLUG = "agentic-ai-planner"
TITLE = "Agentic AI Planner - Your Roadmap"
TITLE_ICON = "🌱"

PAGE_WIDTH = 210
PAGE_HEIGHT = 297
MARGIN = 20
TOP = 30
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
PAGE_BOTTOM = PAGE_HEIGHT - 10

MILESTONE_BREAK_Y = 250
WEEK_BREAK_Y = 200
BODY_BREAK_Y = 270

CORE_FAMILY = "helvetica"
UNICODE_FAMILY = "PlannerSans"

# preferred first; the last entry of each is plain ASCII
BULLETS = ("•", "-")
DONE_MARKERS = ("✅", "✔", "[x]")
PENDING_MARKERS = ("⏳", "⌛", "[ ]")

# fixed so identical inputs give identical bytes
CREATION_DATE = datetime(2000, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Typeface:
    """A font family and the code points it can draw (``None`` means Latin-1)."""
    family: str
    codepoints: Optional[FrozenSet[int]] = None

    @classmethod
    def from_file(cls, family: str, font_path: str) -> "Typeface":
        with TTFont(font_path) as font:
            cmap = font.getBestCmap() or {}
        return cls(family, frozenset(cmap))

    @property
    def unicode(self) -> bool:
        return self.codepoints is not None

    def has_glyph(self, char: str) -> bool:
        if self.codepoints is None:
            return ord(char) < 256
        return char.isspace() or ord(char) in self.codepoints

    def supports(self, text: str) -> bool:
        return all(self.has_glyph(char) for char in text)

    def first_supported(self, options) -> str:
        for option in options[:-1]:
            if self.supports(option):
                return option
        return options[-1]


def document_title(typeface: Typeface) -> str:
    if typeface.unicode and typeface.has_glyph(TITLE_ICON):
        return f"{TITLE_ICON} {TITLE}"
    return TITLE


@dataclass(frozen=True)
class Placement:
    page: int
    y: float
    kind: str
    lines: tuple
    continued: bool = False

    @property
    def text(self) -> str:
        return " ".join(self.lines)


@dataclass
class ExportLayout:
    pdf: FPDF
    placements: List[Placement] = field(default_factory=list)
    replaced_characters: int = 0

    @property
    def page_count(self) -> int:
        return self.pdf.page_no()

    def of_kind(self, kind: str) -> List[Placement]:
        return [p for p in self.placements if p.kind == kind]

    def text_of(self, kind: str) -> List[str]:
        """Text of each block of ``kind``, joining the parts of blocks split across pages."""
        texts = []
        for placement in self.of_kind(kind):
            if placement.continued and texts:
                texts[-1] = f"{texts[-1]} {placement.text}"
            else:
                texts.append(placement.text)
        return texts


class _FlowWriter:
    def __init__(self, pdf: FPDF, typeface: Typeface):
        self.pdf = pdf
        self.typeface = typeface
        self.layout = ExportLayout(pdf)
        self.y = TOP
        self.bullet = typeface.first_supported(BULLETS)
        pdf.add_page()

    def status_marker(self, completed: bool) -> str:
        return self.typeface.first_supported(DONE_MARKERS if completed else PENDING_MARKERS)

    def clean(self, text: str) -> str:
        if self.typeface.supports(text):
            return text
        kept = []
        for char in text:
            if self.typeface.has_glyph(char):
                kept.append(char)
            else:
                kept.append("?")
                self.layout.replaced_characters += 1
        return "".join(kept)

    def new_page(self):
        self.pdf.add_page()
        self.y = TOP

    def space(self, amount: float):
        self.y += amount

    def wrap(self, text: str, width: float) -> List[str]:
        lines = []
        for paragraph in text.splitlines() or [""]:
            current = ""
            for word in paragraph.split():
                candidate = f"{current} {word}" if current else word
                if self.pdf.get_string_width(candidate) <= width:
                    current = candidate
                    continue
                if current:
                    lines.append(current)
                current = ""
                for char in word:
                    if current and self.pdf.get_string_width(current + char) > width:
                        lines.append(current)
                        current = ""
                    current += char
            lines.append(current)
        return lines

    def block(self, text: str, kind: str, size: float, style: str = "", indent: float = 0,
              line_height: float = 5, gap: float = 0, break_at: Optional[float] = None):
        self.pdf.set_font(self.typeface.family, style, size)
        lines = self.wrap(self.clean(text), CONTENT_WIDTH - indent)
        last_baseline = self.y + (len(lines) - 1) * line_height
        if break_at is not None and self.y > break_at:
            self.new_page()
        elif self.y > TOP and last_baseline > PAGE_BOTTOM:
            self.new_page()

        start, segment, continued = self.y, [], False
        for line in lines:
            if segment and self.y > PAGE_BOTTOM:
                self._place(start, kind, segment, continued)
                self.new_page()
                start, segment, continued = self.y, [], True
            if line:
                self.pdf.text(MARGIN + indent, self.y, line)
            segment.append(line)
            self.y += line_height
        self._place(start, kind, segment, continued)
        self.y += gap

    def _place(self, y: float, kind: str, lines: List[str], continued: bool):
        self.layout.placements.append(Placement(self.pdf.page_no(), y, kind, tuple(lines), continued))


def _new_document(font_path: Optional[str]):
    pdf = FPDF(orientation="P", unit="mm", format="A4")
    pdf.set_auto_page_break(auto=False)
    pdf.set_margins(MARGIN, TOP, MARGIN)
    pdf.set_creation_date(CREATION_DATE)
    pdf.set_title(TITLE)
    if font_path:
        for style in ("", "B", "I"):
            pdf.add_font(UNICODE_FAMILY, style, font_path)
        return pdf, Typeface.from_file(UNICODE_FAMILY, font_path)
    return pdf, Typeface(CORE_FAMILY)


def layout_roadmap(roadmap: Roadmap, goal_text: str, completed_weeks: Iterable[str],
                   font_path: Optional[str] = None) -> ExportLayout:
    completed = set(completed_weeks)
    pdf, typeface = _new_document(font_path)
    writer = _FlowWriter(pdf, typeface)

    writer.block(document_title(typeface), "title", 22, "B", line_height=10, gap=10)

    writer.block("Goal:", "heading", 16, "B", line_height=10)
    writer.block(goal_text, "goal", 12, line_height=6, gap=15)

    total = roadmap.total_weeks
    done = len(completed & set(roadmap.week_labels))
    percent = progress_percent(done, total)
    writer.block(f"Progress: {done}/{total} weeks completed ({percent}%)", "progress", 14, "B",
                 line_height=8, gap=12)

    writer.block("Key Milestones:", "heading", 16, "B", line_height=10)
    for milestone in roadmap.milestones:
        writer.block(f"{writer.bullet} {milestone}", "milestone", 10, indent=5,
                     line_height=5, gap=3, break_at=MILESTONE_BREAK_Y)
    writer.space(10)

    writer.block("Weekly Plan:", "heading", 16, "B", line_height=15)
    for label, week in roadmap.iter_weeks():
        marker = writer.status_marker(label in completed)
        writer.block(f"{marker} {label}", "week", 14, "B", line_height=10, break_at=WEEK_BREAK_Y)
        writer.block("Tasks:", "label", 10, "B", indent=5, line_height=6)
        for task in week.tasks:
            writer.block(f"{writer.bullet} {task}", "task", 10, indent=10,
                         line_height=5, gap=2, break_at=BODY_BREAK_Y)
        writer.space(5)
        writer.block("Mentor Tip:", "label", 10, "B", indent=5, line_height=6, break_at=BODY_BREAK_Y)
        writer.block(f'"{week.mentor_tip}"', "tip", 10, "I", indent=10,
                     line_height=5, gap=10, break_at=BODY_BREAK_Y)

    if writer.layout.replaced_characters:
        logger.warning(
            f"{writer.layout.replaced_characters} character(s) have no glyph in font '{typeface.family}' "
            "and were written as '?'; set PLANNER_PDF_FONT to a TrueType font that covers them"
        )
    return writer.layout


def render_pdf(roadmap: Roadmap, goal_text: str, completed_weeks: Iterable[str],
               font_path: Optional[str] = None, compress: bool = True) -> bytes:
    """Returns the roadmap as PDF bytes with a selectable text layer."""
    layout = layout_roadmap(roadmap, goal_text, completed_weeks, font_path=font_path)
    layout.pdf.set_compression(compress)
    logger.debug(f"Exported roadmap: {roadmap.total_weeks} weeks on {layout.page_count} page(s)")
    return bytes(layout.pdf.output())


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{APP_SLUG}-{today.isoformat()}.pdf"
