"""PDF export of the series catalog.

Records are laid out as blocks, a cover image on the left and the title and
progress on the right, with a fixed number of blocks per A4 page. Page breaks
are driven by that count only, so automatic page breaking is disabled. Each
block is held to its share of the page: covers are shrunk and long titles or
status lines are cut to the lines that fit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Iterable, Protocol

from fpdf import FPDF
from fpdf.enums import MethodReturnValue, XPos, YPos
from PIL import Image

from ..models import SeriesRecord

logger = logging.getLogger(__name__)

REPORT_TITLE = "My Series List"
CONTINUED_SUFFIX = " (continued)"

PAGE_MARGIN = 10.0
HEADING_FONT_SIZE = 20
HEADING_HEIGHT = 10.0
HEADING_ADVANCE = 15.0

IMAGE_WIDTH = 40.0
COLUMN_GAP = 6.0
PLACEHOLDER_HEIGHT = 20.0

TITLE_FONT_SIZE = 14
TITLE_LINE_HEIGHT = 7.0
TITLE_ADVANCE = 8.0
BODY_FONT_SIZE = 12
BODY_LINE_HEIGHT = 6.0

BLOCK_SPACING = 10.0
SEPARATOR_ADVANCE = 8.0
ELLIPSIS = "..."

_PDF_TEXT_REPLACEMENTS = str.maketrans(
    {
        "–": "-",
        "—": "-",
        "‘": "'",
        "’": "'",
        "“": '"',
        "”": '"',
        "…": "...",
    }
)


class CoverSource(Protocol):
    def fetch(self, url: str) -> bytes | None:
        ...


@dataclass(slots=True)
class ReportBlock:
    """Geometry of one laid-out record, in millimetres."""

    record_id: int
    top: float
    image_height: float
    text_height: float
    has_image: bool

    @property
    def height(self) -> float:
        return max(self.image_height, self.text_height)


@dataclass(slots=True)
class ReportPage:
    number: int
    blocks: list[ReportBlock] = field(default_factory=list)


@dataclass(slots=True)
class RenderedReport:
    """The generated PDF together with the layout that produced it."""

    content: bytes
    pages: list[ReportPage]

    @property
    def page_count(self) -> int:
        return len(self.pages)


def pdf_text(value: object) -> str:
    """Fold ``value`` into the Latin-1 range supported by the core fonts."""

    text = str(value).translate(_PDF_TEXT_REPLACEMENTS)
    return text.encode("latin-1", "replace").decode("latin-1")


class ReportRenderer:
    """Lays out catalog records across fixed-capacity PDF pages."""

    def __init__(
        self,
        cover_source: CoverSource | None,
        *,
        items_per_page: int = 4,
        title: str = REPORT_TITLE,
    ) -> None:
        if items_per_page < 1:
            raise ValueError("items_per_page must be at least 1")
        self._covers = cover_source
        self._items_per_page = items_per_page
        self._title = title

    @property
    def items_per_page(self) -> int:
        return self._items_per_page

    def render(self, records: Iterable[SeriesRecord]) -> RenderedReport:
        """Return the PDF for ``records``; always at least one page."""

        pdf = FPDF(orientation="P", unit="mm", format="A4")
        pdf.set_margins(left=PAGE_MARGIN, top=PAGE_MARGIN, right=PAGE_MARGIN)
        pdf.set_auto_page_break(auto=False, margin=PAGE_MARGIN)
        pdf.set_title(pdf_text(self._title))

        pages: list[ReportPage] = []
        page = self._start_page(pdf, pages)
        for record in records:
            if len(page.blocks) == self._items_per_page:
                page = self._start_page(pdf, pages)
            page.blocks.append(self._draw_block(pdf, record))

        return RenderedReport(content=bytes(pdf.output()), pages=pages)

    def _start_page(self, pdf: FPDF, pages: list[ReportPage]) -> ReportPage:
        pdf.add_page()
        heading = self._title if not pages else f"{self._title}{CONTINUED_SUFFIX}"
        pdf.set_font("Helvetica", "B", HEADING_FONT_SIZE)
        pdf.cell(0, HEADING_HEIGHT, pdf_text(heading))
        pdf.ln(HEADING_ADVANCE)
        page = ReportPage(number=len(pages) + 1)
        pages.append(page)
        return page

    def _max_block_height(self, pdf: FPDF) -> float:
        content_top = PAGE_MARGIN + HEADING_ADVANCE
        usable = pdf.h - pdf.b_margin - content_top
        slot = usable / self._items_per_page
        return max(slot - BLOCK_SPACING - SEPARATOR_ADVANCE, PLACEHOLDER_HEIGHT)

    def _draw_block(self, pdf: FPDF, record: SeriesRecord) -> ReportBlock:
        top = pdf.get_y()

        image_height = 0.0
        if record.has_cover and self._covers is not None:
            try:
                image_height = self._draw_cover(pdf, record, top)
            except Exception:
                logger.exception(
                    "Unable to place cover for %s (%s)", record.title, record.cover_url
                )
                image_height = 0.0
        has_image = image_height > 0
        if not has_image:
            image_height = PLACEHOLDER_HEIGHT

        text_x = pdf.l_margin + IMAGE_WIDTH + COLUMN_GAP
        text_width = pdf.w - pdf.r_margin - text_x
        max_height = self._max_block_height(pdf)
        title_gap = TITLE_ADVANCE - TITLE_LINE_HEIGHT

        pdf.set_font("Helvetica", "B", TITLE_FONT_SIZE)
        title_lines = max(
            1, int((max_height - title_gap - BODY_LINE_HEIGHT) // TITLE_LINE_HEIGHT)
        )
        title = _fit_lines(
            pdf, pdf_text(record.display_title()), text_width, TITLE_LINE_HEIGHT, title_lines
        )
        pdf.set_xy(text_x, top)
        pdf.multi_cell(
            text_width,
            TITLE_LINE_HEIGHT,
            title,
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )
        pdf.set_y(pdf.get_y() + title_gap)

        pdf.set_font("Helvetica", "", BODY_FONT_SIZE)
        status_line = (
            f"Status: {record.status} - "
            f"{record.episodes_watched}/{record.total_episodes} episodes"
        )
        status_lines = max(1, int((top + max_height - pdf.get_y()) // BODY_LINE_HEIGHT))
        status = _fit_lines(
            pdf, pdf_text(status_line), text_width, BODY_LINE_HEIGHT, status_lines
        )
        pdf.set_x(text_x)
        pdf.multi_cell(
            text_width,
            BODY_LINE_HEIGHT,
            status,
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )
        text_height = pdf.get_y() - top

        block = ReportBlock(
            record_id=record.id,
            top=top,
            image_height=image_height,
            text_height=text_height,
            has_image=has_image,
        )

        pdf.set_y(top + block.height + BLOCK_SPACING)
        separator_y = pdf.get_y()
        pdf.line(pdf.l_margin, separator_y, pdf.w - pdf.r_margin, separator_y)
        pdf.ln(SEPARATOR_ADVANCE)
        return block

    def _draw_cover(self, pdf: FPDF, record: SeriesRecord, top: float) -> float:
        """Place the cover at the block origin and return its height, or 0."""

        data = self._covers.fetch(record.cover_url)
        if not data:
            return 0.0

        with Image.open(BytesIO(data)) as image:
            image.load()
            intrinsic_width, intrinsic_height = image.size
            if intrinsic_width <= 0 or intrinsic_height <= 0:
                return 0.0

            width = IMAGE_WIDTH
            height = intrinsic_height * IMAGE_WIDTH / intrinsic_width
            max_height = self._max_block_height(pdf)
            if height > max_height:
                width = width * max_height / height
                height = max_height

            pdf.image(image, x=pdf.l_margin, y=top, w=width, h=height)
        return height


def _fit_lines(pdf: FPDF, text: str, width: float, line_height: float, max_lines: int) -> str:
    """Return ``text`` wrapped to at most ``max_lines``, marking any cut with an ellipsis."""

    lines = pdf.multi_cell(
        width, line_height, text, dry_run=True, output=MethodReturnValue.LINES
    )
    if len(lines) <= max_lines:
        return text

    kept = [line.rstrip() for line in lines[:max_lines]]
    available = width - 2 * pdf.c_margin
    last = kept[-1]
    while last and pdf.get_string_width(last + ELLIPSIS) > available:
        last = last[:-1]
    kept[-1] = last.rstrip() + ELLIPSIS
    return "\n".join(kept)
