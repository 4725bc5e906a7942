# export.py
import re
import logging
from pathlib import Path
from datetime import datetime
from typing import List, Optional, Sequence, Any

from PIL import Image, ImageDraw, ImageFont

from trainsched.models import CourseInfo, Session

SPREADSHEET_COLUMNS = ["Session No", "Date", "Start Time", "End Time", "Hours", "Remaining"]
SNAPSHOT_COLUMNS = ["#", "Date", "Start", "End", "Hours", "Remaining"]

# Snapshot layout, in pixels at scale 1
CELL_PADDING = 8
ROW_HEIGHT = 28
TITLE_HEIGHT = 64
FONT_SIZE = 14
ROWS_PER_PAGE = 40

# A4 portrait, millimetres
PAGE_MARGIN = 10


class ExportUnavailableError(RuntimeError):
    """Raised when the library an export needs is not installed"""


def format_hours(hours: float) -> str:
    """Hours without trailing zeros, e.g. 2.0 -> 2"""
    return f"{hours:g}"


def suggested_filename(course: CourseInfo, extension: str) -> str:
    """File name of the form <course> - <trainee> - Schedule.<ext>"""
    name = f"{course.name or 'Course'} - {course.trainee or 'Trainee'} - Schedule.{extension}"
    return re.sub(r'[\\/:*?"<>|]', "_", name)


def session_rows(sessions: Sequence[Session]) -> List[List[Any]]:
    """One row per session: number, date, start, end, hours, remaining"""
    return [
        [
            s.number,
            s.date.isoformat(),
            s.start_time.strftime("%H:%M"),
            s.end_time.strftime("%H:%M"),
            s.hours,
            s.remaining,
        ]
        for s in sessions
    ]


class SpreadsheetExporter:
    """Writes the schedule to an .xlsx workbook"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def build_rows(self, course: CourseInfo, sessions: Sequence[Session], generated_at: Optional[datetime] = None) -> List[List[Any]]:
        """Header block, a blank row, the column header and the session rows"""
        generated_at = generated_at or datetime.now()
        rows = [
            ["Course Name", course.name],
            ["Trainee Name", course.trainee],
            ["Generated On", generated_at.strftime("%Y-%m-%d %H:%M")],
            [],
            list(SPREADSHEET_COLUMNS),
        ]
        rows.extend(session_rows(sessions))
        return rows

    def export(self, course: CourseInfo, sessions: Sequence[Session], directory: Path, generated_at: Optional[datetime] = None) -> Path:
        """Write the workbook into directory and return its path"""
        try:
            from openpyxl import Workbook
            from openpyxl.styles import Font
            from openpyxl.utils import get_column_letter
        except ImportError as e:
            raise ExportUnavailableError("openpyxl not found. Please install openpyxl to enable Excel export.") from e

        rows = self.build_rows(course, sessions, generated_at)

        wb = Workbook()
        ws = wb.active
        ws.title = "Schedule"
        for row in rows:
            ws.append(row)

        bold = Font(bold=True)
        for cell in ws["A"][:3]:
            cell.font = bold
        header_row = 5
        for cell in ws[header_row]:
            cell.font = bold

        for i, column in enumerate(SPREADSHEET_COLUMNS, start=1):
            width = max([len(column)] + [len(str(r[i - 1])) for r in rows[header_row:]])
            ws.column_dimensions[get_column_letter(i)].width = max(width + 2, 14 if i == 1 else 10)

        directory.mkdir(parents=True, exist_ok=True)
        path = directory / suggested_filename(course, "xlsx")
        wb.save(path)
        self.logger.debug(f"✅ Spreadsheet written to {path}")
        return path


class DocumentExporter:
    """Renders the schedule table to an image and places it on A4 pages of a PDF"""

    def __init__(self, scale: int = 2):
        self.logger = logging.getLogger(__name__)
        self.scale = scale

    def _font(self, size: int) -> ImageFont.ImageFont:
        return ImageFont.load_default(size=size * self.scale)

    def render_snapshot(self, course: CourseInfo, sessions: Sequence[Session], generated_at: Optional[datetime] = None) -> Image.Image:
        """Draw the title block and the session table"""
        generated_at = generated_at or datetime.now()
        s = self.scale
        font = self._font(FONT_SIZE)
        title_font = self._font(FONT_SIZE + 4)

        rows = [[str(v) if not isinstance(v, float) else format_hours(v) for v in row] for row in session_rows(sessions)]
        table = [SNAPSHOT_COLUMNS] + rows

        # Column widths from the widest cell in each column
        widths = []
        for col in range(len(SNAPSHOT_COLUMNS)):
            widest = max(font.getlength(r[col]) for r in table)
            widths.append(int(widest) + 2 * CELL_PADDING * s)

        width = max(sum(widths), 480 * s)
        height = TITLE_HEIGHT * s + ROW_HEIGHT * s * len(table) + CELL_PADDING * s
        image = Image.new("RGB", (width + 2 * CELL_PADDING * s, height), "white")
        draw = ImageDraw.Draw(image)

        left = CELL_PADDING * s
        draw.text((left, CELL_PADDING * s), course.name or "Course Name", fill="black", font=title_font)
        draw.text((left, (CELL_PADDING + 26) * s), course.trainee or "Trainee Name", fill=(75, 85, 99), font=font)
        generated = f"Generated: {generated_at.strftime('%Y-%m-%d')}"
        draw.text((left + width - font.getlength(generated), (CELL_PADDING + 26) * s), generated, fill=(107, 114, 128), font=font)

        y = TITLE_HEIGHT * s
        for index, row in enumerate(table):
            if index == 0:
                fill = (243, 244, 246)
            else:
                fill = "white" if index % 2 else (249, 250, 251)
            x = left
            for col, value in enumerate(row):
                draw.rectangle([x, y, x + widths[col], y + ROW_HEIGHT * s], fill=fill, outline=(209, 213, 219), width=s)
                draw.text((x + CELL_PADDING * s, y + 6 * s), value, fill="black", font=font)
                x += widths[col]
            y += ROW_HEIGHT * s

        return image

    def export(self, course: CourseInfo, sessions: Sequence[Session], directory: Path, generated_at: Optional[datetime] = None) -> Path:
        """Write the PDF into directory and return its path"""
        try:
            from fpdf import FPDF
        except ImportError as e:
            raise ExportUnavailableError("fpdf2 not found. Please install fpdf2 to enable PDF export.") from e

        generated_at = generated_at or datetime.now()

        pdf = FPDF(orientation="P", unit="mm", format="A4")
        page_width = pdf.w
        page_height = pdf.h
        image_width = page_width - 2 * PAGE_MARGIN

        # Long schedules are split so each page stays legible
        chunks = [sessions[i:i + ROWS_PER_PAGE] for i in range(0, len(sessions), ROWS_PER_PAGE)] or [[]]
        for chunk in chunks:
            snapshot = self.render_snapshot(course, chunk, generated_at)
            image_height = snapshot.height * image_width / snapshot.width
            if image_height > page_height - 2 * PAGE_MARGIN:
                image_height = page_height - 2 * PAGE_MARGIN
                width = snapshot.width * image_height / snapshot.height
            else:
                width = image_width
            pdf.add_page()
            pdf.image(snapshot, x=PAGE_MARGIN, y=PAGE_MARGIN, w=width, h=image_height)

        directory.mkdir(parents=True, exist_ok=True)
        path = directory / suggested_filename(course, "pdf")
        pdf.output(str(path))
        self.logger.debug(f"✅ Document written to {path} ({len(chunks)} page(s))")
        return path
