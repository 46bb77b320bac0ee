from contextlib import contextmanager
from datetime import date
import enum
import io
import logging
import re

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas

log = logging.getLogger("certs.renderer")

CERT_TITLE = "CERTIFICATE OF PARTICIPATION"
SUBTITLE = "This is to certify that"
BODY = "has successfully participated in"
SIGNATURE_CAPTION = "Authorized Signature"
WATERMARK_TEXT = "SAMPLE"
DEFAULT_EVENT_LABEL = "Event"

# page geometry, points, origin bottom-left
PAGE_SIZE = landscape(A4)
W, H = PAGE_SIZE
BORDER_INSET = 30
BORDER_WIDTH = 4

BACKGROUND = HexColor("#fdfcf7")
INK = HexColor("#222222")
NAME_INK = HexColor("#111111")
FOOTER_INK = HexColor("#333333")
WATERMARK_INK = HexColor("#cccccc")
WATERMARK_ALPHA = 0.2
WATERMARK_ANGLE = 20

# (text baseline y, font, size) for the centered blocks, top to bottom
HEADING = (H - 100, "Helvetica-Bold", 26)
SUBHEADING = (H - 147, "Helvetica", 16)
NAME = (H - 212, "Helvetica-Bold", 48)
BODY_LINE = (H - 252, "Helvetica", 16)
EVENT = (H - 287, "Helvetica-Bold", 22)

DATE_X, DATE_Y = 70, 71
SIGNATURE_X0, SIGNATURE_X1, SIGNATURE_Y = W - 250, W - 70, 120
SIGNATURE_CAPTION_Y = 101


class RenderError(Exception):
    pass


class InvalidInput(RenderError):
    pass


class PageStage(enum.IntEnum):
    ALLOCATED = 0
    BACKGROUND = 1
    FRAMED = 2
    TEXT = 3
    WATERMARKED = 4
    FINALIZED = 5


@contextmanager
def scoped_state(c: canvas.Canvas):
    """saveState/restoreState pair that restores on every exit path."""
    c.saveState()
    try:
        yield c
    finally:
        c.restoreState()


class CertificatePage:
    """One certificate page. Each draw step must follow the previous one;
    the watermark step is optional and nothing may be drawn once finalized."""

    def __init__(self):
        self.buffer = io.BytesIO()
        self.canvas = canvas.Canvas(self.buffer, pagesize=PAGE_SIZE, invariant=1)
        self.canvas.setTitle(CERT_TITLE.title())
        self.stage = PageStage.ALLOCATED

    def _advance(self, stage: PageStage):
        if self.stage is PageStage.FINALIZED:
            raise RenderError("page already finalized")
        skips_watermark = self.stage is PageStage.TEXT and stage is PageStage.FINALIZED
        if stage != self.stage + 1 and not skips_watermark:
            raise RenderError(f"cannot go from {self.stage.name} to {stage.name}")
        self.stage = stage

    def paint_background(self):
        self._advance(PageStage.BACKGROUND)
        c = self.canvas
        c.setFillColor(BACKGROUND)
        c.rect(0, 0, W, H, stroke=0, fill=1)

    def draw_frame(self):
        self._advance(PageStage.FRAMED)
        c = self.canvas
        c.setLineWidth(BORDER_WIDTH)
        c.setStrokeColor(INK)
        c.rect(BORDER_INSET, BORDER_INSET, W - 2 * BORDER_INSET, H - 2 * BORDER_INSET, stroke=1, fill=0)

    def draw_text(self, name: str, event_label: str, today: date):
        self._advance(PageStage.TEXT)
        c = self.canvas
        c.setFillColor(INK)
        self._centered(CERT_TITLE, HEADING)
        self._centered(SUBTITLE, SUBHEADING)
        c.setFillColor(NAME_INK)
        self._centered(name, NAME)
        self._centered(BODY, BODY_LINE)
        self._centered(event_label, EVENT)

        c.setFillColor(FOOTER_INK)
        c.setFont("Helvetica-Oblique", 12)
        c.drawString(DATE_X, DATE_Y, f"Date: {format_date(today)}")

        c.setStrokeColor(FOOTER_INK)
        c.setLineWidth(1)
        c.line(SIGNATURE_X0, SIGNATURE_Y, SIGNATURE_X1, SIGNATURE_Y)
        c.setFont("Helvetica", 12)
        c.drawCentredString((SIGNATURE_X0 + SIGNATURE_X1) / 2, SIGNATURE_CAPTION_Y, SIGNATURE_CAPTION)

    def draw_watermark(self):
        self._advance(PageStage.WATERMARKED)
        with scoped_state(self.canvas) as c:
            c.translate(W / 2, H / 2)
            c.rotate(WATERMARK_ANGLE)
            c.setFillColor(WATERMARK_INK)
            c.setFillAlpha(WATERMARK_ALPHA)
            c.setFont("Helvetica-Bold", 100)
            c.drawCentredString(0, -36, WATERMARK_TEXT)

    def finalize(self) -> bytes:
        self._advance(PageStage.FINALIZED)
        self.canvas.showPage()
        self.canvas.save()
        pdf = self.buffer.getvalue()
        self.buffer.close()
        return pdf

    def _centered(self, text: str, block):
        y, font, size = block
        self.canvas.setFont(font, size)
        self.canvas.drawCentredString(W / 2, y, text)


def format_date(d: date) -> str:
    return d.strftime("%d %B %Y").lstrip("0")


def certificate_filename(name: str) -> str:
    return "Certificate_" + re.sub(r"\s+", "_", name) + ".pdf"


def render(recipient_name: str, event_label: str, watermark: bool = False, today: date = None) -> bytes:
    name = (recipient_name or "").strip()
    if not name:
        raise InvalidInput("recipient name is empty")
    event_label = (event_label or "").strip() or DEFAULT_EVENT_LABEL
    today = today or date.today()

    page = CertificatePage()
    try:
        page.paint_background()
        page.draw_frame()
        page.draw_text(name, event_label, today)
        if watermark:
            page.draw_watermark()
        pdf = page.finalize()
    except RenderError:
        raise
    except Exception as e:
        log.exception("render failed name=%r event=%r", name, event_label)
        raise RenderError(str(e)) from e
    log.info("rendered certificate name=%r event=%r watermark=%s bytes=%d", name, event_label, watermark, len(pdf))
    return pdf
