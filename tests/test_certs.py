from concurrent.futures import ThreadPoolExecutor
from datetime import date
from io import BytesIO

import pytest
from PyPDF2 import PdfReader

import certs
from certs import (
    CertificatePage,
    InvalidInput,
    PageStage,
    RenderError,
    certificate_filename,
    format_date,
    render,
    scoped_state,
)

TODAY = date(2026, 10, 18)


def _page(pdf):
    reader = PdfReader(BytesIO(pdf))
    assert len(reader.pages) == 1
    return reader.pages[0]


def _stream(pdf):
    return _page(pdf)["/Contents"].get_object().get_data()


def _fill_alphas(pdf):
    resources = _page(pdf)["/Resources"].get_object()
    if "/ExtGState" not in resources:
        return []
    states = resources["/ExtGState"].get_object()
    return [float(s.get_object()["/ca"]) for s in states.values() if "/ca" in s.get_object()]


def test_render_final_certificate_text():
    pdf = render("Alice Smith", "Spring Hackathon", False, today=TODAY)
    assert pdf.startswith(b"%PDF")
    text = _page(pdf).extract_text()
    for expected in ("CERTIFICATE OF PARTICIPATION", "This is to certify that", "Alice Smith",
                     "has successfully participated in", "Spring Hackathon",
                     "Authorized Signature", "Date: " + format_date(TODAY)):
        assert expected in text
    assert "SAMPLE" not in text
    assert b"(SAMPLE) Tj" not in _stream(pdf)


def test_render_defaults_to_today():
    text = _page(render("Alice Smith", "Spring Hackathon")).extract_text()
    assert "Date: " + format_date(date.today()) in text


def test_preview_watermark_rotated_and_translucent():
    pdf = render("Bob", "", True, today=TODAY)
    stream = _stream(pdf)
    assert b"(SAMPLE) Tj" in stream
    # cos/sin of 20 degrees in the rotation matrix
    assert b"939693" in stream and b"34202" in stream
    assert certs.WATERMARK_ALPHA in _fill_alphas(pdf)
    assert certs.DEFAULT_EVENT_LABEL in _page(pdf).extract_text()


def test_page_size_is_a4_landscape():
    box = _page(render("Alice", "Expo", today=TODAY)).mediabox
    assert float(box.width) == pytest.approx(841.89, abs=0.01)
    assert float(box.height) == pytest.approx(595.28, abs=0.01)


@pytest.mark.parametrize("name", ["", "   ", "\t\n", None])
def test_render_rejects_blank_name(name):
    with pytest.raises(InvalidInput):
        render(name, "Expo")


def test_invalid_input_is_a_render_error():
    assert issubclass(InvalidInput, RenderError)


def test_render_is_deterministic_for_same_day():
    assert render("Alice", "Expo", today=TODAY) == render("Alice", "Expo", today=TODAY)


def test_watermark_only_adds_overlay():
    plain = _stream(render("Alice", "Expo", False, today=TODAY)).rstrip()
    marked = _stream(render("Alice", "Expo", True, today=TODAY))
    assert marked.startswith(plain)
    assert b"(SAMPLE) Tj" in marked[len(plain):]


def test_watermark_does_not_leak_into_later_calls():
    first = render("Alice", "Expo", today=TODAY)
    render("Bob", "Other", True, today=TODAY)
    assert render("Alice", "Expo", today=TODAY) == first
    assert certs.WATERMARK_ALPHA not in _fill_alphas(first)


def test_encoding_failure_raises_render_error(monkeypatch):
    def boom(self):
        raise IOError("disk full")

    monkeypatch.setattr(certs.canvas.Canvas, "save", boom)
    with pytest.raises(RenderError, match="disk full"):
        render("Alice", "Expo", today=TODAY)


def test_page_stages_must_follow_in_order():
    page = CertificatePage()
    with pytest.raises(RenderError):
        page.draw_frame()
    page.paint_background()
    page.draw_frame()
    with pytest.raises(RenderError):
        page.draw_watermark()
    page.draw_text("Alice", "Expo", TODAY)
    assert page.stage is PageStage.TEXT
    assert page.finalize().startswith(b"%PDF")
    assert page.stage is PageStage.FINALIZED


def test_finalized_page_is_terminal():
    page = CertificatePage()
    page.paint_background()
    page.draw_frame()
    page.draw_text("Alice", "Expo", TODAY)
    page.draw_watermark()
    page.finalize()
    with pytest.raises(RenderError, match="finalized"):
        page.draw_watermark()
    with pytest.raises(RenderError):
        page.finalize()


class _Recorder:
    def __init__(self):
        self.calls = []

    def saveState(self):
        self.calls.append("save")

    def restoreState(self):
        self.calls.append("restore")


def test_scoped_state_restores_on_failure():
    c = _Recorder()
    with pytest.raises(ValueError):
        with scoped_state(c):
            raise ValueError("bad draw")
    assert c.calls == ["save", "restore"]


@pytest.mark.parametrize("name, expected", [
    ("Alice Smith", "Certificate_Alice_Smith.pdf"),
    ("Alice  Mary\tSmith", "Certificate_Alice_Mary_Smith.pdf"),
    ("Bob", "Certificate_Bob.pdf"),
])
def test_certificate_filename(name, expected):
    assert certificate_filename(name) == expected


def test_date_line_prints_full_year():
    assert "2026" in format_date(TODAY)
    text = _page(render("Alice", "Expo", today=TODAY)).extract_text()
    assert "Date: " + format_date(TODAY) in text
    assert "2026" in text


def test_concurrent_renders_do_not_share_state():
    jobs = [(f"Participant {i % 7}", f"Event {i % 5}", i % 3 == 0) for i in range(200)]
    expected = {job: render(*job, today=TODAY) for job in set(jobs)}
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda job: render(*job, today=TODAY), jobs))
    assert all(result == expected[job] for job, result in zip(jobs, results))
