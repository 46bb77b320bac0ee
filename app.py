import io
import logging
import os
import smtplib

from dotenv import load_dotenv
from flask import Blueprint, Flask, current_app, jsonify, request, send_file

from certs import RenderError, certificate_filename, render
from mailer import certificate_message, send_mail, smtp_settings
from models import DEFAULT_EVENT, EventSession
from roster import RosterError, parse_roster

load_dotenv()

log = logging.getLogger("certs.app")

api = Blueprint("api", __name__, url_prefix="/api")


def event_session() -> EventSession:
    return current_app.extensions["event_session"]


def _pdf_response(pdf: bytes, name: str, download: bool):
    return send_file(io.BytesIO(pdf), mimetype="application/pdf", as_attachment=download,
                     download_name=certificate_filename(name))


def _text_field(data: dict, key: str) -> str:
    value = data.get(key)
    return value.strip() if isinstance(value, str) else ""


def _render_from_query(watermark: bool):
    name = request.args.get("name", "").strip()
    if not name:
        return None, None
    event_label = event_session().resolve_event(request.args.get("event"))
    return name, render(name, event_label, watermark=watermark)


# --------- Roster ---------
@api.post("/upload")
def upload():
    f = request.files.get("file")
    if f is None:
        return jsonify(ok=False, error="file required"), 400
    try:
        rows = parse_roster(f.stream)
    except RosterError as e:
        log.warning("roster upload rejected: %s", e)
        return jsonify(ok=False, error=str(e)), 400
    event, count = event_session().replace_roster(rows, event=request.form.get("event", "").strip())
    log.info("roster uploaded count=%d event=%r", count, event)
    return jsonify(ok=True, count=count, event=event)


@api.get("/names")
def names():
    event, participants = event_session().snapshot()
    return jsonify(ok=True, event=event, participants=[p.to_dict() for p in participants])


# --------- Certificates ---------
@api.get("/preview")
def preview():
    name, pdf = _render_from_query(watermark=True)
    if name is None:
        return "Missing name", 400
    return _pdf_response(pdf, name, download=False)


@api.get("/generate")
def generate():
    name, pdf = _render_from_query(watermark=False)
    if name is None:
        return "Missing name", 400
    return _pdf_response(pdf, name, download=True)


@api.post("/email")
def email():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    name, to_email, event = (_text_field(data, key) for key in ("name", "email", "event"))
    if not name or not to_email:
        return jsonify(ok=False, error="name and email required"), 400
    event_label = event_session().resolve_event(event)

    pdf = render(name, event_label, watermark=False)
    subject, body = certificate_message(name, event_label)
    try:
        sent = send_mail(to_email, subject, body, attachments=[(certificate_filename(name), pdf)],
                         settings=current_app.config["SMTP"])
    except (smtplib.SMTPException, OSError) as e:
        log.error("mail to %s failed: %s", to_email, e)
        return jsonify(ok=False, error=str(e)), 502
    if not sent:
        return jsonify(ok=False, error="mail transport not configured"), 503
    return jsonify(ok=True, message="Email sent")


@api.errorhandler(RenderError)
def render_failed(e):
    return jsonify(ok=False, error=str(e)), 500


def create_app(config=None):
    app = Flask(__name__)
    app.secret_key = os.getenv("SECRET_KEY", "change-me")
    app.config["MAX_CONTENT_LENGTH"] = int(os.getenv("MAX_UPLOAD_BYTES", 5 * 1024 * 1024))
    app.config["DEFAULT_EVENT"] = os.getenv("DEFAULT_EVENT", DEFAULT_EVENT)
    app.config["SMTP"] = smtp_settings()
    if config:
        app.config.update(config)

    app.extensions["event_session"] = EventSession(current_event=app.config["DEFAULT_EVENT"])
    app.register_blueprint(api)

    @app.errorhandler(413)
    def too_large(e):
        return jsonify(ok=False, error="file too large"), 413

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    port = int(os.getenv("PORT", "3000"))
    create_app().run(debug=True, port=port)
