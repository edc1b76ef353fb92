"""Web UI routes for cliptrim."""

import io
import json
import logging
import queue
import threading
import uuid

from flask import (
    Blueprint,
    Response,
    current_app,
    jsonify,
    render_template,
    request,
    send_file,
)

from cliptrim import timecode
from cliptrim.errors import ValidationError
from cliptrim.job import TrimJob, TrimStatus
from cliptrim.models import MediaDescriptor, TimeWindow, TrimRequest
from cliptrim.validator import validate, validate_media

logger = logging.getLogger(__name__)

bp = Blueprint("web", __name__, template_folder="templates")

# In-memory media store: media_id -> entry dict. Nothing is written to disk.
# The UI serves one local session, so a new upload replaces the previous entry.
_media: dict[str, dict] = {}


def _status_payload(status: TrimStatus) -> dict:
    return {
        "state": status.state.value,
        "stage": status.text,
        "progress": round(status.progress, 3),
        "indeterminate": status.indeterminate,
        "attempt": status.attempt_label,
    }


def _result_payload(entry: dict) -> dict:
    result = entry["result"]
    return {
        "filename": result.filename,
        "attempt": result.attempt_label,
        "start": timecode.format(result.window.start),
        "end": timecode.format(result.window.end),
        "size_bytes": len(result.artifact),
    }


def _float_field(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@bp.route("/")
def index():
    return render_template("index.html")


@bp.route("/api/upload", methods=["POST"])
def upload():
    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400

    f = request.files["file"]
    if not f.filename:
        return jsonify({"error": "Empty filename"}), 400

    data = f.read()
    media = MediaDescriptor.from_filename(
        f.filename,
        size_bytes=len(data),
        duration_seconds=_float_field(request.form.get("duration")),
    )
    try:
        validate_media(media, current_app.config["TRIM_SETTINGS"])
    except ValidationError as e:
        return jsonify({"error": e.user_message, "reason": e.reason.value}), 400

    media_id = uuid.uuid4().hex[:12]
    _media.clear()
    _media[media_id] = {
        "media": media,
        "data": data,
        "status": "uploaded",
        "trim_id": None,
    }

    return jsonify({
        "media_id": media_id,
        "filename": f.filename,
        "size_bytes": media.size_bytes,
        "duration": media.duration_seconds,
    })


@bp.route("/api/media/<media_id>/trim", methods=["POST"])
def start_trim(media_id: str):
    if media_id not in _media:
        return jsonify({"error": "Media not found"}), 404

    entry = _media[media_id]
    body = request.get_json(silent=True) or {}
    window = TimeWindow(
        start=timecode.parse(body.get("start")),
        end=timecode.parse(body.get("end")),
    )
    trim_request = TrimRequest(media=entry["media"], window=window)

    settings = current_app.config["TRIM_SETTINGS"]
    try:
        normalized = validate(trim_request, settings)
    except ValidationError as e:
        return jsonify({"error": e.user_message, "reason": e.reason.value}), 400

    progress_queue: queue.Queue = queue.Queue()

    def on_status(status: TrimStatus) -> None:
        if not status.terminal:
            progress_queue.put(_status_payload(status))

    job = TrimJob(
        trim_request,
        entry["data"],
        engine=current_app.config["ENGINE"],
        settings=settings,
        encode=current_app.config["ENCODE_SETTINGS"],
        on_status=on_status,
    )
    entry.update(
        trim_id=job.id,
        progress_queue=progress_queue,
        status="processing",
        error=None,
        result=None,
    )

    def run():
        try:
            final = job.run()
            # A newer trim replaced this one; its result is no longer wanted.
            if entry.get("trim_id") != job.id:
                logger.info("Discarding result of superseded trim %s", job.id)
                return
            if final.result is not None:
                entry["result"] = final.result
                entry["status"] = "done"
            else:
                entry["status"] = "error"
                entry["error"] = final.text
        finally:
            progress_queue.put(None)  # sentinel

    threading.Thread(target=run, daemon=True).start()
    return jsonify({
        "status": "started",
        "trim_id": job.id,
        "start": timecode.format(normalized.start),
        "end": timecode.format(normalized.end),
    })


@bp.route("/api/media/<media_id>/progress")
def progress_stream(media_id: str):
    if media_id not in _media:
        return jsonify({"error": "Media not found"}), 404

    entry = _media[media_id]
    q = entry.get("progress_queue")

    if q is None:
        return jsonify({"error": "No trim in progress"}), 409

    def generate():
        while True:
            try:
                msg = q.get(timeout=120)
            except queue.Empty:
                yield "data: {\"error\": \"timeout\"}\n\n"
                break
            if msg is None:
                if entry["status"] == "error":
                    data = json.dumps({"error": entry["error"]})
                elif entry["status"] == "done":
                    data = json.dumps({
                        "stage": "complete",
                        "progress": 1.0,
                        "result": _result_payload(entry),
                    })
                else:
                    data = json.dumps({"stage": "superseded"})
                yield f"data: {data}\n\n"
                break
            yield f"data: {json.dumps(msg)}\n\n"

    return Response(generate(), mimetype="text/event-stream")


@bp.route("/api/media/<media_id>/result")
def download_result(media_id: str):
    if media_id not in _media:
        return jsonify({"error": "Media not found"}), 404

    entry = _media[media_id]
    if entry["status"] != "done":
        return jsonify({"error": "Trim not complete"}), 409

    result = entry["result"]
    return send_file(
        io.BytesIO(result.artifact),
        mimetype="video/mp4",
        as_attachment=True,
        download_name=result.filename,
    )


@bp.route("/api/media/<media_id>/status")
def media_status(media_id: str):
    if media_id not in _media:
        return jsonify({"error": "Media not found"}), 404

    entry = _media[media_id]
    resp = {
        "status": entry["status"],
        "filename": entry["media"].name,
        "trim_id": entry.get("trim_id"),
    }
    if entry["status"] == "done":
        resp["result"] = _result_payload(entry)
    if entry["status"] == "error":
        resp["error"] = entry.get("error")
    return jsonify(resp)
