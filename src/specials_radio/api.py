"""Flask API for scheduling specials.

Sits behind the station's authenticated admin front end; requests are
trusted as already authorized.
"""

import logging
import sqlite3
from typing import Optional

from flask import Flask, jsonify, request, g

from . import schedule_store
from .config.base import SpecialsConfig
from .errors import ScheduleValidationError
from .metadata_tool import FFmpegMetadataTool, MetadataTool
from .scheduling import SchedulingService

logger = logging.getLogger(__name__)


def create_app(
    config: SpecialsConfig,
    tool: Optional[MetadataTool] = None,
    connect=None,
) -> Flask:
    """Build the Flask app.

    Args:
        config: Specials configuration
        tool: Metadata tool (default: ffprobe/ffmpeg backed)
        connect: Zero-argument callable returning a sqlite3 connection
            (default: open config.paths.db_path)
    """
    app = Flask(__name__)
    tool = tool or FFmpegMetadataTool(config.tools)

    if connect is None:
        def connect() -> sqlite3.Connection:
            if config.paths.db_path is None:
                raise ScheduleValidationError("RADIO_BASE_PATH is not configured.")
            return schedule_store.connect(config.paths.db_path)

    def get_service() -> SchedulingService:
        if "service" not in g:
            g.service = SchedulingService(config, connect(), tool)
        return g.service

    @app.teardown_appcontext
    def close_connection(exc):
        service = g.pop("service", None)
        if service is not None:
            service.conn.close()

    @app.errorhandler(ScheduleValidationError)
    def handle_validation_error(e):
        return jsonify({"error": str(e)}), 400

    @app.get("/api/specials/files")
    def list_files():
        return jsonify({"files": get_service().list_special_files()})

    @app.get("/api/specials/slots")
    def list_slots():
        return jsonify({"times": get_service().time_slots()})

    @app.get("/api/specials")
    def list_upcoming():
        entries = get_service().upcoming()
        return jsonify({"schedules": [entry.to_dict() for entry in entries]})

    @app.get("/api/specials/history")
    def list_history():
        limit = request.args.get("limit", default=50, type=int)
        entries = get_service().history(max(1, min(limit, 500)))
        return jsonify({"schedules": [entry.to_dict() for entry in entries]})

    def text_field(data: dict, name: str) -> str:
        value = data.get(name)
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ScheduleValidationError("All fields are required.")
        return value

    @app.post("/api/specials")
    def create_schedule():
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            raise ScheduleValidationError("All fields are required.")

        service = get_service()
        created_by = data.get("created_by")
        if created_by is not None:
            if isinstance(created_by, bool) or not isinstance(created_by, (str, int)):
                raise ScheduleValidationError("All fields are required.")
            created_by = str(created_by)

        # Browsers send the UTC slot they computed; other clients may send
        # local time plus zone and let the server convert
        if data.get("date_utc") or data.get("time_utc"):
            entry = service.schedule(
                text_field(data, "filename"),
                text_field(data, "date_utc"),
                text_field(data, "time_utc"),
                created_by,
            )
        else:
            entry = service.schedule_local(
                text_field(data, "filename"),
                text_field(data, "date"),
                text_field(data, "time"),
                text_field(data, "timezone"),
                created_by,
            )

        return jsonify({"message": "Special scheduled successfully.", "schedule": entry.to_dict()}), 201

    @app.post("/api/specials/files")
    def upload_files():
        uploads = request.files.getlist("audio_file")
        if not uploads:
            raise ScheduleValidationError("Invalid upload parameters.")

        service = get_service()
        stored, problems = [], []
        for upload in uploads:
            try:
                stored.append(service.upload_special(upload.filename, upload.stream).name)
            except ScheduleValidationError as e:
                problems.append(str(e))

        body = {"files": stored}
        if stored:
            body["message"] = f"Successfully uploaded {len(stored)} special program file(s)."
            if any(name.lower().endswith(".mp3") for name in stored):
                body["message"] += " MP3 ID3 tags will be validated when scheduled."
        if problems:
            body["error"] = "Some files had issues: " + "; ".join(problems)
        return jsonify(body), 201 if stored else 400

    @app.delete("/api/specials/files/<filename>")
    def delete_file(filename: str):
        get_service().delete_special(filename)
        return jsonify({"message": f"Special program '{filename}' deleted successfully."})

    @app.post("/api/specials/<int:schedule_id>/cancel")
    def cancel_schedule(schedule_id: int):
        canceled = get_service().cancel(schedule_id)
        return jsonify({"canceled": canceled})

    return app
