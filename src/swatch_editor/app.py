from __future__ import annotations

import logging
import os
import uuid
from io import BytesIO
from pathlib import Path
from typing import Any, Callable

from flask import Flask, g, jsonify, request, send_file
from werkzeug.exceptions import RequestEntityTooLarge

from . import ase_codec
from .errors import ASEDecodeError
from .palette import PaletteDocument, PaletteGroup, check_name
from .preview import render_swatch_sheet
from .session import PaletteSession, color_from_payload, entry_from_payload, usage_from_payload

logger = logging.getLogger(__name__)


def create_app(palette_path: str | Path | None = None) -> Flask:
    configured_path = palette_path or os.getenv("SWATCH_FILE") or None
    max_upload_mb = _parse_int(os.getenv("SWATCH_MAX_UPLOAD_MB"), 16)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = max(1, max_upload_mb) * 1024 * 1024

    session = PaletteSession(configured_path)
    app.extensions["palette_session"] = session

    @app.before_request
    def bind_trace_id() -> None:
        g.trace_id = uuid.uuid4().hex

    def json_response(payload: dict[str, object], status: int = 200):
        out = dict(payload)
        out["trace_id"] = str(getattr(g, "trace_id", ""))
        response = jsonify(out)
        response.status_code = status
        response.headers["X-Trace-Id"] = out["trace_id"]
        return response

    def error_response(exc: Exception, status: int):
        return json_response({"error": str(exc), "error_code": type(exc).__name__}, status)

    def edit(action: Callable[[PaletteDocument], None]):
        with session.lock:
            try:
                action(session.document)
            except IndexError as exc:
                return error_response(exc, 404)
            except (TypeError, ValueError) as exc:
                return error_response(exc, 400)
            return json_response(session.to_payload())

    @app.get("/api/health")
    @app.get("/api/v1/health")
    def health():
        return json_response({"status": "ok", "service": "swatch-editor"})

    @app.get("/api/palette")
    def get_palette():
        return json_response(session.to_payload())

    @app.post("/api/palette/new")
    def new_palette():
        session.new()
        return json_response(session.to_payload())

    @app.post("/api/palette/open")
    def open_palette():
        raw = request.get_json(silent=True) or {}
        path = str(raw.get("path", "")).strip()
        if not path:
            return json_response({"error": "Missing palette path"}, 400)
        try:
            session.open(path)
        except ASEDecodeError as exc:
            return error_response(exc, 422)
        except FileNotFoundError as exc:
            return error_response(exc, 404)
        except OSError as exc:
            return error_response(exc, 500)
        return json_response(session.to_payload())

    @app.post("/api/palette/save")
    def save_palette():
        raw = request.get_json(silent=True) or {}
        path = str(raw.get("path", "")).strip() or None
        try:
            target = session.save(path)
        except ValueError as exc:
            return error_response(exc, 400)
        except OSError as exc:
            return error_response(exc, 500)
        payload = session.to_payload()
        payload["saved_to"] = str(target)
        return json_response(payload)

    @app.post("/api/palette/import")
    def import_palette():
        file = request.files.get("file")
        if file is None:
            return json_response({"error": "Missing file field: file"}, 400)
        data = file.read()
        if not data:
            return json_response({"error": "Uploaded file is empty"}, 400)

        skip_unknown = _parse_bool(request.form.get("skip_unknown_blocks"))
        try:
            document = ase_codec.decode(
                data, source=file.filename or "<upload>", skip_unknown_blocks=skip_unknown
            )
        except ASEDecodeError as exc:
            logger.warning("rejected upload: %s", exc)
            return error_response(exc, 422)
        session.replace(document)
        return json_response(session.to_payload())

    @app.get("/api/palette/export")
    def export_palette():
        with session.lock:
            try:
                data = ase_codec.encode(session.document)
            except ValueError as exc:
                return error_response(exc, 400)
            name = session.save_path.name if session.save_path else "colors.ase"
        return send_file(
            BytesIO(data),
            mimetype="application/octet-stream",
            as_attachment=True,
            download_name=name,
        )

    @app.get("/api/palette/preview.png")
    def preview_palette():
        tile = max(8, min(400, _parse_int(request.args.get("tile"), 100)))
        columns = max(1, min(64, _parse_int(request.args.get("columns"), 8)))
        with session.lock:
            data = render_swatch_sheet(session.document, tile=tile, columns=columns)
        return send_file(BytesIO(data), mimetype="image/png")

    @app.post("/api/palette/items")
    def add_item():
        raw = request.get_json(silent=True) or {}

        def action(document: PaletteDocument) -> None:
            kind = str(raw.get("kind", "entry")).strip().lower()
            if kind == "group":
                item = PaletteGroup(
                    name=str(raw.get("name", "")),
                    entries=[entry_from_payload(entry) for entry in raw.get("entries", [])],
                )
            elif kind == "entry":
                item = entry_from_payload(raw)
            else:
                raise ValueError(f"unknown item kind {kind!r}; use entry or group")
            document.insert(_parse_int(raw.get("index"), len(document.items)), item)

        return edit(action)

    @app.patch("/api/palette/items/<int:index>")
    def update_item(index: int):
        raw = request.get_json(silent=True) or {}
        return edit(lambda document: _apply_patch(document, raw, index, None))

    @app.delete("/api/palette/items/<int:index>")
    def delete_item(index: int):
        return edit(lambda document: document.remove(index))

    @app.post("/api/palette/items/<int:index>/move")
    def move_item(index: int):
        raw = request.get_json(silent=True) or {}
        return edit(lambda document: document.move(index, _require_int(raw, "to")))

    @app.post("/api/palette/items/<int:index>/group")
    def group_item(index: int):
        raw = request.get_json(silent=True) or {}

        def action(document: PaletteDocument) -> None:
            position = raw.get("position")
            document.move_into_group(
                index,
                _require_int(raw, "group"),
                None if position is None else _require_int(raw, "position"),
            )

        return edit(action)

    @app.post("/api/palette/groups/<int:group>/entries")
    def add_group_entry(group: int):
        raw = request.get_json(silent=True) or {}

        def action(document: PaletteDocument) -> None:
            target = document.group_at(group)
            target.insert(_parse_int(raw.get("index"), len(target.entries)), entry_from_payload(raw))

        return edit(action)

    @app.patch("/api/palette/groups/<int:group>/entries/<int:index>")
    def update_group_entry(group: int, index: int):
        raw = request.get_json(silent=True) or {}
        return edit(lambda document: _apply_patch(document, raw, index, group))

    @app.delete("/api/palette/groups/<int:group>/entries/<int:index>")
    def delete_group_entry(group: int, index: int):
        return edit(lambda document: document.group_at(group).pop(index))

    @app.post("/api/palette/groups/<int:group>/entries/<int:index>/move")
    def move_group_entry(group: int, index: int):
        raw = request.get_json(silent=True) or {}
        return edit(lambda document: document.group_at(group).move(index, _require_int(raw, "to")))

    @app.post("/api/palette/groups/<int:group>/entries/<int:index>/ungroup")
    def ungroup_entry(group: int, index: int):
        raw = request.get_json(silent=True) or {}

        def action(document: PaletteDocument) -> None:
            position = raw.get("position")
            document.move_out_of_group(
                group, index, None if position is None else _require_int(raw, "position")
            )

        return edit(action)

    @app.errorhandler(RequestEntityTooLarge)
    def handle_file_too_large(_exc: RequestEntityTooLarge):
        return json_response(
            {
                "error": "Uploaded file exceeds the server size limit.",
                "error_code": "REQUEST_ENTITY_TOO_LARGE",
            },
            413,
        )

    return app


def _apply_patch(
    document: PaletteDocument, raw: dict[str, Any], index: int, group: int | None
) -> None:
    color = color_from_payload(raw["color"]) if "color" in raw else None
    usage = usage_from_payload(raw["usage"]) if "usage" in raw else None
    name = check_name(str(raw["name"])) if "name" in raw else None
    if color is not None:
        document.set_color(index, color, group=group)
    if usage is not None:
        document.set_usage(index, usage, group=group)
    if name is not None:
        document.rename(index, name, group=group)


def _require_int(raw: dict[str, Any], key: str) -> int:
    value = raw.get(key)
    if isinstance(value, bool):
        raise ValueError(f"{key} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be an integer") from None


def _parse_bool(value, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_int(value, default: int) -> int:
    try:
        return int(value)
    except Exception:
        return default
