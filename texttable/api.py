#!/usr/bin/env python3
"""
Flask REST API for the TextTable Converter.

Exposes the local conversions and the language-model commands of a
ConverterSession over HTTP. All handlers share one session, so the
single-flight rules apply across requests: a request for a busy slot
gets HTTP 409.
"""

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from . import __version__
from .session import BUSY_MESSAGE, SLOT_API_KEY, SLOT_CONVERT, ConverterSession
from .transformers.components.response_parser import parse_pipe_table
from .transformers.data_models import TableData
from .transformers.table_converter import TableConverter
from .utils.config import get_env_string
from .utils.credentials import mask_api_key

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Error returned to the client as JSON with an HTTP status."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ApiError("Request body must be a JSON object")
    return data


def _required_text(data: dict, field: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ApiError(f"Missing required field: {field}")
    return value


def _delimiter(data: dict) -> str:
    delimiter = data.get("delimiter", "\t")
    if not isinstance(delimiter, str) or not delimiter:
        raise ApiError("Delimiter must be a non-empty string")
    return delimiter


def _table_from_body(data: dict) -> TableData:
    """Table from either a 'rows' array (header first) or a 'table' pipe-table string."""
    rows = data.get("rows")
    if rows is not None:
        if not isinstance(rows, list) or not all(isinstance(row, list) for row in rows):
            raise ApiError("rows must be an array of arrays")
        for row in rows:
            if not all(cell is None or isinstance(cell, str) for cell in row):
                raise ApiError("rows cells must be strings or null")
        try:
            return TableData.from_array(rows)
        except ValueError as e:
            raise ApiError(str(e))

    try:
        return TableData.from_array(parse_pipe_table(_required_text(data, "table")))
    except ValueError as e:
        raise ApiError(f"Invalid table: {e}")


def _table_json(table: TableData, converter: TableConverter) -> dict:
    return {
        "columns": table.columns,
        "rows": table.rows,
        "column_count": table.column_count,
        "row_count": table.row_count,
        "markdown": converter.table_to_markdown(table),
    }


def _llm_response(session: ConverterSession, result, field: str):
    if result.success:
        return jsonify({field: result.value, "status": session.status_message}), 200
    if result.error == BUSY_MESSAGE:
        return jsonify({"error": "busy", "message": BUSY_MESSAGE}), 409
    return jsonify({"error": "conversion_failed", "message": session.status_message}), 502


def create_app(session: Optional[ConverterSession] = None) -> Flask:
    """
    Build the Flask application.

    Args:
        session: Session shared by all requests (a new one if None)

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)

    cors_origins = get_env_string('CORS_ORIGINS', 'http://localhost:3000')
    CORS(app,
         origins=[origin.strip() for origin in cors_origins.split(',')],
         methods=['GET', 'POST', 'DELETE', 'OPTIONS'],
         allow_headers=['Content-Type'])

    app.config["SESSION"] = session if session is not None else ConverterSession()
    converter = TableConverter(newline="\n")

    def current_session() -> ConverterSession:
        return app.config["SESSION"]

    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError):
        logger.info(f"Rejected request to {request.path}: {error.message}")
        return jsonify({"error": "bad_request", "message": error.message}), error.status

    @app.route('/health', methods=['GET'])
    def health():
        """Health check endpoint."""
        session = current_session()
        return jsonify({
            'status': 'ok',
            'service': 'texttable',
            'version': __version__,
            'timestamp': _timestamp(),
            'components': {
                'api_key': 'set' if session.client.has_api_key else 'missing',
                'processing': session.is_processing,
            }
        }), 200

    @app.route('/api/table/from-text', methods=['POST'])
    def table_from_text():
        """Delimited text to a table. Body: {"text": str, "delimiter": str (optional)}"""
        data = _json_body()
        text = data.get("text")
        if not isinstance(text, str):
            raise ApiError("Missing required field: text")
        try:
            table = converter.text_to_table(text, _delimiter(data))
        except ValueError as e:
            raise ApiError(str(e))
        return jsonify(_table_json(table, converter)), 200

    @app.route('/api/table/to-text', methods=['POST'])
    def table_to_text():
        """Table to delimited text. Body: {"rows": [[...]]} or {"table": str}, "delimiter" optional."""
        data = _json_body()
        table = _table_from_body(data)
        try:
            text = converter.table_to_text(table, _delimiter(data))
        except ValueError as e:
            raise ApiError(str(e))
        return jsonify({"text": text}), 200

    @app.route('/api/table/analyze', methods=['POST'])
    def table_analyze():
        """Column type suggestions. Body: {"rows": [[...]]} or {"table": str}"""
        analysis = converter.analyze_structure(_table_from_body(_json_body()))
        return jsonify({
            "column_count": analysis.column_count,
            "row_count": analysis.row_count,
            "columns": [asdict(column) for column in analysis.columns],
            "report": str(analysis),
        }), 200

    @app.route('/api/llm/text-to-table', methods=['POST'])
    def llm_text_to_table():
        """
        Free text to a pipe table with the language model.

        Body: {"text": str, "parse": bool (optional)}. With parse, the
        response is validated and returned as a structured table.
        """
        data = _json_body()
        text = _required_text(data, "text")
        session = current_session()
        if session.guard.in_flight(SLOT_CONVERT):
            return jsonify({"error": "busy", "message": BUSY_MESSAGE}), 409
        session.input_text = text

        if data.get("parse"):
            result = session.text_to_table_data()
            if result.success:
                body = _table_json(result.value, converter)
                body["status"] = session.status_message
                return jsonify(body), 200
            return _llm_response(session, result, "table")
        return _llm_response(session, session.text_to_table(), "table")

    @app.route('/api/llm/table-to-text', methods=['POST'])
    def llm_table_to_text():
        """Pipe table to prose with the language model. Body: {"table": str}"""
        table = _required_text(_json_body(), "table")
        session = current_session()
        if session.guard.in_flight(SLOT_CONVERT):
            return jsonify({"error": "busy", "message": BUSY_MESSAGE}), 409
        session.table_markdown = table
        return _llm_response(session, session.table_to_text(), "text")

    @app.route('/api/llm/analyze-structure', methods=['POST'])
    def llm_analyze_structure():
        """Model commentary on a table's columns. Body: {"table": str}"""
        data = _json_body()
        _table_from_body({"table": data.get("table")})
        session = current_session()
        if session.guard.in_flight(SLOT_CONVERT):
            return jsonify({"error": "busy", "message": BUSY_MESSAGE}), 409
        session.table_markdown = data["table"]
        return _llm_response(session, session.describe_structure(), "analysis")

    @app.route('/api/settings', methods=['GET'])
    def get_settings():
        """Current settings; the API key is masked."""
        session = current_session()
        settings = session.settings
        return jsonify({
            "api_key": mask_api_key(settings.api_key),
            "is_dark_mode": settings.is_dark_mode,
            "show_toolbar": settings.show_toolbar,
            "google_drive_credentials": bool(settings.google_drive_credentials),
            "default_model": settings.get_default_model(),
        }), 200

    @app.route('/api/settings/api-key', methods=['POST'])
    def set_api_key():
        """Save and verify an API key. Body: {"api_key": str}"""
        api_key = _required_text(_json_body(), "api_key")
        session = current_session()
        if session.guard.in_flight(SLOT_API_KEY):
            return jsonify({"error": "busy", "message": BUSY_MESSAGE}), 409

        result = session.save_api_key(api_key)
        if result.success:
            return jsonify({"status": session.status_message, "api_key": mask_api_key(api_key)}), 200
        if result.error == BUSY_MESSAGE:
            return jsonify({"error": "busy", "message": BUSY_MESSAGE}), 409
        if result.error == "Invalid API key format":
            raise ApiError(result.error)
        return jsonify({"error": "verification_failed", "message": session.status_message}), 502

    @app.route('/api/settings/api-key', methods=['DELETE'])
    def clear_api_key():
        session = current_session()
        session.clear_api_key()
        return jsonify({"status": session.status_message}), 200

    @app.route('/api/settings/toggle/<name>', methods=['POST'])
    def toggle_setting(name: str):
        """Flip dark-mode or toolbar."""
        settings = current_session().settings
        if name == "dark-mode":
            return jsonify({"is_dark_mode": settings.toggle_dark_mode()}), 200
        if name == "toolbar":
            return jsonify({"show_toolbar": settings.toggle_toolbar()}), 200
        raise ApiError(f"Unknown setting: {name}", status=404)

    logger.info(f"TextTable API created (CORS origins: {cors_origins})")
    return app
