"""Flask web app: Healthcare Format Analyzer JSON API."""

import io

from flask import Flask, jsonify, request, send_file
from loguru import logger

from analysis_tree import tree_for_result
from config import MAX_MESSAGE_BYTES, setup_logging
from errors import ParseError
from excel_writer import write_result_excel
from format_detect import detect_format
from message_parser import detect_and_parse, parse
from models import FormatTag


app = Flask(__name__)
# Leave headroom over the parser ceiling so the parser reports the size error
app.config["MAX_CONTENT_LENGTH"] = MAX_MESSAGE_BYTES + 1024 * 1024


def _read_message():
    """Pull ``message`` and optional ``format`` from a JSON object body or a form.

    Returns ``(message, fmt, error_response)``; the response is set when the
    body is not an object or its fields are not strings.
    """
    payload = request.get_json(silent=True)
    if payload is None:
        payload = request.form
    if not isinstance(payload, dict):
        return "", "", (jsonify({"error": "Request body must be a JSON object"}), 400)

    message = payload.get("message") or ""
    fmt = payload.get("format") or ""
    if not isinstance(message, str) or not isinstance(fmt, str):
        return "", "", (jsonify({"error": "message and format must be strings"}), 400)
    return message, fmt, None


def _parse_request():
    message, fmt, error = _read_message()
    if error:
        return None, error
    if not message.strip():
        return None, (jsonify({"error": "No message provided"}), 400)

    try:
        if fmt:
            return parse(message, fmt), None
        _, result = detect_and_parse(message)
        return result, None
    except ParseError as e:
        return None, (jsonify({"error": str(e)}), 400)


@app.route("/formats")
def formats():
    return jsonify({"formats": [tag.value for tag in FormatTag]})


@app.route("/detect", methods=["POST"])
def detect():
    message, _, error = _read_message()
    if error:
        return error
    detection = detect_format(message)
    if detection is None:
        return jsonify({"detection": None, "error": "Could not detect message format"}), 200
    return jsonify({"detection": detection.to_dict()})


@app.route("/parse", methods=["POST"])
def parse_message():
    result, error = _parse_request()
    if error:
        return error

    body = result.to_dict()
    if request.args.get("tree") in ("1", "true", "yes"):
        body["tree"] = tree_for_result(result).to_dict()
    return jsonify(body)


@app.route("/export", methods=["POST"])
def export():
    result, error = _parse_request()
    if error:
        return error

    buffer = io.BytesIO()
    try:
        write_result_excel(result, buffer)
    except Exception as e:
        logger.exception("Workbook export failed")
        return jsonify({"error": f"Failed to generate Excel: {e}"}), 500

    buffer.seek(0)
    return send_file(
        buffer,
        as_attachment=True,
        download_name=f"{result.format.value}_analysis.xlsx",
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


if __name__ == "__main__":
    setup_logging("DEBUG")
    print("=" * 56)
    print("  Healthcare Format Analyzer")
    print("  Formats: HL7 v2, HL7 v3/CDA, FHIR, ASTM, JSON, XML")
    print("  POST to http://127.0.0.1:5000/parse")
    print("=" * 56)
    app.run(debug=True, port=5000)
