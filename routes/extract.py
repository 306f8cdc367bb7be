"""
Extraction routes - health, extract, crawl, save.
"""

from flask import jsonify, request

from models import ValidatedRecord
from repositories import SinkConfigError
from . import finder_bp, get_pipeline

# Fingerprints are large and only useful internally
RESULT_EXCLUDE = {"records": {"__all__": {"record": {"profile_embedding"}}}}


def _result_json(result):
    return jsonify(result.model_dump(mode="json", exclude=RESULT_EXCLUDE))


@finder_bp.route("/health", methods=["GET"])
def health():
    return jsonify(get_pipeline().health())


@finder_bp.route("/api/extract", methods=["POST"])
def extract():
    """Crawl one agency site. Returns a warning instead of records when it is too big."""
    data = request.get_json(silent=True) or {}
    url = (data.get("url") or "").strip()
    if not url.startswith(("http://", "https://")):
        return jsonify({"error": "A valid http(s) url is required"}), 400

    result = get_pipeline().extract(url, confirm=bool(data.get("confirm")))
    return _result_json(result)


@finder_bp.route("/api/crawl", methods=["POST"])
def crawl():
    data = request.get_json(silent=True) or {}
    urls = data.get("urls") or []
    mode = data.get("mode", "dynamic")

    if not isinstance(urls, list) or not urls:
        return jsonify({"error": "urls must be a non-empty list"}), 400
    if mode not in ("single", "dynamic"):
        return jsonify({"error": f"Unknown mode: {mode}"}), 400

    result = get_pipeline().crawl(urls, mode=mode, confirm=bool(data.get("confirm")))
    return _result_json(result)


@finder_bp.route("/api/save", methods=["POST"])
def save():
    """Save validated agents to the configured sink."""
    data = request.get_json(silent=True) or {}
    agents = data.get("agents")
    if not isinstance(agents, list) or not agents:
        return jsonify({"error": "agents must be a non-empty list"}), 400

    records = []
    invalid = 0
    for item in agents:
        try:
            records.append(ValidatedRecord.model_validate(item))
        except ValueError:
            invalid += 1

    try:
        summary = get_pipeline().save(records)
    except SinkConfigError as e:
        return jsonify({"error": str(e)}), 500

    summary.failed += invalid
    if invalid:
        summary.errors.append(f"{invalid} agents were not valid records")
    return jsonify(summary.model_dump(mode="json"))
