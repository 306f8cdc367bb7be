"""
Genre registry routes - list and approve terms.
"""

from flask import jsonify, request

from models import GenreCategory
from . import registry_bp, get_pipeline


@registry_bp.route("/api/genres", methods=["GET"])
def list_genres():
    """Registry names grouped by category."""
    pipeline = get_pipeline()
    category = request.args.get("category")
    if category:
        entries = pipeline.list_registry(category)
        return jsonify({category: [e.name for e in entries]})

    return jsonify({
        c.value: [e.name for e in pipeline.list_registry(c.value)]
        for c in GenreCategory
    })


@registry_bp.route("/api/genres/approve", methods=["POST"])
def approve_genre():
    data = request.get_json(silent=True) or {}
    name = (data.get("genreName") or "").strip()
    category = data.get("category")

    if not name:
        return jsonify({"error": "genreName is required"}), 400
    if category not in {c.value for c in GenreCategory}:
        return jsonify({"error": "category must be fiction or nonfiction"}), 400

    entry = get_pipeline().approve_term(name, category)
    return jsonify({
        "status": "approved",
        "genre": entry.name,
        "category": category,
        "provenance": entry.provenance.value,
    })
