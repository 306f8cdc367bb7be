#!/usr/bin/env python3
"""
Agent Finder Web API

Flask app exposing extraction, crawling, saving and the genre registry.
"""

from flask import Flask

from config import load_settings
from finder import Pipeline


def create_app(pipeline: Pipeline = None) -> Flask:
    """Build the Flask app around a pipeline (a default one if not given)."""
    app = Flask(__name__)
    app.config["PIPELINE"] = pipeline or Pipeline(load_settings())

    from routes import finder_bp, registry_bp
    app.register_blueprint(finder_bp)
    app.register_blueprint(registry_bp)
    return app


if __name__ == "__main__":
    print("\n" + "="*60)
    print("  Agent Finder API")
    print("="*60)
    create_app().run(debug=True, port=5001)
