"""
Flask blueprints for the Agent Finder API.
"""

from flask import Blueprint, current_app

# Create blueprints
finder_bp = Blueprint('finder', __name__)
registry_bp = Blueprint('registry', __name__)


def get_pipeline():
    """The Pipeline instance installed by create_app()."""
    return current_app.config["PIPELINE"]


# Import routes to register them
from . import extract
from . import genres
