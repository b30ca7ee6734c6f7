"""Campaign progress API routes.

The save holds a single integer (the current level index); settings for a
level are derived from that index.
"""
from flask import Blueprint, jsonify

from pipeworks.models.progress import complete_level, current_level, level_count, level_settings

bp_progress = Blueprint('progress_api', __name__)


@bp_progress.route('/api/progress', methods=['GET'])
def get_progress():
    """Response: { "level": <int>, "level_count": <int>, "settings": {...} }"""
    index = current_level()
    return jsonify({"level": index, "level_count": level_count(), "settings": level_settings(index)})


@bp_progress.route('/api/progress/complete', methods=['POST'])
def post_complete():
    """Mark the current level done and advance (wrapping after the last level)."""
    index = complete_level()
    return jsonify({"level": index, "level_count": level_count(), "settings": level_settings(index)})
