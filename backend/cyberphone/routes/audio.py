# Overview: Flask API routes for the read-only audio track catalogue.

from flask import Blueprint, jsonify

from ..decorators import require_auth
from ..services import content_service


audio_bp = Blueprint("audio", __name__, url_prefix="/api/audio-tracks")


@audio_bp.get("/")
@require_auth
def list_tracks_route():
    return jsonify({"tracks": [t.to_dict() for t in content_service.list_audio_tracks()]}), 200


@audio_bp.get("/<int:track_id>")
@require_auth
def get_track_route(track_id: int):
    track = content_service.get_audio_track(track_id)
    if not track:
        return jsonify({"error": "Audio track not found"}), 404
    return jsonify({"track": track.to_dict()}), 200
