"""
Users API - accounts keyed by Nostr pubkey and their preferences blob.
"""

import logging

import pytz
from flask import Blueprint, jsonify, request

from app import db
from app.forms import validate_preferences
from app.models import DIET_PLANS, User, is_valid_pubkey
from app.utils.logging import log_activity

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _validation_error(message, fields=None):
    payload = {"error": message}
    if fields:
        payload["fields"] = fields
    return jsonify(payload), 400


def _get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        return None, (jsonify({"error": "User not found"}), 404)
    return user, None


@users_bp.route("", methods=["POST"])
def create_user():
    """Create a user from a pubkey. Returns the user or {error}."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _validation_error("Invalid user data")

    pubkey = (data.get("pubkey") or "").strip().lower()
    if not is_valid_pubkey(pubkey):
        return _validation_error("Invalid user data", {"pubkey": ["Must be a 64 character hex public key."]})

    time_zone = data.get("timeZone") or "UTC"
    if time_zone not in pytz.all_timezones_set:
        return _validation_error("Invalid user data", {"timeZone": ["Unknown time zone."]})

    preferences = data.get("preferences")
    if preferences is not None:
        preferences, errors = validate_preferences(preferences)
        if errors:
            return _validation_error("Invalid user data", errors)

    if User.query.filter_by(pubkey=pubkey).first():
        return jsonify({"error": "User already exists"}), 409

    user = User(pubkey=pubkey, preferences=preferences, time_zone=time_zone)
    db.session.add(user)
    db.session.commit()

    log_activity("users", "Create", f"Created user {pubkey[:8]}", actor=user)
    return jsonify(user.to_dict())


@users_bp.route("/<string:pubkey>", methods=["GET"])
def get_user(pubkey):
    user = User.query.filter_by(pubkey=pubkey.lower()).first()
    if not user:
        return jsonify({"error": "User not found"}), 404
    return jsonify(user.to_dict())


@users_bp.route("/<int:user_id>/preferences", methods=["PUT"])
def replace_preferences(user_id):
    """
    Replace the preferences object.

    The profile dialog sends the user's current preferences with its
    `profile` section replaced; the diet plan screen wraps the object as
    {"preferences": {...}}. Both shapes are accepted.
    """
    user, error_response = _get_user_or_404(user_id)
    if error_response:
        return error_response

    data = request.get_json(silent=True)
    if isinstance(data, dict) and set(data.keys()) == {"preferences"}:
        data = data["preferences"]

    preferences, errors = validate_preferences(data)
    if errors:
        logger.info(f"Rejected preferences for user {user_id}: {errors}")
        return _validation_error("Invalid preferences data", errors)

    user.preferences = preferences
    db.session.commit()

    section = "profile" if "profile" in preferences else "preferences"
    log_activity("users", "Update Preferences", f"User {user.pubkey[:8]} updated {section}", actor=user)
    return jsonify(user.to_dict())


@users_bp.route("/<int:user_id>/preferences", methods=["PATCH"])
def merge_preferences(user_id):
    """Shallow-merge the body into the stored preferences."""
    user, error_response = _get_user_or_404(user_id)
    if error_response:
        return error_response

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _validation_error("Invalid preferences data")

    merged = dict(user.preferences or {})
    merged.update(data)
    preferences, errors = validate_preferences(merged)
    if errors:
        return _validation_error("Invalid preferences data", errors)

    user.preferences = preferences
    db.session.commit()

    log_activity("users", "Update Preferences", f"User {user.pubkey[:8]} updated {', '.join(sorted(data))}", actor=user)
    return jsonify(user.to_dict())


@users_bp.route("/<int:user_id>/diet-plan", methods=["PUT"])
def select_diet_plan(user_id):
    """Pick a diet plan; switching plans restarts the streak."""
    user, error_response = _get_user_or_404(user_id)
    if error_response:
        return error_response

    data = request.get_json(silent=True)
    if not isinstance(data, dict) or "dietPlan" not in data:
        return _validation_error("dietPlan is required")

    diet_plan = data["dietPlan"]
    if diet_plan is not None and diet_plan not in DIET_PLANS:
        return _validation_error("Invalid diet plan", {"dietPlan": [f"Must be one of: {', '.join(DIET_PLANS)}."]})

    user.select_diet_plan(diet_plan)
    db.session.commit()

    log_activity("users", "Diet Plan", f"User {user.pubkey[:8]} selected diet plan {diet_plan or 'none'}", actor=user)
    return jsonify(user.to_dict())
