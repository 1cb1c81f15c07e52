from flask import Blueprint, jsonify
from flask_login import login_user, logout_user, current_user, login_required
from app import db, login_manager
from app.forms import BODY_NOT_OBJECT, get_json_object
from app.models import User, is_valid_pubkey
from app.utils.logging import log_activity
import logging

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Login required"}), 401


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Start a session for a pubkey.

    The client obtains the pubkey from the user's NIP-07 signer extension;
    the user must already exist (POST /api/users).
    """
    data = get_json_object()
    if data is None:
        return jsonify({"error": BODY_NOT_OBJECT}), 400
    pubkey = (data.get("pubkey") or "").strip().lower()
    if not is_valid_pubkey(pubkey):
        return jsonify({"error": "Invalid pubkey"}), 400

    user = User.query.filter_by(pubkey=pubkey).first()
    if not user:
        return jsonify({"error": "User not found"}), 404

    login_user(user, remember=bool(data.get("remember")))
    log_activity("auth", "Login", f"User {pubkey[:8]} logged in", actor=user)
    return jsonify(user.to_dict())


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    log_activity("auth", "Logout", f"User {current_user.pubkey[:8]} logged out", actor=current_user)
    logout_user()
    return jsonify({"ok": True})


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify(current_user.to_dict())
