"""
Tracking - food and water logs and the daily summary built from them.
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from app import db
from app.core import nip29
from app.core.nostr_client import publish_event
from app.forms import BODY_NOT_OBJECT, get_json_object
from app.models import User
from app.projects.groups.models import Group
from app.projects.groups.utils import get_membership, get_signing_key, publish_and_mirror
from app.projects.tracking.forms import FoodEntryForm, WaterEntryForm
from app.projects.tracking.models import FoodEntry, WaterEntry
from app.projects.tracking.utils import (
    STATS_RANGES,
    daily_totals,
    day_bounds,
    diet_streaks,
    local_today,
    parse_day,
    range_days,
    summarize_day,
    value_stats,
)
from app.utils.logging import log_activity

logger = logging.getLogger(__name__)

tracking_bp = Blueprint("tracking", __name__, url_prefix="/api")


def _form_error(form, message):
    return jsonify({"error": message, "fields": form.json_errors()}), 400


def _user_and_day_from_args():
    """Returns (user, day, None) or (None, None, error response)."""
    user_id = request.args.get("userId", type=int)
    if user_id is None:
        return None, None, (jsonify({"error": "userId is required"}), 400)
    user = db.session.get(User, user_id)
    if user is None:
        return None, None, (jsonify({"error": "User not found"}), 404)
    try:
        day = parse_day(request.args.get("date", ""), user.time_zone)
    except ValueError:
        return None, None, (jsonify({"error": "date must be an ISO date or timestamp"}), 400)
    return user, day, None


def _entries_for_day(model, user, day):
    start, end = day_bounds(day, user.time_zone)
    return (
        model.query.filter(model.user_id == user.id, model.date >= start, model.date < end)
        .order_by(model.date)
        .all()
    )


@tracking_bp.route("/food-entries", methods=["GET"])
def list_food_entries():
    user, day, error_response = _user_and_day_from_args()
    if error_response:
        return error_response
    return jsonify([e.to_dict() for e in _entries_for_day(FoodEntry, user, day)])


@tracking_bp.route("/food-entries", methods=["POST"])
def create_food_entry():
    data = get_json_object()
    if data is None:
        return jsonify({"error": BODY_NOT_OBJECT}), 400
    form = FoodEntryForm.from_json(data)
    if not form.validate():
        return _form_error(form, "Invalid food entry data")

    user = db.session.get(User, form.user_id.data)
    if user is None:
        return jsonify({"error": "User not found"}), 404

    entry = FoodEntry(
        user_id=user.id,
        name=form.name.data.strip(),
        calories=form.calories.data,
        protein=form.protein.data,
        carbs=form.carbs.data,
        fat=form.fat.data,
        meal_type=form.meal_type.data,
        date=form.date.data,
    )
    db.session.add(entry)
    db.session.commit()

    log_activity("tracking", "Food", f"User {user.pubkey[:8]} logged {entry.meal_type}: {entry.name} ({entry.calories} kcal)", actor=user)
    return jsonify(entry.to_dict())


@tracking_bp.route("/water-entries", methods=["GET"])
def list_water_entries():
    user, day, error_response = _user_and_day_from_args()
    if error_response:
        return error_response
    return jsonify([e.to_dict() for e in _entries_for_day(WaterEntry, user, day)])


@tracking_bp.route("/water-entries", methods=["POST"])
def create_water_entry():
    data = get_json_object()
    if data is None:
        return jsonify({"error": BODY_NOT_OBJECT}), 400
    form = WaterEntryForm.from_json(data)
    if not form.validate():
        return _form_error(form, "Invalid water entry data")

    user = db.session.get(User, form.user_id.data)
    if user is None:
        return jsonify({"error": "User not found"}), 404

    entry = WaterEntry(user_id=user.id, amount=form.amount.data, date=form.date.data)
    db.session.add(entry)
    db.session.commit()

    log_activity("tracking", "Water", f"User {user.pubkey[:8]} logged {entry.amount}ml of water", actor=user)
    return jsonify(entry.to_dict())


@tracking_bp.route("/daily-summary", methods=["GET"])
def daily_summary():
    """Totals for the day against the user's goals."""
    user, day, error_response = _user_and_day_from_args()
    if error_response:
        return error_response

    summary = summarize_day(
        _entries_for_day(FoodEntry, user, day),
        _entries_for_day(WaterEntry, user, day),
        user,
    )
    summary["date"] = day.isoformat()
    summary["userId"] = user.id
    return jsonify(summary)


@tracking_bp.route("/stats", methods=["GET"])
def stats():
    """
    Calorie and water stats over the week, month or year containing `date`
    (default: today in the user's time zone), plus diet streaks as of that day.

    Averages, minimums and maximums are over days with at least one entry.
    """
    user_id = request.args.get("userId", type=int)
    if user_id is None:
        return jsonify({"error": "userId is required"}), 400
    user = db.session.get(User, user_id)
    if user is None:
        return jsonify({"error": "User not found"}), 404

    range_name = request.args.get("range", "week")
    if range_name not in STATS_RANGES:
        return jsonify({"error": f"range must be one of {', '.join(STATS_RANGES)}"}), 400
    day = local_today(user.time_zone)
    if request.args.get("date"):
        try:
            day = parse_day(request.args["date"], user.time_zone)
        except ValueError:
            return jsonify({"error": "date must be an ISO date or timestamp"}), 400

    first, last = range_days(range_name, day)
    start, end = day_bounds(first, user.time_zone)[0], day_bounds(last, user.time_zone)[1]
    food = FoodEntry.query.filter(FoodEntry.user_id == user.id, FoodEntry.date >= start, FoodEntry.date < end).all()
    water = WaterEntry.query.filter(WaterEntry.user_id == user.id, WaterEntry.date >= start, WaterEntry.date < end).all()

    history = FoodEntry.query.filter(
        FoodEntry.user_id == user.id, FoodEntry.date < day_bounds(day, user.time_zone)[1]
    ).all()

    return jsonify({
        "userId": user.id,
        "range": range_name,
        "start": first.isoformat(),
        "end": last.isoformat(),
        "calories": value_stats(daily_totals(food, "calories", user.time_zone).values()),
        "water": value_stats(daily_totals(water, "amount", user.time_zone).values()),
        "totals": summarize_day(food, water, user)["totals"],
        "streaks": diet_streaks(history, user, day),
    })


def meal_note_content(entry):
    macros = [
        f"{value}g {label}"
        for label, value in (("protein", entry.protein), ("carbs", entry.carbs), ("fat", entry.fat))
        if value
    ]
    content = f"{entry.meal_type.capitalize()}: {entry.name} ({entry.calories} kcal"
    if macros:
        content += ", " + ", ".join(macros)
    return content + ") #dietstr"


@tracking_bp.route("/food-entries/<int:entry_id>/share", methods=["POST"])
@login_required
def share_food_entry(entry_id):
    """Publish one of the current user's food entries as a note, optionally into a group."""
    entry = db.session.get(FoodEntry, entry_id)
    if entry is None:
        return jsonify({"error": "Food entry not found"}), 404
    if entry.user_id != current_user.id:
        return jsonify({"error": "You can only share your own entries"}), 403

    data = get_json_object()
    if data is None:
        return jsonify({"error": BODY_NOT_OBJECT}), 400
    group_nostr_id = data.get("groupId")
    content = meal_note_content(entry)

    if group_nostr_id:
        group = Group.query.filter_by(group_id=group_nostr_id).first()
        if group is None:
            return jsonify({"error": "Group not found"}), 404
        if get_membership(group, current_user) is None:
            return jsonify({"error": "Only members can share to this group"}), 403
        event_id = publish_and_mirror(group, nip29.build_group_note, group.group_id, content)
    else:
        private_key = get_signing_key()
        event_id = None
        if private_key:
            template = {"kind": nip29.TEXT_NOTE, "content": content, "tags": [["t", "dietstr"], ["p", entry.user.pubkey]]}
            event_id = publish_event(template, private_key)

    if event_id is None:
        db.session.rollback()
        return jsonify({"error": "Failed to publish to Nostr"}), 502

    entry.nostr_event_id = event_id
    entry.group_id = group_nostr_id
    db.session.commit()

    log_activity("tracking", "Share", f"Shared food entry {entry.id} as {event_id}", actor=current_user)
    return jsonify(entry.to_dict())
