"""
Groups - NIP-29 groups: local membership bookkeeping plus the Nostr events
that announce each change.
"""

import logging
from datetime import datetime, timedelta

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from app import db
from app.core import nip29
from app.forms import BODY_NOT_OBJECT, get_json_object
from app.projects.groups.forms import GroupForm, InviteForm, NoteForm, RoleForm
from app.projects.groups.models import Group, GroupEvent, GroupInvite, GroupMember
from app.projects.groups.utils import (
    can_invite,
    can_manage,
    check_invite,
    get_membership,
    publish_and_mirror,
)
from app.utils.logging import log_activity

logger = logging.getLogger(__name__)

groups_bp = Blueprint("groups", __name__, url_prefix="/api")

DEFAULT_LIST_LIMIT = 100


def _form_error(form, message):
    return jsonify({"error": message, "fields": form.json_errors()}), 400


def _get_group(group_pk):
    group = db.session.get(Group, group_pk)
    if group is None:
        return None, (jsonify({"error": "Group not found"}), 404)
    return group, None


def _publish_rosters(group):
    """Announce the current admin (39001) and member (39002) lists."""
    roster = GroupMember.query.filter_by(group_id=group.id).order_by(GroupMember.id).all()
    admins = [(m.user.pubkey, m.role) for m in roster if m.role != "member"]
    members = [m.user.pubkey for m in roster]
    publish_and_mirror(group, nip29.build_admin_list, group.group_id, admins)
    publish_and_mirror(group, nip29.build_member_list, group.group_id, members)


@groups_bp.route("/groups", methods=["GET"])
def list_groups():
    """Groups newest first, optionally filtered by a search string."""
    query = Group.query
    search = request.args.get("search", "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Group.name.ilike(pattern), Group.about.ilike(pattern)))
    limit = request.args.get("limit", DEFAULT_LIST_LIMIT, type=int)
    if limit < 1:
        return jsonify({"error": "limit must be positive"}), 400
    groups = query.order_by(Group.created_at.desc(), Group.id.desc()).limit(limit).all()
    return jsonify([g.to_dict() for g in groups])


@groups_bp.route("/groups/<int:group_pk>", methods=["GET"])
def get_group(group_pk):
    group, error_response = _get_group(group_pk)
    if error_response:
        return error_response
    return jsonify(group.to_dict())


@groups_bp.route("/groups/by-nostr-id/<string:group_id>", methods=["GET"])
def get_group_by_nostr_id(group_id):
    group = Group.query.filter_by(group_id=group_id).first()
    if group is None:
        return jsonify({"error": "Group not found"}), 404
    return jsonify(group.to_dict())


@groups_bp.route("/groups", methods=["POST"])
@login_required
def create_group():
    data = get_json_object()
    if data is None:
        return jsonify({"error": BODY_NOT_OBJECT}), 400
    form = GroupForm.from_json(data)
    if not form.validate():
        return _form_error(form, "Invalid group data")

    host = current_app.config.get("NOSTR_GROUP_RELAY_HOST", "relay.dietstr.com")
    group_id = nip29.make_group_id(host, form.local_id.data or None)
    if Group.query.filter_by(group_id=group_id).first():
        return jsonify({"error": "Group already exists"}), 409

    group = Group(
        group_id=group_id,
        name=form.name.data.strip(),
        about=form.about.data or None,
        picture=form.picture.data or None,
        owner_id=current_user.id,
    )
    db.session.add(group)
    try:
        db.session.flush()  # Get the group ID
    except IntegrityError:
        # Lost a race with a concurrent create for the same id
        db.session.rollback()
        return jsonify({"error": "Group already exists"}), 409

    # Creator is the first member and owner
    db.session.add(GroupMember(group_id=group.id, user_id=current_user.id, role="owner"))
    db.session.flush()

    group.kind39000_event_id = publish_and_mirror(
        group, nip29.build_group_metadata, group.group_id, group.name,
        about=group.about, picture=group.picture,
    )
    _publish_rosters(group)
    db.session.commit()

    log_activity("groups", "Create", f"User {current_user.pubkey[:8]} created group '{group.name}' ({group.group_id})", actor=current_user)
    return jsonify(group.to_dict())


@groups_bp.route("/groups/<int:group_pk>/members", methods=["GET"])
def list_members(group_pk):
    group, error_response = _get_group(group_pk)
    if error_response:
        return error_response
    members = GroupMember.query.filter_by(group_id=group.id).order_by(GroupMember.joined_at, GroupMember.id).all()
    return jsonify([m.to_dict() for m in members])


@groups_bp.route("/groups/<int:group_pk>/join", methods=["POST"])
@login_required
def join_group(group_pk):
    group, error_response = _get_group(group_pk)
    if error_response:
        return error_response

    if get_membership(group, current_user):
        return jsonify({"error": "Already a member"}), 409

    data = get_json_object()
    if data is None:
        return jsonify({"error": BODY_NOT_OBJECT}), 400
    invite_code = (data.get("inviteCode") or "").strip() or None
    if invite_code:
        invite = GroupInvite.query.filter_by(invite_code=invite_code).with_for_update().first()
        invite_error = check_invite(invite, group)
        if invite_error:
            status = 404 if invite_error == "Invite not found" else 400
            return jsonify({"error": invite_error}), status
        invite.redeem()

    member = GroupMember(group_id=group.id, user_id=current_user.id, role="member")
    db.session.add(member)
    db.session.flush()

    member.kind9021_event_id = publish_and_mirror(
        group, nip29.build_join_request, group.group_id, invite_code=invite_code,
    )
    _publish_rosters(group)
    db.session.commit()

    via = f" with invite {invite_code}" if invite_code else ""
    log_activity("groups", "Join", f"User {current_user.pubkey[:8]} joined '{group.name}'{via}", actor=current_user)
    return jsonify(member.to_dict())


@groups_bp.route("/groups/<int:group_pk>/leave", methods=["POST"])
@login_required
def leave_group(group_pk):
    group, error_response = _get_group(group_pk)
    if error_response:
        return error_response

    membership = get_membership(group, current_user)
    if membership is None:
        return jsonify({"error": "Not a member"}), 404
    if membership.role == "owner":
        return jsonify({"error": "The owner cannot leave the group"}), 400

    db.session.delete(membership)
    db.session.flush()
    publish_and_mirror(group, nip29.build_leave_request, group.group_id)
    _publish_rosters(group)
    db.session.commit()

    log_activity("groups", "Leave", f"User {current_user.pubkey[:8]} left '{group.name}'", actor=current_user)
    return jsonify({"ok": True})


@groups_bp.route("/groups/<int:group_pk>/members/<int:user_id>/role", methods=["POST"])
@login_required
def set_member_role(group_pk, user_id):
    group, error_response = _get_group(group_pk)
    if error_response:
        return error_response
    if not can_manage(group, current_user):
        return jsonify({"error": "Only owners and admins can change roles"}), 403

    data = get_json_object()
    if data is None:
        return jsonify({"error": BODY_NOT_OBJECT}), 400
    form = RoleForm.from_json(data)
    if not form.validate():
        return _form_error(form, "Invalid role")

    membership = GroupMember.query.filter_by(group_id=group.id, user_id=user_id).first()
    if membership is None:
        return jsonify({"error": "Member not found"}), 404
    if membership.role == "owner":
        return jsonify({"error": "The owner's role cannot be changed"}), 400

    membership.role = form.role.data
    publish_and_mirror(group, nip29.build_add_user, group.group_id, membership.user.pubkey, role=membership.role)
    _publish_rosters(group)
    db.session.commit()

    log_activity("groups", "Role", f"User {current_user.pubkey[:8]} set {membership.user.pubkey[:8]} to {membership.role} in '{group.name}'", actor=current_user)
    return jsonify(membership.to_dict())


@groups_bp.route("/groups/<int:group_pk>/members/<int:user_id>", methods=["DELETE"])
@login_required
def remove_member(group_pk, user_id):
    group, error_response = _get_group(group_pk)
    if error_response:
        return error_response
    if not can_manage(group, current_user):
        return jsonify({"error": "Only owners and admins can remove members"}), 403

    membership = GroupMember.query.filter_by(group_id=group.id, user_id=user_id).first()
    if membership is None:
        return jsonify({"error": "Member not found"}), 404
    if membership.role == "owner":
        return jsonify({"error": "The owner cannot be removed"}), 400

    pubkey = membership.user.pubkey
    db.session.delete(membership)
    db.session.flush()
    publish_and_mirror(group, nip29.build_remove_user, group.group_id, pubkey)
    _publish_rosters(group)
    db.session.commit()

    log_activity("groups", "Remove", f"User {current_user.pubkey[:8]} removed {pubkey[:8]} from '{group.name}'", actor=current_user)
    return jsonify({"ok": True})


@groups_bp.route("/groups/<int:group_pk>/invites", methods=["POST"])
@login_required
def create_invite(group_pk):
    group, error_response = _get_group(group_pk)
    if error_response:
        return error_response
    if not can_invite(group, current_user):
        return jsonify({"error": "Not allowed to invite to this group"}), 403

    data = get_json_object()
    if data is None:
        return jsonify({"error": BODY_NOT_OBJECT}), 400
    form = InviteForm.from_json(data)
    if not form.validate():
        return _form_error(form, "Invalid invite data")

    ttl_hours = form.expires_in_hours.data or current_app.config.get("INVITE_DEFAULT_TTL_HOURS", 168)
    invite = GroupInvite(
        group_id=group.id,
        invite_code=GroupInvite.generate_code(),
        created_by=current_user.id,
        expires_at=datetime.utcnow() + timedelta(hours=ttl_hours),
        max_uses=form.max_uses.data,
        use_count=0,
        is_active=True,
    )
    db.session.add(invite)
    db.session.commit()

    log_activity("groups", "Invite", f"User {current_user.pubkey[:8]} created invite {invite.invite_code} for '{group.name}'", actor=current_user)
    return jsonify(invite.to_dict())


@groups_bp.route("/groups/<int:group_pk>/invites", methods=["GET"])
@login_required
def list_invites(group_pk):
    group, error_response = _get_group(group_pk)
    if error_response:
        return error_response
    if not can_invite(group, current_user):
        return jsonify({"error": "Not allowed to view invites"}), 403
    invites = GroupInvite.query.filter_by(group_id=group.id).order_by(GroupInvite.created_at.desc()).all()
    return jsonify([i.to_dict() for i in invites])


@groups_bp.route("/groups/<int:group_pk>/invites/<int:invite_id>", methods=["DELETE"])
@login_required
def revoke_invite(group_pk, invite_id):
    group, error_response = _get_group(group_pk)
    if error_response:
        return error_response
    if not can_invite(group, current_user):
        return jsonify({"error": "Not allowed to revoke invites"}), 403

    invite = GroupInvite.query.filter_by(id=invite_id, group_id=group.id).first()
    if invite is None:
        return jsonify({"error": "Invite not found"}), 404

    invite.is_active = False
    db.session.commit()

    log_activity("groups", "Revoke Invite", f"User {current_user.pubkey[:8]} revoked invite {invite.invite_code}", actor=current_user)
    return jsonify(invite.to_dict())


@groups_bp.route("/invites/<string:code>", methods=["GET"])
def get_invite(code):
    """Look up an active invite by code."""
    invite = GroupInvite.query.filter_by(invite_code=code, is_active=True).first()
    if invite is None:
        return jsonify({"error": "Invite not found"}), 404
    payload = invite.to_dict()
    payload["group"] = invite.group.to_dict()
    return jsonify(payload)


@groups_bp.route("/groups/<int:group_pk>/events", methods=["GET"])
def list_events(group_pk):
    """Mirrored Nostr events for the group, newest first."""
    group, error_response = _get_group(group_pk)
    if error_response:
        return error_response

    query = group.events
    kind = request.args.get("kind", type=int)
    if kind is not None:
        query = query.filter(GroupEvent.kind == kind)
    limit = request.args.get("limit", DEFAULT_LIST_LIMIT, type=int)
    if limit < 1:
        return jsonify({"error": "limit must be positive"}), 400
    events = query.order_by(GroupEvent.created_at.desc(), GroupEvent.id.desc()).limit(limit).all()
    return jsonify([e.to_dict() for e in events])


@groups_bp.route("/groups/<int:group_pk>/notes", methods=["POST"])
@login_required
def post_note(group_pk):
    group, error_response = _get_group(group_pk)
    if error_response:
        return error_response
    if get_membership(group, current_user) is None:
        return jsonify({"error": "Only members can post"}), 403

    data = get_json_object()
    if data is None:
        return jsonify({"error": BODY_NOT_OBJECT}), 400
    form = NoteForm.from_json(data)
    if not form.validate():
        return _form_error(form, "Invalid note")

    event_id = publish_and_mirror(group, nip29.build_group_note, group.group_id, form.content.data)
    if event_id is None:
        db.session.rollback()
        return jsonify({"error": "Failed to publish to Nostr"}), 502
    db.session.commit()

    log_activity("groups", "Note", f"User {current_user.pubkey[:8]} posted {event_id} in '{group.name}'", actor=current_user)
    return jsonify({"eventId": event_id})
