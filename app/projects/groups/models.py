"""
Groups Models
Local bookkeeping for NIP-29 groups: membership, invites and a mirror of
the group's Nostr events.
"""

from datetime import datetime
import secrets

from app import db

ROLES = ('owner', 'admin', 'moderator', 'member')
MANAGER_ROLES = ('owner', 'admin')
INVITER_ROLES = ('owner', 'admin', 'moderator')


def _iso(value):
    return value.isoformat() + 'Z' if value else None


class Group(db.Model):
    __tablename__ = 'groups'

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Text, nullable=False, unique=True)  # <host>'<group-id>
    name = db.Column(db.Text, nullable=False)
    about = db.Column(db.Text, nullable=True)
    picture = db.Column(db.Text, nullable=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    kind39000_event_id = db.Column(db.String(64), nullable=True)

    # Relationships
    owner = db.relationship('User', foreign_keys=[owner_id], backref=db.backref('owned_groups', lazy=True))
    members = db.relationship('GroupMember', backref='group', lazy=True, cascade="all, delete-orphan")
    invites = db.relationship('GroupInvite', backref='group', lazy=True, cascade="all, delete-orphan")
    events = db.relationship('GroupEvent', backref='group', lazy='dynamic', cascade="all, delete-orphan")

    def to_dict(self):
        return {
            'id': self.id,
            'groupId': self.group_id,
            'name': self.name,
            'about': self.about,
            'picture': self.picture,
            'ownerId': self.owner_id,
            'createdAt': _iso(self.created_at),
            'kind39000EventId': self.kind39000_event_id,
            'memberCount': len(self.members),
        }

    def __repr__(self):
        return f"<Group {self.id}: {self.name} ({self.group_id})>"


class GroupMember(db.Model):
    __tablename__ = 'group_members'
    __table_args__ = (db.UniqueConstraint('group_id', 'user_id', name='uq_group_members_group_user'),)

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('groups.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    role = db.Column(db.String(20), default='member')
    joined_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    kind9021_event_id = db.Column(db.String(64), nullable=True)

    user = db.relationship('User', backref=db.backref('group_memberships', lazy=True))

    def to_dict(self):
        return {
            'id': self.id,
            'groupId': self.group_id,
            'userId': self.user_id,
            'pubkey': self.user.pubkey if self.user else None,
            'role': self.role,
            'joinedAt': _iso(self.joined_at),
            'kind9021EventId': self.kind9021_event_id,
        }

    def __repr__(self):
        return f"<GroupMember {self.user_id} in {self.group_id} ({self.role})>"


class GroupInvite(db.Model):
    __tablename__ = 'group_invites'

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('groups.id'), nullable=False)
    invite_code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=True)
    max_uses = db.Column(db.Integer, nullable=True)
    use_count = db.Column(db.Integer, default=0)
    is_active = db.Column(db.Boolean, default=True)

    creator = db.relationship('User', foreign_keys=[created_by])

    @staticmethod
    def generate_code():
        return secrets.token_urlsafe(12)

    def is_expired(self, now=None):
        now = now or datetime.utcnow()
        return self.expires_at is not None and now > self.expires_at

    def is_exhausted(self):
        return self.max_uses is not None and (self.use_count or 0) >= self.max_uses

    def is_usable(self, now=None):
        return bool(self.is_active) and not self.is_expired(now) and not self.is_exhausted()

    def redeem(self):
        """Count one use; the invite deactivates itself once it hits max_uses."""
        self.use_count = (self.use_count or 0) + 1
        if self.is_exhausted():
            self.is_active = False

    def to_dict(self):
        return {
            'id': self.id,
            'groupId': self.group_id,
            'inviteCode': self.invite_code,
            'createdBy': self.created_by,
            'createdAt': _iso(self.created_at),
            'expiresAt': _iso(self.expires_at),
            'maxUses': self.max_uses,
            'useCount': self.use_count,
            'isActive': self.is_active,
        }

    def __repr__(self):
        return f"<GroupInvite {self.invite_code} for {self.group_id}>"


class GroupEvent(db.Model):
    __tablename__ = 'group_events'

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('groups.id'), nullable=False, index=True)
    kind = db.Column(db.Integer, nullable=False)
    event_id = db.Column(db.String(64), nullable=False)
    pubkey = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False)
    content = db.Column(db.Text, nullable=True)
    tags = db.Column(db.JSON, nullable=True)
    referenced_event_ids = db.Column(db.JSON, nullable=True)

    @classmethod
    def from_mirror(cls, group, fields):
        """Build a row from nip29.event_to_mirror() output (created_at in unix seconds)."""
        values = dict(fields)
        values['created_at'] = datetime.utcfromtimestamp(values['created_at'])
        return cls(group_id=group.id, **values)

    def to_dict(self):
        return {
            'id': self.id,
            'groupId': self.group_id,
            'kind': self.kind,
            'eventId': self.event_id,
            'pubkey': self.pubkey,
            'createdAt': _iso(self.created_at),
            'content': self.content,
            'tags': self.tags,
            'referencedEventIds': self.referenced_event_ids,
        }

    def __repr__(self):
        return f"<GroupEvent kind={self.kind} {self.event_id[:8]}>"
