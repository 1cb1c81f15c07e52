from flask_login import UserMixin
from datetime import datetime
import re

from app import db

PUBKEY_PATTERN = re.compile(r'^[0-9a-f]{64}$')

DIET_PLANS = ('carnivore', 'keto', 'fasting', 'animal-based')

# Goals the dashboard falls back to when a user has not set their own
DEFAULT_CALORIE_GOAL = 2000
DEFAULT_WATER_GOAL = 2000
DEFAULT_MACRO_GOALS = {'protein': 50, 'carbs': 250, 'fat': 70}


def is_valid_pubkey(pubkey):
    return isinstance(pubkey, str) and bool(PUBKEY_PATTERN.match(pubkey))


class User(db.Model, UserMixin):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    pubkey = db.Column(db.String(64), nullable=False, unique=True, index=True)
    preferences = db.Column(db.JSON, nullable=True)
    time_zone = db.Column(db.String(50), nullable=False, default='UTC')
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @property
    def calorie_goal(self):
        return (self.preferences or {}).get('dailyCalorieGoal') or DEFAULT_CALORIE_GOAL

    @property
    def water_goal(self):
        return (self.preferences or {}).get('waterGoal') or DEFAULT_WATER_GOAL

    @property
    def macro_goals(self):
        goals = dict(DEFAULT_MACRO_GOALS)
        goals.update((self.preferences or {}).get('macroGoals') or {})
        return goals

    def select_diet_plan(self, diet_plan, now=None):
        """
        Set the user's diet plan and maintain the streak that goes with it.

        Choosing a different plan restarts the streak at day 1 from now.
        Re-selecting the current plan keeps the running streak.

        Args:
            diet_plan: One of DIET_PLANS, or None to clear the plan
            now: Override for the current time (UTC)

        Returns:
            dict: The new preferences
        """
        now = now or datetime.utcnow()
        current = dict(self.preferences or {})
        timestamp = now.isoformat()

        if diet_plan is None:
            current.pop('dietPlan', None)
            current.pop('streak', None)
            current.pop('streakStartDate', None)
        elif current.get('dietPlan') != diet_plan:
            current['dietPlan'] = diet_plan
            current['streak'] = 1
            current['streakStartDate'] = timestamp
        else:
            current['streak'] = current.get('streak') or 1
            current['streakStartDate'] = current.get('streakStartDate') or timestamp

        # Reassign so SQLAlchemy sees the JSON column change
        self.preferences = current
        return current

    def to_dict(self):
        return {
            'id': self.id,
            'pubkey': self.pubkey,
            'preferences': self.preferences,
            'timeZone': self.time_zone,
        }

    def __repr__(self):
        return f'<User {self.id}: {self.pubkey[:8]}>'


class LogEntry(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    actor_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    project = db.Column(db.String(50), nullable=True)
    category = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=False)

    actor = db.relationship('User', backref=db.backref('log_entries', lazy=True))

    def __repr__(self):
        return f'<LogEntry {self.timestamp} - {self.project}/{self.category}>'
