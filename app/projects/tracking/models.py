"""
Tracking Models
Food and water logs per user
"""

from datetime import datetime
from app import db

MEAL_TYPES = ('breakfast', 'lunch', 'dinner', 'snack')


class FoodEntry(db.Model):
    __tablename__ = 'food_entries'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    name = db.Column(db.Text, nullable=False)
    calories = db.Column(db.Integer, nullable=False)
    protein = db.Column(db.Integer, nullable=True)
    carbs = db.Column(db.Integer, nullable=True)
    fat = db.Column(db.Integer, nullable=True)
    meal_type = db.Column(db.String(20), nullable=False)
    date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    nostr_event_id = db.Column(db.String(64), nullable=True)
    group_id = db.Column(db.Text, nullable=True)  # NIP-29 id, <host>'<group-id>

    user = db.relationship('User', backref=db.backref('food_entries', lazy='dynamic'))

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'name': self.name,
            'calories': self.calories,
            'protein': self.protein,
            'carbs': self.carbs,
            'fat': self.fat,
            'mealType': self.meal_type,
            'date': self.date.isoformat() + 'Z',
            'nostrEventId': self.nostr_event_id,
            'groupId': self.group_id,
        }

    def __repr__(self):
        return f"<FoodEntry {self.id}: {self.name} ({self.calories} kcal)>"


class WaterEntry(db.Model):
    __tablename__ = 'water_entries'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    amount = db.Column(db.Integer, nullable=False)  # ml
    date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    nostr_event_id = db.Column(db.String(64), nullable=True)
    group_id = db.Column(db.Text, nullable=True)

    user = db.relationship('User', backref=db.backref('water_entries', lazy='dynamic'))

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'amount': self.amount,
            'date': self.date.isoformat() + 'Z',
            'nostrEventId': self.nostr_event_id,
            'groupId': self.group_id,
        }

    def __repr__(self):
        return f"<WaterEntry {self.id}: {self.amount}ml>"
