from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import Field, FloatField, IntegerField, StringField
from wtforms.validators import AnyOf, NumberRange, Optional
from dateutil import parser as date_parser
import pytz

from app.models import DIET_PLANS

GENDERS = ('male', 'female', 'other')
FITNESS_LEVELS = ('beginner', 'intermediate', 'advanced', 'athletic')

BODY_NOT_OBJECT = 'Request body must be a JSON object'


class IsoDateTimeField(Field):
    """Accepts ISO 8601 timestamps (as sent by JS `toISOString`) and stores naive UTC."""

    def _value(self):
        return self.data.isoformat() if self.data else ''

    def process_formdata(self, valuelist):
        if not valuelist or not valuelist[0]:
            self.data = None
            return
        try:
            parsed = date_parser.isoparse(valuelist[0])
        except ValueError:
            self.data = None
            raise ValueError(self.gettext('Not a valid datetime value.'))
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(pytz.utc).replace(tzinfo=None)
        self.data = parsed


def get_json_object():
    """
    The request's JSON body as a dict.

    A missing or unparsable body counts as {} so forms report their own
    required-field errors. Returns None when the body is JSON but not an
    object (a list, string or number).
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        return None
    return data


class JsonForm(FlaskForm):
    """
    Base for forms fed from a JSON request body instead of an HTML post.

    Subclasses map JSON keys to form field names in `json_fields`.
    """

    class Meta:
        csrf = False

    json_fields = {}

    @classmethod
    def from_json(cls, data):
        if not isinstance(data, dict):
            raise TypeError(f"{cls.__name__} expects a JSON object, got {type(data).__name__}")
        pairs = []
        for json_key, field_name in cls.json_fields.items():
            value = data.get(json_key)
            if value is None:
                continue
            pairs.append((field_name, str(value)))
        return cls(formdata=MultiDict(pairs))

    def json_errors(self):
        reverse = {field_name: json_key for json_key, field_name in self.json_fields.items()}
        return {reverse.get(name, name): errors for name, errors in self.errors.items()}

    def json_data(self):
        cleaned = {}
        for json_key, field_name in self.json_fields.items():
            value = getattr(self, field_name).data
            if value is None or value == '':
                continue
            cleaned[json_key] = value
        return cleaned


class ProfileForm(JsonForm):
    json_fields = {
        'weight': 'weight',
        'height': 'height',
        'gender': 'gender',
        'age': 'age',
        'fitnessLevel': 'fitness_level',
    }

    weight = FloatField('Weight (kg)', validators=[Optional(), NumberRange(min=20, max=500)])
    height = FloatField('Height (cm)', validators=[Optional(), NumberRange(min=50, max=300)])
    gender = StringField('Gender', validators=[Optional(), AnyOf(GENDERS)])
    age = IntegerField('Age', validators=[Optional(), NumberRange(min=1, max=120)])
    fitness_level = StringField('Fitness Level', validators=[Optional(), AnyOf(FITNESS_LEVELS)])


class PreferencesForm(JsonForm):
    json_fields = {
        'dailyCalorieGoal': 'daily_calorie_goal',
        'waterGoal': 'water_goal',
        'dietPlan': 'diet_plan',
        'streak': 'streak',
    }

    daily_calorie_goal = IntegerField('Daily Calorie Goal', validators=[Optional(), NumberRange(min=0)])
    water_goal = IntegerField('Water Goal (ml)', validators=[Optional(), NumberRange(min=0)])
    diet_plan = StringField('Diet Plan', validators=[Optional(), AnyOf(DIET_PLANS)])
    streak = IntegerField('Streak', validators=[Optional(), NumberRange(min=0)])


class MacroGoalsForm(JsonForm):
    json_fields = {'protein': 'protein', 'carbs': 'carbs', 'fat': 'fat'}

    protein = IntegerField('Protein (g)', validators=[Optional(), NumberRange(min=0)])
    carbs = IntegerField('Carbs (g)', validators=[Optional(), NumberRange(min=0)])
    fat = IntegerField('Fat (g)', validators=[Optional(), NumberRange(min=0)])


def validate_preferences(data):
    """
    Validate a preferences object as stored on the user.

    Known keys are checked and coerced; anything else is kept as sent so the
    client can store its own bookkeeping (e.g. streakStartDate).

    Returns:
        tuple: (cleaned preferences, None) or (None, {field: [errors]})
    """
    if not isinstance(data, dict):
        return None, {'preferences': ['Preferences must be an object.']}

    cleaned = dict(data)
    errors = {}

    form = PreferencesForm.from_json(data)
    if form.validate():
        cleaned.update(form.json_data())
    else:
        errors.update(form.json_errors())

    for key, nested_form_cls in (('macroGoals', MacroGoalsForm), ('profile', ProfileForm)):
        if data.get(key) is None:
            continue
        if not isinstance(data[key], dict):
            errors[key] = [f'{key} must be an object.']
            continue
        nested = nested_form_cls.from_json(data[key])
        if nested.validate():
            cleaned[key] = nested.json_data()
        else:
            for name, messages in nested.json_errors().items():
                errors[f'{key}.{name}'] = messages

    if errors:
        return None, errors
    return cleaned, None
