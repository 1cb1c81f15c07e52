from wtforms import IntegerField, StringField
from wtforms.validators import AnyOf, DataRequired, InputRequired, Length, NumberRange, Optional

from app.forms import IsoDateTimeField, JsonForm
from app.projects.tracking.models import MEAL_TYPES


class FoodEntryForm(JsonForm):
    json_fields = {
        'userId': 'user_id',
        'name': 'name',
        'calories': 'calories',
        'protein': 'protein',
        'carbs': 'carbs',
        'fat': 'fat',
        'mealType': 'meal_type',
        'date': 'date',
    }

    user_id = IntegerField('User', validators=[InputRequired()])
    name = StringField('Food Name', validators=[DataRequired(), Length(max=200)])
    calories = IntegerField('Calories', validators=[InputRequired(), NumberRange(min=0)])
    protein = IntegerField('Protein (g)', validators=[Optional(), NumberRange(min=0)])
    carbs = IntegerField('Carbs (g)', validators=[Optional(), NumberRange(min=0)])
    fat = IntegerField('Fat (g)', validators=[Optional(), NumberRange(min=0)])
    meal_type = StringField('Meal', validators=[DataRequired(), AnyOf(MEAL_TYPES)])
    date = IsoDateTimeField('Date', validators=[InputRequired()])


class WaterEntryForm(JsonForm):
    json_fields = {'userId': 'user_id', 'amount': 'amount', 'date': 'date'}

    user_id = IntegerField('User', validators=[InputRequired()])
    amount = IntegerField('Amount (ml)', validators=[InputRequired(), NumberRange(min=1, max=10000)])
    date = IsoDateTimeField('Date', validators=[InputRequired()])
