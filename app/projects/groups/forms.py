from wtforms import IntegerField, StringField
from wtforms.validators import AnyOf, DataRequired, Length, NumberRange, Optional, URL, ValidationError

from app.core.nip29 import LOCAL_ID_PATTERN
from app.forms import JsonForm
from app.projects.groups.models import ROLES


class GroupForm(JsonForm):
    json_fields = {'name': 'name', 'about': 'about', 'picture': 'picture', 'groupId': 'local_id'}

    name = StringField('Group Name', validators=[DataRequired(), Length(max=100)])
    about = StringField('About', validators=[Optional(), Length(max=1000)])
    picture = StringField('Picture URL', validators=[Optional(), URL(), Length(max=500)])
    local_id = StringField('Group Id', validators=[Optional(), Length(max=64)])

    def validate_name(self, field):
        if not field.data or not field.data.strip():
            raise ValidationError("Group name cannot be blank or only whitespace.")

    def validate_local_id(self, field):
        if field.data and not LOCAL_ID_PATTERN.match(field.data):
            raise ValidationError("Group id may only contain a-z, 0-9, '-' and '_'.")


class InviteForm(JsonForm):
    json_fields = {'maxUses': 'max_uses', 'expiresInHours': 'expires_in_hours'}

    max_uses = IntegerField('Max Uses', validators=[Optional(), NumberRange(min=1)])
    expires_in_hours = IntegerField('Expires In (hours)', validators=[Optional(), NumberRange(min=1, max=24 * 365)])


class RoleForm(JsonForm):
    json_fields = {'role': 'role'}

    role = StringField('Role', validators=[DataRequired(), AnyOf([r for r in ROLES if r != 'owner'])])


class NoteForm(JsonForm):
    json_fields = {'content': 'content'}

    content = StringField('Content', validators=[DataRequired(), Length(max=5000)])
