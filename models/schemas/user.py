from marshmallow import Schema, fields, pre_load, validate, EXCLUDE

from models.schemas.common import normalize_email, validate_not_blank


class RegisterSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    name = fields.String(required=True, validate=validate_not_blank)
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate_not_blank)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=normalize_email(data["email"]))
        return data


class LoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.String(required=True)
    password = fields.String(required=True, load_only=True)
    device_id = fields.String(
        data_key="deviceId", load_default=None, allow_none=True, validate=validate.Length(max=128)
    )


class RefreshTokenSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(data_key="refreshToken", required=True)


class LogoutSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    device_id = fields.String(
        data_key="deviceId", required=True, validate=[validate_not_blank, validate.Length(max=128)]
    )


class UserOutSchema(Schema):
    id = fields.String()
    name = fields.String()
    email = fields.String()
    created_at = fields.DateTime(data_key="createdAt")
