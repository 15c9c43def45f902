from datetime import date

from flask import current_app, request
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError

# largest value a 32-bit INTEGER primary key column holds
MAX_ID = 2**31 - 1


def _field_errors(exc: PydanticValidationError):
    details = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()))
        message = err.get("msg", "invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.append({"field": field, "message": message})
    return details


def validate(schema, data):
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError("request validation failed", details=_field_errors(exc))


def validate_body(schema):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object", code="INVALID_JSON")
    return validate(schema, data)


def validate_args(schema):
    return validate(schema, request.args.to_dict())


def parse_id(value, entity: str) -> int:
    raw = str(value).strip()
    if not (raw.isascii() and raw.isdigit()) or not 1 <= int(raw) <= MAX_ID:
        raise ValidationError(f"invalid {entity} id", code=f"INVALID_{entity.upper()}_ID")
    return int(raw)


def update_fields(payload) -> dict:
    fields = payload.model_dump(exclude_none=True)
    if not fields:
        raise ValidationError("no fields to update were provided", code="NO_UPDATE_DATA")
    return fields


def reject_past_check_in(check_in, field="check_in"):
    if current_app.config.get("ALLOW_PAST_CHECK_IN"):
        return
    if check_in < date.today():
        raise ValidationError(
            "request validation failed",
            details=[{"field": field, "message": "check-in date cannot be in the past"}],
        )
