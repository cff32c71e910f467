from pydantic import ValidationError as SchemaError

from restops.utils.exceptions import ValidationError


def schema_errors(exc: SchemaError) -> dict:
    """Flatten pydantic errors into {"items.0.quantity": "message"}."""
    errors = {}
    for error in exc.errors():
        location = '.'.join(str(part) for part in error.get('loc', ())) or '__all__'
        errors[location] = error.get('msg', 'Invalid value')
    return errors


def parse_payload(schema, data, message="Invalid request"):
    """Validate ``data`` against a pydantic ``schema``; failures become a ValidationError with field detail."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data or {})
    except SchemaError as exc:
        raise ValidationError(message, errors=schema_errors(exc))
