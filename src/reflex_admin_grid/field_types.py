"""Per-type behaviour of form fields, looked up by :class:`FieldType`.

Each handler knows the empty value of its type, how to coerce raw
widget input (strings from the browser) into the stored value, and
which descriptor attributes the type cannot live without.
"""

from typing import Any

from reflex_admin_grid.errors import FieldConfigError
from reflex_admin_grid.models import FieldConfig, FieldType, Validator

_TRUE_STRINGS: frozenset[str] = frozenset({"true", "1", "on", "yes"})


class FieldTypeHandler:
    """Default behaviour: free text stored as ``str``; empty is ``None``."""

    def empty_value(self) -> Any:
        return None

    def coerce(self, value: Any, field: FieldConfig) -> Any:
        if value is None:
            return None
        return value if isinstance(value, str) else str(value)

    def check_config(self, field: FieldConfig) -> None:
        """Raise :class:`FieldConfigError` when *field* is unusable for this type."""

    def builtin_validators(self, field: FieldConfig) -> tuple[Validator, ...]:
        return ()


class TemporalHandler(FieldTypeHandler):
    """``date`` / ``time`` inputs: ISO strings, accepting ``date``/``time`` objects."""

    def coerce(self, value: Any, field: FieldConfig) -> Any:
        if value is None or value == "":
            return value
        if hasattr(value, "isoformat"):
            return value.isoformat()
        return str(value)


class NumberHandler(FieldTypeHandler):
    def coerce(self, value: Any, field: FieldConfig) -> Any:
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value
        text = str(value).strip()
        if not text:
            return None
        for conv in (int, float):
            try:
                return conv(text)
            except ValueError:
                continue
        return text

    def builtin_validators(self, field: FieldConfig) -> tuple[Validator, ...]:
        return (
            Validator(
                name="number",
                check=lambda value: value is None or (
                    isinstance(value, (int, float)) and not isinstance(value, bool)
                ),
                message="Please enter a valid number",
            ),
        )


class CheckboxHandler(FieldTypeHandler):
    def empty_value(self) -> Any:
        return False

    def coerce(self, value: Any, field: FieldConfig) -> Any:
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_STRINGS
        return bool(value)


class SelectHandler(FieldTypeHandler):
    """Static option list; browser strings are mapped back to option values."""

    def coerce(self, value: Any, field: FieldConfig) -> Any:
        if value is None or value == "":
            return value
        for option in field.options or ():
            if option.value == value or str(option.value) == str(value):
                return option.value
        return value

    def check_config(self, field: FieldConfig) -> None:
        if field.options is None:
            raise FieldConfigError(f"Field {field.key!r} of type 'select' needs 'options'")


class PaginatedSelectHandler(FieldTypeHandler):
    def coerce(self, value: Any, field: FieldConfig) -> Any:
        return value

    def check_config(self, field: FieldConfig) -> None:
        if field.paginated_select is None:
            raise FieldConfigError(
                f"Field {field.key!r} of type 'paginated-select' needs 'paginated_select'"
            )


class PermissionsHandler(FieldTypeHandler):
    def empty_value(self) -> Any:
        return []

    def coerce(self, value: Any, field: FieldConfig) -> Any:
        return list(value or [])

    def check_config(self, field: FieldConfig) -> None:
        if field.permissions is None:
            raise FieldConfigError(f"Field {field.key!r} of type 'permissions' needs 'permissions'")


_TEXT = FieldTypeHandler()
_TEMPORAL = TemporalHandler()

FIELD_TYPE_HANDLERS: dict[FieldType, FieldTypeHandler] = {
    FieldType.TEXT: _TEXT,
    FieldType.EMAIL: _TEXT,
    FieldType.PASSWORD: _TEXT,
    FieldType.TEL: _TEXT,
    FieldType.URL: _TEXT,
    FieldType.TEXTAREA: _TEXT,
    FieldType.DATE: _TEMPORAL,
    FieldType.TIME: _TEMPORAL,
    FieldType.NUMBER: NumberHandler(),
    FieldType.CHECKBOX: CheckboxHandler(),
    FieldType.SELECT: SelectHandler(),
    FieldType.PAGINATED_SELECT: PaginatedSelectHandler(),
    FieldType.PERMISSIONS: PermissionsHandler(),
}


def get_handler(field_type: FieldType | str) -> FieldTypeHandler:
    try:
        return FIELD_TYPE_HANDLERS[FieldType(field_type)]
    except (KeyError, ValueError):
        raise FieldConfigError(f"Unsupported field type: {field_type!r}") from None
