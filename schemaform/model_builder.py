"""
Dynamic Pydantic model builder for the schema form engine.
Creates Pydantic models from flattened fields to validate form values.
"""

from typing import Dict, Any, Type, List, Literal, Optional, Sequence, Tuple
from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model
import logging

from .schema_models import FieldKind, FieldModel

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "This field is required"


def create_model_from_fields(fields: Sequence[FieldModel],
                             model_name: str = "DynamicForm") -> Tuple[Type[BaseModel], Dict[str, str]]:
    """
    Create a Pydantic model from a flattened field list.

    Field names may contain dots, so every model attribute gets a synthetic
    name and validates by alias.

    Args:
        fields: Flattened fields of one form
        model_name: Name for the generated model class

    Returns:
        Tuple of (model class, mapping of attribute name -> field name)
    """
    model_fields = {}
    attribute_names: Dict[str, str] = {}
    seen = set()

    for index, form_field in enumerate(fields):
        if form_field.name in seen:
            # The same definition can back two properties; values share one key
            continue
        seen.add(form_field.name)

        attribute = f"field_{index}"
        model_fields[attribute] = create_field_from_model(form_field)
        attribute_names[attribute] = form_field.name

    try:
        dynamic_model = create_model(
            model_name,
            __config__=ConfigDict(extra='ignore', populate_by_name=False),
            **model_fields
        )
        logger.debug(f"Created dynamic model '{model_name}' with {len(model_fields)} fields")
        return dynamic_model, attribute_names
    except Exception as e:
        logger.error(f"Failed to create model '{model_name}': {e}")
        raise


def create_field_from_model(form_field: FieldModel) -> tuple:
    """
    Create a Pydantic field definition from a flattened field.

    Returns:
        Tuple of (annotation, FieldInfo)
    """
    annotation = get_field_type(form_field)

    field_kwargs: Dict[str, Any] = {'alias': form_field.name}
    if form_field.description:
        field_kwargs['description'] = form_field.description

    if form_field.required:
        return annotation, Field(**field_kwargs)

    return Optional[annotation], Field(default=None, **field_kwargs)


def get_field_type(form_field: FieldModel) -> Any:
    """
    Map a field kind to a Python/Pydantic type.

    Enumerations become Literal types; object and reference fields accept
    either a payload or an {id, label, data} reference, so they stay untyped.
    """
    choices = form_field.enum
    if choices and form_field.kind not in (FieldKind.OBJECT, FieldKind.REFERENCE, FieldKind.ARRAY):
        return Literal[tuple(choices)]

    kind = form_field.kind

    if kind == FieldKind.STRING:
        return str
    elif kind == FieldKind.INTEGER:
        return int
    elif kind == FieldKind.NUMBER:
        return float
    elif kind == FieldKind.BOOLEAN:
        return bool
    elif kind == FieldKind.ARRAY:
        return List[Any]
    elif kind in (FieldKind.OBJECT, FieldKind.REFERENCE):
        return Any
    else:
        logger.warning(f"Unknown field kind '{kind}', defaulting to str")
        return str


def is_blank(value: Any) -> bool:
    """A value counts as missing when it is None, an empty string or an empty collection."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


def validate_form_values(fields: Sequence[FieldModel], values: Dict[str, Any]) -> Dict[str, str]:
    """
    Validate form values against the fields of one form.

    Args:
        fields: Flattened fields of the form
        values: Mapping field name -> entered value

    Returns:
        Mapping field name -> error message (empty when valid)
    """
    errors: Dict[str, str] = {}

    for form_field in fields:
        if form_field.required and is_blank(values.get(form_field.name)):
            errors.setdefault(form_field.name, REQUIRED_MESSAGE)

    # Blank optional values are left out so they validate as absent
    present = {name: value for name, value in values.items()
               if not is_blank(value) and name not in errors}

    model_class, attribute_names = create_model_from_fields(
        [f for f in fields if f.name not in errors]
    )

    try:
        model_class.model_validate(present)
    except ValidationError as e:
        for error in e.errors():
            loc = error.get('loc') or ()
            if not loc:
                continue
            name = attribute_names.get(str(loc[0]), str(loc[0]))
            if error.get('type') == 'missing':
                errors.setdefault(name, REQUIRED_MESSAGE)
            else:
                errors.setdefault(name, error.get('msg', 'Invalid value'))

    if errors:
        logger.info(f"Form validation failed for fields: {sorted(errors.keys())}")
    return errors
