"""
Key Template Engine

Resolves a key template against a model instance into a literal key string.

A template is either:
- a bare property name ("contact"), whose value is used verbatim, or
- a pattern with one or more ``{{property}}`` placeholders interleaved with
  literal text ("{{tenant}}-{{region}}"), where each placeholder is replaced
  by the property's value and the literal text is kept as-is.

Resolution is pure: the same template and the same property values always
produce the same key, so distinct instances that share the referenced values
deliberately land in the same partition.
"""

import re
from typing import Any, List, Type

from pydantic import BaseModel

from ..exceptions import MappingError, MappingErrorKind, TemplateResolutionError
from ..utils import to_invariant_string

PLACEHOLDER_PATTERN = re.compile(r"\{\{([A-Za-z_][A-Za-z0-9_]*)\}\}")


def is_placeholder_template(template: str) -> bool:
    """True when the template contains at least one ``{{name}}`` token."""
    return PLACEHOLDER_PATTERN.search(template) is not None


def template_fields(template: str) -> List[str]:
    """Return the property names a template references, in order of appearance.

    Examples:
        >>> template_fields("{{value1}}-{{value2}}")
        ['value1', 'value2']
        >>> template_fields("contact")
        ['contact']
    """
    if is_placeholder_template(template):
        return [match.group(1) for match in PLACEHOLDER_PATTERN.finditer(template)]
    return [template]


def declared_fields(model_class: Type[BaseModel]) -> List[str]:
    """Names of the properties a model class declares (fields and computed fields)."""
    return list(model_class.model_fields.keys()) + list(model_class.model_computed_fields.keys())


def _property_value(template: str, instance: BaseModel, property_name: str) -> str:
    model_class = type(instance)
    if property_name not in declared_fields(model_class):
        raise MappingError(
            f"Key template '{template}' references unknown property '{property_name}' on {model_class.__name__}",
            MappingErrorKind.UNKNOWN_PROPERTY,
            entity_type=model_class,
            property_name=property_name
        )

    value: Any = getattr(instance, property_name)
    if value is None:
        raise TemplateResolutionError(template, property_name)
    return to_invariant_string(value)


def resolve_key_template(template: str, instance: BaseModel) -> str:
    """Resolve a key template against a model instance.

    Args:
        template: Bare property name or placeholder pattern
        instance: Model instance providing the property values

    Returns:
        The literal key string

    Raises:
        MappingError: A referenced property is not declared on the model
        TemplateResolutionError: A referenced property is None

    Examples:
        >>> resolve_key_template("{{value1}}-{{value2}}", model)  # value1="abc", value2="def"
        'abc-def'
        >>> resolve_key_template("contact", user)  # contact="em@acme.org"
        'em@acme.org'
    """
    if not is_placeholder_template(template):
        return _property_value(template, instance, template)

    parts = []
    position = 0
    for match in PLACEHOLDER_PATTERN.finditer(template):
        parts.append(template[position:match.start()])
        parts.append(_property_value(template, instance, match.group(1)))
        position = match.end()
    parts.append(template[position:])
    return "".join(parts)
