"""
Capability Markers for Discovery-Based Registration

A model becomes storable by declaring an inner ``Meta`` class that derives from
``TableMeta``. Keys come either from type-level virtual templates on ``Meta``
or from fields annotated with the ``PartitionKey()`` / ``RowKey()`` markers:

```python
class UserProfile(BaseModel):
    first_name: str
    last_name: str
    contact: Annotated[str, PartitionKey(), RowKey()]

    class Meta(TableMeta):
        table_name = "UserProfiles"


class Reading(BaseModel):
    device: str
    region: str
    sequence: int

    class Meta(TableMeta):
        partition_key_template = "{{region}}-{{device}}"
        row_key_template = "{{sequence}}"
```

A virtual template, when present and non-empty, takes precedence over a field
marker for the same key.
"""

from typing import Optional, Type

from pydantic import BaseModel


class TableMeta:
    """Base class for the storable marker of a model.

    Attributes:
        table_name: Target table (defaults to the model class name)
        partition_key_template: Virtual partition key template
        row_key_template: Virtual row key template
    """
    table_name: Optional[str] = None
    partition_key_template: Optional[str] = None
    row_key_template: Optional[str] = None


class KeyMarker:
    """Field-level marker stating that a property is a key source."""

    def __eq__(self, other):
        return type(self) is type(other)

    def __hash__(self):
        return hash(type(self))

    def __repr__(self):
        return f"{type(self).__name__}()"


class PartitionKey(KeyMarker):
    """Marks the field whose value is the partition key."""


class RowKey(KeyMarker):
    """Marks the field whose value is the row key."""


def get_table_meta(model_class: Type[BaseModel]) -> Optional[Type[TableMeta]]:
    """Return the model's storable ``Meta`` class, or None if it is not storable."""
    meta = model_class.__dict__.get('Meta')
    if isinstance(meta, type) and issubclass(meta, TableMeta):
        return meta
    return None


def is_storable(model_class: type) -> bool:
    return (
        isinstance(model_class, type)
        and issubclass(model_class, BaseModel)
        and get_table_meta(model_class) is not None
    )


def find_marked_field(model_class: Type[BaseModel], marker_type: Type[KeyMarker]) -> Optional[str]:
    """Return the first field (declaration order) carrying the given marker."""
    for name, field_info in model_class.model_fields.items():
        if any(isinstance(item, marker_type) for item in field_info.metadata):
            return name
    return None
