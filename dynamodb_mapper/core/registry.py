"""
Entity Mapper Registry

Holds exactly one EntityMapping per domain type. Mappings are added either
manually or by discovery from capability markers (see ``models.markers``),
and the registry is frozen once data operations start. Mappings are never
overwritten.
"""

import logging
from types import ModuleType
from typing import Dict, Iterator, List, Optional, Type

from pydantic import BaseModel

from ..exceptions import DuplicateMappingError, MappingError, MappingErrorKind
from ..models import (
    EntityMapping,
    PartitionKey,
    RowKey,
    find_marked_field,
    get_table_meta,
    is_storable,
)
from .key_template import declared_fields, template_fields

logger = logging.getLogger(__name__)


class MapperRegistry:
    """Write-once-then-read-many store of entity mappings."""

    def __init__(self, mappings: Optional[Dict[Type[BaseModel], EntityMapping]] = None):
        self._mappings: Dict[Type[BaseModel], EntityMapping] = dict(mappings or {})
        self._frozen = False

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register(self, entity_type: Type[BaseModel], mapping: EntityMapping) -> EntityMapping:
        """Register a mapping for a type.

        Raises:
            MappingError: Registry frozen or unknown template property
            ValueError: The mapping describes a different type
            DuplicateMappingError: The type is already registered
        """
        if self._frozen:
            raise MappingError(
                f"Cannot register {entity_type.__name__}: registry is frozen",
                MappingErrorKind.REGISTRY_FROZEN,
                entity_type=entity_type
            )
        if entity_type in self._mappings:
            raise DuplicateMappingError(entity_type)
        if mapping.entity_type is not entity_type:
            raise ValueError(
                f"Mapping for {mapping.entity_type.__name__} cannot be registered as {entity_type.__name__}"
            )

        self._validate_templates(mapping)
        self._mappings[entity_type] = mapping
        logger.info(
            f"Registered {entity_type.__name__} -> table '{mapping.table_name}' "
            f"(partition: '{mapping.partition_key_template}', row: '{mapping.row_key_template}')"
        )
        return mapping

    def register_mapping(
        self,
        entity_type: Type[BaseModel],
        table_name: str,
        partition_key_template: str,
        row_key_template: str
    ) -> EntityMapping:
        """Build and register a mapping in one call."""
        mapping = EntityMapping(
            entity_type=entity_type,
            table_name=table_name,
            partition_key_template=partition_key_template,
            row_key_template=row_key_template
        )
        return self.register(entity_type, mapping)

    def register_by_discovery(self, entity_type: Type[BaseModel]) -> EntityMapping:
        """Register a type from its capability markers.

        Virtual key templates on ``Meta`` win over ``PartitionKey()`` /
        ``RowKey()`` field markers.

        Raises:
            MappingError: Type is not storable or a key source is missing
        """
        if not is_storable(entity_type):
            raise MappingError(
                f"{getattr(entity_type, '__name__', entity_type)} is not storable (missing 'class Meta(TableMeta)')",
                MappingErrorKind.NOT_STORABLE,
                entity_type=entity_type if isinstance(entity_type, type) else None
            )

        meta = get_table_meta(entity_type)
        table_name = meta.table_name or entity_type.__name__

        partition_key_template = find_marked_field(entity_type, PartitionKey)
        row_key_template = find_marked_field(entity_type, RowKey)

        if meta.partition_key_template:
            partition_key_template = meta.partition_key_template
        if meta.row_key_template:
            row_key_template = meta.row_key_template

        if partition_key_template is None or row_key_template is None:
            raise MappingError(
                f"Missing partition or row key source on {entity_type.__name__}",
                MappingErrorKind.MISSING_KEY_ATTRIBUTE,
                entity_type=entity_type
            )

        return self.register_mapping(entity_type, table_name, partition_key_template, row_key_template)

    def register_all_discoverable(self, module: ModuleType) -> List[EntityMapping]:
        """Register every storable model defined in a module, in definition order."""
        registered = []
        # module namespace preserves definition order
        for member in list(vars(module).values()):
            if not isinstance(member, type) or member.__module__ != module.__name__:
                continue
            if is_storable(member):
                registered.append(self.register_by_discovery(member))
        logger.info(f"Discovered {len(registered)} storable models in {module.__name__}")
        return registered

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def lookup(self, entity_type: Type[BaseModel]) -> EntityMapping:
        """Return the mapping of a type.

        Raises:
            MappingError: The type is not registered
        """
        try:
            return self._mappings[entity_type]
        except KeyError:
            raise MappingError(
                f"No mapping registered for {getattr(entity_type, '__name__', entity_type)}",
                MappingErrorKind.NOT_REGISTERED,
                entity_type=entity_type if isinstance(entity_type, type) else None
            ) from None

    def registered_types(self) -> List[Type[BaseModel]]:
        return list(self._mappings.keys())

    def __contains__(self, entity_type) -> bool:
        return entity_type in self._mappings

    def __len__(self) -> int:
        return len(self._mappings)

    def __iter__(self) -> Iterator[EntityMapping]:
        return iter(self._mappings.values())

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def freeze(self) -> 'MapperRegistry':
        """Reject all further registrations."""
        if not self._frozen:
            self._frozen = True
            logger.debug(f"Registry frozen with {len(self._mappings)} mappings")
        return self

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def copy(self) -> 'MapperRegistry':
        """Return an unfrozen registry holding the same mappings."""
        return MapperRegistry(self._mappings)

    @staticmethod
    def _validate_templates(mapping: EntityMapping) -> None:
        known = declared_fields(mapping.entity_type)
        for template in (mapping.partition_key_template, mapping.row_key_template):
            for property_name in template_fields(template):
                if property_name not in known:
                    raise MappingError(
                        f"Key template '{template}' references unknown property '{property_name}' "
                        f"on {mapping.entity_type.__name__}",
                        MappingErrorKind.UNKNOWN_PROPERTY,
                        entity_type=mapping.entity_type,
                        property_name=property_name
                    )
