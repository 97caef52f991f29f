"""
Per-run cache of schema metadata needed for indexing.

For each application the index remembers:

- per non-account schema, the attributes marked indexed (``SchemaInfo``),
  each wrapped in an ``IndexedAttribute`` that caches display names;
- per account attribute whose values reference another schema that has
  display names or associations, an ``IndexedAttribute`` used by role
  indexing, which also caches the associations found for each value.

A ``SchemaIndex`` belongs to a single indexing run. Nothing is cached at
module level.
"""

from typing import Dict, List, Optional
from targetindex.model.association import TargetAssociation
from targetindex.model.catalog import (
    ACCOUNT_SCHEMA,
    Application,
    AttributeDefinition,
    Schema,
)
from .repository import Repository
from targetindex.config.logging import get_logger

logger = get_logger(__name__)

class IndexedAttribute:
    """An attribute whose values can have display names or associations."""

    def __init__(
        self,
        application: "ApplicationInfo",
        definition: AttributeDefinition,
        schema: Optional["SchemaInfo"],
    ):
        self.application = application
        self.name = definition.name
        # Schema of the objects the values reference, None for plain strings
        self.schema = schema
        self.is_hierarchy_attribute = (
            schema is not None and self.name == schema.hierarchy_attribute
        )
        self._display_names: Optional[Dict[str, str]] = (
            {} if schema is not None and schema.has_display_name else None
        )
        self._targets: Dict[str, List[TargetAssociation]] = {}

    def __repr__(self) -> str:
        return f"IndexedAttribute({self.name!r})"

    @property
    def schema_object_type(self) -> Optional[str]:
        return self.schema.object_type if self.schema is not None else None

    @property
    def has_associations(self) -> bool:
        return self.schema.has_associations if self.schema is not None else False

    def display_name(self, value: str) -> str:
        """
        Derive a target name from a raw attribute value.

        The value itself is used unless the attribute references objects
        whose schema has a display attribute. Lookups are cached per value.

        Args:
            value: Raw attribute value

        Returns:
            Display name of the referenced node, or the value
        """
        if self._display_names is None:
            return value

        cached = self._display_names.get(value)
        if cached is not None:
            return cached

        dname = None
        node = self.application.repository.find_node(
            self.application.name, self.schema_object_type, value
        )
        if node is not None:
            dname = node.display_name
        if dname is None:
            logger.info(f"No display name for: {value}")
            dname = value

        logger.debug(f"Caching display name: {value}, {dname}")
        self._display_names[value] = dname
        return dname

    def classification_names(self, value: str) -> List[str]:
        """Return the classification names of the node a value references."""
        node = self.application.repository.find_node(
            self.application.name, self.schema_object_type, value
        )
        return node.classification_names if node is not None else []

    def cached_associations(self, value: str) -> Optional[List[TargetAssociation]]:
        return self._targets.get(value)

    def cache_associations(self, value: str, assocs: List[TargetAssociation]) -> None:
        self._targets[value] = assocs


class SchemaInfo:
    """Indexing metadata for one non-account schema."""

    def __init__(self, application: "ApplicationInfo", schema: Schema):
        self.application = application
        self.schema = schema
        self.has_indexed_permissions = schema.index_permissions
        # display attribute is often the identity attribute, ignore those
        datt = schema.display_attribute
        self.has_display_name = datt is not None and datt != schema.identity_attribute
        self.attributes: List[IndexedAttribute] = []

    def resolve(self) -> None:
        """Build the indexed attributes once every SchemaInfo exists."""
        self.attributes = []
        for att in self.schema.attributes:
            if att.indexed:
                other = self.application.schema_info(att.schema_object_type)
                self.attributes.append(IndexedAttribute(self.application, att, other))

    @property
    def object_type(self) -> str:
        return self.schema.object_type

    @property
    def hierarchy_attribute(self) -> Optional[str]:
        return self.schema.hierarchy_attribute

    @property
    def child_hierarchy(self) -> bool:
        return self.schema.child_hierarchy

    @property
    def has_associations(self) -> bool:
        return bool(self.attributes) or self.has_indexed_permissions


class ApplicationInfo:
    """Indexing metadata for one application."""

    def __init__(
        self,
        repository: Repository,
        application: Optional[Application] = None,
        name: Optional[str] = None,
    ):
        self.repository = repository
        self.application = application
        self.name = application.name if application is not None else (name or "Unknown")
        self.schemas: Dict[str, SchemaInfo] = {}
        self.account_attributes: Dict[str, IndexedAttribute] = {}

        if application is None:
            # Placeholder for roles that reference deleted applications
            logger.info(f"Adding application cache for unresolved application {self.name}")
            return

        logger.info(f"Starting application cache for {self.name}")

        # pass 1: stub out non-account schemas
        for schema in application.schemas:
            if schema.object_type != ACCOUNT_SCHEMA:
                self.schemas[schema.object_type] = SchemaInfo(self, schema)

        # pass 2: resolve references between them
        for info in self.schemas.values():
            info.resolve()

        account = application.account_schema
        if account is not None:
            for att in account.attributes:
                if att.schema_object_type is None:
                    continue
                other = self.schemas.get(att.schema_object_type)
                if other is None:
                    logger.warning(
                        f"Application {self.name} account attribute {att.name} "
                        f"unresolved object type {att.schema_object_type}"
                    )
                elif other.has_display_name or other.has_associations:
                    self.account_attributes[att.name] = IndexedAttribute(self, att, other)
                    logger.info(
                        f"Attribute {att.name} of type {att.schema_object_type} "
                        f"needs indexing for {[a.name for a in other.attributes]}"
                    )

    def schema_info(self, object_type: Optional[str]) -> Optional[SchemaInfo]:
        if object_type is None:
            return None
        return self.schemas.get(object_type)

    def account_attribute(self, name: str) -> Optional[IndexedAttribute]:
        return self.account_attributes.get(name)

    @property
    def has_interesting_account_attributes(self) -> bool:
        return bool(self.account_attributes)

    @property
    def is_indexable(self) -> bool:
        """True when any non-account schema has indexed attributes or permissions."""
        return any(
            s.schema.has_indexed_attribute() or s.has_indexed_permissions
            for s in self.schemas.values()
        )


class SchemaIndex:
    """Cache of ApplicationInfo objects for one indexing run."""

    def __init__(self, repository: Repository):
        self.repository = repository
        self._applications: Dict[str, ApplicationInfo] = {}

    def application_info(self, name: str) -> ApplicationInfo:
        info = self._applications.get(name)
        if info is None:
            app = self.repository.get_application(name)
            if app is not None:
                info = ApplicationInfo(self.repository, app)
            else:
                # could be misconfiguration, build it by name with nothing in it
                info = ApplicationInfo(self.repository, name=name)
            self._applications[name] = info
        return info

