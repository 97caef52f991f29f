"""Catalog objects read by the indexer: applications, schemas, nodes and roles."""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field

ACCOUNT_SCHEMA = "account"

# Source recorded on classifications the indexer promotes onto an owner
TASK_SOURCE = "Task"


class AttributeDefinition(BaseModel):
    """One attribute of a schema."""

    name: str
    indexed: bool = False
    # Object type of another schema in the same application when the
    # attribute values reference aggregated objects (e.g. "group")
    schema_object_type: Optional[str] = None


class Schema(BaseModel):
    """Schema of one object type within an application."""

    object_type: str
    identity_attribute: Optional[str] = None
    display_attribute: Optional[str] = None
    hierarchy_attribute: Optional[str] = None
    child_hierarchy: bool = False
    index_permissions: bool = False
    attributes: List[AttributeDefinition] = Field(default_factory=list)

    def get_attribute(self, name: str) -> Optional[AttributeDefinition]:
        for att in self.attributes:
            if att.name == name:
                return att
        return None

    def has_indexed_attribute(self) -> bool:
        return any(att.indexed for att in self.attributes)


class Application(BaseModel):
    """A resource whose objects can be indexed."""

    id: str
    name: str
    schemas: List[Schema] = Field(default_factory=list)

    def get_schema(self, object_type: str) -> Optional[Schema]:
        for schema in self.schemas:
            if schema.object_type == object_type:
                return schema
        return None

    @property
    def account_schema(self) -> Optional[Schema]:
        return self.get_schema(ACCOUNT_SCHEMA)


class Permission(BaseModel):
    """A permission held directly by a node."""

    target: str
    rights: Optional[str] = None


class ObjectClassification(BaseModel):
    """A classification tag attached to a node or role."""

    name: str
    source: Optional[str] = None
    # Effective classifications are derived, not assigned by a person
    effective: bool = False


class Classification(BaseModel):
    """A classification known to the catalog."""

    id: str
    name: str
    display_name: Optional[str] = None


class Node(BaseModel):
    """
    An entitlement value on an application (a group, profile, ...).

    Identity is (application, type, value). The ``inheritance`` list holds
    node ids that are parents or children depending on the schema's
    ``child_hierarchy`` flag.
    """

    id: str
    application: str
    type: str
    attribute: Optional[str] = None
    value: str
    display_name: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)
    permissions: List[Permission] = Field(default_factory=list)
    inheritance: List[str] = Field(default_factory=list)
    classifications: List[ObjectClassification] = Field(default_factory=list)

    @property
    def displayable_name(self) -> str:
        return self.display_name or self.value

    @property
    def classification_names(self) -> List[str]:
        return [c.name for c in self.classifications]


class AttributeGrant(BaseModel):
    """An attribute value (or values) a role provisions on an account."""

    name: str
    value: Union[str, List[str]]

    @property
    def values(self) -> List[str]:
        if isinstance(self.value, list):
            return [str(v) for v in self.value if v is not None]
        return [str(self.value)]


class PermissionGrant(BaseModel):
    """A permission a role provisions on an account."""

    target: str
    rights: Optional[str] = None


class AccountGrant(BaseModel):
    """Everything a role provisions on one application."""

    application: str
    attributes: List[AttributeGrant] = Field(default_factory=list)
    permissions: List[PermissionGrant] = Field(default_factory=list)


class Role(BaseModel):
    """A composite access grant."""

    id: str
    name: str
    disabled: bool = False
    # Names of roles this role inherits from
    inherits: List[str] = Field(default_factory=list)
    # Names of roles assigned along with this one
    requirements: List[str] = Field(default_factory=list)
    grants: List[AccountGrant] = Field(default_factory=list)
    classifications: List[ObjectClassification] = Field(default_factory=list)
