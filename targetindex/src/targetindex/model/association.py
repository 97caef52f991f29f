"""TargetAssociation: the persisted record of indirect access."""

from enum import Enum
from typing import List, Optional, Tuple
import uuid
from pydantic import BaseModel, Field

# Target kind for permission targets. Any other kind is the name of the
# indexed attribute that produced the association.
PERMISSION = "P"

# Target kind for unstructured target permissions. These are written by
# external target collectors, never created by the indexer.
UNSTRUCTURED_PERMISSION = "TP"

# Separator between segments of a hierarchy path
PATH_SEPARATOR = "|"

# (application, target_kind, target_name)
AssociationKey = Tuple[str, str, str]


class OwnerKind(str, Enum):
    """Kind of object that owns an association."""

    ROLE = "R"
    NODE = "A"


def new_association_id() -> str:
    return uuid.uuid4().hex


class TargetAssociation(BaseModel):
    """An owner (role or node) grants access to a target."""

    id: str = Field(default_factory=new_association_id)
    owner_id: Optional[str] = None
    owner_kind: Optional[OwnerKind] = None
    application: Optional[str] = None
    target_kind: str
    target_name: str
    rights: Optional[str] = None
    hierarchy: Optional[str] = None
    flattened: bool = False
    classifications: Optional[List[str]] = None

    @property
    def is_permission(self) -> bool:
        return self.target_kind in (PERMISSION, UNSTRUCTURED_PERMISSION)

    def copy_for(self, prefix: Optional[str]) -> "TargetAssociation":
        """
        Copy this association for a different owner.

        The copy is unowned, flattened, and its hierarchy path is this
        record's path prefixed with ``prefix``.

        Args:
            prefix: Name of the object the copy is being made for

        Returns:
            New unsaved TargetAssociation
        """
        combined = prefix or ""
        if self.hierarchy:
            combined = f"{combined}{PATH_SEPARATOR}{self.hierarchy}" if combined else self.hierarchy
        return TargetAssociation(
            application=self.application,
            target_kind=self.target_kind,
            target_name=self.target_name,
            rights=self.rights,
            hierarchy=combined,
            flattened=True,
            classifications=list(self.classifications) if self.classifications is not None else None,
        )
