"""
AssociationBucket: a set of TargetAssociations unique by target identity.

Target identity has three levels: the application holding the target, the
target kind (the indexed attribute name, or a permission kind), and the
target name. The first association added under an identity wins.

A bucket is either owned, holding the associations currently persisted for
one owner, or ownerless, used to accumulate the required associations
before they are compared with anything persisted.

Reconciling an owned bucket against a required list sorts every record into
one of four outcomes:

- created: required, not current
- retained: required and current, unchanged
- updated: required and current, classification tags differ
- removed: current, not required (stale)

Duplicates found while loading the current list are purged as well.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union
from targetindex.model.association import (
    PERMISSION,
    AssociationKey,
    OwnerKind,
    TargetAssociation,
)
from targetindex.model.catalog import Node, Role
from targetindex.catalog.repository import Repository
from targetindex.errors import ConfigurationError
from targetindex.config.logging import get_logger

logger = get_logger(__name__)

# Application key used for associations that carry no application name
ANY_APP = "any"


@dataclass(frozen=True)
class OwnerRef:
    """Reference to the object that owns a set of associations."""

    id: str
    kind: OwnerKind
    name: str

    @classmethod
    def of(cls, owner: Union[Node, Role], kind: OwnerKind) -> "OwnerRef":
        name = owner.name if kind == OwnerKind.ROLE else owner.displayable_name
        return cls(id=owner.id, kind=kind, name=name)


@dataclass
class Reconciliation:
    """Outcome of reconciling a required list against current associations."""

    owner: Optional[OwnerRef]
    created: List[TargetAssociation] = field(default_factory=list)
    retained: List[TargetAssociation] = field(default_factory=list)
    updated: List[TargetAssociation] = field(default_factory=list)
    removed: List[TargetAssociation] = field(default_factory=list)
    duplicates: List[TargetAssociation] = field(default_factory=list)

    @property
    def change_count(self) -> int:
        return (
            len(self.created)
            + len(self.updated)
            + len(self.removed)
            + len(self.duplicates)
        )

    def apply(self, repository: Repository) -> None:
        """Stage the outcome in the repository's current transaction."""
        for assoc in self.created:
            repository.save_association(assoc)
        for assoc in self.updated:
            repository.save_association(assoc)
        for assoc in self.removed:
            repository.delete_association(assoc)
        for assoc in self.duplicates:
            repository.delete_association(assoc)


def _same_tags(left: Optional[List[str]], right: Optional[List[str]]) -> bool:
    return sorted(left or []) == sorted(right or [])


def _log_association(prefix: str, assoc: TargetAssociation) -> None:
    kind = "permission " if assoc.is_permission else "attribute "
    logger.debug(f"{prefix} TargetAssociation for {kind}{assoc.target_name}")


class AssociationBucket:
    """Associations indexed by (application, target kind, target name)."""

    def __init__(
        self,
        owner: Optional[OwnerRef] = None,
        current: Optional[Iterable[TargetAssociation]] = None,
        compare_classifications: bool = False,
    ):
        self.owner = owner
        self.compare_classifications = compare_classifications
        self._entries: Dict[AssociationKey, TargetAssociation] = {}
        # Repeats seen while loading current associations, purged on reconcile
        self.duplicates: List[TargetAssociation] = []
        if current is not None:
            self.add_current(current)

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def key(application: Optional[str], kind: str, name: str) -> AssociationKey:
        return (application or ANY_APP, kind, name)

    @classmethod
    def key_of(cls, assoc: TargetAssociation) -> AssociationKey:
        return cls.key(assoc.application, assoc.target_kind, assoc.target_name)

    def get(
        self, application: Optional[str], kind: str, name: str
    ) -> Optional[TargetAssociation]:
        return self._entries.get(self.key(application, kind, name))

    def get_record(self, assoc: TargetAssociation) -> Optional[TargetAssociation]:
        return self._entries.get(self.key_of(assoc))

    def get_permission(
        self, application: Optional[str], name: str
    ) -> Optional[TargetAssociation]:
        return self.get(application, PERMISSION, name)

    def add(self, assoc: TargetAssociation) -> bool:
        """
        Add an association unless one with the same identity is present.

        Returns:
            True if the association was added
        """
        key = self.key_of(assoc)
        if key in self._entries:
            return False
        self._entries[key] = assoc
        return True

    def remove(self, assoc: TargetAssociation) -> None:
        self._entries.pop(self.key_of(assoc), None)

    def add_current(self, assocs: Iterable[TargetAssociation]) -> None:
        """Load persisted associations, routing identity repeats to duplicates."""
        for assoc in assocs:
            if not self.add(assoc):
                logger.warning(
                    f"Duplicate TargetAssociation {assoc.id} for "
                    f"{assoc.target_kind}/{assoc.target_name}"
                )
                self.duplicates.append(assoc)

    def associations(self) -> List[TargetAssociation]:
        return list(self._entries.values())

    def reset(self) -> None:
        self._entries = {}
        self.duplicates = []

    def changed(
        self, required: TargetAssociation, existing: TargetAssociation
    ) -> Optional[TargetAssociation]:
        """
        Compare a required association with the persisted one.

        Only classification tags take part in the comparison. When tags are
        not being indexed, persisted tags are cleared.

        Returns:
            The updated existing association, or None if nothing changed
        """
        if not self.compare_classifications:
            if existing.classifications:
                existing.classifications = None
                return existing
        elif not _same_tags(required.classifications, existing.classifications):
            existing.classifications = (
                list(required.classifications) if required.classifications else None
            )
            return existing
        return None

    def reconcile(self, required: Iterable[TargetAssociation]) -> Reconciliation:
        """
        Reconcile required associations against the bucket contents.

        The bucket is emptied afterwards.

        Args:
            required: Associations the owner must have

        Returns:
            Reconciliation listing the four outcomes plus duplicates

        Raises:
            ConfigurationError: If a record must be created and neither the
                bucket nor the record has an owner
        """
        result = Reconciliation(owner=self.owner)
        seen = set()

        for req in required:
            key = self.key_of(req)
            if key in seen:
                continue
            seen.add(key)

            existing = self._entries.get(key)
            if existing is not None:
                updated = self.changed(req, existing)
                if updated is None:
                    _log_association("Retaining", existing)
                    result.retained.append(existing)
                else:
                    _log_association("Updating", updated)
                    result.updated.append(updated)
                self.remove(existing)
            else:
                _log_association("Creating", req)
                if self.owner is not None:
                    req.owner_id = self.owner.id
                    req.owner_kind = self.owner.kind
                elif req.owner_id is None:
                    raise ConfigurationError("No owner specified for association bucket")
                result.created.append(req)

        for assoc in self.associations():
            _log_association("Removing", assoc)
            result.removed.append(assoc)
        for assoc in self.duplicates:
            _log_association("Removing duplicate", assoc)
            result.duplicates.append(assoc)

        self.reset()
        return result
