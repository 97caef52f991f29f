"""Repository interface and an in-memory implementation with transactions."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple
from pydantic import BaseModel
from targetindex.model.association import OwnerKind, TargetAssociation
from targetindex.model.catalog import (
    TASK_SOURCE,
    Application,
    Classification,
    Node,
    Role,
)
from targetindex.model.corpus import Corpus
from targetindex.config.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AssociationFilter:
    """Predicate over TargetAssociation records. Unset fields match anything."""

    owner_id: Optional[str] = None
    owner_kind: Optional[OwnerKind] = None
    application: Optional[str] = None
    target_kind: Optional[str] = None
    target_name: Optional[str] = None
    flattened: Optional[bool] = None
    exclude_kinds: Tuple[str, ...] = ()

    def matches(self, assoc: TargetAssociation) -> bool:
        if self.owner_id is not None and assoc.owner_id != self.owner_id:
            return False
        if self.owner_kind is not None and assoc.owner_kind != self.owner_kind:
            return False
        if self.application is not None and assoc.application != self.application:
            return False
        if self.target_kind is not None and assoc.target_kind != self.target_kind:
            return False
        if self.target_name is not None and assoc.target_name != self.target_name:
            return False
        if self.flattened is not None and assoc.flattened != self.flattened:
            return False
        if assoc.target_kind in self.exclude_kinds:
            return False
        return True


class Repository(ABC):
    """
    Persistent store of catalog objects and target associations.

    Writes belong to the current transaction until ``commit`` is called.
    Objects returned by reads are detached copies: changes must be saved.
    """

    @abstractmethod
    def list_applications(self) -> List[Application]:
        ...

    @abstractmethod
    def get_application(self, name: str) -> Optional[Application]:
        ...

    @abstractmethod
    def get_node(self, node_id: str) -> Optional[Node]:
        ...

    @abstractmethod
    def find_node(
        self, application: str, type: Optional[str], value: str
    ) -> Optional[Node]:
        """Find a node by identity: (application, type, value)."""

    @abstractmethod
    def query_node_ids(self, application: str, type: str) -> List[str]:
        ...

    @abstractmethod
    def get_role(self, role_id: str) -> Optional[Role]:
        ...

    @abstractmethod
    def get_role_by_name(self, name: str) -> Optional[Role]:
        ...

    @abstractmethod
    def query_role_ids(self, include_disabled: bool = False) -> List[str]:
        ...

    @abstractmethod
    def get_classification(self, name: str) -> Optional[Classification]:
        ...

    @abstractmethod
    def find_associations(self, flt: AssociationFilter) -> List[TargetAssociation]:
        ...

    @abstractmethod
    def count_associations(self, flt: AssociationFilter) -> int:
        ...

    @abstractmethod
    def delete_associations(self, flt: AssociationFilter) -> int:
        """Delete every matching association and return how many there were."""

    @abstractmethod
    def save_association(self, assoc: TargetAssociation) -> None:
        ...

    @abstractmethod
    def delete_association(self, assoc: TargetAssociation) -> None:
        ...

    @abstractmethod
    def save_node(self, node: Node) -> None:
        ...

    @abstractmethod
    def save_role(self, role: Role) -> None:
        ...

    @abstractmethod
    def reset_effective_classifications(self, owner_kind: OwnerKind) -> int:
        """Remove task-sourced effective classifications from every owner of a kind."""

    @abstractmethod
    def commit(self) -> None:
        ...

    @abstractmethod
    def rollback(self) -> None:
        ...


_ASSOCIATION = "association"
_NODE = "node"
_ROLE = "role"


class InMemoryRepository(Repository):
    """
    Dictionary-backed repository.

    Saves and deletes are staged per transaction. Reads made through this
    repository see staged changes; ``commit`` makes them permanent and
    ``rollback`` discards them.
    """

    def __init__(
        self,
        applications: Iterable[Application] = (),
        nodes: Iterable[Node] = (),
        roles: Iterable[Role] = (),
        classifications: Iterable[Classification] = (),
        associations: Iterable[TargetAssociation] = (),
    ):
        self._applications: Dict[str, Application] = {a.name: a for a in applications}
        self._classifications: Dict[str, Classification] = {c.name: c for c in classifications}
        self._store: Dict[str, Dict[str, BaseModel]] = {
            _NODE: {n.id: n for n in nodes},
            _ROLE: {r.id: r for r in roles},
            _ASSOCIATION: {a.id: a for a in associations},
        }
        self._pending_saves: Dict[str, Dict[str, BaseModel]] = {k: {} for k in self._store}
        self._pending_deletes: Dict[str, Set[str]] = {k: set() for k in self._store}
        self.commit_count = 0

    @classmethod
    def from_corpus(cls, corpus: Corpus) -> "InMemoryRepository":
        return cls(
            applications=corpus.applications,
            nodes=corpus.nodes,
            roles=corpus.roles,
            classifications=corpus.classifications,
            associations=corpus.associations,
        )

    def to_corpus(self) -> Corpus:
        """Snapshot committed state as a Corpus."""
        return Corpus(
            applications=list(self._applications.values()),
            nodes=[n.model_copy(deep=True) for n in self._store[_NODE].values()],
            roles=[r.model_copy(deep=True) for r in self._store[_ROLE].values()],
            classifications=list(self._classifications.values()),
            associations=[
                a.model_copy(deep=True) for a in self._store[_ASSOCIATION].values()
            ],
        )

    # Transactional views

    def _view(self, kind: str) -> Dict[str, BaseModel]:
        merged = dict(self._store[kind])
        merged.update(self._pending_saves[kind])
        for obj_id in self._pending_deletes[kind]:
            merged.pop(obj_id, None)
        return merged

    def _get(self, kind: str, obj_id: str):
        if obj_id in self._pending_deletes[kind]:
            return None
        obj = self._pending_saves[kind].get(obj_id)
        if obj is None:
            obj = self._store[kind].get(obj_id)
        return obj.model_copy(deep=True) if obj is not None else None

    def _save(self, kind: str, obj_id: str, obj: BaseModel) -> None:
        self._pending_deletes[kind].discard(obj_id)
        self._pending_saves[kind][obj_id] = obj.model_copy(deep=True)

    def _delete(self, kind: str, obj_id: str) -> None:
        self._pending_saves[kind].pop(obj_id, None)
        if obj_id in self._store[kind]:
            self._pending_deletes[kind].add(obj_id)

    # Applications and classifications

    def list_applications(self) -> List[Application]:
        return list(self._applications.values())

    def get_application(self, name: str) -> Optional[Application]:
        return self._applications.get(name)

    def get_classification(self, name: str) -> Optional[Classification]:
        return self._classifications.get(name)

    # Nodes

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._get(_NODE, node_id)

    def find_node(
        self, application: str, type: Optional[str], value: str
    ) -> Optional[Node]:
        found = [
            n
            for n in self._view(_NODE).values()
            if n.application == application
            and n.value == value
            and (type is None or n.type == type)
        ]
        if not found:
            return None
        if len(found) > 1:
            logger.warning(
                f"Found more than one node: {application}/{type}/{value}, using the first"
            )
        return found[0].model_copy(deep=True)

    def query_node_ids(self, application: str, type: str) -> List[str]:
        return [
            n.id
            for n in self._view(_NODE).values()
            if n.application == application and n.type == type
        ]

    def save_node(self, node: Node) -> None:
        self._save(_NODE, node.id, node)

    # Roles

    def get_role(self, role_id: str) -> Optional[Role]:
        return self._get(_ROLE, role_id)

    def get_role_by_name(self, name: str) -> Optional[Role]:
        for role in self._view(_ROLE).values():
            if role.name == name:
                return role.model_copy(deep=True)
        return None

    def query_role_ids(self, include_disabled: bool = False) -> List[str]:
        return [
            r.id
            for r in self._view(_ROLE).values()
            if include_disabled or not r.disabled
        ]

    def save_role(self, role: Role) -> None:
        self._save(_ROLE, role.id, role)

    # Associations

    def find_associations(self, flt: AssociationFilter) -> List[TargetAssociation]:
        return [
            a.model_copy(deep=True)
            for a in self._view(_ASSOCIATION).values()
            if flt.matches(a)
        ]

    def count_associations(self, flt: AssociationFilter) -> int:
        return sum(1 for a in self._view(_ASSOCIATION).values() if flt.matches(a))

    def delete_associations(self, flt: AssociationFilter) -> int:
        doomed = [a.id for a in self._view(_ASSOCIATION).values() if flt.matches(a)]
        for assoc_id in doomed:
            self._delete(_ASSOCIATION, assoc_id)
        return len(doomed)

    def save_association(self, assoc: TargetAssociation) -> None:
        self._save(_ASSOCIATION, assoc.id, assoc)

    def delete_association(self, assoc: TargetAssociation) -> None:
        self._delete(_ASSOCIATION, assoc.id)

    # Classifications on owners

    def reset_effective_classifications(self, owner_kind: OwnerKind) -> int:
        kind = _ROLE if owner_kind == OwnerKind.ROLE else _NODE
        count = 0
        for obj in list(self._view(kind).values()):
            keep = [
                c
                for c in obj.classifications
                if not (c.source == TASK_SOURCE and c.effective)
            ]
            removed = len(obj.classifications) - len(keep)
            if removed:
                updated = obj.model_copy(deep=True)
                updated.classifications = keep
                self._save(kind, updated.id, updated)
                count += removed
        return count

    # Transactions

    def commit(self) -> None:
        for kind in self._store:
            self._store[kind].update(self._pending_saves[kind])
            for obj_id in self._pending_deletes[kind]:
                self._store[kind].pop(obj_id, None)
            self._pending_saves[kind].clear()
            self._pending_deletes[kind].clear()
        self.commit_count += 1

    def rollback(self) -> None:
        for kind in self._store:
            self._pending_saves[kind].clear()
            self._pending_deletes[kind].clear()
