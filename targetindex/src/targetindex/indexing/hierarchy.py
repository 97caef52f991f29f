"""
Hierarchy flattening: copy ancestor associations down to descendants.

There are two forms of hierarchy. In a parent hierarchy a node's edge list
holds its parents (e.g. "memberOf"). In a child hierarchy it holds its
children (e.g. "Child Profiles"), and a child cannot know its other parents
without searching for them.

Both forms are flattened by the same algorithm. During the direct pass every
node is given to ``FlatteningState.add_hierarchy``; for a child hierarchy
this inverts the edges into a child -> parents map. Only after that pass is
complete does flattening start, so traversal always walks parent pointers.

Flattening is a memoized depth-first traversal: parents are flattened and
committed before the node that copies from them. A node seen again while it
is still being flattened means the edges form a cycle.
"""

from typing import Dict, Iterable, List, Set
from targetindex.model.association import OwnerKind, TargetAssociation
from targetindex.model.catalog import Node
from targetindex.catalog.repository import AssociationFilter
from targetindex.catalog.schema_index import SchemaInfo
from targetindex.errors import HierarchyCycleError
from .base import AssociationProducer
from .bucket import AssociationBucket
from .context import IndexingContext
from targetindex.config.logging import get_logger

logger = get_logger(__name__)


class FlatteningState:
    """Hierarchy bookkeeping for one schema, kept across a direct pass and its flattening."""

    def __init__(self, schema: SchemaInfo):
        self.schema = schema
        self.has_hierarchy = schema.hierarchy_attribute is not None
        self.child_hierarchy = self.has_hierarchy and schema.child_hierarchy

        # parent hierarchy: ids of nodes that have parents
        self._parent_ids: List[str] = []
        # child hierarchy: child id -> ids of the nodes that list it
        self._child_parents: Dict[str, List[str]] = {}

        # every node the direct pass saw, in order
        self._seen: List[str] = []

        self._flattened: Set[str] = set()
        self._in_progress: List[str] = []

        # owners whose promoted classifications were cleaned in this pass
        self.cleaned_ids: Set[str] = set()

    def add_hierarchy(self, node: Node) -> None:
        """Remember a node's hierarchy edges, inverting them for child hierarchies."""
        self._seen.append(node.id)
        if not self.has_hierarchy or not node.inheritance:
            return
        if not self.child_hierarchy:
            self._parent_ids.append(node.id)
        else:
            for child_id in node.inheritance:
                parents = self._child_parents.setdefault(child_id, [])
                if node.id not in parents:
                    parents.append(node.id)

    def ids_to_flatten(self) -> List[str]:
        if not self.has_hierarchy:
            return []
        if self.child_hierarchy:
            return list(self._child_parents.keys())
        return list(self._parent_ids)

    def unlinked_ids(self) -> List[str]:
        """Ids of nodes seen in the direct pass that have no parents."""
        linked = set(self.ids_to_flatten())
        return [node_id for node_id in self._seen if node_id not in linked]

    def parent_ids(self, node: Node) -> List[str]:
        """Return the parent ids of a node in parent-pointer form."""
        if not self.has_hierarchy:
            return []
        if self.child_hierarchy:
            return list(self._child_parents.get(node.id, []))
        return list(node.inheritance)

    @property
    def flattened_count(self) -> int:
        return len(self._flattened)

    def is_flattened(self, node_id: str) -> bool:
        return node_id in self._flattened

    def mark_flattened(self, node_id: str) -> None:
        self._flattened.add(node_id)

    def enter(self, node_id: str) -> None:
        if node_id in self._in_progress:
            raise HierarchyCycleError(node_id, self._in_progress)
        self._in_progress.append(node_id)

    def leave(self, node_id: str) -> None:
        if self._in_progress and self._in_progress[-1] == node_id:
            self._in_progress.pop()
        elif node_id in self._in_progress:
            self._in_progress.remove(node_id)


class HierarchyFlattener(AssociationProducer[Node]):
    """Refresh the flattened associations of every node in a hierarchy."""

    owner_kind = OwnerKind.NODE

    def __init__(self, context: IndexingContext, state: FlatteningState):
        super().__init__(context)
        self.state = state

    def flatten_all(self) -> int:
        """
        Flatten every node the direct pass found in a hierarchy.

        Returns:
            Number of nodes flattened, including ancestors reached by recursion
        """
        ids = self.state.ids_to_flatten()
        before = self.state.flattened_count

        if ids:
            logger.info(
                f"Flattening {len(ids)} node(s) of schema {self.state.schema.object_type} "
                f"({'child' if self.state.child_hierarchy else 'parent'} hierarchy)"
            )
        for node_id in ids:
            if self.context.terminated:
                logger.info("Flattening terminated")
                return self.state.flattened_count - before
            node = self.repository.get_node(node_id)
            if node is None:
                logger.warning(f"Node evaporated: {node_id}")
                continue
            self.flatten(node)

        # nodes that lost every parent still hold copies from earlier runs
        for node_id in self.state.unlinked_ids():
            if self.context.terminated:
                break
            if self.state.is_flattened(node_id):
                continue
            stale = self.repository.count_associations(
                AssociationFilter(owner_id=node_id, flattened=True)
            )
            if stale:
                node = self.repository.get_node(node_id)
                if node is not None:
                    self.flatten(node)
        return self.state.flattened_count - before

    def flatten(self, node: Node) -> None:
        """
        Flatten one node, after flattening its ancestors, and commit it.

        Raises:
            HierarchyCycleError: If the node is reached again from its own ancestors
        """
        if self.state.is_flattened(node.id):
            logger.debug(f"Already flattened {node.attribute}/{node.value}")
            return

        logger.debug(f"Flattening {node.attribute}/{node.value}")
        self.state.enter(node.id)
        try:
            required = self.produce_required(node)
        finally:
            self.state.leave(node.id)

        current = self.repository.find_associations(
            AssociationFilter(
                owner_id=node.id,
                flattened=True,
                exclude_kinds=self.context.unstructured_exclusions(),
            )
        )
        self.reconcile(node, current, required, self.state.cleaned_ids)
        self.repository.commit()
        self.context.statistics.entitlements_indexed += 1

        self.state.mark_flattened(node.id)

    def produce_required(self, node: Node) -> List[TargetAssociation]:
        """
        Collect the associations a node inherits from its ancestors.

        The first association seen for a target wins, whichever branch it
        came from. Targets the node already holds directly are not copied.
        """
        bucket = AssociationBucket()
        direct = AssociationBucket(
            current=self.repository.find_associations(
                AssociationFilter(owner_id=node.id, flattened=False)
            )
        )

        for parent in self.parents_of(node):
            self.flatten(parent)

            for assoc in self._parent_associations(parent):
                if bucket.get_record(assoc) is not None:
                    continue
                if direct.get_record(assoc) is not None:
                    continue
                bucket.add(assoc.copy_for(node.displayable_name))

        return bucket.associations()

    def parents_of(self, node: Node) -> List[Node]:
        parents = []
        for parent_id in self.state.parent_ids(node):
            parent = self.repository.get_node(parent_id)
            if parent is None:
                logger.warning(f"Node evaporated: {parent_id}, parent of {node.id}")
                continue
            parents.append(parent)
        return parents

    def _parent_associations(self, parent: Node) -> Iterable[TargetAssociation]:
        return self.repository.find_associations(
            AssociationFilter(
                owner_id=parent.id,
                exclude_kinds=self.context.unstructured_exclusions(),
            )
        )

