"""Per-run indexing context shared by every indexing component."""

import threading
from typing import List, Optional, Set, Tuple, Union
from targetindex.model.association import UNSTRUCTURED_PERMISSION, OwnerKind, TargetAssociation
from targetindex.model.catalog import Node, Role
from targetindex.model.options import IndexerOptions
from targetindex.catalog.repository import Repository
from targetindex.catalog.plan_compiler import PlanCompiler, RolePlanCompiler
from targetindex.catalog.schema_index import SchemaIndex
from .bucket import AssociationBucket, OwnerRef, Reconciliation
from .classifications import clean_effective_classifications, promote_classifications
from .statistics import IndexStatistics


class IndexingContext:
    """
    Everything one indexing run shares: collaborators, options, caches,
    statistics and the cooperative cancellation flag.

    A new context is built for every run, so caches never leak between runs.
    """

    def __init__(
        self,
        repository: Repository,
        options: Optional[IndexerOptions] = None,
        plan_compiler: Optional[PlanCompiler] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.repository = repository
        self.options = options or IndexerOptions()
        self.plan_compiler = plan_compiler or RolePlanCompiler(repository)
        self.schema_index = SchemaIndex(repository)
        self.statistics = IndexStatistics()
        self._cancel = cancel_event or threading.Event()

    @property
    def terminated(self) -> bool:
        return self._cancel.is_set()

    def unstructured_exclusions(self) -> Tuple[str, ...]:
        """Target kinds left out of flattening and copying."""
        if self.options.index_unstructured_targets:
            return ()
        return (UNSTRUCTURED_PERMISSION,)

    def reconcile_owner(
        self,
        owner: Union[Node, Role],
        owner_kind: OwnerKind,
        current: List[TargetAssociation],
        required: List[TargetAssociation],
        cleaned_ids: Optional[Set[str]] = None,
    ) -> Reconciliation:
        """
        Reconcile one owner's required associations with its current ones.

        Stages the outcome in the repository, records statistics, and when
        classification promotion is on, refreshes the owner's effective
        classifications. The caller commits.

        Args:
            owner: Node or role owning the associations
            owner_kind: Kind stamped on created associations
            current: Persisted associations to compare against
            required: Freshly computed associations
            cleaned_ids: Owners whose promoted classifications were already
                cleaned during this pass, updated in place

        Returns:
            The applied Reconciliation
        """
        bucket = AssociationBucket(
            OwnerRef.of(owner, owner_kind),
            current,
            compare_classifications=self.options.index_classifications,
        )
        rec = bucket.reconcile(required)
        rec.apply(self.repository)
        self.statistics.record(rec)

        if self.options.promote_classifications:
            if cleaned_ids is None or owner.id not in cleaned_ids:
                clean_effective_classifications(owner)
                if cleaned_ids is not None:
                    cleaned_ids.add(owner.id)
            for req in required:
                promote_classifications(self.repository, owner, req)
            self.save_owner(owner, owner_kind)

        return rec

    def save_owner(self, owner: Union[Node, Role], owner_kind: OwnerKind) -> None:
        if owner_kind == OwnerKind.ROLE:
            self.repository.save_role(owner)
        else:
            self.repository.save_node(owner)
