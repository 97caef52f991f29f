"""Base class for components that compute an owner's required associations."""

from typing import Generic, List, Optional, Set, TypeVar
from targetindex.model.association import OwnerKind, TargetAssociation
from .bucket import Reconciliation
from .context import IndexingContext

OwnerT = TypeVar("OwnerT")


class AssociationProducer(Generic[OwnerT]):
    """Computes the associations one kind of owner requires."""

    owner_kind: OwnerKind = OwnerKind.NODE

    def __init__(self, context: IndexingContext):
        self.context = context

    @property
    def repository(self):
        return self.context.repository

    @property
    def options(self):
        return self.context.options

    def produce_required(self, owner: OwnerT) -> List[TargetAssociation]:
        """
        Compute the required associations for one owner.

        Args:
            owner: Node or role to compute associations for

        Returns:
            Unowned associations, unique by target identity
        """
        raise NotImplementedError(
            f"{type(self).__name__} must implement produce_required()"
        )

    def reconcile(
        self,
        owner: OwnerT,
        current: List[TargetAssociation],
        required: List[TargetAssociation],
        cleaned_ids: Optional[Set[str]] = None,
    ) -> Reconciliation:
        """Reconcile an owner of this producer's kind. The caller commits."""
        return self.context.reconcile_owner(
            owner, self.owner_kind, current, required, cleaned_ids
        )
