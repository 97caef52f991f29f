"""Target indexing: association buckets, producers and the indexer."""

from .bucket import AssociationBucket, OwnerRef, Reconciliation
from .context import IndexingContext
from .direct import DirectAssociationBuilder
from .hierarchy import FlatteningState, HierarchyFlattener
from .roles import RoleTargetCompiler
from .indexer import IndexerPhase, TargetIndexer

__all__ = [
    "AssociationBucket",
    "OwnerRef",
    "Reconciliation",
    "IndexingContext",
    "DirectAssociationBuilder",
    "FlatteningState",
    "HierarchyFlattener",
    "RoleTargetCompiler",
    "IndexerPhase",
    "TargetIndexer",
]
