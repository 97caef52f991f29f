"""Statistics accumulated over one indexing run."""

from dataclasses import dataclass
from targetindex.model.options import IndexStatisticsModel
from .bucket import Reconciliation


@dataclass
class IndexStatistics:
    """Counters updated as objects are indexed."""

    roles_examined: int = 0
    roles_indexed: int = 0
    entitlements_examined: int = 0
    entitlements_indexed: int = 0
    targets_added: int = 0
    targets_retained: int = 0
    targets_updated: int = 0
    targets_removed: int = 0
    targets_reset: int = 0
    duplicates_removed: int = 0
    effective_classifications_reset: int = 0
    missing_objects: int = 0

    def record(self, rec: Reconciliation) -> None:
        """Add the outcome counts of one reconciliation."""
        self.targets_added += len(rec.created)
        self.targets_retained += len(rec.retained)
        self.targets_updated += len(rec.updated)
        self.targets_removed += len(rec.removed) + len(rec.duplicates)
        self.duplicates_removed += len(rec.duplicates)

    @property
    def objects_examined(self) -> int:
        return self.roles_examined + self.entitlements_examined

    @property
    def objects_indexed(self) -> int:
        return self.roles_indexed + self.entitlements_indexed

    def to_model(self) -> IndexStatisticsModel:
        return IndexStatisticsModel(
            roles_examined=self.roles_examined,
            roles_indexed=self.roles_indexed,
            entitlements_examined=self.entitlements_examined,
            entitlements_indexed=self.entitlements_indexed,
            targets_added=self.targets_added,
            targets_retained=self.targets_retained,
            targets_updated=self.targets_updated,
            targets_removed=self.targets_removed,
            targets_reset=self.targets_reset,
            duplicates_removed=self.duplicates_removed,
            effective_classifications_reset=self.effective_classifications_reset,
            missing_objects=self.missing_objects,
            objects_examined=self.objects_examined,
            objects_indexed=self.objects_indexed,
        )
