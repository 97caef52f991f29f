"""Indexing options and the result of an indexing run."""

from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def split_names(value: Any) -> Optional[List[str]]:
    """
    Coerce a name list argument to a list of names.

    Accepts None, a single name, a CSV string, or a list of names.

    Args:
        value: Raw argument value

    Returns:
        List of stripped, non-empty names, or None when nothing was given
    """
    if value is None:
        return None
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        items = []
        for item in value:
            items.extend(str(item).split(","))
    else:
        items = [str(value)]
    names = [item.strip() for item in items if item and item.strip()]
    return names or None


class IndexerOptions(BaseModel):
    """
    Options controlling one indexing run.

    Field aliases are the task argument names, so options can be built
    from an argument map as well as from keywords.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    index_role_targets: bool = Field(False, alias="indexRoleTargets")
    index_role_entitlements: bool = Field(False, alias="indexRoleEntitlements")
    index_role_permissions: bool = Field(False, alias="indexRolePermissions")
    index_entitlements: bool = Field(
        False,
        alias="indexEntitlements",
        validation_alias=AliasChoices("indexEntitlements", "indexEntitlementTargets"),
    )
    index_unstructured_targets: bool = Field(False, alias="indexUnstructuredTargets")
    index_classifications: bool = Field(False, alias="indexClassifications")
    promote_classifications: bool = Field(False, alias="promoteClassifications")
    applications: Optional[List[str]] = Field(None, alias="applications")
    roles: Optional[List[str]] = Field(None, alias="roles")
    full_reset: bool = Field(False, alias="fullReset")
    refresh_fulltext: bool = Field(False, alias="refreshFulltext")

    @field_validator("applications", "roles", mode="before")
    @classmethod
    def _split_names(cls, value: Any) -> Optional[List[str]]:
        return split_names(value)

    @property
    def index_any_roles(self) -> bool:
        return (
            self.index_role_targets
            or self.index_role_entitlements
            or self.index_role_permissions
        )


class IndexStatisticsModel(BaseModel):
    """Serializable snapshot of run statistics."""

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
    objects_examined: int = 0
    objects_indexed: int = 0


class IndexResult(BaseModel):
    """Result of an indexing run, including partial statistics on failure."""

    statistics: IndexStatisticsModel = Field(default_factory=IndexStatisticsModel)
    terminated: bool = False
    errors: List[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_arguments(self) -> Dict[str, int]:
        """Return statistics keyed by the task result attribute names."""
        stats = self.statistics
        return {
            "rolesExamined": stats.roles_examined,
            "rolesIndexed": stats.roles_indexed,
            "entitlementsExamined": stats.entitlements_examined,
            "entitlementsIndexed": stats.entitlements_indexed,
            "targetsAdded": stats.targets_added,
            "targetsRetained": stats.targets_retained,
            "targetsUpdated": stats.targets_updated,
            "targetsRemoved": stats.targets_removed,
            "targetsReset": stats.targets_reset,
            "duplicatesRemoved": stats.duplicates_removed,
            "missingObjects": stats.missing_objects,
            "objectsExamined": stats.objects_examined,
            "objectsIndexed": stats.objects_indexed,
        }
