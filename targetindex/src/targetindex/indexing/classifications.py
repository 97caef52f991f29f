"""Promotion of association classification tags onto their owners."""

from typing import Union
from targetindex.model.association import TargetAssociation
from targetindex.model.catalog import TASK_SOURCE, Node, ObjectClassification, Role
from targetindex.catalog.repository import Repository

Classifiable = Union[Node, Role]


def clean_effective_classifications(owner: Classifiable) -> int:
    """
    Remove effective classifications previously promoted by the indexer.

    Args:
        owner: Node or role to clean

    Returns:
        Number of classifications removed
    """
    keep = [
        c
        for c in owner.classifications
        if not (c.source == TASK_SOURCE and c.effective)
    ]
    removed = len(owner.classifications) - len(keep)
    owner.classifications = keep
    return removed


def promote_classifications(
    repository: Repository, owner: Classifiable, assoc: TargetAssociation
) -> int:
    """
    Add the classifications carried by an association to its owner.

    Names unknown to the catalog are ignored, as are classifications the
    owner already has.

    Returns:
        Number of classifications added
    """
    added = 0
    for name in assoc.classifications or []:
        if repository.get_classification(name) is None:
            continue
        if any(c.name == name for c in owner.classifications):
            continue
        owner.classifications.append(
            ObjectClassification(name=name, source=TASK_SOURCE, effective=True)
        )
        added += 1
    return added
