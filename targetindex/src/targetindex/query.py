"""Read side of the index: who grants access to a target."""

from typing import List, Optional
from targetindex.model.association import OwnerKind, TargetAssociation
from targetindex.model.catalog import Role
from targetindex.catalog.repository import AssociationFilter, Repository


def find_target_owners(
    repository: Repository,
    target_name: str,
    target_kind: Optional[str] = None,
    application: Optional[str] = None,
    owner_kind: Optional[OwnerKind] = None,
) -> List[TargetAssociation]:
    """
    Find the associations that grant a target.

    Args:
        repository: Repository to search
        target_name: Target name to match exactly
        target_kind: Restrict to one target kind (attribute name, "P" or "TP")
        application: Restrict to one application
        owner_kind: Restrict to role or node owners

    Returns:
        Matching associations, ordered by owner kind, owner and path
    """
    assocs = repository.find_associations(
        AssociationFilter(
            target_name=target_name,
            target_kind=target_kind,
            application=application,
            owner_kind=owner_kind,
        )
    )
    return sorted(
        assocs,
        key=lambda a: (
            a.owner_kind.value if a.owner_kind is not None else "",
            a.owner_id or "",
            a.hierarchy or "",
        ),
    )


def roles_granting(
    repository: Repository,
    target_name: str,
    target_kind: Optional[str] = None,
    application: Optional[str] = None,
) -> List[Role]:
    """Return the roles holding an association for a target, in name order."""
    roles = {}
    for assoc in find_target_owners(
        repository, target_name, target_kind, application, OwnerKind.ROLE
    ):
        if assoc.owner_id in roles:
            continue
        role = repository.get_role(assoc.owner_id)
        if role is not None:
            roles[assoc.owner_id] = role
    return sorted(roles.values(), key=lambda r: r.name)


def owner_name(repository: Repository, assoc: TargetAssociation) -> str:
    """Display name of the owner of an association, its id when it cannot be found."""
    if assoc.owner_kind == OwnerKind.ROLE:
        role = repository.get_role(assoc.owner_id)
        if role is not None:
            return role.name
    elif assoc.owner_kind == OwnerKind.NODE:
        node = repository.get_node(assoc.owner_id)
        if node is not None:
            return node.displayable_name
    return assoc.owner_id or "?"
