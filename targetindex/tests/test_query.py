"""Tests for target owner lookups."""

from targetindex.model.association import OwnerKind
from targetindex.model.options import IndexerOptions
from targetindex.indexing.indexer import TargetIndexer
from targetindex.query import find_target_owners, owner_name, roles_granting


def indexed(repo):
    TargetIndexer(
        repo, IndexerOptions(index_entitlements=True, index_role_targets=True)
    ).run()
    return repo


def test_find_target_owners(scenario_repository):
    """Every node and role holding a target is found, nodes before roles."""
    repo = indexed(scenario_repository)

    owners = find_target_owners(repo, "Invoice List")

    assert [(a.owner_kind, a.owner_id) for a in owners] == [
        (OwnerKind.NODE, "g1"),
        (OwnerKind.NODE, "g2"),
        (OwnerKind.ROLE, "r"),
    ]
    assert [owner_name(repo, a) for a in owners] == ["G1", "G2", "R"]


def test_filters(scenario_repository):
    """Kind, application and owner kind narrow the result."""
    repo = indexed(scenario_repository)

    assert len(find_target_owners(repo, "Invoice List", owner_kind=OwnerKind.NODE)) == 2
    assert len(find_target_owners(repo, "Invoice List", target_kind="P")) == 3
    assert find_target_owners(repo, "Invoice List", target_kind="memberOf") == []
    assert find_target_owners(repo, "Invoice List", application="LDAP") == []
    assert find_target_owners(repo, "Nothing") == []


def test_roles_granting(scenario_repository, make_role):
    """Roles are returned once each, by name."""
    scenario_repository.save_role(make_role("a", "Alpha", groups=["G1", "G2"]))
    scenario_repository.commit()
    repo = indexed(scenario_repository)

    assert [r.name for r in roles_granting(repo, "Invoice List")] == ["Alpha", "R"]
