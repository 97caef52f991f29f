"""Tests for role plan expansion and role target compilation."""

from targetindex.model.association import (
    PERMISSION,
    UNSTRUCTURED_PERMISSION,
    OwnerKind,
    TargetAssociation,
)
from targetindex.model.catalog import Classification
from targetindex.model.options import IndexerOptions
from targetindex.catalog.repository import AssociationFilter, InMemoryRepository
from targetindex.catalog.plan_compiler import RolePlanCompiler
from targetindex.indexing.context import IndexingContext
from targetindex.indexing.indexer import TargetIndexer
from targetindex.indexing.roles import RoleTargetCompiler


def compile_role(repo, role_id, **options):
    ctx = IndexingContext(repo, IndexerOptions(**options))
    return ctx, RoleTargetCompiler(ctx).produce_required(repo.get_role(role_id))


def test_plan_compiler_follows_inherited_and_required_roles(make_role):
    """Grants of inherited and required roles are merged, each role once."""
    repo = InMemoryRepository(
        roles=[
            make_role("top", "Top", groups=["G1"], inherits=["Base"], requirements=["Extra", "Ghost"]),
            make_role("base", "Base", groups=["G2", "G1"], inherits=["Top"]),
            make_role("extra", "Extra", permissions=[("Doc", "read")]),
        ]
    )

    plan = RolePlanCompiler(repo).expand(repo.get_role("top"))

    account = plan.account("AD")
    assert account is not None
    assert account.attributes[0].values == ["G1", "G2"]
    assert [p.target for p in account.permissions] == ["Doc"]


def test_role_targets_scenario(scenario_repository):
    """R gets G1's persisted record, flattened, with its own name prefixed."""
    result = TargetIndexer(
        scenario_repository,
        IndexerOptions(index_entitlements=True, index_role_targets=True),
    ).run()

    assert result.success
    records = scenario_repository.find_associations(AssociationFilter(owner_id="r"))
    assert len(records) == 1
    record = records[0]
    assert record.owner_kind == OwnerKind.ROLE
    assert record.target_kind == PERMISSION
    assert record.target_name == "Invoice List"
    assert record.rights == "read"
    assert record.flattened
    assert record.hierarchy == "R|G1"
    assert result.statistics.roles_examined == 1
    assert result.statistics.roles_indexed == 1


def test_role_entitlements(make_app, make_group, make_role):
    """Granted values become role records named by display name, path = role name."""
    repo = InMemoryRepository(
        applications=[make_app(display_attribute="displayName")],
        nodes=[make_group("g1", "cn=admins", display_name="Admins", classifications=["Sensitive"])],
        roles=[make_role("r", "R", groups=["cn=admins"])],
        classifications=[Classification(id="c1", name="Sensitive")],
    )

    _, required = compile_role(
        repo, "r", index_role_entitlements=True, index_classifications=True
    )

    assert len(required) == 1
    assert required[0].target_kind == "memberOf"
    assert required[0].target_name == "Admins"
    assert required[0].hierarchy == "R"
    assert not required[0].flattened
    assert required[0].classifications == ["Sensitive"]


def test_role_permissions_first_wins(make_role):
    """Permission grants become "P" records, the first rights win across sub-roles."""
    repo = InMemoryRepository(
        roles=[
            make_role("r", "R", permissions=[("Doc", "read")], requirements=["S"]),
            make_role("s", "S", permissions=[("Doc", "write"), ("Sheet", "read")]),
        ]
    )

    _, required = compile_role(repo, "r", index_role_permissions=True)

    rights = {a.target_name: a.rights for a in required}
    assert rights == {"Doc": "read", "Sheet": "read"}
    assert all(a.target_kind == PERMISSION and a.hierarchy == "R" for a in required)


def test_missing_objects_are_counted(scenario_repository, make_role):
    """A granted value with no node behind it is skipped and counted."""
    scenario_repository.save_role(make_role("x", "X", groups=["Ghost", "G1"]))
    scenario_repository.commit()
    TargetIndexer(scenario_repository, IndexerOptions(index_entitlements=True)).run()

    ctx, required = compile_role(scenario_repository, "x", index_role_targets=True)

    assert ctx.statistics.missing_objects == 1
    assert [a.target_name for a in required] == ["Invoice List"]


def test_unknown_application_still_yields_entitlements(make_role):
    """Grants on an application missing from the catalog keep their raw values."""
    repo = InMemoryRepository(roles=[make_role("r", "R", groups=["G1"], app="Gone")])

    _, required = compile_role(repo, "r", index_role_entitlements=True, index_role_targets=True)

    assert [(a.application, a.target_name) for a in required] == [("Gone", "G1")]


def test_unstructured_targets_need_the_option(scenario_repository):
    """Collector-owned "TP" records are only copied with unstructured indexing on."""
    TargetIndexer(scenario_repository, IndexerOptions(index_entitlements=True)).run()
    scenario_repository.save_association(
        TargetAssociation(
            owner_id="g1",
            owner_kind=OwnerKind.NODE,
            application="AD",
            target_kind=UNSTRUCTURED_PERMISSION,
            target_name="\\\\share\\finance",
            rights="read",
            hierarchy="G1",
        )
    )
    scenario_repository.commit()

    _, without = compile_role(scenario_repository, "r", index_role_targets=True)
    _, with_tp = compile_role(
        scenario_repository, "r", index_role_targets=True, index_unstructured_targets=True
    )

    assert [a.target_kind for a in without] == [PERMISSION]
    assert sorted(a.target_kind for a in with_tp) == [PERMISSION, UNSTRUCTURED_PERMISSION]


def test_compiler_reconciles_as_role_owner(scenario_repository):
    """Records the role compiler reconciles are stamped with the role owner kind."""
    TargetIndexer(scenario_repository, IndexerOptions(index_entitlements=True)).run()
    ctx, required = compile_role(scenario_repository, "r", index_role_targets=True)
    role = scenario_repository.get_role("r")

    rec = RoleTargetCompiler(ctx).reconcile(role, [], required)
    scenario_repository.commit()

    assert [(a.owner_id, a.owner_kind) for a in rec.created] == [("r", OwnerKind.ROLE)]
    assert ctx.statistics.targets_added == 1
    assert len(scenario_repository.find_associations(AssociationFilter(owner_kind=OwnerKind.ROLE))) == 1
