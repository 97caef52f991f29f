"""Shared fixtures: small catalogs built on an in-memory repository."""

import pytest
from targetindex.model.catalog import (
    AccountGrant,
    Application,
    AttributeDefinition,
    AttributeGrant,
    Classification,
    Node,
    ObjectClassification,
    Permission,
    PermissionGrant,
    Role,
    Schema,
)
from targetindex.catalog.repository import InMemoryRepository


@pytest.fixture
def make_app():
    """Build an application with an account schema and a group schema."""

    def _make(
        name="AD",
        child_hierarchy=False,
        index_permissions=True,
        indexed_hierarchy=False,
        display_attribute=None,
    ):
        return Application(
            id=f"app-{name}",
            name=name,
            schemas=[
                Schema(
                    object_type="account",
                    identity_attribute="dn",
                    attributes=[
                        AttributeDefinition(name="memberOf", schema_object_type="group"),
                        AttributeDefinition(name="title"),
                    ],
                ),
                Schema(
                    object_type="group",
                    identity_attribute="dn",
                    display_attribute=display_attribute,
                    hierarchy_attribute="memberOf",
                    child_hierarchy=child_hierarchy,
                    index_permissions=index_permissions,
                    attributes=[
                        AttributeDefinition(
                            name="memberOf",
                            indexed=indexed_hierarchy,
                            schema_object_type="group",
                        ),
                        AttributeDefinition(name="location", indexed=True),
                    ],
                ),
            ],
        )

    return _make


@pytest.fixture
def make_group():
    """Build a group node. ``links`` are parent or child ids per the schema."""

    def _make(
        node_id,
        value=None,
        links=(),
        permissions=(),
        app="AD",
        display_name=None,
        attributes=None,
        classifications=(),
    ):
        return Node(
            id=node_id,
            application=app,
            type="group",
            attribute="memberOf",
            value=value or node_id.upper(),
            display_name=display_name,
            attributes=attributes or {},
            permissions=[Permission(target=t, rights=r) for t, r in permissions],
            inheritance=list(links),
            classifications=[ObjectClassification(name=c) for c in classifications],
        )

    return _make


@pytest.fixture
def make_role():
    """Build a role granting group memberships and permissions on one application."""

    def _make(
        role_id,
        name=None,
        groups=(),
        permissions=(),
        app="AD",
        inherits=(),
        requirements=(),
        disabled=False,
    ):
        grants = []
        if groups or permissions:
            grants.append(
                AccountGrant(
                    application=app,
                    attributes=(
                        [AttributeGrant(name="memberOf", value=list(groups))] if groups else []
                    ),
                    permissions=[PermissionGrant(target=t, rights=r) for t, r in permissions],
                )
            )
        return Role(
            id=role_id,
            name=name or role_id.upper(),
            disabled=disabled,
            inherits=list(inherits),
            requirements=list(requirements),
            grants=grants,
        )

    return _make


@pytest.fixture
def scenario_repository(make_app, make_group, make_role):
    """
    G1 holds the "Invoice List" permission, G2 has G1 as parent and role R
    grants membership in G1.
    """
    return InMemoryRepository(
        applications=[make_app()],
        nodes=[
            make_group("g1", "G1", permissions=[("Invoice List", "read")]),
            make_group("g2", "G2", links=["g1"]),
        ],
        roles=[make_role("r", "R", groups=["G1"])],
        classifications=[Classification(id="c1", name="Sensitive")],
    )
