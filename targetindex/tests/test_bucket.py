"""Tests for association bucket reconciliation."""

import pytest
from targetindex.model.association import PERMISSION, OwnerKind, TargetAssociation
from targetindex.indexing.bucket import AssociationBucket, OwnerRef
from targetindex.errors import ConfigurationError

OWNER = OwnerRef(id="g1", kind=OwnerKind.NODE, name="G1")


def assoc(name, kind=PERMISSION, app="AD", rights=None, tags=None, owner_id="g1"):
    return TargetAssociation(
        owner_id=owner_id,
        owner_kind=OwnerKind.NODE if owner_id else None,
        application=app,
        target_kind=kind,
        target_name=name,
        rights=rights,
        hierarchy="G1",
        classifications=tags,
    )


def test_reconcile_four_outcomes():
    """Required and current sets split into created, retained, updated and removed."""
    current = [
        assoc("Keep", tags=["Sensitive"]),
        assoc("Retag", tags=["Old"]),
        assoc("Stale"),
    ]
    required = [
        assoc("Keep", tags=["Sensitive"], owner_id=None),
        assoc("Retag", tags=["New"], owner_id=None),
        assoc("Fresh", owner_id=None),
    ]

    bucket = AssociationBucket(OWNER, current, compare_classifications=True)
    rec = bucket.reconcile(required)

    assert [a.target_name for a in rec.created] == ["Fresh"]
    assert [a.target_name for a in rec.retained] == ["Keep"]
    assert [a.target_name for a in rec.updated] == ["Retag"]
    assert rec.updated[0].classifications == ["New"]
    assert [a.target_name for a in rec.removed] == ["Stale"]
    assert rec.change_count == 3
    assert len(bucket) == 0


def test_created_records_take_the_bucket_owner():
    """Created associations are assigned the bucket's owner."""
    bucket = AssociationBucket(OWNER, [])
    rec = bucket.reconcile([assoc("Fresh", owner_id=None)])

    created = rec.created[0]
    assert created.owner_id == "g1"
    assert created.owner_kind == OwnerKind.NODE


def test_ownerless_bucket_cannot_create():
    """Creating a record with no owner anywhere is a configuration error."""
    bucket = AssociationBucket()
    with pytest.raises(ConfigurationError):
        bucket.reconcile([assoc("Fresh", owner_id=None)])


def test_rights_do_not_take_part_in_comparison():
    """A rights difference alone leaves the persisted record retained."""
    bucket = AssociationBucket(OWNER, [assoc("Doc", rights="read")])
    rec = bucket.reconcile([assoc("Doc", rights="write", owner_id=None)])

    assert len(rec.retained) == 1
    assert rec.retained[0].rights == "read"
    assert not rec.updated


def test_tags_cleared_when_classifications_are_off():
    """Persisted tags are removed when classification indexing is off."""
    bucket = AssociationBucket(OWNER, [assoc("Doc", tags=["Sensitive"])])
    rec = bucket.reconcile([assoc("Doc", owner_id=None)])

    assert len(rec.updated) == 1
    assert rec.updated[0].classifications is None


def test_tag_order_is_ignored():
    """Tags are compared as sets."""
    bucket = AssociationBucket(
        OWNER, [assoc("Doc", tags=["A", "B"])], compare_classifications=True
    )
    rec = bucket.reconcile([assoc("Doc", tags=["B", "A"], owner_id=None)])

    assert len(rec.retained) == 1


def test_duplicates_in_current_are_purged():
    """Repeated identities in the current list are removed on reconcile."""
    first = assoc("Doc")
    second = assoc("Doc")
    bucket = AssociationBucket(OWNER, [first, second])

    assert len(bucket) == 1
    assert bucket.duplicates == [second]

    rec = bucket.reconcile([assoc("Doc", owner_id=None)])
    assert rec.retained[0].id == first.id
    assert [a.id for a in rec.duplicates] == [second.id]
    assert rec.change_count == 1


def test_repeated_required_keys_are_ignored():
    """Only the first required record for an identity counts."""
    bucket = AssociationBucket(OWNER, [])
    rec = bucket.reconcile(
        [assoc("Doc", rights="read", owner_id=None), assoc("Doc", rights="write", owner_id=None)]
    )

    assert len(rec.created) == 1
    assert rec.created[0].rights == "read"


def test_add_first_wins():
    """Adding a second record with the same identity is refused."""
    bucket = AssociationBucket()
    assert bucket.add(assoc("Doc", rights="read", owner_id=None))
    assert not bucket.add(assoc("Doc", rights="write", owner_id=None))
    assert bucket.get_permission("AD", "Doc").rights == "read"


def test_identity_includes_application_and_kind():
    """The same target name under another application or kind is distinct."""
    bucket = AssociationBucket()
    assert bucket.add(assoc("Doc", owner_id=None))
    assert bucket.add(assoc("Doc", app="LDAP", owner_id=None))
    assert bucket.add(assoc("Doc", kind="memberOf", owner_id=None))
    assert bucket.add(assoc("Doc", app=None, owner_id=None))
    assert len(bucket) == 4
    assert bucket.get("any", PERMISSION, "Doc") is not None
