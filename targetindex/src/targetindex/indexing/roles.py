"""Role target compilation: the associations a role confers through its plan."""

from typing import List, Optional
from targetindex.model.association import PERMISSION, OwnerKind, TargetAssociation
from targetindex.model.catalog import Role
from targetindex.catalog.repository import AssociationFilter
from targetindex.catalog.schema_index import ApplicationInfo, IndexedAttribute
from .base import AssociationProducer
from .bucket import AssociationBucket
from targetindex.config.logging import get_logger

logger = get_logger(__name__)


class RoleTargetCompiler(AssociationProducer[Role]):
    """
    Compute the required associations of a role.

    The role is expanded by the plan compiler, which already resolves
    inherited and required roles. For every granted attribute value the
    compiler may copy the associations persisted for the node the value
    references (role targets), add the value itself (role entitlements),
    and for every granted permission add a permission association (role
    permissions), depending on the options.

    Node associations are read as persisted, so entitlement indexing must
    have run before role indexing.
    """

    owner_kind = OwnerKind.ROLE

    def produce_required(self, role: Role) -> List[TargetAssociation]:
        opts = self.options
        plan = self.context.plan_compiler.expand(role)
        bucket = AssociationBucket()

        for account in plan.accounts:
            app = self.context.schema_index.application_info(account.application)

            if opts.index_role_entitlements or (
                opts.index_role_targets and app.has_interesting_account_attributes
            ):
                for attreq in account.attributes:
                    att = app.account_attribute(attreq.name)
                    has_associations = att is not None and att.has_associations

                    if not (
                        opts.index_role_entitlements
                        or (opts.index_role_targets and has_associations)
                    ):
                        continue

                    for value in attreq.values:
                        # the value references a node, take its targets
                        if opts.index_role_targets and has_associations:
                            self._add_indirect_targets(app, att, value, role, bucket)

                        # then the reference itself
                        if opts.index_role_entitlements:
                            self._add_entitlement(app, attreq.name, att, value, role, bucket)

            if opts.index_role_permissions:
                # no rights merging: the first permission for a target wins
                for perm in account.permissions:
                    if bucket.get_permission(app.name, perm.target) is None:
                        bucket.add(
                            TargetAssociation(
                                application=app.name,
                                target_kind=PERMISSION,
                                target_name=perm.target,
                                rights=perm.rights,
                                hierarchy=role.name,
                            )
                        )

        return bucket.associations()

    def _add_indirect_targets(
        self,
        app: ApplicationInfo,
        att: IndexedAttribute,
        value: str,
        role: Role,
        bucket: AssociationBucket,
    ) -> None:
        assocs = att.cached_associations(value)
        if assocs is None:
            node = self.repository.find_node(app.name, att.schema_object_type, value)
            if node is None:
                # not aggregated yet
                logger.info(f"Unaggregated object: {app.name} {att.name} {value}")
                self.context.statistics.missing_objects += 1
                return
            assocs = self.repository.find_associations(
                AssociationFilter(
                    owner_id=node.id,
                    exclude_kinds=self.context.unstructured_exclusions(),
                )
            )
            att.cache_associations(value, assocs)

        for assoc in assocs:
            if bucket.get_record(assoc) is None:
                copy = assoc.copy_for(role.name)
                copy.application = app.name
                bucket.add(copy)

    def _add_entitlement(
        self,
        app: ApplicationInfo,
        attribute: str,
        att: Optional[IndexedAttribute],
        value: str,
        role: Role,
        bucket: AssociationBucket,
    ) -> None:
        target = att.display_name(value) if att is not None else value
        if bucket.get(app.name, attribute, target) is not None:
            return

        assoc = TargetAssociation(
            application=app.name,
            target_kind=attribute,
            target_name=target,
            # the role name as path makes the source visible without a join
            hierarchy=role.name,
        )
        if self.options.index_classifications:
            object_type = att.schema_object_type if att is not None else None
            node = self.repository.find_node(app.name, object_type, value)
            if node is not None and node.classification_names:
                assoc.classifications = sorted(set(node.classification_names))
        bucket.add(assoc)
