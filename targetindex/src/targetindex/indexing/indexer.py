"""
TargetIndexer: builds target associations for nodes and roles.

A run moves through these phases::

    IDLE -> RESET -> INDEX_ENTITLEMENTS -> RESET -> INDEX_ROLES -> DONE
                                                               \\-> TERMINATED

Resets only happen when requested, and each reset only touches the owner
kind about to be reindexed. Entitlements are indexed before roles because
role indexing reads the associations persisted for nodes.

Every node and role is committed on its own, so a run that fails or is
terminated leaves all objects it reached correctly indexed; running again
finishes the rest and is idempotent for the others.
"""

import threading
import time
from enum import Enum
from typing import Callable, List, Optional
from targetindex.model.association import UNSTRUCTURED_PERMISSION, OwnerKind
from targetindex.model.catalog import ACCOUNT_SCHEMA, Application, Role
from targetindex.model.options import IndexerOptions, IndexResult
from targetindex.catalog.repository import AssociationFilter, Repository
from targetindex.catalog.plan_compiler import PlanCompiler
from targetindex.catalog.schema_index import SchemaInfo
from targetindex.config.settings import get_settings
from .context import IndexingContext
from .direct import DirectAssociationBuilder
from .hierarchy import FlatteningState, HierarchyFlattener
from .roles import RoleTargetCompiler
from .classifications import clean_effective_classifications
from .error_logging import describe_error, log_error
from targetindex.config.logging import get_logger

logger = get_logger(__name__)


class IndexerPhase(str, Enum):
    """Phases of an indexing run."""

    IDLE = "idle"
    RESET = "reset"
    INDEX_ENTITLEMENTS = "index_entitlements"
    INDEX_ROLES = "index_roles"
    DONE = "done"
    TERMINATED = "terminated"
    FAILED = "failed"


class TargetIndexer:
    """Indexes the indirect access of nodes and roles."""

    def __init__(
        self,
        repository: Repository,
        options: Optional[IndexerOptions] = None,
        plan_compiler: Optional[PlanCompiler] = None,
        fulltext_refresher: Optional[Callable[[], None]] = None,
        progress_interval: Optional[int] = None,
    ):
        """
        Initialize the indexer.

        Args:
            repository: Repository holding the catalog and associations
            options: Indexing options, defaults to everything off
            plan_compiler: Role expansion, defaults to RolePlanCompiler
            fulltext_refresher: Called after a successful run when
                ``refresh_fulltext`` is on
            progress_interval: Log progress every N objects, defaults to settings
        """
        self.repository = repository
        self.options = options or IndexerOptions()
        self.plan_compiler = plan_compiler
        self.fulltext_refresher = fulltext_refresher
        self.progress_interval = progress_interval or get_settings().progress_interval
        self.phase = IndexerPhase.IDLE
        self._cancel = threading.Event()
        self._context: Optional[IndexingContext] = None
        self._current_owner: Optional[str] = None

    def terminate(self) -> bool:
        """Stop at the next object boundary. The object in flight still commits."""
        logger.info("Termination requested")
        self._cancel.set()
        return True

    @property
    def terminated(self) -> bool:
        return self._cancel.is_set()

    def run(self) -> IndexResult:
        """
        Run the indexer.

        Failures abort the run: the in-flight transaction is rolled back and
        the error is returned in the result along with the statistics
        accumulated so far.

        Returns:
            IndexResult with statistics, termination flag and errors
        """
        run_start = time.time()
        opts = self.options
        ctx = IndexingContext(
            self.repository,
            options=opts,
            plan_compiler=self.plan_compiler,
            cancel_event=self._cancel,
        )
        self._context = ctx
        result = IndexResult()

        logger.info(
            f"Starting target indexing (entitlements={opts.index_entitlements}, "
            f"role_targets={opts.index_role_targets}, "
            f"role_entitlements={opts.index_role_entitlements}, "
            f"role_permissions={opts.index_role_permissions}, "
            f"full_reset={opts.full_reset})"
        )

        try:
            if not self.terminated and opts.index_entitlements:
                if opts.full_reset:
                    self._reset(OwnerKind.NODE)
                self.phase = IndexerPhase.INDEX_ENTITLEMENTS
                self._index_entitlements()

            if not self.terminated and opts.index_any_roles:
                if opts.full_reset:
                    self._reset(OwnerKind.ROLE)
                self.phase = IndexerPhase.INDEX_ROLES
                self._index_roles()

            if not self.terminated and opts.refresh_fulltext:
                self._refresh_fulltext()

            self.phase = IndexerPhase.TERMINATED if self.terminated else IndexerPhase.DONE
        except Exception as e:
            failed_phase = self.phase
            self.phase = IndexerPhase.FAILED
            self.repository.rollback()
            log_error(
                e,
                context={
                    "roles_examined": ctx.statistics.roles_examined,
                    "entitlements_indexed": ctx.statistics.entitlements_indexed,
                },
                operation="target indexing",
                phase=failed_phase.value,
                owner_name=self._current_owner,
            )
            result.errors.append(describe_error(e))

        result.statistics = ctx.statistics.to_model()
        result.terminated = self.terminated

        logger.info(
            f"Target indexing {self.phase.value}: "
            f"{ctx.statistics.entitlements_indexed} entitlement(s) and "
            f"{ctx.statistics.roles_indexed}/{ctx.statistics.roles_examined} role(s) indexed, "
            f"{ctx.statistics.targets_added} added, {ctx.statistics.targets_retained} retained, "
            f"{ctx.statistics.targets_updated} updated, {ctx.statistics.targets_removed} removed "
            f"(total time: {time.time() - run_start:.3f}s)"
        )
        return result

    # Reset

    def _reset(self, owner_kind: OwnerKind) -> None:
        """
        Delete every association the indexer created for an owner kind.

        Direct unstructured target permissions owned by nodes are written by
        target collectors and cannot be recreated here, so they are kept.
        Flattened copies of them were written by the indexer and are deleted.
        """
        self.phase = IndexerPhase.RESET
        ctx = self._context
        label = "role" if owner_kind == OwnerKind.ROLE else "entitlement"
        logger.info(f"Resetting {label} target associations")

        if owner_kind == OwnerKind.NODE:
            filters = [
                AssociationFilter(owner_kind=owner_kind, flattened=True),
                AssociationFilter(
                    owner_kind=owner_kind,
                    flattened=False,
                    exclude_kinds=(UNSTRUCTURED_PERMISSION,),
                ),
            ]
        else:
            filters = [AssociationFilter(owner_kind=owner_kind)]
        count = sum(self.repository.delete_associations(flt) for flt in filters)
        ctx.statistics.targets_reset += count
        logger.info(f"Deleting {count} associations.")

        cleared = self.repository.reset_effective_classifications(owner_kind)
        ctx.statistics.effective_classifications_reset += cleared
        logger.info(f"Deleting {cleared} effective classifications.")

        # indexing queries these, make the reset visible first
        self.repository.commit()

    # Entitlement indexing

    def _index_entitlements(self) -> None:
        applications = self._target_applications()
        if self.terminated:
            return
        logger.info(f"Indexing applications: {', '.join(a.name for a in applications)}")

        for app in applications:
            if self.terminated:
                break
            self._index_application(app)

    def _target_applications(self) -> List[Application]:
        """Applications named in the options, else every indexable application."""
        names = self.options.applications
        if names:
            apps = []
            for name in names:
                app = self.repository.get_application(name)
                if app is None:
                    logger.warning(f"Unknown application: {name}")
                else:
                    apps.append(app)
            return apps

        schema_index = self._context.schema_index
        return [
            app
            for app in self.repository.list_applications()
            if schema_index.application_info(app.name).is_indexable
        ]

    def _index_application(self, app: Application) -> None:
        info = self._context.schema_index.application_info(app.name)
        for schema in app.schemas:
            if self.terminated:
                break
            if schema.object_type == ACCOUNT_SCHEMA:
                continue
            schema_info = info.schema_info(schema.object_type)
            if schema_info is None:
                continue

            # direct pass, remembering hierarchy edges
            state = self._index_direct_targets(app, schema_info)

            # then copy ancestor targets down the hierarchy
            if not self.terminated:
                HierarchyFlattener(self._context, state).flatten_all()

    def _index_direct_targets(self, app: Application, schema: SchemaInfo) -> FlatteningState:
        ctx = self._context
        state = FlatteningState(schema)
        builder = DirectAssociationBuilder(ctx)

        logger.info(
            f"Indexing schema {schema.object_type} of {app.name}: "
            f"{[a.name for a in schema.attributes]}"
            + (" and permissions" if schema.has_indexed_permissions else "")
        )

        node_ids = self.repository.query_node_ids(app.name, schema.object_type)
        for count, node_id in enumerate(node_ids, 1):
            if self.terminated:
                logger.info("Entitlement indexing terminated")
                break
            node = self.repository.get_node(node_id)
            if node is None:
                continue
            ctx.statistics.entitlements_examined += 1
            self._current_owner = node.displayable_name
            logger.debug(f"Refreshing {node.attribute}/{node.value}")

            # current direct associations, leaving out collector-owned ones
            current = self.repository.find_associations(
                AssociationFilter(
                    owner_id=node.id,
                    flattened=False,
                    exclude_kinds=(UNSTRUCTURED_PERMISSION,),
                )
            )
            required = builder.produce_required(node)
            builder.reconcile(node, current, required, state.cleaned_ids)

            state.add_hierarchy(node)

            self.repository.commit()
            ctx.statistics.entitlements_indexed += 1
            self._log_progress("node", count, len(node_ids))

        self._current_owner = None
        return state

    # Role indexing

    def _index_roles(self) -> None:
        names = self.options.roles
        if names:
            for name in names:
                if self.terminated:
                    break
                role = self.repository.get_role_by_name(name)
                if role is None:
                    logger.warning(f"Unknown role: {name}")
                    continue
                self._index_role(role)
            return

        role_ids = self.repository.query_role_ids()
        logger.info(f"Indexing {len(role_ids)} role(s)")
        for count, role_id in enumerate(role_ids, 1):
            if self.terminated:
                logger.info("Role indexing terminated")
                break
            role = self.repository.get_role(role_id)
            if role is None:
                continue
            self._index_role(role)
            self._log_progress("role", count, len(role_ids))

    def _index_role(self, role: Role) -> None:
        ctx = self._context
        self._current_owner = role.name
        logger.info(f"Indexing role: {role.name}")
        ctx.statistics.roles_examined += 1

        compiler = RoleTargetCompiler(ctx)
        required = compiler.produce_required(role)

        if not required:
            # nothing required, drop everything including unstructured copies
            count = self.repository.delete_associations(AssociationFilter(owner_id=role.id))
            ctx.statistics.targets_removed += count
            if count > 0:
                logger.info(f"Cleared all associations for role {role.name}")
                ctx.statistics.roles_indexed += 1
            if self.options.promote_classifications and clean_effective_classifications(role):
                ctx.save_owner(role, compiler.owner_kind)
        else:
            ctx.statistics.roles_indexed += 1
            current = self.repository.find_associations(
                AssociationFilter(
                    owner_id=role.id,
                    exclude_kinds=ctx.unstructured_exclusions(),
                )
            )
            compiler.reconcile(role, current, required)

        self.repository.commit()
        self._current_owner = None

    # Extra work

    def _refresh_fulltext(self) -> None:
        logger.info("Refreshing fulltext indexes")
        if self.fulltext_refresher is not None:
            self.fulltext_refresher()

    def _log_progress(self, kind: str, count: int, total: int) -> None:
        if self.progress_interval and count % self.progress_interval == 0:
            logger.info(f"Indexed {count}/{total} {kind}(s)")
