"""Plan compiler: expands a role into the flat list of grants it confers."""

from abc import ABC, abstractmethod
from typing import List, Set
from targetindex.model.catalog import Role
from targetindex.model.grants import GrantList
from .repository import Repository
from targetindex.config.logging import get_logger

logger = get_logger(__name__)


class PlanCompiler(ABC):
    """Answers "what would be granted if this role were newly assigned?"."""

    @abstractmethod
    def expand(self, role: Role) -> GrantList:
        ...


class RolePlanCompiler(PlanCompiler):
    """
    Expand a role through its inherited and required roles.

    Each role contributes its own account grants. Inherited roles are
    visited before required roles, and every role is visited at most once
    per expansion, so shared sub-roles and reference loops are harmless.
    Roles that cannot be resolved by name are logged and skipped.
    """

    def __init__(self, repository: Repository):
        self.repository = repository

    def expand(self, role: Role) -> GrantList:
        grants = GrantList()
        visited: Set[str] = set()
        self._expand(role, grants, visited)
        logger.debug(
            f"Expanded role '{role.name}' through {len(visited)} role(s) "
            f"into {len(grants.accounts)} account grant(s)"
        )
        return grants

    def _expand(self, role: Role, grants: GrantList, visited: Set[str]) -> None:
        if role.name in visited:
            return
        visited.add(role.name)

        for grant in role.grants:
            grants.merge(grant)

        for name in self._related(role):
            other = self.repository.get_role_by_name(name)
            if other is None:
                logger.warning(f"Role '{role.name}' references unknown role '{name}'")
                continue
            self._expand(other, grants, visited)

    @staticmethod
    def _related(role: Role) -> List[str]:
        return list(role.inherits) + list(role.requirements)
