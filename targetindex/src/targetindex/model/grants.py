"""Output of the plan compiler: the flat list of grants a role confers."""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from .catalog import AccountGrant, AttributeGrant, PermissionGrant


class GrantList(BaseModel):
    """Grants a role would provision if assigned, grouped by application."""

    accounts: List[AccountGrant] = Field(default_factory=list)

    def account(self, application: str) -> Optional[AccountGrant]:
        for account in self.accounts:
            if account.application == application:
                return account
        return None

    def merge(self, grant: AccountGrant) -> None:
        """
        Merge one account grant into the list.

        Attribute values for the same (application, attribute) are combined
        in first-seen order without repeats. Permissions are appended as is,
        duplicates are resolved later by the association bucket.

        Args:
            grant: Account grant to merge
        """
        account = self.account(grant.application)
        if account is None:
            account = AccountGrant(application=grant.application)
            self.accounts.append(account)

        by_name: Dict[str, AttributeGrant] = {att.name: att for att in account.attributes}
        for att in grant.attributes:
            existing = by_name.get(att.name)
            if existing is None:
                merged = AttributeGrant(name=att.name, value=list(att.values))
                account.attributes.append(merged)
                by_name[att.name] = merged
            else:
                values = existing.values
                for value in att.values:
                    if value not in values:
                        values.append(value)
                existing.value = values

        for perm in grant.permissions:
            account.permissions.append(PermissionGrant(target=perm.target, rights=perm.rights))
