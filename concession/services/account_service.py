# concession/services/account_service.py
from concession.domain.entities import Account
from concession.domain.enums import Role
from concession.domain.errors import InvalidRequest
from concession.repos.base import AccountRepo
from concession.utils.logging import get_logger

logger = get_logger(__name__)


class AccountService:
    def __init__(self, repo: AccountRepo):
        self.repo = repo

    def get_account(self, account_id: int) -> Account | None:
        return self.repo.get_account(account_id)

    def ensure_account(self, account_id: int, display_name: str, username: str | None = None) -> Account:
        """
        Use Case: Upsert on first sight (Command).

        New accounts always start as customers. For known accounts only the
        profile is refreshed; the role is never touched here.
        """
        existing = self.repo.get_account(account_id)
        if existing is None:
            created = self.repo.create_account(
                Account(id=account_id, display_name=display_name, username=username, role=Role.CUSTOMER)
            )
            logger.info(f"Account {account_id} created as {created.role.value}")
            return created

        if existing.display_name != display_name or existing.username != username:
            return self.repo.update_profile(account_id, display_name, username)
        return existing

    def provision_role(self, account_id: int, role) -> Account | None:
        """
        Use Case: Staff provisioning (Command). Called by operators, never by
        the account holder.
        """
        try:
            role = Role(role)
        except ValueError:
            raise InvalidRequest(f"Unknown role: {role!r}")

        updated = self.repo.set_role(account_id, role)
        if updated is not None:
            logger.info(f"Account {account_id} provisioned as {role.value}")
        return updated
