# concession/repos/account_repo.py
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from concession.data.models.account import AccountModel
from concession.domain.entities import Account
from concession.domain.enums import Role
from concession.repos.base import AccountRepo
from concession.repos.sql_support import to_account, translate_db_errors


class SqlAccountRepo(AccountRepo):
    def __init__(self, db: Session):
        self.db = db

    def _get(self, account_id: int) -> AccountModel | None:
        return self.db.get(AccountModel, account_id, populate_existing=True)

    @translate_db_errors
    def get_account(self, account_id: int) -> Account | None:
        model = self._get(account_id)
        return to_account(model) if model else None

    @translate_db_errors
    def create_account(self, account: Account) -> Account:
        model = AccountModel(
            id=account.id,
            display_name=account.display_name,
            username=account.username,
            role=account.role.value,
        )
        self.db.add(model)
        try:
            self.db.commit()
        except IntegrityError:
            # another request created the account first
            self.db.rollback()
            existing = self._get(account.id)
            if existing is None:
                raise
            return to_account(existing)

        self.db.refresh(model)
        return to_account(model)

    @translate_db_errors
    def update_profile(self, account_id: int, display_name: str, username: str | None) -> Account | None:
        model = self._get(account_id)
        if model is None:
            return None
        model.display_name = display_name
        model.username = username
        self.db.commit()
        return to_account(model)

    @translate_db_errors
    def set_role(self, account_id: int, role: Role) -> Account | None:
        model = self._get(account_id)
        if model is None:
            return None
        model.role = role.value
        self.db.commit()
        return to_account(model)
