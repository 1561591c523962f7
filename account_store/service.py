"""
Account Service Module

Non-interactive account operations for front ends (menus, scripts, APIs).
Each public operation is one logical action: it holds the store's advisory
lock for its whole duration and may run several load/rewrite cycles inside
it. The acting user is passed in explicitly as a Session.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import FrozenSet, List, Optional, Union

from .accounts import (
    AccountKind, Amount, BankAccount, CertificateOfDeposit, create_account, to_decimal
)
from .config import AccountStoreConfig, get_config
from .locking import exclusive_store_lock
from .logging_config import get_logger, log_action, setup_logging
from .records import validate_name
from .storage import AccountStorage, build_storage


class UserRole(Enum):
    """Roles a session can act under"""
    CLIENT = "client"
    MANAGER = "manager"


@dataclass(frozen=True)
class Session:
    """
    The user on whose behalf an operation runs.

    Clients may only touch the accounts listed in account_numbers; managers
    may touch any account.
    """
    username: str
    role: UserRole = UserRole.CLIENT
    account_numbers: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def is_manager(self) -> bool:
        return self.role == UserRole.MANAGER

    def can_access(self, account_number: int) -> bool:
        return self.is_manager or account_number in self.account_numbers


class AccountNotFoundError(LookupError):
    """No stored account has the requested number"""


@dataclass
class TransactionResult:
    """Outcome of a balance-changing operation"""
    accepted: bool
    account_number: int
    balance: Decimal
    notice: Optional[str] = None


class AccountService:
    """
    Deposit, withdraw, transfer and maintenance operations over an AccountStorage
    """

    def __init__(self, storage: AccountStorage, lock_path: Union[str, Path]):
        self.storage = storage
        self.lock_path = Path(lock_path)
        self.logger = get_logger("account_store.service")

    # Queries

    def get_account(self, session: Session, account_number: int) -> BankAccount:
        self._check_access(session, account_number)
        return self._load(account_number)

    def list_accounts(self, session: Session) -> List[BankAccount]:
        """All accounts for managers, the session's own accounts for clients"""
        accounts = self.storage.load_all()
        if session.is_manager:
            return accounts
        return [a for a in accounts if a.account_number in session.account_numbers]

    # Account lifecycle

    def open_account(
        self,
        session: Session,
        kind: AccountKind,
        name: str,
        initial_deposit: Amount = Decimal("0"),
        **params
    ) -> BankAccount:
        """
        Create and store a new account.

        Args:
            session: Acting user (must be a manager)
            kind: Account kind
            name: Account holder name (no commas)
            initial_deposit: Opening balance, zero or more
            **params: Kind-specific parameters; these are not stored and
                only apply to the returned instance

        Returns:
            The new account, numbered by the store
        """
        self._require_manager(session, "open accounts")
        validate_name(name)
        initial_deposit = to_decimal(initial_deposit)
        if initial_deposit < 0:
            raise ValueError("Initial deposit cannot be negative")

        with exclusive_store_lock(self.lock_path):
            account_number = self.storage.next_account_number()
            account = create_account(kind, name, account_number, initial_deposit, **params)
            self.storage.append_one(account)

        log_action(
            self.logger, "info", f"Account opened: {kind.value}",
            user_id=session.username, action="open_account",
            account_number=account_number
        )
        return account

    def close_account(self, session: Session, account_number: int) -> None:
        self._require_manager(session, "close accounts")
        with exclusive_store_lock(self.lock_path):
            if not self.storage.remove_one(account_number):
                raise AccountNotFoundError(f"Account {account_number} not found")

        log_action(
            self.logger, "info", "Account closed",
            user_id=session.username, action="close_account",
            account_number=account_number
        )

    def rename_account(self, session: Session, account_number: int, name: str) -> BankAccount:
        self._check_access(session, account_number)
        validate_name(name)
        with exclusive_store_lock(self.lock_path):
            account = self._load(account_number)
            account.set_name(name)
            self._save(account)

        log_action(
            self.logger, "info", "Account renamed",
            user_id=session.username, action="rename_account",
            account_number=account_number
        )
        return account

    def set_balance(self, session: Session, account_number: int, balance: Amount) -> BankAccount:
        """Overwrite a balance directly (manager correction; may go negative)"""
        self._require_manager(session, "edit balances")
        with exclusive_store_lock(self.lock_path):
            account = self._load(account_number)
            account.set_balance(balance)
            self._save(account)

        log_action(
            self.logger, "warning", "Balance overwritten",
            user_id=session.username, action="set_balance",
            account_number=account_number,
            extra={"balance": f"{account.balance:.2f}"}
        )
        return account

    # Money movement

    def deposit(self, session: Session, account_number: int, amount: Amount) -> TransactionResult:
        amount = self._positive(amount)
        self._check_access(session, account_number)
        with exclusive_store_lock(self.lock_path):
            account = self._load(account_number)
            account.deposit(amount)
            self._save(account)

        log_action(
            self.logger, "info", "Deposit completed",
            user_id=session.username, action="deposit",
            account_number=account_number, extra={"amount": str(amount)}
        )
        return TransactionResult(True, account_number, account.balance)

    def withdraw(
        self,
        session: Session,
        account_number: int,
        amount: Optional[Amount] = None
    ) -> TransactionResult:
        """
        Withdraw from an account.

        Certificates of deposit only support the full withdrawal, so amount
        is ignored for them. Other kinds require a positive amount.
        """
        self._check_access(session, account_number)
        with exclusive_store_lock(self.lock_path):
            account = self._load(account_number)
            if isinstance(account, CertificateOfDeposit):
                amount = None
                accepted = account.withdraw()
            else:
                if amount is None:
                    raise ValueError("A withdrawal amount is required")
                amount = self._positive(amount)
                accepted = account.withdraw(amount)
            if accepted:
                self._save(account)

        if not accepted:
            notice = account.last_notice or "Withdrawal not allowed for this account."
            log_action(
                self.logger, "warning", f"Withdrawal rejected: {notice}",
                user_id=session.username, action="withdraw",
                account_number=account_number
            )
            return TransactionResult(False, account_number, account.balance, notice)

        log_action(
            self.logger, "info", "Withdrawal completed",
            user_id=session.username, action="withdraw",
            account_number=account_number,
            extra={"amount": str(amount) if amount is not None else "full"}
        )
        return TransactionResult(True, account_number, account.balance)

    def transfer(
        self,
        session: Session,
        from_account: int,
        to_account: int,
        amount: Amount
    ) -> TransactionResult:
        """
        Move amount between two accounts.

        The source's withdrawal rules apply; on rejection nothing is written.
        The returned result describes the source account.
        """
        amount = self._positive(amount)
        if from_account == to_account:
            raise ValueError("Cannot transfer to the same account")
        self._check_access(session, from_account)
        self._check_access(session, to_account)

        with exclusive_store_lock(self.lock_path):
            source = self._load(from_account)
            destination = self._load(to_account)
            if not source.withdraw(amount):
                notice = source.last_notice or "Transfers out of this account are not allowed."
                log_action(
                    self.logger, "warning", f"Transfer rejected: {notice}",
                    user_id=session.username, action="transfer",
                    account_number=from_account
                )
                return TransactionResult(False, from_account, source.balance, notice)

            destination.deposit(amount)
            self._save(source)
            self._save(destination)

        log_action(
            self.logger, "info", "Transfer completed",
            user_id=session.username, action="transfer",
            account_number=from_account,
            extra={"to_account": to_account, "amount": str(amount)}
        )
        return TransactionResult(True, from_account, source.balance)

    def run_monthly_statements(self, session: Session) -> int:
        """
        Apply one month of fees/interest to every account.

        Returns:
            Number of accounts processed
        """
        self._require_manager(session, "run monthly statements")
        with exclusive_store_lock(self.lock_path):
            accounts = self.storage.load_all()
            for account in accounts:
                account.create_monthly_statement()
            self.storage.rewrite_all(accounts)

        log_action(
            self.logger, "info", "Monthly statements created",
            user_id=session.username, action="monthly_statements",
            extra={"accounts": len(accounts)}
        )
        return len(accounts)

    # Helpers

    def _load(self, account_number: int) -> BankAccount:
        account = self.storage.find_one(account_number)
        if account is None:
            raise AccountNotFoundError(f"Account {account_number} not found")
        return account

    def _save(self, account: BankAccount) -> None:
        if not self.storage.update_one(account):
            raise AccountNotFoundError(f"Account {account.account_number} not found")

    def _check_access(self, session: Session, account_number: int) -> None:
        if not session.can_access(account_number):
            raise PermissionError(
                f"User {session.username} cannot access account {account_number}"
            )

    def _require_manager(self, session: Session, what: str) -> None:
        if not session.is_manager:
            raise PermissionError(f"Only managers can {what}")

    @staticmethod
    def _positive(amount: Amount) -> Decimal:
        amount = to_decimal(amount)
        if amount <= 0:
            raise ValueError("Amount must be positive")
        return amount


def create_service(config: Optional[AccountStoreConfig] = None) -> AccountService:
    """Set up logging and file storage from config and return a ready service"""
    config = config or get_config()
    setup_logging(config.log_level, log_format=config.log_format)
    storage = build_storage(config)
    return AccountService(storage, lock_path=config.lock_path)
