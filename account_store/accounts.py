"""
Account Model Module

Defines the closed set of account kinds kept in the account store. Every kind
shares name, account number and balance, and differs in how withdrawals and
monthly processing affect the balance. Business-rule rejections leave the
balance untouched and log a notice instead of raising.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, Optional, Type, Union

from .logging_config import get_logger


logger = get_logger("account_store.accounts")

Amount = Union[Decimal, int, float, str]


def to_decimal(value: Amount) -> Decimal:
    """Convert an amount to Decimal (floats go through str to drop binary noise)"""
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Invalid amount: {value!r}") from e
    # The store cannot hold Infinity or NaN balances
    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return result


class AccountKind(Enum):
    """Account kinds; the value is the type tag written to the store"""
    SERVICE_CHARGE_CHECKING = "ServiceChargeChecking"
    NO_SERVICE_CHARGE_CHECKING = "NoServiceChargeChecking"
    SAVINGS = "Savings"
    HIGH_INTEREST_CHECKING = "HighInterestChecking"
    HIGH_INTEREST_SAVINGS = "HighInterestSavings"
    CERTIFICATE_OF_DEPOSIT = "CertificateOfDeposit"

    @property
    def tag(self) -> str:
        return self.value

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    AccountKind.SERVICE_CHARGE_CHECKING: "Service Charge Checking",
    AccountKind.NO_SERVICE_CHARGE_CHECKING: "No Service Charge Checking",
    AccountKind.SAVINGS: "Savings",
    AccountKind.HIGH_INTEREST_CHECKING: "High Interest Checking",
    AccountKind.HIGH_INTEREST_SAVINGS: "High Interest Savings",
    AccountKind.CERTIFICATE_OF_DEPOSIT: "Certificate of Deposit",
}


class BankAccount:
    """
    Base account shared by every kind.

    The account number is fixed at construction. The balance is a Decimal and
    may be driven negative through set_balance, but never through a
    withdrawal that a kind's rules reject.
    """

    kind: AccountKind

    def __init__(self, name: str, account_number: int, balance: Amount = Decimal("0")):
        self.name = name
        self._account_number = int(account_number)
        self.balance = to_decimal(balance)
        self.last_notice: Optional[str] = None

    @property
    def account_number(self) -> int:
        return self._account_number

    def get_type(self) -> str:
        """Type tag used by the record codec"""
        return self.kind.value

    def set_name(self, name: str) -> None:
        self.name = name

    def set_balance(self, balance: Amount) -> None:
        self.balance = to_decimal(balance)

    def deposit(self, amount: Amount) -> None:
        """Add amount to the balance; callers validate the sign"""
        self.balance = self.balance + to_decimal(amount)

    def withdraw(self, amount: Amount) -> bool:
        """Debit the balance. Returns False when a kind's rules reject it."""
        self.balance = self.balance - to_decimal(amount)
        return True

    def create_monthly_statement(self) -> None:
        """Apply one month of fees or interest"""
        raise NotImplementedError

    def summary(self) -> str:
        """One printable line describing the account"""
        return (
            f"{self.kind.display_name}: {self.name}\t ACCT# {self.account_number}"
            f"\tBalance: ${self.balance:.2f}"
        )

    def _reject(self, notice: str) -> bool:
        self.last_notice = notice
        logger.warning(f"Account {self.account_number}: {notice}")
        return False

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, "
            f"account_number={self.account_number}, balance={self.balance:.2f})"
        )


class CheckingAccount(BankAccount):
    """Checking accounts can also write checks"""

    def write_check(self, amount: Amount) -> bool:
        raise NotImplementedError


class ServiceChargeChecking(CheckingAccount):
    """
    Checking account with a monthly service charge.

    Withdrawals are unrestricted. Each check beyond the monthly quota also
    costs the excess-check fee.
    """

    kind = AccountKind.SERVICE_CHARGE_CHECKING

    ACCOUNT_SERVICE_CHARGE = Decimal("10.00")
    MAXIMUM_NUM_OF_CHECKS = 5
    SERVICE_CHARGE_EXCESS_NUM_OF_CHECKS = Decimal("5.00")

    def __init__(
        self,
        name: str,
        account_number: int,
        balance: Amount = Decimal("0"),
        monthly_fee: Optional[Amount] = None,
        excess_check_fee: Optional[Amount] = None
    ):
        super().__init__(name, account_number, balance)
        self.monthly_fee = (
            to_decimal(monthly_fee) if monthly_fee is not None else self.ACCOUNT_SERVICE_CHARGE
        )
        self.excess_check_fee = (
            to_decimal(excess_check_fee) if excess_check_fee is not None
            else self.SERVICE_CHARGE_EXCESS_NUM_OF_CHECKS
        )
        self.checks_written = 0

    def post_service_charge(self) -> None:
        self.balance = self.balance - self.monthly_fee

    def write_check(self, amount: Amount) -> bool:
        amount = to_decimal(amount)
        if self.checks_written < self.MAXIMUM_NUM_OF_CHECKS:
            self.balance = self.balance - amount
        else:
            self.balance = self.balance - amount - self.excess_check_fee
        self.checks_written += 1
        return True

    def create_monthly_statement(self) -> None:
        self.post_service_charge()


class NoServiceChargeChecking(CheckingAccount):
    """Fee-free checking account that must stay above a minimum balance"""

    kind = AccountKind.NO_SERVICE_CHARGE_CHECKING

    MIN_BALANCE = Decimal("1000.00")
    INTEREST_RATE = Decimal("0.02")

    def __init__(
        self,
        name: str,
        account_number: int,
        balance: Amount = Decimal("0"),
        minimum_balance: Optional[Amount] = None,
        interest_rate: Optional[Amount] = None
    ):
        super().__init__(name, account_number, balance)
        self.minimum_balance = (
            to_decimal(minimum_balance) if minimum_balance is not None else self.MIN_BALANCE
        )
        self.interest_rate = (
            to_decimal(interest_rate) if interest_rate is not None else self.INTEREST_RATE
        )

    def verify_minimum_balance(self, amount: Amount) -> bool:
        return self.balance - to_decimal(amount) >= self.minimum_balance

    def withdraw(self, amount: Amount) -> bool:
        if not self.verify_minimum_balance(amount):
            return self._reject(
                "Withdrawal not allowed. Balance would fall below minimum balance."
            )
        return super().withdraw(amount)

    def write_check(self, amount: Amount) -> bool:
        if not self.verify_minimum_balance(amount):
            return self._reject(
                "Check not written. Balance would fall below minimum balance."
            )
        self.balance = self.balance - to_decimal(amount)
        return True

    def create_monthly_statement(self) -> None:
        # No fees; the minimum balance is enforced per transaction
        pass


class HighInterestChecking(NoServiceChargeChecking):
    """No-charge checking with a higher minimum balance that earns interest"""

    kind = AccountKind.HIGH_INTEREST_CHECKING

    MIN_BALANCE = Decimal("5000.00")
    INTEREST_RATE = Decimal("0.05")

    def post_interest(self) -> None:
        self.balance = self.balance + self.balance * self.interest_rate

    def create_monthly_statement(self) -> None:
        self.post_interest()


class Savings(BankAccount):
    """Savings account; withdrawals are unrestricted, interest posts monthly"""

    kind = AccountKind.SAVINGS

    INTEREST_RATE = Decimal("0.00")

    def __init__(
        self,
        name: str,
        account_number: int,
        balance: Amount = Decimal("0"),
        interest_rate: Optional[Amount] = None
    ):
        super().__init__(name, account_number, balance)
        self.interest_rate = (
            to_decimal(interest_rate) if interest_rate is not None else self.INTEREST_RATE
        )

    def post_interest(self) -> None:
        self.balance = self.balance + self.balance * self.interest_rate

    def create_monthly_statement(self) -> None:
        self.post_interest()


class HighInterestSavings(Savings):
    """Savings account with a minimum balance and a better rate"""

    kind = AccountKind.HIGH_INTEREST_SAVINGS

    MINIMUM_BALANCE = Decimal("2500.00")
    INTEREST_RATE = Decimal("0.005")

    def __init__(
        self,
        name: str,
        account_number: int,
        balance: Amount = Decimal("0"),
        interest_rate: Optional[Amount] = None,
        minimum_balance: Optional[Amount] = None
    ):
        super().__init__(name, account_number, balance, interest_rate)
        self.minimum_balance = (
            to_decimal(minimum_balance) if minimum_balance is not None else self.MINIMUM_BALANCE
        )

    def verify_minimum_balance(self, amount: Amount) -> bool:
        return self.balance - to_decimal(amount) >= self.minimum_balance

    def withdraw(self, amount: Amount) -> bool:
        if not self.verify_minimum_balance(amount):
            return self._reject(
                "Withdrawal not allowed. Balance would fall below minimum balance."
            )
        return super().withdraw(amount)


class CertificateOfDeposit(BankAccount):
    """
    Certificate of deposit.

    Funds are locked until the elapsed-month counter passes the maturity
    term. Only the full, parameterless withdrawal is honoured; a withdrawal
    with an amount does nothing.
    """

    kind = AccountKind.CERTIFICATE_OF_DEPOSIT

    INTEREST_RATE = Decimal("0.05")
    NUMBER_OF_MATURITY_MONTHS = 6

    def __init__(
        self,
        name: str,
        account_number: int,
        balance: Amount = Decimal("0"),
        interest_rate: Optional[Amount] = None,
        maturity_months: Optional[int] = None
    ):
        super().__init__(name, account_number, balance)
        self.interest_rate = (
            to_decimal(interest_rate) if interest_rate is not None else self.INTEREST_RATE
        )
        self.maturity_months = (
            int(maturity_months) if maturity_months is not None
            else self.NUMBER_OF_MATURITY_MONTHS
        )
        self.current_month = 0

    @property
    def is_mature(self) -> bool:
        # Mature once the full term of monthly statements has run: a six-month
        # CD can be emptied right after its sixth statement, not its seventh
        return self.current_month >= self.maturity_months

    def post_interest(self) -> None:
        self.balance = self.balance + self.balance * self.interest_rate

    def withdraw(self, amount: Optional[Amount] = None) -> bool:
        if amount is not None:
            return False
        if not self.is_mature:
            return self._reject("CD has not been matured. No withdrawal.")
        self.balance = Decimal("0")
        return True

    def create_monthly_statement(self) -> None:
        self.post_interest()
        self.current_month += 1


ACCOUNT_CLASSES: Dict[AccountKind, Type[BankAccount]] = {
    AccountKind.SERVICE_CHARGE_CHECKING: ServiceChargeChecking,
    AccountKind.NO_SERVICE_CHARGE_CHECKING: NoServiceChargeChecking,
    AccountKind.SAVINGS: Savings,
    AccountKind.HIGH_INTEREST_CHECKING: HighInterestChecking,
    AccountKind.HIGH_INTEREST_SAVINGS: HighInterestSavings,
    AccountKind.CERTIFICATE_OF_DEPOSIT: CertificateOfDeposit,
}

_missing = set(AccountKind) - set(ACCOUNT_CLASSES)
if _missing:
    raise RuntimeError(f"No account class registered for {sorted(k.value for k in _missing)}")


def create_account(
    kind: AccountKind,
    name: str,
    account_number: int,
    balance: Amount = Decimal("0"),
    **params
) -> BankAccount:
    """
    Build an account of the given kind.

    Args:
        kind: Account kind
        name: Account holder name
        account_number: Account number
        balance: Opening balance
        **params: Kind-specific parameters (interest_rate, minimum_balance,
            monthly_fee, excess_check_fee, maturity_months)

    Returns:
        The new account
    """
    return ACCOUNT_CLASSES[kind](name, account_number, balance, **params)
