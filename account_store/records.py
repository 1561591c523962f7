"""
Record Codec Module

Converts accounts to and from the one-line record format of the store:

    accountNumber,name,typeTag,balance

Only these four fields are stored. Kind-specific parameters (interest rate,
minimum balance, maturity term, ...) are not part of the record and come back
as the kind's defaults on every load.
"""

from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from .accounts import AccountKind, BankAccount, ACCOUNT_CLASSES
from .logging_config import get_logger


logger = get_logger("account_store.records")

FIELD_SEPARATOR = ","

# Substring match order for tags that are not an exact kind tag
TAG_PRIORITY = (
    AccountKind.SERVICE_CHARGE_CHECKING,
    AccountKind.NO_SERVICE_CHARGE_CHECKING,
    AccountKind.SAVINGS,
    AccountKind.HIGH_INTEREST_CHECKING,
    AccountKind.HIGH_INTEREST_SAVINGS,
    AccountKind.CERTIFICATE_OF_DEPOSIT,
)

DEFAULT_KIND = AccountKind.NO_SERVICE_CHARGE_CHECKING


def validate_name(name: str) -> None:
    """Names are stored unescaped, so they may not contain the separator or a newline"""
    if FIELD_SEPARATOR in name or "\n" in name or "\r" in name:
        raise ValueError(f"Account name may not contain commas or line breaks: {name!r}")


def encode(account: BankAccount) -> str:
    """Render one account as a store line (with trailing newline)"""
    validate_name(account.name)
    return (
        f"{account.account_number}{FIELD_SEPARATOR}{account.name}{FIELD_SEPARATOR}"
        f"{account.get_type()}{FIELD_SEPARATOR}{account.balance:.2f}\n"
    )


def encode_all(accounts: Iterable[BankAccount]) -> str:
    return "".join(encode(account) for account in accounts)


def resolve_kind(tag: str) -> AccountKind:
    """
    Pick the account kind for a stored type tag.

    An exact tag wins. Otherwise the first kind (in TAG_PRIORITY order) whose
    tag occurs inside the stored tag is used, falling back to
    NoServiceChargeChecking.
    """
    tag = tag.strip()
    for kind in AccountKind:
        if kind.value == tag:
            return kind
    for kind in TAG_PRIORITY:
        if kind.value in tag:
            return kind
    return DEFAULT_KIND


def decode(line: str) -> Optional[BankAccount]:
    """
    Parse one store line.

    Returns None for malformed lines (fewer than four fields, non-numeric
    account number or balance). The balance field is everything after the
    third separator; grouping commas inside it are ignored.
    """
    line = line.rstrip("\r\n")
    fields = line.split(FIELD_SEPARATOR, 3)
    if len(fields) != 4:
        logger.debug(f"Skipping malformed record: {line!r}")
        return None

    number_field, name, tag, balance_field = fields
    try:
        account_number = int(number_field)
        balance = Decimal(balance_field.strip().replace(FIELD_SEPARATOR, ""))
    except (ValueError, InvalidOperation):
        logger.debug(f"Skipping record with bad numeric field: {line!r}")
        return None

    if not balance.is_finite():
        logger.debug(f"Skipping record with non-finite balance: {line!r}")
        return None

    kind = resolve_kind(tag)
    return ACCOUNT_CLASSES[kind](name, account_number, balance)


def decode_all(content: str) -> List[BankAccount]:
    """Parse every well-formed line of a decrypted store, in file order"""
    accounts = []
    for line in content.split("\n"):
        account = decode(line)
        if account is not None:
            accounts.append(account)
    return accounts
