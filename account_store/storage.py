"""
Storage Backend Module

The persistence engine for accounts. Every operation reloads the full set of
records, and every write re-encodes and rewrites all of them:

    decrypt -> parse all -> (caller mutates) -> encode all -> stage -> seal

Nothing is cached between calls. Two processes writing without holding the
advisory lock can lose each other's changes (last writer wins).
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

from .accounts import BankAccount
from .cipher import EncryptionProvider, create_encryption_provider, decrypt_file, encrypt_file
from .config import AccountStoreConfig
from .logging_config import get_logger
from . import records


logger = get_logger("account_store.storage")

FIRST_ACCOUNT_NUMBER = 1000


class AccountStorage(ABC):
    """
    Abstract account storage.

    Subclasses only move plaintext in and out; encoding, decoding and the
    load/rewrite cycles live here so every backend behaves the same.
    """

    def __init__(self, first_account_number: int = FIRST_ACCOUNT_NUMBER):
        self.first_account_number = first_account_number

    @abstractmethod
    def read_plaintext(self) -> str:
        """Return the whole decrypted store"""
        pass

    @abstractmethod
    def write_plaintext(self, content: str) -> None:
        """Replace the whole store with content"""
        pass

    def load_all(self) -> List[BankAccount]:
        """Load every well-formed record, in file order"""
        return records.decode_all(self.read_plaintext())

    def find_one(self, account_number: int) -> Optional[BankAccount]:
        """Load the account with the given number, if any"""
        for account in self.load_all():
            if account.account_number == account_number:
                return account
        return None

    def count(self) -> int:
        return len(self.load_all())

    def append_one(self, account: BankAccount) -> None:
        """Append one record after the existing content"""
        line = records.encode(account)
        content = self.read_plaintext()
        if content and not content.endswith("\n"):
            content += "\n"
        self.write_plaintext(content + line)
        logger.debug(f"Appended account {account.account_number}")

    def rewrite_all(self, accounts: List[BankAccount]) -> None:
        """Replace the store with exactly these accounts, in order"""
        self.write_plaintext(records.encode_all(accounts))

    def remove_one(self, account_number: int) -> bool:
        """
        Remove the record with the given number.

        Returns:
            False (store untouched) if no record matched, True otherwise
        """
        accounts = self.load_all()
        remaining = [a for a in accounts if a.account_number != account_number]
        if len(remaining) == len(accounts):
            return False

        self.rewrite_all(remaining)
        logger.debug(f"Removed account {account_number}")
        return True

    def update_one(self, updated: BankAccount) -> bool:
        """
        Copy name and balance from updated onto the stored record with the same number.

        The stored type tag is kept; kind-specific fields are not stored.

        Returns:
            False if no record matched, True otherwise
        """
        records.validate_name(updated.name)
        accounts = self.load_all()
        for account in accounts:
            if account.account_number == updated.account_number:
                account.set_name(updated.name)
                account.set_balance(updated.balance)
                break
        else:
            return False

        self.rewrite_all(accounts)
        logger.debug(f"Updated account {updated.account_number}")
        return True

    def next_account_number(self) -> int:
        """
        Number for the next new account.

        Uses the last record in file order, not the largest number: records
        are appended in ascending order, so the last one is the newest.
        """
        accounts = self.load_all()
        if not accounts:
            return self.first_account_number
        return accounts[-1].account_number + 1


class EncryptedFileStorage(AccountStorage):
    """
    Account storage in one obfuscated flat file.

    Writes go through a plaintext staging file first; the store is then
    sealed by encrypting the staging file's content over the store path.
    """

    def __init__(
        self,
        store_path: Union[str, Path],
        staging_path: Union[str, Path],
        provider: EncryptionProvider,
        cleanup_staging: bool = False,
        first_account_number: int = FIRST_ACCOUNT_NUMBER
    ):
        super().__init__(first_account_number)
        self.store_path = Path(store_path)
        self.staging_path = Path(staging_path)
        self.provider = provider
        self.cleanup_staging = cleanup_staging

    def read_plaintext(self) -> str:
        return decrypt_file(self.store_path, self.provider)

    def write_plaintext(self, content: str) -> None:
        self._stage(content)
        encrypt_file(self.store_path, self.provider, self.staging_path)
        if self.cleanup_staging:
            self.staging_path.unlink(missing_ok=True)

    def _stage(self, content: str) -> None:
        try:
            self.staging_path.write_bytes(content.encode("utf-8"))
        except OSError as e:
            logger.error(f"Unable to write to {self.staging_path}: {e}")
            raise


class InMemoryAccountStorage(AccountStorage):
    """In-memory storage for testing; same record format, no files"""

    def __init__(self, content: str = "", first_account_number: int = FIRST_ACCOUNT_NUMBER):
        super().__init__(first_account_number)
        self._content = content

    def read_plaintext(self) -> str:
        return self._content

    def write_plaintext(self, content: str) -> None:
        self._content = content


def build_storage(config: AccountStoreConfig) -> EncryptedFileStorage:
    """Create the file storage described by config"""
    provider = create_encryption_provider(
        config.encryption_provider, config.encryption_passphrase
    )
    storage = EncryptedFileStorage(
        store_path=config.store_path,
        staging_path=config.staging_path,
        provider=provider,
        cleanup_staging=config.cleanup_staging,
        first_account_number=config.first_account_number,
    )
    logger.info(f"EncryptedFileStorage initialized with {type(provider).__name__} at {config.store_path}")
    return storage
