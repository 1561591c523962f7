"""
Tests for the persistence engine
"""

import pytest
from decimal import Decimal

from account_store.accounts import (
    Savings, NoServiceChargeChecking, CertificateOfDeposit, ServiceChargeChecking
)
from account_store.cipher import XorStreamProvider, NoOpEncryptionProvider, decrypt_file
from account_store.config import AccountStoreConfig
from account_store.storage import (
    EncryptedFileStorage, InMemoryAccountStorage, build_storage
)


PASSPHRASE = "your_secret_key_here"


@pytest.fixture
def provider():
    return XorStreamProvider(PASSPHRASE)


@pytest.fixture
def storage(tmp_path, provider):
    return EncryptedFileStorage(
        store_path=tmp_path / "accounts.txt",
        staging_path=tmp_path / "temp_accounts.txt",
        provider=provider,
    )


def seed(storage, content):
    """Write a plaintext store through the normal stage-then-seal path"""
    storage.write_plaintext(content)


class TestEncryptedFileStorage:
    """Test load/append/remove/update against the obfuscated file"""

    def test_missing_store_loads_empty(self, storage):
        assert storage.load_all() == []
        assert storage.count() == 0

    def test_store_is_obfuscated_at_rest(self, storage, provider):
        storage.append_one(Savings("Alice", 1000, Decimal("100")))

        raw = storage.store_path.read_bytes()
        assert b"Alice" not in raw
        assert decrypt_file(storage.store_path, provider) == "1000,Alice,Savings,100.00\n"

    def test_append_goes_through_staging(self, storage):
        storage.append_one(Savings("Alice", 1000, Decimal("100")))
        storage.append_one(CertificateOfDeposit("Bob", 1001, Decimal("50")))

        assert storage.staging_path.read_text() == (
            "1000,Alice,Savings,100.00\n"
            "1001,Bob,CertificateOfDeposit,50.00\n"
        )
        accounts = storage.load_all()
        assert [a.account_number for a in accounts] == [1000, 1001]
        assert isinstance(accounts[1], CertificateOfDeposit)

    def test_cleanup_staging(self, tmp_path, provider):
        storage = EncryptedFileStorage(
            tmp_path / "accounts.txt", tmp_path / "temp_accounts.txt", provider,
            cleanup_staging=True
        )
        storage.append_one(Savings("Alice", 1000, Decimal("100")))
        assert not storage.staging_path.exists()
        assert storage.count() == 1

    def test_unwritable_staging_is_hard_failure(self, tmp_path, provider):
        storage = EncryptedFileStorage(
            tmp_path / "accounts.txt", tmp_path / "missing_dir" / "temp.txt", provider
        )
        with pytest.raises(OSError):
            storage.append_one(Savings("Alice", 1000, Decimal("100")))
        assert not storage.store_path.exists()

    def test_deposit_then_update_scenario(self, storage):
        seed(storage, "1000,Alice,Savings,100.00\n")

        account = storage.load_all()[0]
        account.deposit(Decimal("50"))
        assert storage.update_one(account)

        accounts = storage.load_all()
        assert len(accounts) == 1
        assert storage.read_plaintext() == "1000,Alice,Savings,150.00\n"

    def test_update_only_copies_name_and_balance(self, storage):
        seed(storage, "1000,Alice,Savings,100.00\n")

        # Same number, different kind: the stored kind stays
        replacement = ServiceChargeChecking("Alice B", 1000, Decimal("75"))
        assert storage.update_one(replacement)

        assert storage.read_plaintext() == "1000,Alice B,Savings,75.00\n"

    def test_update_missing_returns_false(self, storage):
        seed(storage, "1000,Alice,Savings,100.00\n")
        assert not storage.update_one(Savings("Nobody", 4242, Decimal("1")))
        assert storage.read_plaintext() == "1000,Alice,Savings,100.00\n"

    def test_remove(self, storage):
        seed(storage, (
            "1000,Alice,Savings,100.00\n"
            "1001,Bob,Savings,20.00\n"
            "1002,Carol,Savings,30.00\n"
        ))
        assert storage.remove_one(1001)
        assert [a.account_number for a in storage.load_all()] == [1000, 1002]

    def test_remove_missing_leaves_store_unchanged(self, storage):
        seed(storage, "1000,Alice,Savings,100.00\n1001,Bob,Savings,20.00\n")
        before = storage.store_path.read_bytes()

        assert not storage.remove_one(9999)

        assert storage.store_path.read_bytes() == before
        assert [a.account_number for a in storage.load_all()] == [1000, 1001]

    def test_malformed_lines_dropped_on_rewrite(self, storage):
        seed(storage, "1000,Alice,Savings,100.00\nbroken line\n1001,Bob,Savings,5.00\n")
        assert storage.count() == 2

        assert storage.remove_one(1000)
        assert storage.read_plaintext() == "1001,Bob,Savings,5.00\n"

    def test_find_one(self, storage):
        seed(storage, "1000,Alice,Savings,100.00\n")
        assert storage.find_one(1000).name == "Alice"
        assert storage.find_one(1001) is None

    def test_append_rejects_comma_in_name(self, storage):
        with pytest.raises(ValueError):
            storage.append_one(Savings("Doe, Jane", 1000, Decimal("1")))
        assert not storage.store_path.exists()


class TestNextAccountNumber:
    """Test account number allocation"""

    def test_empty_store_starts_at_1000(self, storage):
        assert storage.next_account_number() == 1000

    def test_increments_after_append(self, storage):
        storage.append_one(Savings("Alice", storage.next_account_number(), Decimal("1")))
        assert storage.next_account_number() == 1001

    def test_uses_last_record_not_maximum(self, storage):
        seed(storage, "1005,Alice,Savings,1.00\n1002,Bob,Savings,1.00\n")
        assert storage.next_account_number() == 1003

    def test_numbers_not_reused_after_deleting_earlier_record(self, storage):
        seed(storage, "1000,Alice,Savings,1.00\n1001,Bob,Savings,1.00\n")
        storage.remove_one(1000)
        assert storage.next_account_number() == 1002


class TestInMemoryAccountStorage:
    """Test the in-memory backend used by collaborators' tests"""

    def test_same_semantics(self):
        storage = InMemoryAccountStorage()
        assert storage.next_account_number() == 1000

        storage.append_one(NoServiceChargeChecking("Eve", 1000, Decimal("1500")))
        storage.append_one(Savings("Gus", 1001, Decimal("10")))
        assert storage.next_account_number() == 1002

        account = storage.find_one(1000)
        assert isinstance(account, NoServiceChargeChecking)
        account.withdraw(Decimal("500"))
        assert storage.update_one(account)
        assert storage.find_one(1000).balance == Decimal("1000.00")

        assert storage.remove_one(1001)
        assert not storage.remove_one(1001)
        assert storage.read_plaintext() == "1000,Eve,NoServiceChargeChecking,1000.00\n"

    def test_append_to_content_without_trailing_newline(self):
        storage = InMemoryAccountStorage("1000,Alice,Savings,1.00")
        storage.append_one(Savings("Bob", 1001, Decimal("2")))
        assert storage.count() == 2

    def test_custom_first_number(self):
        storage = InMemoryAccountStorage(first_account_number=5000)
        assert storage.next_account_number() == 5000


class TestBuildStorage:
    """Test wiring storage from configuration"""

    def test_build_from_config(self, tmp_path):
        config = AccountStoreConfig(
            store_path=tmp_path / "a.txt",
            staging_path=tmp_path / "a.tmp",
            encryption_provider="xor",
            encryption_passphrase="pw",
            first_account_number=2000,
        )
        storage = build_storage(config)

        assert isinstance(storage.provider, XorStreamProvider)
        assert storage.store_path == tmp_path / "a.txt"
        assert storage.next_account_number() == 2000

    def test_noop_provider_writes_plaintext(self, tmp_path):
        config = AccountStoreConfig(
            store_path=tmp_path / "a.txt",
            staging_path=tmp_path / "a.tmp",
            encryption_provider="noop",
        )
        storage = build_storage(config)
        storage.append_one(Savings("Alice", 1000, Decimal("100")))

        assert isinstance(storage.provider, NoOpEncryptionProvider)
        assert storage.store_path.read_text() == "1000,Alice,Savings,100.00\n"
