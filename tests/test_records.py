"""
Tests for the record codec
"""

import pytest
from decimal import Decimal

from account_store.accounts import (
    AccountKind, ServiceChargeChecking, NoServiceChargeChecking, HighInterestChecking,
    Savings, HighInterestSavings, CertificateOfDeposit, create_account
)
from account_store.records import encode, encode_all, decode, decode_all, resolve_kind


class TestEncode:
    """Test record encoding"""

    def test_format(self):
        account = Savings("Alice", 1000, Decimal("100"))
        assert encode(account) == "1000,Alice,Savings,100.00\n"

    def test_balance_rounded_to_two_places(self):
        account = Savings("Alice", 1000, Decimal("10.556"))
        assert encode(account).endswith(",10.56\n")

    def test_negative_balance(self):
        account = ServiceChargeChecking("Bob", 1001, Decimal("-5"))
        assert encode(account) == "1001,Bob,ServiceChargeChecking,-5.00\n"

    def test_name_with_comma_rejected(self):
        account = Savings("Smith, John", 1000, Decimal("1"))
        with pytest.raises(ValueError, match="commas"):
            encode(account)

    def test_encode_all_keeps_order(self):
        accounts = [Savings("A", 1001, Decimal("1")), Savings("B", 1000, Decimal("2"))]
        assert encode_all(accounts) == "1001,A,Savings,1.00\n1000,B,Savings,2.00\n"


class TestResolveKind:
    """Test type tag resolution"""

    def test_exact_tags(self):
        for kind in AccountKind:
            assert resolve_kind(kind.value) == kind

    def test_superstring_uses_priority_order(self):
        assert resolve_kind("LegacyServiceChargeCheckingV2") == AccountKind.SERVICE_CHARGE_CHECKING
        assert resolve_kind("OldSavingsPlan") == AccountKind.SAVINGS
        assert resolve_kind("CertificateOfDeposit12M") == AccountKind.CERTIFICATE_OF_DEPOSIT

    def test_unknown_tag_defaults(self):
        assert resolve_kind("Checking") == AccountKind.NO_SERVICE_CHARGE_CHECKING
        assert resolve_kind("") == AccountKind.NO_SERVICE_CHARGE_CHECKING


class TestDecode:
    """Test record decoding"""

    def test_round_trip_every_kind(self):
        for kind in AccountKind:
            original = create_account(kind, "Holder", 1234, Decimal("2500.75"))
            restored = decode(encode(original))

            assert type(restored) is type(original)
            assert restored.account_number == 1234
            assert restored.name == "Holder"
            assert restored.get_type() == original.get_type()
            assert restored.balance == Decimal("2500.75")

    def test_kind_parameters_reset_to_defaults(self):
        original = CertificateOfDeposit(
            "Ivy", 1000, Decimal("1000"), interest_rate=Decimal("0.10"), maturity_months=12
        )
        original.create_monthly_statement()

        restored = decode(encode(original))
        assert restored.interest_rate == Decimal("0.05")
        assert restored.maturity_months == 6
        assert restored.current_month == 0

    def test_variant_classes(self):
        assert isinstance(decode("1,A,HighInterestChecking,1.00"), HighInterestChecking)
        assert isinstance(decode("1,A,HighInterestSavings,1.00"), HighInterestSavings)
        assert isinstance(decode("1,A,NoServiceChargeChecking,1.00"), NoServiceChargeChecking)

    def test_balance_field_keeps_grouping_commas(self):
        account = decode("1000,Alice,Savings,1,234.50\n")
        assert account.balance == Decimal("1234.50")

    @pytest.mark.parametrize("line", [
        "",
        "1000,Alice,Savings",
        "abc,Alice,Savings,1.00",
        "1000,Alice,Savings,lots",
        "1000,Alice,Savings,NaN",
    ])
    def test_malformed_lines_skipped(self, line):
        assert decode(line) is None

    def test_decode_all_skips_bad_lines(self):
        content = (
            "1000,Alice,Savings,100.00\n"
            "garbage\n"
            "1001,Bob,CertificateOfDeposit,50.00\n"
        )
        accounts = decode_all(content)
        assert [a.account_number for a in accounts] == [1000, 1001]
        assert isinstance(accounts[1], CertificateOfDeposit)

    def test_decode_all_empty(self):
        assert decode_all("") == []
