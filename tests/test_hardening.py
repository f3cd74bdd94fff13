"""Input validation, thread-safe counters and ledger invariants."""

import threading

import pytest

from boxoffice.hardening import (
    AtomicCounter,
    InvariantChecker,
    InvariantViolation,
    ValidationErrors,
    Validators,
)


class TestValidators:

    def test_string_sanitized(self):
        result = Validators.validate_string("  hello\x00 ", "greeting")
        assert result.is_valid
        assert result.sanitized_value == "hello"

    def test_string_wrong_type(self):
        result = Validators.validate_string(42, "greeting")
        assert not result.is_valid
        assert "Expected string" in result.errors[0].message

    def test_address_lowercased(self):
        result = Validators.validate_address("0xABCDEF0123456789abcdef0123456789ABCDEF01")
        assert result.unwrap() == "0xabcdef0123456789abcdef0123456789abcdef01"

    @pytest.mark.parametrize("tag", ["2022-in-person", "conf.2023:day1", "x"])
    def test_event_tag_valid(self, tag):
        assert Validators.validate_event_tag(tag).is_valid

    @pytest.mark.parametrize("tag", ["", "-leading-dash", "has space", "x" * 65, " padded", "padded\t", "nul\x00"])
    def test_event_tag_invalid(self, tag):
        assert not Validators.validate_event_tag(tag).is_valid

    def test_token_symbol_lowercased(self):
        assert Validators.validate_token_symbol(" DAI ").unwrap() == "dai"
        assert not Validators.validate_token_symbol("d@i").is_valid

    @pytest.mark.parametrize("value", [True, -1, 2 ** 256, "5", 1.0])
    def test_uint_invalid(self, value):
        with pytest.raises(ValidationErrors):
            Validators.validate_uint(value).unwrap()

    def test_uint_bounds(self):
        assert Validators.validate_uint(0).unwrap() == 0
        assert Validators.validate_uint(Validators.MAX_UINT256).unwrap() == Validators.MAX_UINT256
        assert not Validators.validate_uint(11, max_value=10).is_valid

    def test_decimal(self):
        assert str(Validators.validate_decimal("0.5").unwrap()) == "0.5"
        assert not Validators.validate_decimal("inf").is_valid


class TestAtomicCounter:

    def test_concurrent_increments(self):
        counter = AtomicCounter()

        def bump():
            for _ in range(1000):
                counter.increment()

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert counter.get() == 4000
        assert counter.increment(3) == 4003


class TestInvariantChecker:

    def test_monotonic(self):
        InvariantChecker.check_monotonic_increase("token_ids", 1, 2)
        with pytest.raises(InvariantViolation):
            InvariantChecker.check_monotonic_increase("token_ids", 2, 1)

    def test_supply_conserved(self):
        InvariantChecker.check_supply_conserved(10, [4, 6])
        with pytest.raises(InvariantViolation, match="ledger holds 9"):
            InvariantChecker.check_supply_conserved(10, [4, 5])


def test_errors_collected_in_message():
    result = Validators.validate_string("", "event_tag", min_length=1)
    with pytest.raises(ValidationErrors, match="event_tag: Too short"):
        result.unwrap()
