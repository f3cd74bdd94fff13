"""
BOXOFFICE input validation and ledger guards.

Contracts never trust their arguments. Values are checked here before they
reach storage:

- addresses are lower-cased so checksummed input compares equal to stored keys
- event tags and token symbols are restricted to a small safe alphabet
- ledger quantities must fit in a uint256
- human amounts (``"33"``, ``"0.5"``) must be finite and non-negative

ERC-20 contracts run the supply check after every mint and transfer; ticket
NFTs run the token-id ordering check on every mint. The dev chain draws
snapshot ids from the counter here.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional


class ValidationError(Exception):
    """A single field failed validation."""

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")


class ValidationErrors(Exception):
    """Raised with every failure found for one value."""

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        super().__init__("Validation failed: " + "; ".join(str(e) for e in errors))


class InvariantViolation(Exception):
    pass


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    sanitized_value: Any = None

    @classmethod
    def ok(cls, value: Any = None) -> "ValidationResult":
        return cls(True, sanitized_value=value)

    @classmethod
    def fail(cls, field_name: str, message: str, value: Any = None) -> "ValidationResult":
        return cls(False, [ValidationError(field_name, message, value)])

    def raise_if_invalid(self) -> None:
        if not self.is_valid:
            raise ValidationErrors(self.errors)

    def unwrap(self) -> Any:
        """Sanitized value, or ``ValidationErrors`` if any check failed."""
        self.raise_if_invalid()
        return self.sanitized_value


class Validators:
    """Validators for the values contracts accept."""

    ADDRESS_PATTERN = re.compile(r"^0x[0-9a-f]{40}$")
    EVENT_TAG_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._:-]*$")
    SYMBOL_PATTERN = re.compile(r"^[a-z][a-z0-9]*$")

    MAX_STRING_LENGTH = 4096
    MAX_EVENT_TAG_LENGTH = 64
    MAX_SYMBOL_LENGTH = 11
    MAX_UINT256 = 2 ** 256 - 1

    @classmethod
    def validate_string(
        cls,
        value: Any,
        field_name: str,
        min_length: int = 1,
        max_length: Optional[int] = None,
        pattern: Optional[re.Pattern] = None,
    ) -> ValidationResult:
        """Strip surrounding whitespace and NUL bytes, then check length and pattern."""
        if not isinstance(value, str):
            return ValidationResult.fail(field_name, f"Expected string, got {type(value).__name__}", value)

        limit = max_length or cls.MAX_STRING_LENGTH
        cleaned = value.replace("\x00", "").strip()

        errors = []
        if len(cleaned) < min_length:
            errors.append(ValidationError(field_name, f"Too short (min {min_length} chars)", value))
        if len(cleaned) > limit:
            errors.append(ValidationError(field_name, f"Too long (max {limit} chars)", value))
        elif pattern is not None and not pattern.match(cleaned):
            errors.append(ValidationError(field_name, "Does not match required pattern", value))

        if errors:
            return ValidationResult(False, errors)
        return ValidationResult.ok(cleaned)

    @classmethod
    def validate_address(cls, value: Any, field_name: str = "address") -> ValidationResult:
        result = cls.validate_string(value, field_name, min_length=42, max_length=42)
        if not result.is_valid:
            return result
        address = result.sanitized_value.lower()
        if not cls.ADDRESS_PATTERN.match(address):
            return ValidationResult.fail(field_name, "Must be valid address (0x + 40 hex)", value)
        return ValidationResult.ok(address)

    @classmethod
    def validate_event_tag(cls, value: Any, field_name: str = "event_tag") -> ValidationResult:
        """Event tags such as ``2022-in-person``. Compared exactly: never trimmed or case-folded."""
        result = cls.validate_string(
            value, field_name,
            max_length=cls.MAX_EVENT_TAG_LENGTH,
            pattern=cls.EVENT_TAG_PATTERN,
        )
        if result.is_valid and result.sanitized_value != value:
            return ValidationResult.fail(field_name, "Whitespace or NUL bytes not allowed", value)
        return result

    @classmethod
    def validate_token_symbol(cls, value: Any, field_name: str = "token_symbol") -> ValidationResult:
        """Payment token symbols are stored lower-case."""
        if isinstance(value, str):
            value = value.strip().lower()
        return cls.validate_string(
            value, field_name,
            max_length=cls.MAX_SYMBOL_LENGTH,
            pattern=cls.SYMBOL_PATTERN,
        )

    @classmethod
    def validate_uint(
        cls,
        value: Any,
        field_name: str = "amount",
        max_value: Optional[int] = None,
    ) -> ValidationResult:
        ceiling = cls.MAX_UINT256 if max_value is None else max_value

        # bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, int):
            return ValidationResult.fail(field_name, f"Expected integer, got {type(value).__name__}", value)
        if value < 0:
            return ValidationResult.fail(field_name, "Must be non-negative", value)
        if value > ceiling:
            return ValidationResult.fail(field_name, f"Exceeds maximum ({ceiling})", value)
        return ValidationResult.ok(value)

    @classmethod
    def validate_bool(cls, value: Any, field_name: str = "flag") -> ValidationResult:
        """Only real booleans; strings such as ``"false"`` are rejected, not read by truthiness."""
        if not isinstance(value, bool):
            return ValidationResult.fail(field_name, f"Expected bool, got {type(value).__name__}", value)
        return ValidationResult.ok(value)

    @classmethod
    def validate_decimal(cls, value: Any, field_name: str = "amount") -> ValidationResult:
        if isinstance(value, bool) or not isinstance(value, (Decimal, str, int, float)):
            return ValidationResult.fail(field_name, f"Cannot convert {type(value).__name__} to Decimal", value)
        try:
            amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        except InvalidOperation:
            return ValidationResult.fail(field_name, "Invalid decimal value", value)

        if not amount.is_finite():
            return ValidationResult.fail(field_name, "Must be a finite number", value)
        if amount < 0:
            return ValidationResult.fail(field_name, "Must be non-negative", value)
        return ValidationResult.ok(amount)


class AtomicCounter:
    """Lock-guarded integer, used for ids handed out across threads."""

    def __init__(self, initial: int = 0):
        self._value = initial
        self._lock = threading.Lock()

    def increment(self, delta: int = 1) -> int:
        with self._lock:
            self._value += delta
            return self._value

    def get(self) -> int:
        with self._lock:
            return self._value


class InvariantChecker:
    """Post-condition checks run by the token contracts."""

    @staticmethod
    def check_monotonic_increase(field_name: str, old_value: int, new_value: int) -> None:
        if new_value < old_value:
            raise InvariantViolation(
                f"{field_name} must be monotonically increasing: "
                f"cannot go from {old_value} to {new_value}"
            )

    @staticmethod
    def check_supply_conserved(
        total_supply: int,
        balances: Iterable[int],
        field_name: str = "total_supply",
    ) -> None:
        held = sum(balances)
        if held != total_supply:
            raise InvariantViolation(
                f"{field_name} mismatch: ledger holds {held}, supply is {total_supply}"
            )
