"""
Input validation for the mint pipeline.

All request inputs are untrusted until validated. Identities are normalized
to lowercase so that checksum-cased and lowercase spellings of the same
address map to one wallet record.

Validators never raise; they return a ValidationResult carrying either the
sanitized value or the errors. Callers that want an exception use
`raise_if_invalid()`.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union


class ValidationError(ValueError):
    """A single input failed validation."""

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")


class ValidationErrors(ValueError):
    """Several inputs failed validation at once."""

    def __init__(self, errors: List[ValidationError]):
        self.errors = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors))


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    sanitized_value: Any = None

    def raise_if_invalid(self) -> None:
        """Raise the single error, or ValidationErrors when there are several."""
        if self.is_valid:
            return
        if len(self.errors) == 1:
            raise self.errors[0]
        raise ValidationErrors(self.errors)

    @classmethod
    def success(cls, sanitized_value: Any = None) -> "ValidationResult":
        return cls(is_valid=True, sanitized_value=sanitized_value)

    @classmethod
    def failure(cls, errors: List[ValidationError]) -> "ValidationResult":
        return cls(is_valid=False, errors=errors)

    @classmethod
    def reject(cls, field_name: str, message: str, value: Any) -> "ValidationResult":
        return cls.failure([ValidationError(field_name, message, value)])


class Validators:
    """Validators for the value types a mint request carries."""

    ADDRESS_PATTERN = re.compile(r"^0x[0-9a-f]{40}$")
    HASH32_PATTERN = re.compile(r"^[0-9a-f]{64}$")

    ZERO_ADDRESS = "0x" + "0" * 40

    @classmethod
    def validate_address(cls, value: Any, field_name: str = "address") -> ValidationResult:
        """0x followed by 40 hex digits, any case; sanitized to lowercase."""
        if not isinstance(value, str):
            return ValidationResult.reject(field_name, f"Expected string, got {type(value).__name__}", value)

        canonical = value.strip().lower()
        if not cls.ADDRESS_PATTERN.match(canonical):
            return ValidationResult.reject(field_name, "Must be valid address (0x + 40 hex)", value)
        return ValidationResult.success(canonical)

    @classmethod
    def validate_hash32(cls, value: Any, field_name: str = "hash") -> ValidationResult:
        """32 raw bytes, or 64 hex digits with an optional 0x; sanitized to bytes."""
        if isinstance(value, (bytes, bytearray)):
            if len(value) != 32:
                return ValidationResult.reject(field_name, f"Must be 32 bytes, got {len(value)}", value)
            return ValidationResult.success(bytes(value))

        if not isinstance(value, str):
            return ValidationResult.reject(
                field_name, f"Expected hex string or bytes, got {type(value).__name__}", value
            )

        digits = value.strip().lower()
        if digits.startswith("0x"):
            digits = digits[2:]
        if not cls.HASH32_PATTERN.match(digits):
            return ValidationResult.reject(field_name, "Must be 64 hex characters", value)
        return ValidationResult.success(bytes.fromhex(digits))

    @classmethod
    def validate_uint(
        cls,
        value: Any,
        field_name: str,
        min_value: int = 0,
        max_value: Optional[int] = None,
    ) -> ValidationResult:
        """Unsigned integer amount or count.

        Decimal strings are accepted so that wei-sized values survive YAML
        and JSON round trips. Booleans are rejected even though they are ints.
        """
        if isinstance(value, bool):
            return ValidationResult.reject(field_name, "Expected integer, got bool", value)

        if isinstance(value, str):
            text = value.strip()
            if not (text.isascii() and text.isdigit()):
                return ValidationResult.reject(field_name, "Invalid integer string", value)
            number = int(text)
        elif isinstance(value, int):
            number = value
        else:
            return ValidationResult.reject(field_name, f"Expected integer, got {type(value).__name__}", value)

        errors = []
        if number < min_value:
            errors.append(ValidationError(field_name, f"Below minimum ({min_value})", value))
        if max_value is not None and number > max_value:
            errors.append(ValidationError(field_name, f"Exceeds maximum ({max_value})", value))
        if errors:
            return ValidationResult.failure(errors)
        return ValidationResult.success(number)


def normalize_identity(value: Any, field_name: str = "identity") -> str:
    """Return the canonical lowercase form of an address or raise ValidationError."""
    result = Validators.validate_address(value, field_name)
    result.raise_if_invalid()
    return result.sanitized_value


def to_hash32(value: Union[str, bytes], field_name: str = "hash") -> bytes:
    """Decode a 32-byte hash or raise ValidationError."""
    result = Validators.validate_hash32(value, field_name)
    result.raise_if_invalid()
    return result.sanitized_value
