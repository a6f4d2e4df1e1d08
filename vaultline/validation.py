"""Validation of configuration snapshots against declarative rules.

Every rule is evaluated on every run so that all violations are reported
together. Validation never raises for a bad predicate: an exception from
a predicate counts as a failed rule.

Example:
    rules = [
        ValidationRule("DATABASE_URL", required=True, predicate=is_url("postgres")),
        ValidationRule("API_KEY", predicate=min_length(32)),
    ]
    result = validate(snapshot, rules)
    result.raise_for_errors()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from urllib.parse import urlparse

from vaultline.models import ConfigSnapshot
from vaultline.sources.errors import ConfigValidationError

logger = logging.getLogger(__name__)

Predicate = Callable[[str], bool]


@dataclass(frozen=True)
class ValidationRule:
    """Declarative constraint on one configuration key.

    Attributes:
        key: Configuration key the rule applies to
        required: Key must be present and non-empty
        predicate: Check applied to the value when the key is present
        error_message: Message used when the predicate fails
    """

    key: str
    required: bool = False
    predicate: Predicate | None = None
    error_message: str | None = None

    def check(self, values: Mapping[str, str]) -> list[str]:
        """Return the violation messages for this rule (empty if satisfied)."""
        value = values.get(self.key)

        if value is None or value == "":
            if self.required:
                return [f"Required configuration variable '{self.key}' is missing"]
            if value is None:
                return []

        if self.predicate is None:
            return []

        try:
            passed = bool(self.predicate(value))
        except Exception as e:
            logger.debug("Predicate for %s raised %s", self.key, type(e).__name__)
            passed = False

        if passed:
            return []
        return [self.error_message or f"Configuration variable '{self.key}' failed validation"]


@dataclass
class ValidationResult:
    """Outcome of validating a snapshot.

    Attributes:
        valid: True if no rule was violated
        errors: Violation messages in rule order
    """

    valid: bool = True
    errors: list[str] = field(default_factory=list)

    def raise_for_errors(self) -> None:
        """Raise ConfigValidationError listing every violation, if any."""
        if not self.valid:
            raise ConfigValidationError(self.errors)


def validate(
    snapshot: ConfigSnapshot | Mapping[str, str],
    rules: Iterable[ValidationRule],
) -> ValidationResult:
    """Evaluate all rules against a snapshot.

    Args:
        snapshot: Snapshot or plain mapping of values
        rules: Rules to evaluate, in reporting order

    Returns:
        ValidationResult with every violation
    """
    values = snapshot.values if isinstance(snapshot, ConfigSnapshot) else snapshot
    errors: list[str] = []
    for rule in rules:
        errors.extend(rule.check(values))

    if errors:
        logger.debug("Validation found %d violation(s)", len(errors))
    return ValidationResult(valid=not errors, errors=errors)


def prefixed_with(prefix: str) -> Predicate:
    """Predicate: value starts with the given prefix."""
    return lambda value: value.startswith(prefix)


def min_length(length: int) -> Predicate:
    """Predicate: value has at least ``length`` characters."""
    return lambda value: len(value) >= length


def is_url(*schemes: str) -> Predicate:
    """Predicate: value is an absolute URL with a host.

    Args:
        schemes: Allowed schemes (default: http and https)
    """
    allowed = schemes or ("http", "https")

    def check(value: str) -> bool:
        parsed = urlparse(value)
        return parsed.scheme in allowed and bool(parsed.netloc)

    return check


__all__ = [
    "Predicate",
    "ValidationResult",
    "ValidationRule",
    "is_url",
    "min_length",
    "prefixed_with",
    "validate",
]
