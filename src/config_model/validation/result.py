from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Hashable, Iterable, Optional, Tuple

from config_model.exceptions import ConfigValidationError
from config_model.keys import Key, format_key, to_key


@dataclass(frozen=True)
class Diagnostic:
    """One validation error or warning, located at the key it concerns."""

    message: str
    key: Optional[Key] = None

    def located(self, key: Iterable[Hashable]) -> "Diagnostic":
        if self.key is not None:
            return self
        return replace(self, key=to_key(key))

    def __str__(self) -> str:
        if self.key is None:
            return self.message
        return f"{format_key(self.key)}: {self.message}"


@dataclass(frozen=True)
class CheckResult:
    """Errors and warnings accumulated by one or more checks.

    ``ok`` is true when there are no errors, whatever the warnings.
    """

    errors: Tuple[Diagnostic, ...] = ()
    warnings: Tuple[Diagnostic, ...] = ()

    @classmethod
    def error(cls, message: str, key: Optional[Iterable[Hashable]] = None) -> "CheckResult":
        return cls(errors=(Diagnostic(message, None if key is None else to_key(key)),))

    @classmethod
    def warning(cls, message: str, key: Optional[Iterable[Hashable]] = None) -> "CheckResult":
        return cls(warnings=(Diagnostic(message, None if key is None else to_key(key)),))

    @classmethod
    def compose(cls, results: Iterable["CheckResult"]) -> "CheckResult":
        errors = []
        warnings = []
        for r in results:
            errors.extend(r.errors)
            warnings.extend(r.warnings)
        return cls(tuple(errors), tuple(warnings))

    @property
    def ok(self) -> bool:
        return not self.errors

    def __add__(self, other: "CheckResult") -> "CheckResult":
        if not isinstance(other, CheckResult):
            return NotImplemented
        return CheckResult(self.errors + other.errors, self.warnings + other.warnings)

    def located(self, key: Iterable[Hashable]) -> "CheckResult":
        """Attach ``key`` to every diagnostic that has no location yet."""
        return CheckResult(
            tuple(d.located(key) for d in self.errors),
            tuple(d.located(key) for d in self.warnings),
        )

    def raise_for_errors(self) -> "CheckResult":
        if self.errors:
            raise ConfigValidationError(self.errors, self.warnings)
        return self
