from __future__ import annotations

from typing import Any, List, Sequence

from config_model.keys import format_key


class ConfigError(Exception):
    """Base config exception."""


class ModelCompileError(ConfigError):
    """Raised when model fragments cannot be compiled into a coherent model."""

    def __init__(self, errors: Sequence[Any]) -> None:
        self.errors: List[Any] = list(errors)
        super().__init__(f"Model compilation failed: {'; '.join(str(e) for e in self.errors)}")


class CollidingKeysError(ModelCompileError):
    """Raised when merged fragments declare the same model key more than once."""

    def __init__(self, keys: Sequence[Any]) -> None:
        self.keys: List[Any] = list(keys)
        self.errors = [f"Clashing keys: {', '.join(format_key(k) for k in self.keys)}"]
        ConfigError.__init__(self, self.errors[0])


class ModelKeyError(ConfigError, KeyError):
    """Raised when a key is not declared in the model (or metamodel)."""

    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"Unknown model key: {format_key(key)}")

    def __str__(self) -> str:
        return str(self.args[0])


class MetatypeNotFoundError(ConfigError):
    """Raised when a requested metatype is not registered."""


class MetatypeDuplicateError(ConfigError):
    """Raised when attempting to register a duplicate metatype."""


class StorageError(ConfigError):
    """Raised when a storage backend fails."""


class ConfigValidationError(ConfigError):
    """Raised when validation fails for one or more configuration nodes."""

    def __init__(self, errors: Sequence[Any], warnings: Sequence[Any] = ()) -> None:
        self.errors: List[Any] = list(errors)
        self.warnings: List[Any] = list(warnings)
        super().__init__("Validation errors:\n" + "\n".join(str(e) for e in self.errors))


class ConfigParseError(ConfigError):
    """Raised when a textual value cannot be parsed into a node's type."""

    def __init__(self, key: Any, message: str) -> None:
        self.key = key
        self.message = message
        super().__init__(f"{format_key(key)}: {message}")


class ConfigTornDownError(ConfigError):
    """Raised if operations are attempted after teardown."""


class MissingDataError(RuntimeError):
    """Raised by ``get`` when neither a stored value nor a default exists.

    Reaching this means the data was never validated against the model.
    Not a ``ConfigError``: handlers for configuration errors must not catch it.
    """

    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"Missing data for {format_key(key)}; was the configuration validated?")
