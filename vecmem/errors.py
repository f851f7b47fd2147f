"""Domain error taxonomy.

Every failure that can reach a tool caller is one of these kinds. Messages
follow fixed templates so callers can match on substrings.
"""

from __future__ import annotations

from collections.abc import Iterable

__all__ = [
    "VecmemError",
    "InvalidArgument",
    "InvalidCollectionName",
    "CollectionRequired",
    "UnknownModel",
    "CredentialsMissing",
    "GenerationFailed",
    "UnknownSearchMode",
    "InvalidIdFormat",
    "CollectionNotFound",
    "MemoryNotFound",
    "BackendFailure",
]


class VecmemError(Exception):
    """Base class for all classified failures."""

    kind = "VecmemError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidArgument(VecmemError):
    kind = "InvalidArgument"


class InvalidCollectionName(VecmemError):
    kind = "InvalidCollectionName"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Invalid collection name '{name}'. Collection names must start with a "
            "letter or underscore and contain only letters, digits and underscores"
        )


class CollectionRequired(VecmemError):
    kind = "CollectionRequired"

    def __init__(self) -> None:
        super().__init__("Collection name is required either as argument or default")


class UnknownModel(VecmemError):
    kind = "UnknownModel"

    def __init__(self, model: str, available_models: Iterable[str]) -> None:
        self.model = model
        self.available_models = sorted(available_models)
        super().__init__(
            f"Model '{model}' not found in EMBEDDING_DIMENSIONS. "
            f"Available models: {', '.join(self.available_models)}"
        )


class CredentialsMissing(VecmemError):
    kind = "CredentialsMissing"

    def __init__(self, model: str, env_var: str, original: str) -> None:
        self.model = model
        self.env_var = env_var
        super().__init__(
            f"API key not configured for embedding model {model}. "
            f"Please set the {env_var} environment variable. "
            f"Original error: {original}"
        )


class GenerationFailed(VecmemError):
    kind = "GenerationFailed"

    def __init__(self, model: str, original: str) -> None:
        self.model = model
        super().__init__(f"Failed to generate embedding with {model}: {original}")


class UnknownSearchMode(VecmemError):
    kind = "UnknownSearchMode"

    def __init__(self, mode: object) -> None:
        self.mode = mode
        super().__init__(f"Unknown search mode: {mode}")


class InvalidIdFormat(VecmemError):
    kind = "InvalidIdFormat"

    def __init__(self, memory_id: object) -> None:
        self.memory_id = memory_id
        super().__init__(
            "Invalid memory ID format. Expected format: "
            f"mem_timestamp_randomstring, got: {memory_id}"
        )


class CollectionNotFound(VecmemError):
    kind = "CollectionNotFound"

    def __init__(self, collection: str) -> None:
        self.collection = collection
        super().__init__(f'Collection "{collection}" does not exist')


class MemoryNotFound(VecmemError):
    kind = "MemoryNotFound"

    def __init__(self, memory_id: str, collection: str) -> None:
        self.memory_id = memory_id
        self.collection = collection
        super().__init__(
            f'Memory with ID "{memory_id}" not found in collection "{collection}"'
        )


class BackendFailure(VecmemError):
    kind = "BackendFailure"

    def __init__(self, operation: str, original: str) -> None:
        self.operation = operation
        super().__init__(f"Backend operation '{operation}' failed: {original}")
