"""Common schemas used across the API."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema that speaks camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OperationResult(CamelModel):
    """Outcome of an operation that can fail with a user-facing message."""

    succeeded: bool
    error_message: str | None = None

    @classmethod
    def ok(cls) -> "OperationResult":
        return cls(succeeded=True)

    @classmethod
    def fail(cls, message: str) -> "OperationResult":
        return cls(succeeded=False, error_message=message)
