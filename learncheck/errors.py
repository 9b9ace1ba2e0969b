# learncheck/errors.py
from dataclasses import dataclass
from enum import Enum
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


class LearnCheckError(Exception):
    """Base class for all errors raised by the quiz backend."""


class RequestValidationFailed(LearnCheckError):
    """A generation request violated one or more field constraints."""

    def __init__(self, details: List[str]):
        self.details = list(details)
        super().__init__("; ".join(self.details) or "Invalid request")


def describe_validation_errors(errors: List[dict], skip_prefix: str = "body") -> List[str]:
    """Render pydantic error dicts as 'field: message' lines, one per violation."""
    lines = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] == skip_prefix:
            loc = loc[1:]
        field = ".".join(loc) or "request"
        lines.append(f"{field}: {err.get('msg', 'invalid value')}")
    return lines


class ContentProviderError(LearnCheckError):
    """The tutorial content API was unreachable or answered with an error."""


class TutorialNotFound(ContentProviderError):
    def __init__(self, tutorial_id: str):
        self.tutorial_id = tutorial_id
        super().__init__(f"Tutorial with ID {tutorial_id} not found")


class InsufficientContent(ContentProviderError):
    """Tutorial exists but does not carry enough text to build questions from."""


class GeneratorError(LearnCheckError):
    """The question generator failed to produce a usable question set."""


class GeneratorUnavailable(GeneratorError):
    """The generator is not configured or could not be reached."""


class MalformedOutputError(GeneratorError):
    """The model answered, but not with a parseable JSON array of questions."""


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"
    INVALID = "invalid"


@dataclass
class Result(Generic[T]):
    """
    Outcome of a call whose failure the caller may want to absorb.

    Lets callers tell "defaulted because absent" apart from
    "defaulted because the dependency failed".
    """
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str = "") -> "Result[T]":
        return cls(error=kind, message=message)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok and self.value is not None else default
