"""
Typed commands for the lending service.

Inbound payloads are validated into these models before any state
machine logic runs. Validation failures surface as InvalidInputError.
"""

from typing import Optional, Annotated, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError, field_validator

from lendshelf.lending.errors import InvalidInputError


ID_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"

Identifier = Annotated[str, StringConstraints(strip_whitespace=True, pattern=ID_PATTERN)]


class Command(BaseModel):
    """Base for service commands: strict, immutable, no unknown fields."""

    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)


class UploadBook(Command):
    owner_id: Identifier
    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=500)
    genre: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=5000)
    cover_ref: Optional[str] = Field(None, max_length=500)

    @field_validator("description", "cover_ref")
    @classmethod
    def blank_as_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class BookAction(Command):
    """Targets a book (return, delete)."""
    book_id: Identifier


class RequestAction(Command):
    """Targets one requester on one book (request, approve, reject)."""
    book_id: Identifier
    requester_id: Identifier


class UserLookup(Command):
    user_id: Identifier


C = TypeVar("C", bound=Command)


def parse(command: type[C], **data) -> C:
    """
    Build a command, translating validation errors.

    Raises:
        InvalidInputError: A field is missing or malformed
    """
    try:
        return command(**data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidInputError(f"Invalid {command.__name__} input", detail=problems) from None
