"""Stateless validation of registration input."""

from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError  # type: ignore

from ..core.errors import InvalidRegistration


class SiteRegistration(BaseModel):
    """Registration input as submitted by the caller."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: str = Field(min_length=2, max_length=100, description="Display name")
    url: str = Field(min_length=3, description="Destination URL")


RegistrationValidator = Callable[[str, str], SiteRegistration]


def validate_registration(name: str, url: str) -> SiteRegistration:
    """
    Validate a registration request.

    Returns:
        SiteRegistration: The input with surrounding whitespace removed

    Raises:
        InvalidRegistration: If name or url violate their constraints
    """
    try:
        return SiteRegistration(name=name, url=url)
    except ValidationError as exc:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        fields = ", ".join(e["field"] for e in errors)
        raise InvalidRegistration(f"Invalid registration: {fields}", errors=errors) from exc
