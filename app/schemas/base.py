from typing import Annotated

from pydantic import BaseModel, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel

PHONE_PATTERN = r"^55\d{10,11}$"

PhoneNumber = Annotated[str, StringConstraints(strip_whitespace=True, pattern=PHONE_PATTERN)]
MessageText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=4096)]


class CamelModel(BaseModel):
    """Dashboard-facing models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)
