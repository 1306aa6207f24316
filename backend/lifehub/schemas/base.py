from datetime import datetime, timezone
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


def _as_utc(value: datetime) -> str:
    # The database holds naive UTC; emit an explicit offset
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


UTCDateTime = Annotated[datetime, PlainSerializer(_as_utc, return_type=str, when_used="json")]


class CamelModel(BaseModel):
    """
    Base for API bodies: camelCase on the wire, snake_case in Python.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
