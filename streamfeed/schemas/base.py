from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiOut(BaseModel):
    """
    Base for response bodies: populated from ORM attributes or field names,
    serialized with camelCase keys.
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ApiIn(BaseModel):
    """Base for request bodies: accepts camelCase keys (or field names)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
