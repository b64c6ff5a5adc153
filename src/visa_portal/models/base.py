"""Base model for entities exchanged with the portal API."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PortalModel(BaseModel):
    """Entities arrive as camelCase JSON; attributes are snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        extra="ignore",
    )

    def to_payload(self) -> dict:
        """Serialize to the camelCase JSON body the API expects."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
