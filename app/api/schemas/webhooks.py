from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StripeWebhookEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    livemode: bool | None = None
    created: int | None = None

    @property
    def object(self) -> dict[str, Any]:
        obj = self.data.get("object") if isinstance(self.data, dict) else None
        return obj if isinstance(obj, dict) else {}

    @property
    def metadata(self) -> dict[str, Any]:
        metadata = self.object.get("metadata")
        return metadata if isinstance(metadata, dict) else {}


class WebhookAck(BaseModel):
    received: bool = True
