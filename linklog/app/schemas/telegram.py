"""The subset of a Telegram Update this service reads. Other fields are ignored."""
from pydantic import BaseModel, ConfigDict


class TelegramChat(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int


class TelegramMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    chat: TelegramChat
    text: str | None = None
    caption: str | None = None

    @property
    def body(self) -> str:
        return self.text or self.caption or ""


class TelegramUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    update_id: int | None = None
    message: TelegramMessage | None = None


class WebhookAck(BaseModel):
    ok: bool = True
