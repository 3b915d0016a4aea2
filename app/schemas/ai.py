from typing import List, Literal

from app.schemas.base import CamelModel, MessageText, PhoneNumber

Tone = Literal["formal", "friendly", "apologetic", "enthusiastic"]


class AIStatusResponse(CamelModel):
    available: bool
    features: List[str]


class SuggestRequest(CamelModel):
    phone_number: PhoneNumber
    message: MessageText


class SuggestResponse(CamelModel):
    suggestion: str


class ImproveRequest(CamelModel):
    message: MessageText
    tone: Tone = "friendly"


class ImproveResponse(CamelModel):
    original: str
    improved: str
    tone: str
    improved_by_ai: bool


class SummaryResponse(CamelModel):
    phone_number: str
    summary: str
