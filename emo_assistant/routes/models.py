"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel

from emo_assistant.models import Directive, Trailer


class ChatBody(BaseModel):
    message: str
    stories: bool = False


class ChatReply(BaseModel):
    response: str


class ParseBody(BaseModel):
    text: str


class ParsedReply(BaseModel):
    trailer: Trailer
    clean_text: str
    directives: list[Directive]
