from typing import Dict, Literal, Union
from pydantic import BaseModel, Field


# Client -> Server

class UserMessage(BaseModel):
    type: Literal["user_message"] = "user_message"
    id: str
    text: str


class UnrecognizedMessage(BaseModel):
    type: str
    data: Dict = Field(default_factory=dict)


# Server -> Client

class TextDelta(BaseModel):
    type: Literal["text_delta"] = "text_delta"
    id: str
    delta: str


class Transcription(BaseModel):
    type: Literal["transcription"] = "transcription"
    id: str
    text: str


class Connected(BaseModel):
    type: Literal["control"] = "control"
    action: Literal["connected"] = "connected"
    greeting: str


class SpeechStarted(BaseModel):
    type: Literal["control"] = "control"
    action: Literal["speech_started"] = "speech_started"


class TextDone(BaseModel):
    type: Literal["control"] = "control"
    action: Literal["text_done"] = "text_done"
    id: str


ControlMessage = Union[Connected, SpeechStarted, TextDone]
ServerMessage = Union[TextDelta, Transcription, ControlMessage]
ClientMessage = Union[UserMessage, UnrecognizedMessage]
