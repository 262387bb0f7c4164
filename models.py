"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


class Mode(str, Enum):
    IDLE = "IDLE"
    LISTENING = "LISTENING"
    PROCESSING = "PROCESSING"
    SPEAKING = "SPEAKING"


class CaptureEventKind(str, Enum):
    STARTED = "started"
    RESULT = "result"
    ENDED = "ended"
    FAILED = "failed"


class PlaybackEventKind(str, Enum):
    ENDED = "ended"
    FAILED = "failed"


class RecognitionKind(str, Enum):
    FINAL = "final"
    ERROR = "error"


@dataclass
class AudioFrame:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1


@dataclass
class RecognitionEvent:
    kind: str
    text: str = ""
    code: str = ""
    message: str = ""


@dataclass
class CaptureEvent:
    kind: str
    text: str = ""
    code: str = ""
    message: str = ""


@dataclass
class PlaybackEvent:
    kind: str
    message: str = ""


@dataclass(frozen=True)
class UserTurn:
    text: str


@dataclass(frozen=True)
class AssistantTurn:
    shloka: str
    meaning: str
    guidance: str
    locale: str = "en"

    def spoken_text(self) -> str:
        """The three fields as one continuous utterance."""
        return f"{self.shloka}. {self.meaning}. {self.guidance}"


Turn = Union[UserTurn, AssistantTurn]


@dataclass(frozen=True)
class Voice:
    id: str
    name: str
    languages: Tuple[str, ...] = ()


@dataclass
class PipelineResult:
    reply: Optional[AssistantTurn] = None
    error_code: str = ""
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.reply is not None


@dataclass
class TransientError:
    code: str
    message: str
    expires_at: float


@dataclass(frozen=True)
class ControllerSnapshot:
    mode: Mode
    locale: str
    transcript: Tuple[Turn, ...] = field(default_factory=tuple)
    error: Optional[str] = None
    capture_supported: bool = True
