"""Shared error codes, user-facing messages and pipeline exceptions."""

from __future__ import annotations

from typing import Optional

PERMISSION_DENIED = "PERMISSION_DENIED"
CAPTURE_FAILED = "CAPTURE_FAILED"
TRANSPORT_ERROR = "TRANSPORT_ERROR"
QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
EMPTY_RESPONSE = "EMPTY_RESPONSE"
PARSE_ERROR = "PARSE_ERROR"
PLAYBACK_FAILED = "PLAYBACK_FAILED"
UNSUPPORTED_ENVIRONMENT = "UNSUPPORTED_ENVIRONMENT"

# Recognizer-level codes, folded into CAPTURE_FAILED by the capture adapter.
NETWORK_ERROR = "NETWORK_ERROR"
AUTH_FAILED = "AUTH_FAILED"
ASR_PROTOCOL_ERROR = "ASR_PROTOCOL_ERROR"

ERROR_MESSAGES = {
    "en": {
        PERMISSION_DENIED: "Microphone access denied.",
        CAPTURE_FAILED: "Listening failed. Try again.",
        TRANSPORT_ERROR: "Unable to connect to the divine source.",
        QUOTA_EXCEEDED: "API quota exceeded. Please try again later.",
        EMPTY_RESPONSE: "Unable to connect to the divine source.",
        PARSE_ERROR: "Unable to connect to the divine source.",
        PLAYBACK_FAILED: "Could not speak the reply.",
        UNSUPPORTED_ENVIRONMENT: (
            "Speech features are not available on this system. "
            "Install sounddevice, dashscope and pyttsx3 to talk with Vanya."
        ),
    },
    "hi": {
        PERMISSION_DENIED: "माइक्रोफ़ोन की अनुमति नहीं मिली।",
        CAPTURE_FAILED: "सुनने में विफल। पुनः प्रयास करें।",
        TRANSPORT_ERROR: "संपर्क करने में असमर्थ।",
        QUOTA_EXCEEDED: "एपीआई कोटा पार हो गया है। कृपया बाद में पुन: प्रयास करें।",
        EMPTY_RESPONSE: "संपर्क करने में असमर्थ।",
        PARSE_ERROR: "संपर्क करने में असमर्थ।",
        PLAYBACK_FAILED: "उत्तर बोला नहीं जा सका।",
        UNSUPPORTED_ENVIRONMENT: (
            "इस सिस्टम पर वाक् सुविधाएँ उपलब्ध नहीं हैं। "
            "sounddevice, dashscope और pyttsx3 इंस्टॉल करें।"
        ),
    },
}


def message_for(code: str, locale: str) -> str:
    messages = ERROR_MESSAGES.get(locale, ERROR_MESSAGES["en"])
    return messages.get(code, messages[TRANSPORT_ERROR])


class PipelineError(Exception):
    """Base class for failures inside one backend round trip."""

    code = TRANSPORT_ERROR

    def __init__(self, message: str = "", code: Optional[str] = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class TransportError(PipelineError):
    def __init__(self, message: str = "", status: Optional[int] = None) -> None:
        code = QUOTA_EXCEEDED if status == 429 else TRANSPORT_ERROR
        super().__init__(message, code=code)
        self.status = status


class EmptyResponseError(PipelineError):
    code = EMPTY_RESPONSE


class ParseError(PipelineError):
    code = PARSE_ERROR
