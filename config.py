"""Simple JSON-based config store."""

from __future__ import annotations

import json
import os
from pathlib import Path

from locales import DEFAULT_LOCALE, LOCALES
from pipeline import DEFAULT_MODEL


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "vanya" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_gemini_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("gemini_api_key", "") or os.getenv("GEMINI_API_KEY", ""))

    def set_gemini_api_key(self, key: str) -> None:
        self._set("gemini_api_key", key)

    def get_dashscope_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("dashscope_api_key", ""))

    def set_dashscope_api_key(self, key: str) -> None:
        self._set("dashscope_api_key", key)

    def get_model(self) -> str:
        data = self._read_all()
        return str(data.get("model", DEFAULT_MODEL))

    def get_locale(self) -> str:
        data = self._read_all()
        locale = str(data.get("locale", DEFAULT_LOCALE))
        return locale if locale in LOCALES else DEFAULT_LOCALE

    def set_locale(self, locale: str) -> None:
        self._set("locale", locale)

    def get_mic_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("mic_hotkey", "Key.alt_r"))

    def get_locale_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("locale_hotkey", "Key.f8"))

    def _set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
