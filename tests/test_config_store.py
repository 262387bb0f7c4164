from __future__ import annotations

from pathlib import Path

from config import JsonConfigStore
from pipeline import DEFAULT_MODEL


def test_config_read_write(tmp_path: Path, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    assert store.get_gemini_api_key() == ""
    assert store.get_dashscope_api_key() == ""
    assert store.get_locale() == "en"
    assert store.get_model() == DEFAULT_MODEL
    assert store.get_mic_hotkey() == "Key.alt_r"
    assert store.get_locale_hotkey() == "Key.f8"

    store.set_gemini_api_key("abc")
    store.set_dashscope_api_key("def")
    store.set_locale("hi")

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_gemini_api_key() == "abc"
    assert reloaded.get_dashscope_api_key() == "def"
    assert reloaded.get_locale() == "hi"


def test_config_invalid_json_fallback(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_locale() == "en"
    assert store.get_mic_hotkey() == "Key.alt_r"


def test_unknown_locale_falls_back_to_default(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text('{"locale": "fr"}', encoding="utf-8")

    assert JsonConfigStore(path=path).get_locale() == "en"


def test_gemini_key_from_environment(tmp_path: Path, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    store = JsonConfigStore(path=tmp_path / "config.json")

    assert store.get_gemini_api_key() == "from-env"
    store.set_gemini_api_key("from-file")
    assert store.get_gemini_api_key() == "from-file"
