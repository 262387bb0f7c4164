"""Global hotkey adapter based on pynput."""

from __future__ import annotations

import threading
from typing import Callable, Dict, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore


class GlobalHotkeyAdapter:
    """Fires a callback once per key press for each bound key name.

    Key names use pynput's ``str(key)`` format, e.g. ``Key.alt_r`` or ``'v'``.
    Auto-repeat while a key is held does not fire again.
    """

    def __init__(self, bindings: Optional[Dict[str, Callable[[], None]]] = None) -> None:
        self._bindings: Dict[str, Callable[[], None]] = dict(bindings or {})
        self._listener: Optional[object] = None
        self._held: set[str] = set()
        self._lock = threading.Lock()

    def bind(self, hotkey_name: str, callback: Callable[[], None]) -> None:
        self._bindings[hotkey_name] = callback

    def start(self) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")
        self._listener = keyboard.Listener(on_press=self._on_press, on_release=self._on_release)
        self._listener.start()

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None

    def _on_press(self, key: object) -> None:
        name = str(key)
        callback = self._bindings.get(name)
        if callback is None:
            return
        with self._lock:
            if name in self._held:
                return
            self._held.add(name)
        callback()

    def _on_release(self, key: object) -> None:
        with self._lock:
            self._held.discard(str(key))
