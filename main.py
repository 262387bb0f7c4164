"""Application entrypoint."""

from __future__ import annotations

import logging
import os
import sys

from capture import RecorderSpeechCapture
from config import JsonConfigStore
from hotkey import GlobalHotkeyAdapter
from locales import resolve
from models import Mode, Turn
from overlay import OverlayWindow
from pipeline import GeminiResponsePipeline
from playback import Pyttsx3SpeechPlayback
from recognizer import DashscopeRecognizerAdapter
from recorder import SoundDeviceRecorder
from session_controller import DEFAULT_ERROR_TTL_S, SessionController

try:
    from PySide6.QtCore import QObject, QSize, Signal
    from PySide6.QtGui import QAction, QBrush, QColor, QIcon, QPainter, QPixmap
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger("vanya")


def configure_logging() -> None:
    level = os.getenv("VANYA_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
    )


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


MODE_ICONS = {
    Mode.IDLE: "#9CA3AF",
    Mode.LISTENING: "#F59E0B",
    Mode.PROCESSING: "#60A5FA",
    Mode.SPEAKING: "#FCD34D",
}

MODE_TOOLTIPS = {
    Mode.IDLE: "Vanya — Ready",
    Mode.LISTENING: "Vanya — Listening...",
    Mode.PROCESSING: "Vanya — Reflecting...",
    Mode.SPEAKING: "Vanya — Speaking",
}


class UIBridge(QObject):
    state_signal = Signal(str, str)  # from_state, to_state
    turn_signal = Signal(object)
    error_signal = Signal(str)
    locale_signal = Signal(str)
    notice_signal = Signal(str)


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        self.overlay = OverlayWindow()
        self.ui = UIBridge()
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.turn_signal.connect(self._on_turn_ui)
        self.ui.error_signal.connect(self._on_error_ui)
        self.ui.locale_signal.connect(self._on_locale_change_ui)
        self.ui.notice_signal.connect(self._on_notice_ui)

        self.recognizer = DashscopeRecognizerAdapter(api_key=self.config_store.get_dashscope_api_key())
        self.pipeline = GeminiResponsePipeline(
            api_key=self.config_store.get_gemini_api_key(),
            model=self.config_store.get_model(),
        )
        self.controller = SessionController(
            capture=RecorderSpeechCapture(SoundDeviceRecorder(), self.recognizer),
            playback=Pyttsx3SpeechPlayback(),
            pipeline=self.pipeline,
            locale=self.config_store.get_locale(),
            on_state_change=self._on_state_change,
            on_turn=self._on_turn,
            on_error=self._on_error,
            on_locale_change=self._on_locale_change,
            on_unsupported=self._on_unsupported,
        )
        self.hotkey = GlobalHotkeyAdapter(
            {
                self.config_store.get_mic_hotkey(): self.controller.toggle_mic,
                self.config_store.get_locale_hotkey(): self.controller.toggle_locale,
            }
        )

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(MODE_ICONS[Mode.IDLE]))
        self.tray.setToolTip(MODE_TOOLTIPS[Mode.IDLE])
        self._setup_menu()
        self.tray.show()

    def _setup_menu(self) -> None:
        menu = QMenu()

        mic_action = QAction("Talk / Stop", menu)
        mic_action.triggered.connect(self.controller.toggle_mic)
        menu.addAction(mic_action)

        self.locale_action = QAction(self._locale_label(), menu)
        self.locale_action.triggered.connect(self.controller.toggle_locale)
        menu.addAction(self.locale_action)

        menu.addSeparator()
        gemini_action = QAction("Set Gemini API Key", menu)
        gemini_action.triggered.connect(self._set_gemini_key)
        menu.addAction(gemini_action)

        dashscope_action = QAction("Set DashScope API Key", menu)
        dashscope_action.triggered.connect(self._set_dashscope_key)
        menu.addAction(dashscope_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    def _locale_label(self) -> str:
        return f"Switch to {self.controller.locale_config.toggle_label}"

    def _set_gemini_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "Gemini API Key")
        if not ok:
            return
        self.config_store.set_gemini_api_key(value)
        self.pipeline.set_api_key(value)
        QMessageBox.information(None, "Saved", "Gemini API Key saved and applied.")

    def _set_dashscope_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "DashScope API Key")
        if not ok:
            return
        self.config_store.set_dashscope_api_key(value)
        QMessageBox.information(None, "Saved", "DashScope API Key saved. Restart app to apply.")

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: Mode, to_state: Mode) -> None:
        self.ui.state_signal.emit(from_state.value, to_state.value)

    def _on_turn(self, turn: Turn) -> None:
        self.ui.turn_signal.emit(turn)

    def _on_error(self, code: str, message: str) -> None:
        logger.info("Showing error %s", code)
        self.ui.error_signal.emit(message)

    def _on_locale_change(self, locale: str) -> None:
        self.config_store.set_locale(locale)
        self.ui.locale_signal.emit(locale)

    def _on_unsupported(self, notice: str) -> None:
        self.ui.notice_signal.emit(notice)

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        mode = Mode(to_state)
        self.tray.setIcon(_create_icon(MODE_ICONS[mode]))
        self.tray.setToolTip(MODE_TOOLTIPS[mode])
        if mode == Mode.LISTENING:
            self.overlay.set_status("Listening...")
        elif mode == Mode.PROCESSING:
            self.overlay.set_status("Reflecting...")
        elif mode == Mode.IDLE and from_state == Mode.LISTENING.value:
            self.overlay.hide_with_delay(400)

    def _on_turn_ui(self, turn: Turn) -> None:
        self.overlay.show_turn(turn)

    def _on_error_ui(self, message: str) -> None:
        self.overlay.show_error(message, hide_after_ms=int(DEFAULT_ERROR_TTL_S * 1000))

    def _on_locale_change_ui(self, locale: str) -> None:
        self.locale_action.setText(self._locale_label())
        self.overlay.set_status(resolve(locale).welcome)
        self.overlay.hide_with_delay(2500)

    def _on_notice_ui(self, notice: str) -> None:
        QMessageBox.warning(None, "Voice Not Supported", notice)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        notice = self.controller.unsupported_notice
        if notice:
            self._on_notice_ui(notice)
        else:
            self.overlay.set_status(self.controller.locale_config.welcome)
            self.overlay.hide_with_delay(3000)
        try:
            self.hotkey.start()
        except Exception as exc:
            logger.warning("Hotkeys disabled: %s", exc)
            self.overlay.show_error(f"Hotkey disabled: {exc}")
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.controller.close()
        self.app.quit()


def main() -> int:
    configure_logging()
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
