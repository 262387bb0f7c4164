"""Overlay window showing the latest turn, status and error toasts."""

from __future__ import annotations

from models import AssistantTurn, Turn, UserTurn

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QApplication, QLabel, QVBoxLayout, QWidget
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QWidget = object  # type: ignore
    QVBoxLayout = object  # type: ignore

_BODY_STYLE = (
    "color: #E5E7EB; font-size: 17px; padding: 16px;"
    "background: rgba(11,15,25,225); border-radius: 14px;"
)
_SHLOKA_STYLE = (
    "color: #FCD34D; font-size: 20px; font-style: italic; padding: 16px 16px 0 16px;"
    "background: transparent;"
)
_TOAST_STYLE = (
    "color: #FECACA; font-size: 13px; padding: 10px 18px;"
    "background: rgba(127,29,29,230); border-radius: 16px;"
)


def format_turn(turn: Turn) -> tuple[str, str]:
    """Return (headline, body) text for a transcript turn."""
    if isinstance(turn, UserTurn):
        return "", turn.text
    if isinstance(turn, AssistantTurn):
        return f"“{turn.shloka}”", f"{turn.meaning}\n\n{turn.guidance}"
    return "", str(turn)


class OverlayWindow(QWidget):
    def __init__(self, width: int = 640) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowFlags(Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool)
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setFixedWidth(width)

        self._headline = QLabel("")
        self._headline.setWordWrap(True)
        self._headline.setAlignment(Qt.AlignCenter)
        self._headline.setStyleSheet(_SHLOKA_STYLE)

        self._body = QLabel("")
        self._body.setWordWrap(True)
        self._body.setStyleSheet(_BODY_STYLE)

        self._toast = QLabel("")
        self._toast.setWordWrap(True)
        self._toast.setAlignment(Qt.AlignCenter)
        self._toast.setStyleSheet(_TOAST_STYLE)
        self._toast.hide()

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._toast)
        layout.addWidget(self._headline)
        layout.addWidget(self._body)
        self.setLayout(layout)

        self._hide_timer: QTimer | None = None
        self._toast_timer: QTimer | None = None

    def _center_top(self) -> None:
        if QApplication is None:
            return
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        x = geom.x() + (geom.width() - self.width()) // 2
        y = geom.y() + 40
        self.move(x, y)

    def show_turn(self, turn: Turn) -> None:
        headline, body = format_turn(turn)
        self._headline.setText(headline)
        self._headline.setVisible(bool(headline))
        self.set_text(body)

    def set_text(self, text: str) -> None:
        self._cancel_timer("_hide_timer")
        self._body.setText(text)
        self._center_top()
        self.show()

    def set_status(self, text: str) -> None:
        self._headline.hide()
        self.set_text(text)

    def hide_with_delay(self, delay_ms: int = 400) -> None:
        self._cancel_timer("_hide_timer")
        self._hide_timer = self._single_shot(delay_ms, self.hide)

    def show_error(self, text: str, hide_after_ms: int = 4000) -> None:
        """Show a toast above the current content; it hides itself."""
        self._cancel_timer("_toast_timer")
        self._toast.setText(text)
        self._toast.show()
        self._center_top()
        self.show()
        self._toast_timer = self._single_shot(hide_after_ms, self._toast.hide)

    def _single_shot(self, delay_ms: int, slot) -> QTimer:  # noqa: ANN001
        timer = QTimer()
        timer.setSingleShot(True)
        timer.timeout.connect(slot)
        timer.start(delay_ms)
        return timer

    def _cancel_timer(self, name: str) -> None:
        timer = getattr(self, name)
        if timer is not None:
            timer.stop()
            setattr(self, name, None)
