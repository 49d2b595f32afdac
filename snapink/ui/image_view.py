"""
Image view widget for SnapInk.

Displays the session's current bitmap scaled to fit (aspect ratio kept,
centered) and turns mouse drags into session drag calls. Positions are
reported relative to the top-left corner of the displayed image, and the
displayed size is pushed to the session so it can map to pixels.
"""

from typing import Optional

from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import QColor, QImage, QMouseEvent, QPainter, QPen
from PySide6.QtWidgets import QSizePolicy, QWidget

from snapink.editor.bitmap import Bitmap
from snapink.editor.geometry import Point
from snapink.editor.session import AnnotationSession, ImagePayload, Tool
from snapink.services.logging_service import get_logger


def payload_to_qimage(payload: ImagePayload) -> QImage:
    """Build a QImage that owns a copy of the payload's pixels."""
    return QImage(
        payload.data, payload.width, payload.height, payload.width * 4,
        QImage.Format.Format_RGBA8888
    ).copy()


def bitmap_to_qimage(bitmap: Bitmap) -> QImage:
    """
    Wrap a bitmap's pixels without copying.

    The QImage is only valid while the bitmap is alive and unchanged, so
    use it for painting straight away.
    """
    return QImage(
        bitmap.pixels.data, bitmap.width, bitmap.height, bitmap.width * 4,
        QImage.Format.Format_RGBA8888
    )


class ImageView(QWidget):
    """
    Canvas showing the current snapshot.

    Signals:
        image_edited: Emitted after a drag changed the image or the history.
    """

    image_edited = Signal()

    def __init__(self, session: AnnotationSession, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._session = session

        self.setMinimumSize(200, 150)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setMouseTracking(False)

    def image_rect(self) -> QRectF:
        """Where the image is drawn, in widget coordinates."""
        bitmap = self._session.current
        if bitmap is None or bitmap.width == 0 or bitmap.height == 0:
            return QRectF()

        available_w = float(self.width())
        available_h = float(self.height())
        aspect = bitmap.width / bitmap.height

        width = available_h * aspect
        height = available_h
        if width > available_w:
            width = available_w
            height = available_w / aspect

        left = (available_w - width) / 2
        top = (available_h - height) / 2
        return QRectF(left, top, width, height)

    def refresh(self) -> None:
        """Re-sync the displayed size with the session and repaint."""
        rect = self.image_rect()
        if not rect.isEmpty():
            self._session.set_view_size(rect.width(), rect.height())
        self.setCursor(
            Qt.CursorShape.ArrowCursor if self._session.tool is Tool.NONE
            else Qt.CursorShape.CrossCursor
        )
        self.update()

    # ─── Painting ─────────────────────────────────────────────────────────

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(35, 35, 35))

        bitmap = self._session.current
        if bitmap is not None:
            rect = self.image_rect()
            painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
            painter.drawImage(rect, bitmap_to_qimage(bitmap))

            selection = self._session.selection_rect
            if selection is not None:
                pen = QPen(QColor(255, 255, 255, 150))
                pen.setWidth(1)
                pen.setStyle(Qt.PenStyle.DashLine)
                painter.setPen(pen)
                painter.setBrush(Qt.BrushStyle.NoBrush)
                painter.drawRect(QRectF(
                    rect.left() + selection.x,
                    rect.top() + selection.y,
                    selection.width,
                    selection.height,
                ))

        painter.end()

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        self.refresh()

    # ─── Mouse Handling ───────────────────────────────────────────────────

    def _to_image_space(self, pos: QPointF) -> Point:
        rect = self.image_rect()
        return Point(pos.x() - rect.left(), pos.y() - rect.top())

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() != Qt.MouseButton.LeftButton:
            return
        self.refresh()
        self._session.begin_drag(self._to_image_space(event.position()))

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        if not self._session.is_dragging:
            return
        self._session.continue_drag(self._to_image_space(event.position()))
        self.update()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        if event.button() != Qt.MouseButton.LeftButton or not self._session.is_dragging:
            return
        self._session.end_drag()
        self.refresh()
        self.image_edited.emit()
