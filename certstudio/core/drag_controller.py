"""拖拽控制器.

管理指针驱动的元素移动会话（Idle → Dragging → Idle）。拖拽过程中的移动
不提交历史，拖拽结束时通过 ``drag_finished`` 信号让调用方提交一次快照。
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from PyQt6.QtCore import QObject, pyqtSignal

from certstudio.core.element_store import ElementStore
from certstudio.core.hit_tester import HitTester
from certstudio.utils.logger import setup_logger

logger = setup_logger(__name__)


class DragState(str, Enum):
    """拖拽状态."""

    IDLE = "idle"
    DRAGGING = "dragging"


class DragController(QObject):
    """拖拽控制器.

    按下时命中元素则开始拖拽，未命中则发出放置请求，两者互斥。

    Signals:
        drag_started: 开始拖拽 (element_id)
        element_dragged: 拖拽中移动 (element_id, x, y)
        drag_finished: 拖拽结束 (element_id, moved)
        placement_requested: 请求在该位置放置新元素 (x, y)

    Example:
        >>> controller = DragController(store, hit_tester)
        >>> controller.pointer_down(100, 100)
        >>> controller.pointer_move(150, 120)
        >>> controller.pointer_up(150, 120)
    """

    drag_started = pyqtSignal(str)
    element_dragged = pyqtSignal(str, float, float)
    drag_finished = pyqtSignal(str, bool)
    placement_requested = pyqtSignal(float, float)

    def __init__(
        self,
        store: ElementStore,
        hit_tester: HitTester,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._store = store
        self._hit_tester = hit_tester
        self._state = DragState.IDLE
        self._element_id: Optional[str] = None
        self._offset = (0.0, 0.0)
        self._moved = False

    @property
    def state(self) -> DragState:
        """当前状态."""
        return self._state

    @property
    def is_dragging(self) -> bool:
        return self._state == DragState.DRAGGING

    @property
    def dragged_element_id(self) -> Optional[str]:
        """正在拖拽的元素ID."""
        return self._element_id

    @property
    def offset(self) -> tuple[float, float]:
        """指针相对元素位置的偏移."""
        return self._offset

    def pointer_down(self, x: float, y: float) -> Optional[str]:
        """指针按下.

        Args:
            x: 指针X坐标（画布坐标）
            y: 指针Y坐标

        Returns:
            命中的元素ID；未命中返回 None（已发出放置请求）
        """
        if self.is_dragging:
            self._finish()

        element = self._hit_tester.hit_test(self._store.elements, x, y)
        if element is None:
            self.placement_requested.emit(float(x), float(y))
            return None

        self._state = DragState.DRAGGING
        self._element_id = element.id
        self._offset = (x - element.x, y - element.y)
        self._moved = False

        logger.debug(f"开始拖拽: {element.id}, 偏移 {self._offset}")
        self.drag_started.emit(element.id)
        return element.id

    def pointer_move(self, x: float, y: float) -> bool:
        """指针移动.

        Returns:
            是否移动了元素
        """
        if not self.is_dragging or self._element_id is None:
            return False

        new_x = x - self._offset[0]
        new_y = y - self._offset[1]
        if not self._store.move(self._element_id, new_x, new_y):
            # 元素在拖拽过程中被删除
            logger.debug(f"拖拽元素已不存在: {self._element_id}")
            self._reset()
            return False

        self._moved = True
        self.element_dragged.emit(self._element_id, new_x, new_y)
        return True

    def pointer_up(self, x: Optional[float] = None, y: Optional[float] = None) -> bool:
        """指针释放.

        提供坐标时先移动到最终位置。

        Returns:
            是否结束了一次拖拽
        """
        if not self.is_dragging:
            return False
        if x is not None and y is not None:
            self.pointer_move(x, y)
        return self._finish()

    def pointer_leave(self) -> bool:
        """指针离开画布，结束拖拽."""
        if not self.is_dragging:
            return False
        return self._finish()

    def cancel(self) -> None:
        """放弃当前拖拽，不发出结束信号."""
        self._reset()

    def _finish(self) -> bool:
        if self._element_id is None:
            self._reset()
            return False

        element_id, moved = self._element_id, self._moved
        self._reset()
        logger.debug(f"结束拖拽: {element_id}, 已移动: {moved}")
        self.drag_finished.emit(element_id, moved)
        return True

    def _reset(self) -> None:
        self._state = DragState.IDLE
        self._element_id = None
        self._offset = (0.0, 0.0)
        self._moved = False
