"""撤销/重做历史.

基于元素列表完整快照的线性历史栈。每个快照都是独立的深拷贝，
之后对实时元素列表的修改不会影响已保存的快照。

Features:
    - 提交新快照时丢弃游标之后的分支
    - 撤销/重做在边界处为空操作
    - 最大深度限制（丢弃最旧的快照）
    - 状态变化信号
"""

from __future__ import annotations

from typing import List, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from certstudio.models.template_config import copy_elements
from certstudio.utils.constants import DEFAULT_HISTORY_MAX_DEPTH
from certstudio.utils.logger import setup_logger

logger = setup_logger(__name__)

Snapshot = list


class HistorySnapshotStack(QObject):
    """快照历史栈.

    始终至少包含一个快照，``0 <= cursor <= len - 1``。

    Signals:
        can_undo_changed: 可撤销状态改变
        can_redo_changed: 可重做状态改变
        stack_changed: 栈状态改变

    Example:
        >>> history = HistorySnapshotStack()
        >>> history.commit(store.snapshot())
        >>> store.restore(history.undo())
    """

    can_undo_changed = pyqtSignal(bool)
    can_redo_changed = pyqtSignal(bool)
    stack_changed = pyqtSignal()

    def __init__(
        self,
        initial: Optional[Snapshot] = None,
        max_depth: int = DEFAULT_HISTORY_MAX_DEPTH,
        parent: Optional[QObject] = None,
    ) -> None:
        """初始化历史栈.

        Args:
            initial: 初始快照，默认为空列表
            max_depth: 最多保留的快照数量
            parent: 父对象
        """
        super().__init__(parent)
        if max_depth < 2:
            raise ValueError(f"max_depth 至少为 2，实际: {max_depth}")

        self._max_depth = max_depth
        self._snapshots: List[Snapshot] = [copy_elements(initial or [])]
        self._cursor = 0

    # ========================
    # 属性
    # ========================

    @property
    def can_undo(self) -> bool:
        """是否可以撤销."""
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        """是否可以重做."""
        return self._cursor < len(self._snapshots) - 1

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def max_depth(self) -> int:
        return self._max_depth

    def __len__(self) -> int:
        return len(self._snapshots)

    def current(self) -> Snapshot:
        """游标处快照的副本."""
        return copy_elements(self._snapshots[self._cursor])

    # ========================
    # 操作
    # ========================

    def commit(self, snapshot: Snapshot) -> None:
        """提交新快照.

        丢弃游标之后的所有快照，追加新快照并把游标移到末尾。

        Args:
            snapshot: 元素列表（会被深拷贝）
        """
        del self._snapshots[self._cursor + 1:]
        self._snapshots.append(copy_elements(snapshot))

        overflow = len(self._snapshots) - self._max_depth
        if overflow > 0:
            del self._snapshots[:overflow]

        self._cursor = len(self._snapshots) - 1
        logger.debug(f"提交快照: {len(snapshot)} 个元素, 游标 {self._cursor}")
        self._emit_state_changed()

    def undo(self) -> Optional[Snapshot]:
        """撤销.

        Returns:
            新游标处快照的副本，已在最早位置时返回 None
        """
        if not self.can_undo:
            return None

        self._cursor -= 1
        logger.debug(f"撤销: 游标 {self._cursor}")
        self._emit_state_changed()
        return self.current()

    def redo(self) -> Optional[Snapshot]:
        """重做.

        Returns:
            新游标处快照的副本，已在最新位置时返回 None
        """
        if not self.can_redo:
            return None

        self._cursor += 1
        logger.debug(f"重做: 游标 {self._cursor}")
        self._emit_state_changed()
        return self.current()

    def reset(self, initial: Optional[Snapshot] = None) -> None:
        """重置为只含一个快照（切换模板时使用）."""
        self._snapshots = [copy_elements(initial or [])]
        self._cursor = 0
        logger.debug("历史已重置")
        self._emit_state_changed()

    def _emit_state_changed(self) -> None:
        """发送状态改变信号."""
        self.can_undo_changed.emit(self.can_undo)
        self.can_redo_changed.emit(self.can_redo)
        self.stack_changed.emit()
