"""核心编辑逻辑模块."""

from certstudio.core.drag_controller import DragController, DragState
from certstudio.core.editor_session import PlacementTool, TemplateEditorSession
from certstudio.core.element_store import ElementStore
from certstudio.core.hit_tester import (
    BoundingBox,
    HitTester,
    PillowTextMeasurer,
    TextMeasurer,
)
from certstudio.core.history import HistorySnapshotStack

__all__ = [
    # 元素存储
    "ElementStore",
    # 命中检测
    "BoundingBox",
    "HitTester",
    "PillowTextMeasurer",
    "TextMeasurer",
    # 拖拽
    "DragController",
    "DragState",
    # 历史
    "HistorySnapshotStack",
    # 编辑会话
    "PlacementTool",
    "TemplateEditorSession",
]
