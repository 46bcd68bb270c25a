"""模板编辑会话.

把元素存储、命中检测、拖拽控制、历史栈和模板存储库组合成宿主界面使用的
命令集合。一个会话同一时间只编辑一个模板。

Features:
    - 加载模板（自动迁移旧版结构）并重置历史
    - 放置工具（文字角色 / 签名），背景就绪后才允许放置
    - 选中状态跟踪
    - 离散编辑与拖拽结束各提交一次历史快照
    - 保存时同步重新分配的模板ID
    - 渲染请求构建
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from PyQt6.QtCore import QObject, pyqtSignal

from certstudio.core.drag_controller import DragController
from certstudio.core.element_store import Element, ElementStore
from certstudio.core.hit_tester import HitTester, PillowTextMeasurer, TextMeasurer
from certstudio.core.history import HistorySnapshotStack
from certstudio.models.app_settings import Settings, load_settings
from certstudio.models.template_config import (
    ElementType,
    FieldRole,
    RenderRequest,
    SignaturePlaceholderElement,
    TemplateRecord,
    TextFieldElement,
)
from certstudio.services.font_service import FontProvider, PillowFontProvider
from certstudio.services.signature_service import SignatureRepository
from certstudio.services.template_repository import TemplateRepository, validate_template
from certstudio.utils.constants import DEFAULT_FONT_FAMILY
from certstudio.utils.logger import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class PlacementTool:
    """已选中的放置工具."""

    element_type: ElementType
    role: Optional[FieldRole] = None
    signature_id: Optional[str] = None


class TemplateEditorSession(QObject):
    """模板编辑会话.

    Signals:
        template_loaded: 模板已加载 (template_id，新模板为空字符串)
        selection_changed: 选中元素改变 (element_id，取消选中为空字符串)
        modified_changed: 修改状态改变
        template_saved: 模板已保存 (TemplateRecord)

    Example:
        >>> session = TemplateEditorSession(repository)
        >>> session.load_template("achievement")
        >>> session.set_background_ready(True)
        >>> session.arm_text_tool(FieldRole.COHORT)
        >>> session.pointer_down(600, 500)
        >>> saved = session.save()
    """

    template_loaded = pyqtSignal(str)
    selection_changed = pyqtSignal(str)
    modified_changed = pyqtSignal(bool)
    template_saved = pyqtSignal(object)

    def __init__(
        self,
        repository: TemplateRepository,
        measurer: Optional[TextMeasurer] = None,
        signature_lookup: Optional[SignatureRepository] = None,
        font_provider: Optional[FontProvider] = None,
        settings: Optional[Settings] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        """初始化编辑会话.

        Args:
            repository: 模板存储库
            measurer: 文字测量实现，默认使用 Pillow 字体度量
            signature_lookup: 签名存储库
            font_provider: 字体提供者
            settings: 应用设置
            parent: 父对象
        """
        super().__init__(parent)

        self._settings = settings or load_settings()
        self._repository = repository

        if font_provider is None:
            font_provider = PillowFontProvider(self._settings.fonts_dir)
        self._font_provider = font_provider

        if measurer is None:
            pillow_fonts = font_provider if isinstance(font_provider, PillowFontProvider) else None
            measurer = PillowTextMeasurer(pillow_fonts)

        self._store = ElementStore(signature_lookup=signature_lookup, parent=self)
        self._history = HistorySnapshotStack(
            max_depth=self._settings.history_max_depth,
            parent=self,
        )
        self._hit_tester = HitTester(measurer)
        self._drag = DragController(self._store, self._hit_tester, parent=self)

        self._record = self._blank_record()
        self._selected_id: Optional[str] = None
        self._tool: Optional[PlacementTool] = None
        self._background_ready = False
        self._modified = False

        self._connect_signals()

    def _connect_signals(self) -> None:
        self._drag.drag_started.connect(self.select)
        self._drag.drag_finished.connect(self._on_drag_finished)
        self._drag.placement_requested.connect(self._on_placement_requested)

    def _blank_record(self, name: str = "") -> TemplateRecord:
        return TemplateRecord(
            name=name,
            canvas_width=self._settings.canvas_width,
            canvas_height=self._settings.canvas_height,
        )

    # ========================
    # 属性
    # ========================

    @property
    def store(self) -> ElementStore:
        return self._store

    @property
    def history(self) -> HistorySnapshotStack:
        return self._history

    @property
    def hit_tester(self) -> HitTester:
        return self._hit_tester

    @property
    def drag_controller(self) -> DragController:
        return self._drag

    @property
    def record(self) -> TemplateRecord:
        """当前模板（含实时元素列表的副本）."""
        return self.build_record()

    @property
    def template_id(self) -> Optional[str]:
        return self._record.id

    @property
    def elements(self) -> List[Element]:
        return self._store.elements

    @property
    def selected_element_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def selected_element(self) -> Optional[Element]:
        return self._store.get(self._selected_id) if self._selected_id else None

    @property
    def armed_tool(self) -> Optional[PlacementTool]:
        return self._tool

    @property
    def background_ready(self) -> bool:
        return self._background_ready

    @property
    def font_ready(self) -> bool:
        """模板字体是否就绪."""
        return self._font_provider.is_ready(self._record.font_ref)

    @property
    def is_modified(self) -> bool:
        return self._modified

    @property
    def can_place(self) -> bool:
        """是否可以放置新元素."""
        return self._tool is not None and self._background_ready

    # ========================
    # 模板加载
    # ========================

    def new_template(
        self,
        name: str = "",
        background_image_ref: Optional[str] = None,
        font_ref: Optional[str] = None,
    ) -> None:
        """开始编辑一个新的空白模板."""
        record = self._blank_record(name)
        record.background_image_ref = background_image_ref
        record.font_ref = font_ref
        self.load_record(record)

    def load_template(self, template_id: str) -> bool:
        """从存储库加载模板.

        Returns:
            模板不存在返回 False
        """
        record = self._repository.get(template_id)
        if record is None:
            logger.warning(f"模板不存在: {template_id}")
            return False
        self.load_record(record)
        return True

    def load_record(self, record: TemplateRecord) -> None:
        """加载模板记录并重置历史.

        旧版结构会被迁移为元素列表；背景需要重新标记为就绪。
        """
        migrated = record.migrate()
        elements = migrated.elements
        migrated.elements = []
        self._record = migrated

        self._drag.cancel()
        self._store.restore(elements)
        self._history.reset(self._store.snapshot())
        self._tool = None
        self._background_ready = False
        self._set_selected(None)
        self._set_modified(False)

        if self._record.font_ref and isinstance(self._font_provider, PillowFontProvider):
            self._font_provider.load(self._record.font_ref)

        logger.info(f"已加载模板: {self._record.name} ({self._record.id}), {len(elements)} 个元素")
        self.template_loaded.emit(self._record.id or "")

    def set_background_ready(self, ready: bool = True) -> None:
        """标记背景图片是否已加载完成."""
        self._background_ready = ready

    def set_metadata(self, **attrs: Any) -> None:
        """修改模板元数据（名称、描述、背景、字体等）.

        Raises:
            ValueError: 试图通过元数据修改元素列表
        """
        if "elements" in attrs or "legacy_field_positions" in attrs:
            raise ValueError("元素列表只能通过元素操作修改")

        data = self._record.model_dump()
        data.update(attrs)
        record = TemplateRecord.model_validate(data)
        self._record = record
        self._set_modified(True)

    # ========================
    # 放置工具
    # ========================

    def arm_text_tool(self, role: Union[FieldRole, str]) -> None:
        """选中文字字段放置工具."""
        self._tool = PlacementTool(ElementType.TEXT, role=FieldRole(role))

    def arm_signature_tool(self, signature_id: Optional[str] = None) -> None:
        """选中签名占位放置工具."""
        self._tool = PlacementTool(ElementType.SIGNATURE, signature_id=signature_id)

    def disarm_tool(self) -> None:
        self._tool = None

    def place_element(self, x: float, y: float) -> Optional[Element]:
        """用当前工具在指定位置放置元素.

        Returns:
            新元素；未选中工具或背景未就绪时返回 None
        """
        if self._tool is None:
            return None
        if not self._background_ready:
            logger.debug("背景未就绪，忽略放置")
            return None

        tool = self._tool
        if tool.element_type == ElementType.TEXT:
            element: Element = TextFieldElement(
                field=tool.role,
                x=x,
                y=y,
                font_family=self._record.font_ref or DEFAULT_FONT_FAMILY,
            )
        else:
            element = SignaturePlaceholderElement(x=x, y=y, signature_id=tool.signature_id)

        self._tool = None
        return self.add_element(element)

    # ========================
    # 指针事件
    # ========================

    def pointer_down(self, x: float, y: float) -> Optional[str]:
        """指针按下（命中则开始拖拽，否则尝试放置）."""
        return self._drag.pointer_down(x, y)

    def pointer_move(self, x: float, y: float) -> bool:
        return self._drag.pointer_move(x, y)

    def pointer_up(self, x: Optional[float] = None, y: Optional[float] = None) -> bool:
        return self._drag.pointer_up(x, y)

    def pointer_leave(self) -> bool:
        return self._drag.pointer_leave()

    def _on_placement_requested(self, x: float, y: float) -> None:
        if self.place_element(x, y) is None:
            self.select(None)

    def _on_drag_finished(self, element_id: str, moved: bool) -> None:
        if moved:
            self._commit()

    # ========================
    # 元素编辑
    # ========================

    def add_element(self, element: Element) -> Element:
        """添加元素并提交历史."""
        added = self._store.add(element)
        self._commit()
        self.select(added.id)
        return added

    def update_element(self, element_id: str, attrs: Mapping[str, Any]) -> bool:
        """更新元素属性并提交历史."""
        if not self._store.update(element_id, attrs):
            return False
        self._commit()
        return True

    def delete_element(self, element_id: str) -> bool:
        """删除元素并提交历史."""
        if not self._store.delete(element_id):
            return False
        self._commit()
        if self._selected_id == element_id:
            self._set_selected(None)
        return True

    def delete_selected(self) -> bool:
        """删除选中的元素."""
        if self._selected_id is None:
            return False
        return self.delete_element(self._selected_id)

    def select(self, element_id: Optional[str]) -> None:
        """选中元素（None 表示取消选中）."""
        if element_id is not None and element_id not in self._store:
            return
        self._set_selected(element_id)

    # ========================
    # 撤销/重做
    # ========================

    def undo(self) -> bool:
        snapshot = self._history.undo()
        if snapshot is None:
            return False
        self._restore(snapshot)
        return True

    def redo(self) -> bool:
        snapshot = self._history.redo()
        if snapshot is None:
            return False
        self._restore(snapshot)
        return True

    def _restore(self, snapshot: List[Element]) -> None:
        self._drag.cancel()
        self._store.restore(snapshot)
        self._set_selected(None)
        self._set_modified(True)

    def _commit(self) -> None:
        self._history.commit(self._store.snapshot())
        self._set_modified(True)

    # ========================
    # 保存与输出
    # ========================

    def build_record(self) -> TemplateRecord:
        """由元数据和当前元素构建模板记录（独立副本）."""
        record = self._record.model_copy(deep=True)
        record.elements = self._store.snapshot()
        record.legacy_field_positions = None
        return record

    def validate(self) -> List[str]:
        """校验当前模板."""
        return validate_template(self.build_record())

    def save(self) -> TemplateRecord:
        """保存当前模板.

        存储库可能重新分配模板ID，会话会同步为保存后的ID。

        Returns:
            保存后的模板记录

        Raises:
            StorageError: 存储后端读写失败
        """
        saved = self._repository.save(self.build_record())

        if saved.id != self._record.id:
            logger.info(f"模板ID已更新: {self._record.id} -> {saved.id}")

        metadata = saved.model_copy(deep=True)
        metadata.elements = []
        self._record = metadata
        self._set_modified(False)

        self.template_saved.emit(saved)
        return saved

    def render_request(self, field_values: Optional[Dict[str, str]] = None) -> RenderRequest:
        """构建渲染请求."""
        return RenderRequest(
            elements=self._store.snapshot(),
            background_image_ref=self._record.background_image_ref,
            canvas_width=self._record.canvas_width,
            canvas_height=self._record.canvas_height,
            field_values=dict(field_values or {}),
        )

    # ========================
    # 内部状态
    # ========================

    def _set_selected(self, element_id: Optional[str]) -> None:
        if element_id == self._selected_id:
            return
        self._selected_id = element_id
        self.selection_changed.emit(element_id or "")

    def _set_modified(self, modified: bool) -> None:
        if modified == self._modified:
            return
        self._modified = modified
        self.modified_changed.emit(modified)
