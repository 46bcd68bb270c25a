"""元素存储.

持有当前编辑模板的有序元素列表，提供添加、更新、删除和移动操作，
并通过 Qt 信号通知界面刷新。

Features:
    - 元素ID唯一性保证
    - 浅合并更新（合并结果重新校验）
    - 设置签名ID时冗余写入签名位图引用
    - 不触发历史记录的高频移动
    - 快照与恢复
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Union

from PyQt6.QtCore import QObject, pyqtSignal
from pydantic import ValidationError

from certstudio.models.template_config import (
    SignaturePlaceholderElement,
    TextFieldElement,
    copy_elements,
    parse_element,
)
from certstudio.services.signature_service import SignatureRepository
from certstudio.utils.exceptions import ElementIdConflictError, InvalidElementUpdateError
from certstudio.utils.logger import setup_logger

logger = setup_logger(__name__)

Element = Union[TextFieldElement, SignaturePlaceholderElement]

# 更新时不允许修改的键
_IMMUTABLE_KEYS = frozenset({"id", "type"})


class ElementStore(QObject):
    """元素存储.

    Signals:
        element_added: 元素已添加 (element_id)
        element_updated: 元素已更新 (element_id)
        element_removed: 元素已删除 (element_id)
        element_moved: 元素已移动 (element_id, x, y)
        elements_changed: 元素列表整体变化

    Example:
        >>> store = ElementStore()
        >>> el = store.add(TextFieldElement(field=FieldRole.STUDENT_NAME, x=100, y=100))
        >>> store.move(el.id, 120, 110)
        True
    """

    element_added = pyqtSignal(str)
    element_updated = pyqtSignal(str)
    element_removed = pyqtSignal(str)
    element_moved = pyqtSignal(str, float, float)
    elements_changed = pyqtSignal()

    def __init__(
        self,
        elements: Optional[List[Element]] = None,
        signature_lookup: Optional[SignatureRepository] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        """初始化元素存储.

        Args:
            elements: 初始元素列表（会被深拷贝）
            signature_lookup: 签名存储库，用于解析签名位图引用
            parent: 父对象
        """
        super().__init__(parent)
        self._elements: List[Element] = []
        self._signature_lookup = signature_lookup
        if elements:
            self.restore(elements)

    # ========================
    # 属性
    # ========================

    @property
    def elements(self) -> List[Element]:
        """元素列表（浅拷贝，元素对象为实时引用）."""
        return list(self._elements)

    @property
    def signature_lookup(self) -> Optional[SignatureRepository]:
        return self._signature_lookup

    @signature_lookup.setter
    def signature_lookup(self, lookup: Optional[SignatureRepository]) -> None:
        self._signature_lookup = lookup

    def __len__(self) -> int:
        return len(self._elements)

    def __contains__(self, element_id: object) -> bool:
        return self._index_of(element_id) >= 0

    def _index_of(self, element_id: object) -> int:
        for i, element in enumerate(self._elements):
            if element.id == element_id:
                return i
        return -1

    def get(self, element_id: str) -> Optional[Element]:
        """根据ID获取元素."""
        index = self._index_of(element_id)
        return self._elements[index] if index >= 0 else None

    # ========================
    # 编辑操作
    # ========================

    def add(self, element: Element) -> Element:
        """添加元素到列表末尾.

        Args:
            element: 新元素（ID由调用方生成）

        Returns:
            存储中的元素

        Raises:
            ElementIdConflictError: ID已存在
        """
        if element.id in self:
            raise ElementIdConflictError(element.id)

        if isinstance(element, SignaturePlaceholderElement) and element.signature_id:
            self._denormalize_signature(element)

        self._elements.append(element)
        logger.debug(f"添加元素: {element.type} {element.id}")
        self.element_added.emit(element.id)
        self.elements_changed.emit()
        return element

    def update(self, element_id: str, attrs: Mapping[str, Any]) -> bool:
        """浅合并更新元素属性.

        ``id`` 和 ``type`` 不可修改。属性名可使用模型字段名或存储格式别名。
        设置 ``signature_id`` 时会从签名存储库写入签名位图引用。

        Args:
            element_id: 元素ID
            attrs: 要合并的属性

        Returns:
            元素不存在返回 False

        Raises:
            InvalidElementUpdateError: 合并后的属性无效（元素保持不变）
        """
        index = self._index_of(element_id)
        if index < 0:
            return False

        current = self._elements[index]
        normalized = self._normalize_keys(current, attrs)

        ignored = normalized.keys() & _IMMUTABLE_KEYS
        if ignored:
            logger.warning(f"元素 {element_id} 更新时忽略不可修改的属性: {sorted(ignored)}")
            for key in ignored:
                normalized.pop(key)

        merged: Dict[str, Any] = current.model_dump(by_alias=True)
        merged.update(normalized)

        try:
            updated = parse_element(merged)
        except ValidationError as e:
            raise InvalidElementUpdateError(element_id, str(e)) from e

        if isinstance(updated, SignaturePlaceholderElement) and "signatureId" in normalized:
            self._denormalize_signature(updated)

        self._elements[index] = updated
        self.element_updated.emit(element_id)
        self.elements_changed.emit()
        return True

    def delete(self, element_id: str) -> bool:
        """删除元素，不存在返回 False."""
        index = self._index_of(element_id)
        if index < 0:
            return False

        del self._elements[index]
        logger.debug(f"删除元素: {element_id}")
        self.element_removed.emit(element_id)
        self.elements_changed.emit()
        return True

    def move(self, element_id: str, x: float, y: float) -> bool:
        """移动元素.

        只修改坐标，不提交历史，供拖拽过程中高频调用。

        Returns:
            元素不存在返回 False

        Raises:
            InvalidElementUpdateError: 坐标不是有限数值（元素保持不变）
        """
        element = self.get(element_id)
        if element is None:
            return False

        try:
            element.move_to(x, y)
        except (TypeError, ValueError) as e:
            raise InvalidElementUpdateError(element_id, str(e)) from e
        self.element_moved.emit(element_id, element.x, element.y)
        return True

    # ========================
    # 快照
    # ========================

    def snapshot(self) -> List[Element]:
        """当前元素列表的独立深拷贝."""
        return copy_elements(self._elements)

    def restore(self, elements: List[Element]) -> None:
        """用快照替换整个元素列表.

        Raises:
            ElementIdConflictError: 快照中存在重复ID
        """
        seen: set = set()
        for element in elements:
            if element.id in seen:
                raise ElementIdConflictError(element.id)
            seen.add(element.id)

        self._elements = copy_elements(elements)
        self.elements_changed.emit()

    def clear(self) -> None:
        """清空元素."""
        self._elements = []
        self.elements_changed.emit()

    # ========================
    # 内部方法
    # ========================

    @staticmethod
    def _normalize_keys(element: Element, attrs: Mapping[str, Any]) -> Dict[str, Any]:
        """将模型字段名转换为别名."""
        fields = type(element).model_fields
        normalized: Dict[str, Any] = {}
        for key, value in attrs.items():
            info = fields.get(key)
            normalized[info.alias if info is not None and info.alias else key] = value
        return normalized

    def _denormalize_signature(self, element: SignaturePlaceholderElement) -> None:
        """从签名存储库写入签名位图引用."""
        if not element.signature_id:
            element.signature_data = None
            return

        if self._signature_lookup is None:
            logger.debug(f"未配置签名存储库，无法解析签名 {element.signature_id}")
            return

        signature = self._signature_lookup.get_signature(element.signature_id)
        if signature is None:
            logger.warning(f"签名不存在: {element.signature_id}")
            element.signature_data = None
            return

        element.signature_data = signature.signature_data
