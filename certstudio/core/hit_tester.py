"""命中检测.

把指针坐标映射到最上层的元素。文字元素的包围盒依赖外部的文字测量能力，
签名元素直接使用自身宽高。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Protocol, Union, runtime_checkable

from certstudio.models.template_config import (
    SignaturePlaceholderElement,
    TextFieldElement,
)
from certstudio.services.font_service import PillowFontProvider
from certstudio.utils.constants import TEXT_HIT_PADDING

Element = Union[TextFieldElement, SignaturePlaceholderElement]


@dataclass(frozen=True)
class BoundingBox:
    """轴对齐包围盒."""

    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def centered(cls, cx: float, cy: float, width: float, height: float, padding: float = 0.0) -> "BoundingBox":
        """以中心点构造包围盒，四周扩展 padding."""
        half_w = width / 2 + padding
        half_h = height / 2 + padding
        return cls(cx - half_w, cy - half_h, cx + half_w, cy + half_h)

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def contains(self, x: float, y: float) -> bool:
        """点是否在包围盒内（含边界）."""
        return self.left <= x <= self.right and self.top <= y <= self.bottom


@runtime_checkable
class TextMeasurer(Protocol):
    """文字测量接口."""

    def measure(self, text: str, font_size: float, font_family: str, font_weight: str) -> float:
        """返回文字渲染宽度."""
        ...


class PillowTextMeasurer:
    """基于 Pillow 字体度量的文字测量."""

    def __init__(self, font_provider: Optional[PillowFontProvider] = None) -> None:
        self._fonts = font_provider or PillowFontProvider()

    def measure(self, text: str, font_size: float, font_family: str, font_weight: str) -> float:
        weight = font_weight.strip().lower()
        bold = weight == "bold" or (weight.isdigit() and int(weight) >= 600)
        font = self._fonts.get_font(font_family, font_size, bold=bold)
        return float(font.getlength(text))


class HitTester:
    """命中检测器.

    纯几何计算，不修改元素。多个元素同时命中时，最后添加的元素优先。

    Example:
        >>> tester = HitTester(PillowTextMeasurer())
        >>> tester.hit_test(store.elements, 100, 100)
    """

    def __init__(
        self,
        measurer: TextMeasurer,
        field_values: Optional[Dict[str, str]] = None,
        padding: float = TEXT_HIT_PADDING,
    ) -> None:
        """初始化命中检测器.

        Args:
            measurer: 文字测量实现
            field_values: 角色到显示值的映射，缺省使用示例文字
            padding: 文字包围盒四周的扩展距离
        """
        self._measurer = measurer
        self._padding = padding
        self.field_values: Dict[str, str] = dict(field_values or {})

    def bounding_box(self, element: Element) -> BoundingBox:
        """计算元素包围盒.

        Raises:
            TypeError: 不支持的元素类型
        """
        if isinstance(element, TextFieldElement):
            text = element.display_text(self.field_values)
            width = self._measurer.measure(
                text,
                element.font_size,
                element.font_family,
                element.font_weight,
            )
            return BoundingBox.centered(
                element.x, element.y, width, element.font_size, padding=self._padding
            )
        if isinstance(element, SignaturePlaceholderElement):
            return BoundingBox.centered(element.x, element.y, element.width, element.height)
        raise TypeError(f"不支持的元素类型: {type(element).__name__}")

    def hit_test(self, elements: Iterable[Element], x: float, y: float) -> Optional[Element]:
        """返回包含该点的最上层元素.

        Args:
            elements: 按添加顺序排列的元素
            x: 指针X坐标
            y: 指针Y坐标

        Returns:
            命中的元素，没有命中返回 None
        """
        hit: Optional[Element] = None
        for element in elements:
            if self.bounding_box(element).contains(x, y):
                hit = element
        return hit
