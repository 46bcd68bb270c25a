"""证书模板与元素数据模型.

提供证书模板布局编辑系统的数据模型：可放置元素（文字字段、签名占位）、
持久化模板记录，以及新旧两代存储结构之间的单向迁移。

Features:
    - 元素封闭联合类型（TextField / SignaturePlaceholder）
    - 模板记录与存储格式（camelCase 别名）序列化
    - 旧版 textPositions 结构识别与迁移
    - 渲染器请求载荷
"""

from __future__ import annotations

import math
import re
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

from certstudio.utils.constants import (
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    DEFAULT_FONT_WEIGHT,
    DEFAULT_SIGNATURE_HEIGHT,
    DEFAULT_SIGNATURE_WIDTH,
    DEFAULT_TEXT_COLOR,
)
from certstudio.utils.logger import setup_logger

logger = setup_logger(__name__)


# ===================
# 枚举定义
# ===================


class ElementType(str, Enum):
    """元素类型枚举."""

    TEXT = "text"  # 文字字段
    SIGNATURE = "signature"  # 签名占位


class FieldRole(str, Enum):
    """文字字段的语义角色."""

    STUDENT_NAME = "studentName"
    COURSE_TYPE = "courseType"
    COHORT = "cohort"
    CERTIFICATE_TYPE = "certificateType"
    ISSUE_DATE = "issueDate"
    SIGNER_NAME = "signerName"
    SIGNER_TITLE = "signerTitle"
    CUSTOM = "custom"


class TextAlign(str, Enum):
    """文字对齐方式."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


# 字段角色显示名称
FIELD_ROLE_LABELS: dict[FieldRole, str] = {
    FieldRole.STUDENT_NAME: "Student Name",
    FieldRole.COURSE_TYPE: "Course Type",
    FieldRole.COHORT: "Cohort",
    FieldRole.CERTIFICATE_TYPE: "Certificate Type",
    FieldRole.ISSUE_DATE: "Issue Date",
    FieldRole.SIGNER_NAME: "Signer Name",
    FieldRole.SIGNER_TITLE: "Signer Title",
    FieldRole.CUSTOM: "Custom Text",
}

# 保存模板时必须存在的字段角色
REQUIRED_FIELD_ROLES: tuple[FieldRole, ...] = (
    FieldRole.STUDENT_NAME,
    FieldRole.COURSE_TYPE,
)

# 编辑器预览用的示例文字
SAMPLE_TEXTS: dict[FieldRole, str] = {
    FieldRole.STUDENT_NAME: "John Doe",
    FieldRole.COURSE_TYPE: "Bitcoin & Blockchain Fundamentals",
    FieldRole.COHORT: "Cohort 2025-01",
    FieldRole.CERTIFICATE_TYPE: "Certificate of Completion",
    FieldRole.ISSUE_DATE: "January 15, 2025",
    FieldRole.SIGNER_NAME: "Lead Instructor",
    FieldRole.SIGNER_TITLE: "Course Director",
    FieldRole.CUSTOM: "Sample Text",
}

DEFAULT_SAMPLE_TEXT = "Sample Text"


# ===================
# 辅助函数
# ===================

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


def _time_prefix() -> int:
    """毫秒级时间戳."""
    return int(time.time() * 1000)


def generate_element_id() -> str:
    """生成唯一的元素ID.

    格式为时间前缀加随机后缀，例如 ``element-1700000000000-1a2b3c4d5``。

    Returns:
        元素ID字符串
    """
    return f"element-{_time_prefix()}-{uuid.uuid4().hex[:9]}"


def generate_template_id() -> str:
    """生成唯一的自定义模板ID.

    Returns:
        形如 ``custom_<毫秒时间戳>_<随机后缀>`` 的ID
    """
    return f"custom_{_time_prefix()}_{uuid.uuid4().hex[:9]}"


def validate_hex_color(color: str) -> str:
    """验证十六进制颜色值.

    Args:
        color: 颜色字符串，如 ``#000000``

    Returns:
        验证后的颜色字符串

    Raises:
        ValueError: 颜色格式无效
    """
    if not HEX_COLOR_PATTERN.match(color):
        raise ValueError(f"颜色必须是十六进制格式（如 #000000），实际: {color!r}")
    return color


def parse_field_role(value: str) -> Optional[FieldRole]:
    """将字符串解析为字段角色，未知角色返回 None."""
    try:
        return FieldRole(value)
    except ValueError:
        return None


# ===================
# 元素基类
# ===================


class ElementBase(BaseModel):
    """可放置元素基类.

    坐标为画布坐标系（原点左上角），元素以 ``(x, y)`` 为中心放置。

    Attributes:
        id: 元素唯一标识符
        x: 中心点X坐标
        y: 中心点Y坐标
    """

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )

    id: str = Field(default_factory=generate_element_id, min_length=1, description="元素唯一ID")
    x: float = Field(description="中心点X坐标")
    y: float = Field(description="中心点Y坐标")

    @field_validator("x", "y")
    @classmethod
    def validate_finite(cls, v: float) -> float:
        """坐标必须是有限数值."""
        if not math.isfinite(v):
            raise ValueError(f"坐标必须是有限数值，实际: {v}")
        return v

    def move_to(self, x: float, y: float) -> None:
        """移动元素到指定位置.

        Args:
            x: 新的X坐标
            y: 新的Y坐标

        Raises:
            ValueError: 任一坐标不是有限数值（坐标保持不变）
        """
        x, y = float(x), float(y)
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ValueError(f"坐标必须是有限数值，实际: ({x}, {y})")
        self.x = x
        self.y = y

    def to_dict(self) -> dict[str, Any]:
        """序列化为存储格式字典."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ===================
# 文字字段
# ===================


class TextFieldElement(ElementBase):
    """文字字段元素.

    绑定到某个语义角色，渲染时由对应字段值替换；``custom`` 角色直接显示
    ``custom_text``。

    Example:
        >>> el = TextFieldElement(field=FieldRole.STUDENT_NAME, x=100, y=50)
        >>> el.type
        'text'
    """

    type: Literal["text"] = "text"

    field: FieldRole = Field(description="语义角色")
    font_size: float = Field(default=DEFAULT_FONT_SIZE, gt=0, alias="fontSize")
    font_family: str = Field(default=DEFAULT_FONT_FAMILY, alias="fontFamily")
    font_weight: str = Field(default=DEFAULT_FONT_WEIGHT, alias="fontWeight")
    color: str = Field(default=DEFAULT_TEXT_COLOR, description="十六进制颜色")
    custom_text: str = Field(default="", alias="customText")
    alignment: TextAlign = Field(default=TextAlign.CENTER, description="对齐方式")

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        """验证颜色值."""
        return validate_hex_color(v)

    @property
    def is_custom(self) -> bool:
        """是否为自定义文字."""
        return self.field == FieldRole.CUSTOM

    @property
    def is_bold(self) -> bool:
        """字重是否为粗体."""
        weight = self.font_weight.strip().lower()
        return weight == "bold" or (weight.isdigit() and int(weight) >= 600)

    def display_text(self, field_values: Optional[dict[str, str]] = None) -> str:
        """获取当前显示文字.

        Args:
            field_values: 角色到实际值的映射，缺省时使用示例文字

        Returns:
            要显示的字符串
        """
        if self.is_custom:
            return self.custom_text or DEFAULT_SAMPLE_TEXT
        if field_values and field_values.get(self.field.value):
            return field_values[self.field.value]
        return SAMPLE_TEXTS.get(self.field, DEFAULT_SAMPLE_TEXT)


# ===================
# 签名占位
# ===================


class SignaturePlaceholderElement(ElementBase):
    """签名占位元素.

    ``signature_data`` 是签名位图引用的冗余副本，由编辑器在设置
    ``signature_id`` 时写入，方便渲染器直接使用。
    """

    type: Literal["signature"] = "signature"

    signature_id: Optional[str] = Field(default=None, alias="signatureId")
    signature_data: Optional[str] = Field(default=None, alias="signatureData")
    width: float = Field(default=DEFAULT_SIGNATURE_WIDTH, gt=0)
    height: float = Field(default=DEFAULT_SIGNATURE_HEIGHT, gt=0)


# ===================
# 元素联合类型
# ===================

AnyElement = Annotated[
    Union[TextFieldElement, SignaturePlaceholderElement],
    Field(discriminator="type"),
]

_element_adapter: TypeAdapter = TypeAdapter(AnyElement)


def parse_element(data: dict[str, Any]) -> Union[TextFieldElement, SignaturePlaceholderElement]:
    """按 ``type`` 标签解析元素.

    Raises:
        pydantic.ValidationError: 数据不符合任何元素类型
    """
    return _element_adapter.validate_python(data)


def copy_elements(elements: list) -> list:
    """深拷贝元素列表."""
    return [element.model_copy(deep=True) for element in elements]


# ===================
# 旧版结构
# ===================


class LegacyFieldPosition(BaseModel):
    """旧版 textPositions 中单个角色的位置信息."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    x: float
    y: float
    font_size: Optional[float] = Field(default=None, alias="fontSize")
    font_weight: Optional[str] = Field(default=None, alias="fontWeight")
    font_family: Optional[str] = Field(default=None, alias="fontFamily")
    fill: Optional[str] = None
    color: Optional[str] = None

    def to_element(self, key: str) -> TextFieldElement:
        """转换为文字字段元素.

        未知角色的键转换为自定义文字，键名作为显示内容。

        Args:
            key: textPositions 中的角色键

        Returns:
            新的 TextFieldElement（新生成的ID）
        """
        role = parse_field_role(key)
        data: dict[str, Any] = {
            "x": self.x,
            "y": self.y,
            "field": role or FieldRole.CUSTOM,
        }
        if role is None:
            data["custom_text"] = key
        if self.font_size:
            data["font_size"] = self.font_size
        if self.font_weight:
            data["font_weight"] = self.font_weight
        if self.font_family:
            data["font_family"] = self.font_family
        color = self.color or self.fill
        if color:
            data["color"] = color
        return TextFieldElement(**data)


def migrate_legacy_positions(positions: dict[str, LegacyFieldPosition]) -> list[TextFieldElement]:
    """将旧版位置映射迁移为元素列表（保持键顺序）."""
    return [position.to_element(key) for key, position in positions.items()]


@dataclass(frozen=True)
class ElementSchema:
    """新版结构：元素列表."""

    elements: tuple


@dataclass(frozen=True)
class LegacySchema:
    """旧版结构：角色到位置的映射."""

    field_positions: dict

    def migrate(self) -> ElementSchema:
        """单向迁移为新版结构."""
        return ElementSchema(elements=tuple(migrate_legacy_positions(self.field_positions)))


TemplateLayout = Union[ElementSchema, LegacySchema]


# ===================
# 模板记录
# ===================


class TemplateRecord(BaseModel):
    """持久化的证书模板记录.

    存储格式使用 camelCase 字段名（``textPositions``、``fontName`` 等），
    与导入导出格式一致。``elements`` 非空时 ``legacy_field_positions`` 不会被保留。

    Attributes:
        id: 模板ID
        name: 模板名称
        description: 模板描述
        template_type: 背景类型（png/svg）
        filename: 背景文件名
        font_ref: 字体名称
        background_image_ref: 背景图片引用（data URL 或路径）
        base_template_id: 来源模板ID
        elements: 元素列表
        legacy_field_positions: 旧版角色位置映射
        canvas_width: 画布宽度
        canvas_height: 画布高度
        created_at: 创建时间
        updated_at: 更新时间
        is_built_in: 是否为内置模板（不持久化）

    Example:
        >>> record = TemplateRecord(name="结业证书")
        >>> record.layout
        ElementSchema(elements=())
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = Field(default=None, description="模板ID")
    name: str = Field(default="", description="模板名称")
    description: str = Field(default="", description="模板描述")
    template_type: str = Field(default="png", alias="type")
    filename: Optional[str] = None
    font_ref: Optional[str] = Field(default=None, alias="fontName")
    background_image_ref: Optional[str] = Field(default=None, alias="templateContent")
    base_template_id: Optional[str] = Field(default=None, alias="baseTemplateId")

    elements: list[AnyElement] = Field(default_factory=list)
    legacy_field_positions: Optional[dict[str, LegacyFieldPosition]] = Field(
        default=None,
        alias="textPositions",
    )

    canvas_width: int = Field(default=DEFAULT_CANVAS_WIDTH, ge=1, alias="canvasWidth")
    canvas_height: int = Field(default=DEFAULT_CANVAS_HEIGHT, ge=1, alias="canvasHeight")

    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    is_built_in: bool = Field(default=False, alias="isBuiltIn")

    @model_validator(mode="after")
    def check_unique_element_ids(self) -> "TemplateRecord":
        """同一模板内元素ID必须唯一."""
        seen: set[str] = set()
        for element in self.elements:
            if element.id in seen:
                raise ValueError(f"元素ID重复: {element.id}")
            seen.add(element.id)
        return self

    @model_validator(mode="after")
    def check_mixed_layout(self) -> "TemplateRecord":
        """元素列表与旧版位置同时存在时丢弃旧版位置."""
        if self.enforce_layout_hygiene():
            logger.warning(f"模板 '{self.name}' 同时包含元素列表和旧版位置，已丢弃旧版位置")
        return self

    # ========================
    # 结构识别与迁移
    # ========================

    @property
    def layout(self) -> TemplateLayout:
        """当前生效的布局结构."""
        if not self.elements and self.legacy_field_positions:
            return LegacySchema(field_positions=dict(self.legacy_field_positions))
        return ElementSchema(elements=tuple(self.elements))

    @property
    def has_legacy_layout(self) -> bool:
        """是否仍为旧版结构."""
        return isinstance(self.layout, LegacySchema)

    @property
    def element_count(self) -> int:
        """元素数量."""
        return len(self.elements)

    def enforce_layout_hygiene(self) -> bool:
        """元素非空时移除旧版位置.

        Returns:
            是否移除了旧版位置
        """
        if self.elements and self.legacy_field_positions is not None:
            self.legacy_field_positions = None
            return True
        return False

    def migrate(self) -> "TemplateRecord":
        """返回迁移到新版结构的副本.

        旧版结构按键生成文字字段（新ID），并丢弃 ``legacy_field_positions``；
        已是新版结构时返回深拷贝。

        Returns:
            新的 TemplateRecord
        """
        migrated = self.model_copy(deep=True)
        layout = self.layout
        if isinstance(layout, LegacySchema):
            migrated.elements = list(layout.migrate().elements)
            logger.info(f"模板 '{self.name}' 已从旧版位置迁移 {len(migrated.elements)} 个元素")
        migrated.legacy_field_positions = None
        return migrated

    def get_element(self, element_id: str) -> Optional[Union[TextFieldElement, SignaturePlaceholderElement]]:
        """根据ID获取元素."""
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    # ========================
    # 序列化
    # ========================

    def to_storage_dict(self) -> dict[str, Any]:
        """序列化为存储/导出格式.

        ``is_built_in`` 不持久化；画布尺寸为默认值时省略。
        """
        data = self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            exclude={"is_built_in"},
        )
        if self.canvas_width == DEFAULT_CANVAS_WIDTH:
            data.pop("canvasWidth", None)
        if self.canvas_height == DEFAULT_CANVAS_HEIGHT:
            data.pop("canvasHeight", None)
        return data

    @classmethod
    def from_storage_dict(cls, data: dict[str, Any]) -> "TemplateRecord":
        """从存储格式字典反序列化.

        Raises:
            pydantic.ValidationError: 数据格式无效
        """
        return cls.model_validate(data)


# ===================
# 渲染请求
# ===================


class RenderRequest(BaseModel):
    """交给渲染器的载荷.

    渲染器只读取元素列表，不会再读取旧版位置。
    """

    model_config = ConfigDict(populate_by_name=True)

    elements: list[AnyElement] = Field(default_factory=list)
    background_image_ref: Optional[str] = Field(default=None, alias="backgroundImageRef")
    canvas_width: int = Field(default=DEFAULT_CANVAS_WIDTH, alias="canvasWidth")
    canvas_height: int = Field(default=DEFAULT_CANVAS_HEIGHT, alias="canvasHeight")
    field_values: dict[str, str] = Field(default_factory=dict, alias="fieldValues")

    def to_dict(self) -> dict[str, Any]:
        """序列化为字典."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
