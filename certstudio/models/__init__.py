"""数据模型模块."""

from certstudio.models.app_settings import Settings, load_settings
from certstudio.models.template_config import (
    # 枚举
    ElementType,
    FieldRole,
    TextAlign,
    # 常量
    FIELD_ROLE_LABELS,
    REQUIRED_FIELD_ROLES,
    SAMPLE_TEXTS,
    # 元素类
    ElementBase,
    TextFieldElement,
    SignaturePlaceholderElement,
    AnyElement,
    # 模板类
    LegacyFieldPosition,
    ElementSchema,
    LegacySchema,
    TemplateRecord,
    RenderRequest,
    # 辅助函数
    copy_elements,
    generate_element_id,
    generate_template_id,
    migrate_legacy_positions,
    parse_element,
)

__all__ = [
    # 设置
    "Settings",
    "load_settings",
    # 枚举
    "ElementType",
    "FieldRole",
    "TextAlign",
    # 常量
    "FIELD_ROLE_LABELS",
    "REQUIRED_FIELD_ROLES",
    "SAMPLE_TEXTS",
    # 元素类
    "ElementBase",
    "TextFieldElement",
    "SignaturePlaceholderElement",
    "AnyElement",
    # 模板类
    "LegacyFieldPosition",
    "ElementSchema",
    "LegacySchema",
    "TemplateRecord",
    "RenderRequest",
    # 辅助函数
    "copy_elements",
    "generate_element_id",
    "generate_template_id",
    "migrate_legacy_positions",
    "parse_element",
]
