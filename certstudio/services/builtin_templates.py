"""内置证书模板.

内置模板随应用发布，使用旧版 textPositions 结构保存字段位置，
打开编辑时由存储库迁移为元素列表。内置模板不可删除、不可覆盖。
"""

from __future__ import annotations

from typing import Any, Dict, List

from certstudio.models.template_config import LegacyFieldPosition, TemplateRecord

# 保留给内置模板的ID，自定义模板不得使用
RESERVED_TEMPLATE_IDS: frozenset[str] = frozenset({
    "achievement",
    "minimalist",
    "brightwall-achievement",
    "classic",
    "modern",
    "elegant",
})

# 默认模板
DEFAULT_TEMPLATE_ID = "achievement"


def _positions(font_name: str, student_y: int, course_y: int, cohort_y: int, date_y: int) -> Dict[str, LegacyFieldPosition]:
    """构建一组标准的字段位置."""
    rows: Dict[str, Dict[str, Any]] = {
        "studentName": {"y": student_y, "fontSize": 48, "fontWeight": "bold", "fill": "#000000"},
        "courseType": {"y": course_y, "fontSize": 24, "fontWeight": "normal", "fill": "#000000"},
        "cohort": {"y": cohort_y, "fontSize": 18, "fontWeight": "normal", "fill": "#666666"},
        "certificateType": {"y": 100, "fontSize": 32, "fontWeight": "bold", "fill": "#000000"},
        "issueDate": {"y": date_y, "fontSize": 16, "fontWeight": "normal", "fill": "#666666"},
    }
    return {
        key: LegacyFieldPosition(x=421, fontFamily=font_name, **row)
        for key, row in rows.items()
    }


def create_builtin_templates() -> List[TemplateRecord]:
    """创建内置模板集合."""
    presets = []

    # 1. 现代成就证书
    presets.append(TemplateRecord(
        id="achievement",
        name="Modern Achievement",
        description="Classic achievement certificate design",
        # 背景资源文件名中字体与模板名之间没有 "_"，字体以 font_ref 为准
        filename="Amsterdam Four_ttf 400Modern Achievement.png",
        font_ref="Amsterdam Four_ttf 400",
        legacy_field_positions=_positions("Amsterdam Four_ttf 400", 320, 380, 420, 550),
        is_built_in=True,
    ))

    # 2. 极简证书
    presets.append(TemplateRecord(
        id="minimalist",
        name="Minimalist Certificate",
        description="Clean and simple minimalist design",
        filename="Amsterdam Four_ttf 400_Minimalist Certificate.png",
        font_ref="Amsterdam Four_ttf 400",
        legacy_field_positions=_positions("Amsterdam Four_ttf 400", 300, 360, 400, 530),
        is_built_in=True,
    ))

    # 3. BrightWall 成就证书
    presets.append(TemplateRecord(
        id="brightwall-achievement",
        name="BrightWall Achievement",
        description="Bright and modern achievement design",
        filename="BrightWall_Achievement.png",
        font_ref="BrightWall",
        legacy_field_positions=_positions("BrightWall", 320, 380, 420, 550),
        is_built_in=True,
    ))

    return presets


def is_reserved_template_id(template_id: str | None) -> bool:
    """是否为内置模板保留ID."""
    return bool(template_id) and template_id in RESERVED_TEMPLATE_IDS
