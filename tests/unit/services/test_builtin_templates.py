"""内置模板单元测试."""

from certstudio.models.template_config import FieldRole
from certstudio.services.font_service import get_font_filename, parse_font_from_filename
from certstudio.services.builtin_templates import (
    DEFAULT_TEMPLATE_ID,
    RESERVED_TEMPLATE_IDS,
    create_builtin_templates,
    is_reserved_template_id,
)


class TestBuiltinTemplates:
    """内置模板测试类."""

    def test_ids(self):
        """测试内置模板ID."""
        ids = [t.id for t in create_builtin_templates()]
        assert ids == ["achievement", "minimalist", "brightwall-achievement"]
        assert DEFAULT_TEMPLATE_ID in ids
        assert set(ids) <= RESERVED_TEMPLATE_IDS

    def test_builtins_use_legacy_layout(self):
        """测试内置模板使用旧版结构."""
        for template in create_builtin_templates():
            assert template.is_built_in
            assert template.has_legacy_layout
            migrated = template.migrate()
            roles = {e.field for e in migrated.elements}
            assert {FieldRole.STUDENT_NAME, FieldRole.COURSE_TYPE} <= roles

    def test_fill_becomes_color(self):
        """测试旧版 fill 颜色迁移."""
        template = create_builtin_templates()[0]
        cohort = next(e for e in template.migrate().elements if e.field == FieldRole.COHORT)
        assert cohort.color == "#666666"

    def test_is_reserved(self):
        """测试保留ID判断."""
        assert is_reserved_template_id("classic")
        assert not is_reserved_template_id("custom_1")
        assert not is_reserved_template_id(None)

    def test_default_font_resolves(self):
        """测试默认模板的背景文件名可解析出可用字体."""
        template = create_builtin_templates()[0]

        assert parse_font_from_filename(template.filename) == "Amsterdam Four"
        assert get_font_filename(parse_font_from_filename(template.filename)) == (
            get_font_filename(template.font_ref)
        )
