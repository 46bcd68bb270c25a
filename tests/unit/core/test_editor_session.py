"""模板编辑会话单元测试."""

import pytest

from certstudio.core.editor_session import TemplateEditorSession
from certstudio.models.template_config import (
    FieldRole,
    SignaturePlaceholderElement,
    TextFieldElement,
)
from certstudio.services.font_service import PillowFontProvider


class StubFontProvider:
    """固定就绪列表的字体提供者."""

    def __init__(self, ready=()):
        self.ready = set(ready)

    def is_ready(self, font_ref):
        return not font_ref or font_ref in self.ready


@pytest.fixture
def session(repository, measurer, signature_repository, settings) -> TemplateEditorSession:
    """创建编辑会话（背景已就绪）."""
    session = TemplateEditorSession(
        repository,
        measurer=measurer,
        signature_lookup=signature_repository,
        font_provider=StubFontProvider(ready={"Montserrat"}),
        settings=settings,
    )
    session.new_template("新模板", font_ref="Montserrat")
    session.set_background_ready(True)
    return session


class TestSessionLoading:
    """模板加载测试类."""

    def test_new_template(self, session):
        """测试新建模板."""
        assert session.template_id is None
        assert session.elements == []
        assert session.record.name == "新模板"
        assert not session.history.can_undo
        assert not session.is_modified

    def test_load_builtin_migrates_legacy(self, session):
        """测试加载内置模板时迁移旧版结构."""
        assert session.load_template("achievement")

        fields = {e.field for e in session.elements}
        assert FieldRole.STUDENT_NAME in fields
        assert FieldRole.COURSE_TYPE in fields
        assert session.build_record().legacy_field_positions is None
        assert not session.history.can_undo
        assert not session.background_ready

    def test_load_missing(self, session):
        """测试加载不存在的模板."""
        assert session.load_template("custom_missing") is False
        assert session.record.name == "新模板"

    def test_load_emits_signal(self, qtbot, session):
        """测试加载信号."""
        with qtbot.waitSignal(session.template_loaded, timeout=1000) as blocker:
            session.load_template("minimalist")
        assert blocker.args == ["minimalist"]

    def test_font_ready(self, session):
        """测试字体就绪状态."""
        assert session.font_ready
        session.set_metadata(font_ref="Unknown Font")
        assert not session.font_ready

    def test_default_font_provider(self, repository, measurer, settings):
        """测试默认字体提供者."""
        session = TemplateEditorSession(repository, measurer=measurer, settings=settings)
        assert isinstance(session._font_provider, PillowFontProvider)


class TestSessionPlacement:
    """元素放置测试类."""

    def test_click_without_tool_does_nothing(self, session):
        """测试未选工具时点击空白处."""
        session.pointer_down(500, 500)
        assert session.elements == []

    def test_place_text_field(self, session):
        """测试放置文字字段."""
        session.arm_text_tool(FieldRole.COHORT)
        session.pointer_down(600, 500)

        assert len(session.elements) == 1
        element = session.elements[0]
        assert isinstance(element, TextFieldElement)
        assert element.field == FieldRole.COHORT
        assert (element.x, element.y) == (600, 500)
        assert element.font_family == "Montserrat"
        assert session.selected_element_id == element.id
        assert session.armed_tool is None
        assert session.history.can_undo

    def test_place_signature(self, session):
        """测试放置签名并写入签名数据."""
        session.arm_signature_tool("sig-2")
        session.pointer_down(300, 600)

        element = session.elements[0]
        assert isinstance(element, SignaturePlaceholderElement)
        assert element.signature_id == "sig-2"
        assert element.signature_data == "data:image/png;base64,BBB"

    def test_placement_requires_background(self, session):
        """测试背景未就绪时不能放置."""
        session.set_background_ready(False)
        session.arm_text_tool("studentName")

        assert not session.can_place
        session.pointer_down(600, 500)

        assert session.elements == []
        assert session.armed_tool is not None

    def test_click_on_element_selects_instead_of_placing(self, session):
        """测试点击已有元素时选中而非放置."""
        placed = session.add_element(TextFieldElement(field=FieldRole.STUDENT_NAME, x=100, y=100))
        session.select(None)
        session.arm_text_tool(FieldRole.COHORT)

        session.pointer_down(100, 100)

        assert len(session.elements) == 1
        assert session.selected_element_id == placed.id
        assert session.drag_controller.is_dragging


class TestSessionEditing:
    """元素编辑测试类."""

    def test_drag_commits_once(self, session, student_name_element):
        """测试拖拽只提交一次历史."""
        session.add_element(student_name_element)
        depth = len(session.history)

        session.pointer_down(100, 100)
        for step in range(1, 30):
            session.pointer_move(100 + step * 5, 100)
        session.pointer_up()

        assert len(session.history) == depth + 1
        assert session.elements[0].x == 245

        session.undo()
        assert session.elements[0].x == 100

    def test_click_without_move_does_not_commit(self, session, student_name_element):
        """测试未移动的点击不提交历史."""
        session.add_element(student_name_element)
        depth = len(session.history)

        session.pointer_down(100, 100)
        session.pointer_up()

        assert len(session.history) == depth

    def test_update_commits(self, session, student_name_element):
        """测试属性修改提交历史."""
        session.add_element(student_name_element)

        assert session.update_element(student_name_element.id, {"fontSize": 40})
        assert session.update_element("missing", {"fontSize": 40}) is False

        session.undo()
        assert session.elements[0].font_size == 24

    def test_delete_clears_selection(self, session, student_name_element):
        """测试删除选中元素时取消选中."""
        session.add_element(student_name_element)
        assert session.selected_element_id == student_name_element.id

        assert session.delete_selected()

        assert session.selected_element_id is None
        assert session.elements == []
        assert session.delete_selected() is False

    def test_undo_redo_scenario(self, session, student_name_element, signature_element):
        """测试添加两个元素后撤销与重做."""
        session.add_element(student_name_element)
        session.add_element(signature_element)

        assert session.undo()
        assert [e.id for e in session.elements] == [student_name_element.id]
        assert session.selected_element_id is None

        assert session.redo()
        assert [e.id for e in session.elements] == [student_name_element.id, signature_element.id]
        assert session.redo() is False

    def test_set_metadata_rejects_elements(self, session):
        """测试元数据不能修改元素列表."""
        with pytest.raises(ValueError):
            session.set_metadata(elements=[])


class TestSessionSaving:
    """保存与输出测试类."""

    def test_validate(self, session, student_name_element):
        """测试校验当前模板."""
        session.add_element(student_name_element)
        errors = session.validate()
        assert errors == ["Missing required text elements: courseType"]

    def test_save_assigns_id(self, qtbot, session, student_name_element, repository):
        """测试首次保存分配ID."""
        session.add_element(student_name_element)

        with qtbot.waitSignal(session.template_saved, timeout=1000):
            saved = session.save()

        assert saved.id.startswith("custom_")
        assert session.template_id == saved.id
        assert not session.is_modified
        assert repository.get(saved.id).elements == session.elements

    def test_second_save_updates_same_record(self, session, student_name_element, repository):
        """测试再次保存更新同一条记录."""
        session.add_element(student_name_element)
        first = session.save()

        session.update_element(student_name_element.id, {"x": 222})
        second = session.save()

        assert second.id == first.id
        assert second.created_at == first.created_at
        assert len(repository.list_custom()) == 1
        assert repository.get(first.id).elements[0].x == 222

    def test_saving_builtin_creates_copy(self, session, repository):
        """测试保存内置模板时分配新ID."""
        session.load_template("achievement")
        saved = session.save()

        assert saved.id != "achievement"
        assert session.template_id == saved.id
        assert repository.get("achievement") is not None

    def test_render_request(self, session, student_name_element):
        """测试渲染请求."""
        session.set_metadata(background_image_ref="bg.png")
        session.add_element(student_name_element)

        request = session.render_request({"studentName": "Ada"})

        assert request.background_image_ref == "bg.png"
        assert request.canvas_width == 1200
        assert request.field_values == {"studentName": "Ada"}
        assert [e.id for e in request.elements] == [student_name_element.id]
