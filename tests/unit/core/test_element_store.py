"""元素存储单元测试."""

import math

import pytest

from certstudio.core.element_store import ElementStore
from certstudio.models.template_config import (
    FieldRole,
    SignaturePlaceholderElement,
    TextFieldElement,
)
from certstudio.utils.exceptions import ElementIdConflictError, InvalidElementUpdateError


@pytest.fixture
def store(signature_repository) -> ElementStore:
    """创建带签名存储库的元素存储."""
    return ElementStore(signature_lookup=signature_repository)


class TestElementStoreAdd:
    """添加元素测试类."""

    def test_add_appends(self, store, student_name_element, signature_element):
        """测试添加到末尾."""
        store.add(student_name_element)
        store.add(signature_element)

        assert [e.id for e in store.elements] == [student_name_element.id, signature_element.id]
        assert len(store) == 2

    def test_add_returns_stored_element(self, store, student_name_element):
        """测试返回存储中的元素."""
        added = store.add(student_name_element)
        assert store.get(added.id) is added

    def test_add_duplicate_id_raises(self, store, student_name_element):
        """测试重复ID."""
        store.add(student_name_element)
        duplicate = TextFieldElement(id=student_name_element.id, field=FieldRole.COHORT, x=0, y=0)

        with pytest.raises(ElementIdConflictError):
            store.add(duplicate)
        assert len(store) == 1

    def test_add_signature_denormalizes(self, store, signature_element):
        """测试添加签名时写入签名数据."""
        added = store.add(signature_element)
        assert added.signature_data == "data:image/png;base64,AAA"

    def test_add_emits_signals(self, qtbot, store, student_name_element):
        """测试添加信号."""
        with qtbot.waitSignal(store.element_added, timeout=1000) as blocker:
            store.add(student_name_element)
        assert blocker.args == [student_name_element.id]


class TestElementStoreUpdate:
    """更新元素测试类."""

    def test_update_missing_returns_false(self, store):
        """测试更新不存在的元素."""
        assert store.update("missing", {"x": 1}) is False

    def test_shallow_merge(self, store, student_name_element):
        """测试浅合并."""
        store.add(student_name_element)

        assert store.update(student_name_element.id, {"fontSize": 32, "color": "#FF0000"})

        updated = store.get(student_name_element.id)
        assert updated.font_size == 32
        assert updated.color == "#FF0000"
        assert updated.field == FieldRole.STUDENT_NAME
        assert (updated.x, updated.y) == (100, 100)

    def test_accepts_field_names(self, store, student_name_element):
        """测试模型字段名."""
        store.add(student_name_element)
        store.update(student_name_element.id, {"font_weight": "bold", "custom_text": "x"})

        updated = store.get(student_name_element.id)
        assert updated.font_weight == "bold"
        assert updated.custom_text == "x"

    def test_id_and_type_are_immutable(self, store, student_name_element):
        """测试不可修改ID和类型."""
        store.add(student_name_element)
        store.update(student_name_element.id, {"id": "other", "type": "signature", "x": 5})

        updated = store.get(student_name_element.id)
        assert isinstance(updated, TextFieldElement)
        assert updated.x == 5
        assert store.get("other") is None

    def test_invalid_update_leaves_element_unchanged(self, store, student_name_element):
        """测试无效更新不修改元素."""
        store.add(student_name_element)

        with pytest.raises(InvalidElementUpdateError):
            store.update(student_name_element.id, {"fontSize": -1})

        assert store.get(student_name_element.id).font_size == 24

    def test_signature_id_denormalizes(self, store, signature_element):
        """测试修改签名ID时更新签名数据."""
        store.add(signature_element)

        store.update(signature_element.id, {"signatureId": "sig-2"})

        updated = store.get(signature_element.id)
        assert updated.signature_id == "sig-2"
        assert updated.signature_data == "data:image/png;base64,BBB"

    def test_unknown_signature_clears_data(self, store, signature_element):
        """测试签名不存在时清空签名数据."""
        store.add(signature_element)
        store.update(signature_element.id, {"signature_id": "sig-404"})

        assert store.get(signature_element.id).signature_data is None

    def test_update_emits_signal(self, qtbot, store, student_name_element):
        """测试更新信号."""
        store.add(student_name_element)
        with qtbot.waitSignal(store.element_updated, timeout=1000):
            store.update(student_name_element.id, {"fontSize": 20})


class TestElementStoreDeleteAndMove:
    """删除与移动测试类."""

    def test_delete(self, store, student_name_element):
        """测试删除."""
        store.add(student_name_element)

        assert store.delete(student_name_element.id)
        assert len(store) == 0
        assert store.delete(student_name_element.id) is False

    def test_move(self, store, student_name_element):
        """测试移动."""
        store.add(student_name_element)

        assert store.move(student_name_element.id, 250.5, 80)

        moved = store.get(student_name_element.id)
        assert (moved.x, moved.y) == (250.5, 80)

    @pytest.mark.parametrize("x, y", [(5, math.nan), (math.inf, 5), (5, "abc")])
    def test_move_non_finite_rejected(self, store, student_name_element, x, y):
        """测试非有限坐标的移动被拒绝，元素保持原位."""
        store.add(student_name_element)

        with pytest.raises(InvalidElementUpdateError):
            store.move(student_name_element.id, x, y)

        element = store.get(student_name_element.id)
        assert (element.x, element.y) == (100, 100)

    def test_move_missing(self, store):
        """测试移动不存在的元素."""
        assert store.move("missing", 1, 1) is False

    def test_move_emits_coordinates(self, qtbot, store, student_name_element):
        """测试移动信号."""
        store.add(student_name_element)
        with qtbot.waitSignal(store.element_moved, timeout=1000) as blocker:
            store.move(student_name_element.id, 10, 20)
        assert blocker.args == [student_name_element.id, 10.0, 20.0]

    def test_ids_stay_unique(self, store):
        """测试任意操作序列后ID唯一."""
        ids = []
        for i in range(10):
            element = TextFieldElement(field=FieldRole.CUSTOM, x=i, y=i, custom_text=str(i))
            store.add(element)
            ids.append(element.id)
        for element_id in ids[::3]:
            store.delete(element_id)
        for element_id in ids[1::3]:
            store.update(element_id, {"id": ids[0], "x": 0})
            with pytest.raises(ElementIdConflictError):
                store.add(TextFieldElement(id=element_id, field=FieldRole.COHORT, x=0, y=0))

        current = [e.id for e in store.elements]
        assert len(current) == len(set(current))


class TestElementStoreSnapshot:
    """快照测试类."""

    def test_snapshot_is_independent(self, store, student_name_element):
        """测试快照独立."""
        store.add(student_name_element)
        snapshot = store.snapshot()

        store.move(student_name_element.id, 999, 999)

        assert snapshot[0].x == 100

    def test_restore(self, store, student_name_element, signature_element):
        """测试恢复快照."""
        store.add(student_name_element)
        snapshot = store.snapshot()
        store.add(signature_element)

        store.restore(snapshot)

        assert [e.id for e in store.elements] == [student_name_element.id]

    def test_restore_rejects_duplicate_ids(self, store):
        """测试恢复含重复ID的快照."""
        element = SignaturePlaceholderElement(x=0, y=0)
        with pytest.raises(ElementIdConflictError):
            store.restore([element, element.model_copy()])

    def test_initial_elements_are_copied(self, student_name_element):
        """测试初始元素被深拷贝."""
        store = ElementStore([student_name_element])
        store.move(student_name_element.id, 1, 1)
        assert student_name_element.x == 100
