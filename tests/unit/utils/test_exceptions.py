"""异常与日志工具单元测试."""

import logging

from certstudio.utils.exceptions import (
    AppException,
    EditorError,
    ElementIdConflictError,
    InvalidElementUpdateError,
    StorageError,
    StorageReadError,
)
from certstudio.utils.logger import get_log_level, get_log_level_name, set_log_level, setup_logger


class TestExceptions:
    """异常层次测试类."""

    def test_str_includes_code(self):
        """测试字符串包含错误代码."""
        assert str(AppException("出错了", "X")) == "[X] 出错了"

    def test_storage_errors(self):
        """测试存储异常."""
        error = StorageReadError("key", "boom")
        assert isinstance(error, StorageError)
        assert error.code == "STORAGE_ERROR"
        assert "key" in error.message
        assert "boom" in error.message

    def test_editor_errors(self):
        """测试编辑器异常."""
        conflict = ElementIdConflictError("el-1")
        invalid = InvalidElementUpdateError("el-2", "bad")

        assert isinstance(conflict, EditorError)
        assert conflict.element_id == "el-1"
        assert invalid.code == "EDITOR_ERROR"


class TestLogger:
    """日志工具测试类."""

    def test_setup_logger(self):
        """测试创建日志器."""
        logger = setup_logger("certstudio.test")
        assert logger.name == "certstudio.test"

    def test_set_log_level(self):
        """测试设置全局日志级别."""
        original = get_log_level()
        try:
            set_log_level("DEBUG")
            assert get_log_level() == logging.DEBUG
            assert get_log_level_name() == "DEBUG"
        finally:
            set_log_level(original)
