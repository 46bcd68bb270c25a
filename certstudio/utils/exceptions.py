"""自定义异常类."""

from __future__ import annotations


class AppException(Exception):
    """应用基础异常类.

    所有自定义异常都应继承此类。

    Attributes:
        message: 错误消息
        code: 错误代码
    """

    def __init__(self, message: str, code: str = "UNKNOWN") -> None:
        """初始化异常.

        Args:
            message: 错误消息
            code: 错误代码
        """
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        """返回异常字符串表示."""
        return f"[{self.code}] {self.message}"


# ===================
# 存储相关异常
# ===================
class StorageError(AppException):
    """存储后端错误异常."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "STORAGE_ERROR")


class StorageReadError(StorageError):
    """存储读取失败异常."""

    def __init__(self, key: str, reason: str = "") -> None:
        msg = f"无法读取存储键 '{key}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class StorageWriteError(StorageError):
    """存储写入失败异常."""

    def __init__(self, key: str, reason: str = "") -> None:
        msg = f"无法写入存储键 '{key}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


# ===================
# 编辑器相关异常
# ===================
class EditorError(AppException):
    """编辑器错误异常."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "EDITOR_ERROR")


class ElementIdConflictError(EditorError):
    """元素ID冲突异常."""

    def __init__(self, element_id: str) -> None:
        self.element_id = element_id
        super().__init__(f"元素ID已存在: {element_id}")


class InvalidElementUpdateError(EditorError):
    """元素属性更新无效异常."""

    def __init__(self, element_id: str, reason: str) -> None:
        self.element_id = element_id
        super().__init__(f"元素 '{element_id}' 的属性更新无效: {reason}")
