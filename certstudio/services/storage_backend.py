"""模板存储后端.

存储库只依赖 ``get(key) -> bytes`` 与 ``set(key, bytes)`` 两个操作，
写入必须整体替换，不允许出现部分写入。

Features:
    - 内存后端（测试与临时会话）
    - JSON 文件后端（原子替换写入）
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol, runtime_checkable

from certstudio.utils.exceptions import StorageReadError, StorageWriteError
from certstudio.utils.logger import setup_logger

logger = setup_logger(__name__)

# 存储文件扩展名
STORAGE_EXTENSION = ".json"

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


@runtime_checkable
class StorageBackend(Protocol):
    """存储后端接口."""

    def get(self, key: str) -> Optional[bytes]:
        """读取键对应的数据，不存在返回 None."""
        ...

    def set(self, key: str, value: bytes) -> None:
        """整体写入键对应的数据."""
        ...


class MemoryStorageBackend:
    """内存存储后端."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None) -> None:
        self._data: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    def keys(self) -> list[str]:
        """已写入的键."""
        return list(self._data)


class JsonFileStorageBackend:
    """JSON 文件存储后端.

    每个键对应目录下的一个文件，写入时先写临时文件再原子替换。

    Example:
        >>> backend = JsonFileStorageBackend("/tmp/certstudio")
        >>> backend.set("templates", b"[]")
        >>> backend.get("templates")
        b'[]'
    """

    def __init__(self, directory: str | Path) -> None:
        """初始化文件后端.

        Args:
            directory: 存储目录
        """
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        """存储目录."""
        return self._directory

    def path_for(self, key: str) -> Path:
        """获取键对应的文件路径."""
        safe_key = _UNSAFE_KEY_CHARS.sub("_", key)
        return self._directory / f"{safe_key}{STORAGE_EXTENSION}"

    def get(self, key: str) -> Optional[bytes]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            logger.error(f"读取存储文件失败: {path}, 错误: {e}")
            raise StorageReadError(key, str(e)) from e

    def set(self, key: str, value: bytes) -> None:
        path = self.path_for(key)
        tmp_name: Optional[str] = None
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.stem}-",
                suffix=".tmp",
                dir=self._directory,
            )
            with os.fdopen(fd, "wb") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            logger.error(f"写入存储文件失败: {path}, 错误: {e}")
            raise StorageWriteError(key, str(e)) from e
        finally:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
