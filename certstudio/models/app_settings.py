"""应用设置模型."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from certstudio.utils.constants import (
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
    DEFAULT_HISTORY_MAX_DEPTH,
    DEFAULT_STORAGE_KEY,
    STORAGE_DIR,
)


class Settings(BaseSettings):
    """应用设置.

    支持从环境变量（前缀 ``CERTSTUDIO_``）和 .env 文件加载配置。

    Attributes:
        log_level: 日志级别
        storage_dir: 文件存储目录
        storage_key: 自定义模板集合的存储键
        canvas_width: 默认画布宽度
        canvas_height: 默认画布高度
        history_max_depth: 撤销历史最大深度
        auto_cleanup: 构造存储库时是否自动清理
        fonts_dir: 额外的字体搜索目录
    """

    model_config = SettingsConfigDict(
        env_prefix="CERTSTUDIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="日志级别")

    # 存储配置
    storage_dir: Optional[Path] = Field(default=None, description="文件存储目录")
    storage_key: str = Field(
        default=DEFAULT_STORAGE_KEY,
        min_length=1,
        description="自定义模板存储键",
    )
    auto_cleanup: bool = Field(default=True, description="加载时自动清理")

    # 编辑器配置
    canvas_width: int = Field(default=DEFAULT_CANVAS_WIDTH, ge=100, le=10000)
    canvas_height: int = Field(default=DEFAULT_CANVAS_HEIGHT, ge=100, le=10000)
    history_max_depth: int = Field(
        default=DEFAULT_HISTORY_MAX_DEPTH,
        ge=2,
        le=10000,
        description="撤销历史最大深度",
    )

    # 字体配置
    fonts_dir: Optional[Path] = Field(default=None, description="额外字体目录")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """验证日志级别."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"无效的日志级别: {v}，有效值: {valid_levels}")
        return upper_v

    @property
    def resolved_storage_dir(self) -> Path:
        """获取存储目录."""
        return self.storage_dir or STORAGE_DIR

    @property
    def canvas_size(self) -> tuple[int, int]:
        """获取默认画布尺寸."""
        return (self.canvas_width, self.canvas_height)


def load_settings(**overrides: Any) -> Settings:
    """加载应用设置.

    Args:
        **overrides: 覆盖环境变量的设置项

    Returns:
        Settings 实例
    """
    return Settings(**overrides)
