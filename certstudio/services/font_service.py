"""字体服务.

模板只保存字体名称，不保存字体二进制。本模块负责把字体名称解析为
Pillow 可用的字体对象，并提供就绪状态供编辑器判断。

Features:
    - 从背景文件名推断字体名称
    - 字体名称到字体文件的映射
    - 系统与自定义目录中的字体查找（粗体变体、默认字体回退）
    - 字体就绪状态查询
"""

from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Optional, Protocol, Union, runtime_checkable

from PIL import ImageFont

from certstudio.utils.logger import setup_logger

logger = setup_logger(__name__)


# ===================
# 常量定义
# ===================

# 默认字体
DEFAULT_FONT_NAME = "Arial"

# 字体搜索路径
FONT_SEARCH_PATHS = [
    "/System/Library/Fonts/",
    "/System/Library/Fonts/Supplemental/",
    "/Library/Fonts/",
    "~/Library/Fonts/",
    "C:/Windows/Fonts/",
    "/usr/share/fonts/",
    "/usr/share/fonts/truetype/",
]

# 已知字体名称到文件名的映射
FONT_FILE_MAP: dict[str, str] = {
    "Amsterdam Four_ttf 400": "Amsterdam Four_ttf 400.ttf",
    "Amsterdam Four": "Amsterdam Four_ttf 400.ttf",
    "BrightWall": "Brightwall Personal Use Only.ttf",
    "Brightwall Personal Use Only": "Brightwall Personal Use Only.ttf",
}

# 通过 CSS 加载的 Web 字体，没有对应的字体文件
WEB_FONTS = {"Montserrat", "Poppins", "Open Sans"}

_IMAGE_EXTENSION = re.compile(r"\.(png|jpg|jpeg|svg|pdf)$", re.IGNORECASE)

AnyFont = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]


# ===================
# 文件名解析
# ===================


def parse_font_from_filename(filename: Optional[str]) -> Optional[str]:
    """从背景文件名中解析字体名称.

    文件名格式为 ``{字体名}_{模板名}.png``，字体名本身可能带有
    ``_ttf 400`` 之类的后缀。

    Args:
        filename: 背景文件名

    Returns:
        字体名称，无法解析返回 None

    Example:
        >>> parse_font_from_filename("Amsterdam Four_ttf 400_Minimalist Certificate.png")
        'Amsterdam Four_ttf 400'
        >>> parse_font_from_filename("BrightWall_Achievement.png")
        'BrightWall'
    """
    if not filename:
        return None

    stem = _IMAGE_EXTENSION.sub("", filename)
    parts = stem.split("_")
    if len(parts) < 2:
        return None

    if len(parts) >= 3 and ("ttf" in parts[1] or re.match(r"^\d+", parts[1])):
        return f"{parts[0]}_{parts[1]}"

    return parts[0]


def get_font_filename(font_name: Optional[str]) -> Optional[str]:
    """获取字体名称对应的字体文件名.

    Web 字体返回 None；未登记的字体按 ``{名称}.ttf`` 猜测。
    """
    if not font_name or font_name in WEB_FONTS:
        return None
    return FONT_FILE_MAP.get(font_name, f"{font_name}.ttf")


# ===================
# 字体查找
# ===================


def _font_variants(font_family: str, bold: bool) -> list[str]:
    """字体文件候选名列表."""
    variants = [font_family]
    mapped = get_font_filename(font_family)
    if mapped:
        variants.append(mapped)
    variants.extend([
        f"{font_family}.ttf",
        f"{font_family}.otf",
        f"{font_family}.ttc",
    ])
    if bold:
        variants = [
            f"{font_family}-Bold.ttf",
            f"{font_family} Bold.ttf",
        ] + variants
    return variants


def _search_dirs(extra_dirs: Iterable[str]) -> list[str]:
    """所有存在的搜索目录."""
    result = []
    for search_path in [*extra_dirs, *FONT_SEARCH_PATHS]:
        expanded_path = os.path.expanduser(search_path)
        if os.path.isdir(expanded_path):
            result.append(expanded_path)
    return result


def load_default_font(font_size: int) -> AnyFont:
    """加载 Pillow 默认字体.

    较新的 Pillow 支持指定默认字体大小，旧版本只有固定大小的位图字体。
    """
    try:
        return ImageFont.load_default(size=font_size)
    except TypeError:
        return ImageFont.load_default()


@lru_cache(maxsize=256)
def _locate_font(
    font_family: str,
    font_size: int,
    bold: bool,
    extra_dirs: tuple[str, ...],
) -> Optional[ImageFont.FreeTypeFont]:
    """查找并加载字体文件，未找到返回 None."""
    # 尝试直接加载（绝对路径或系统可识别的名称）
    try:
        return ImageFont.truetype(font_family, font_size)
    except OSError:
        pass

    variants = _font_variants(font_family, bold)
    for directory in _search_dirs(extra_dirs):
        for variant in variants:
            font_path = os.path.join(directory, variant)
            if os.path.exists(font_path):
                try:
                    return ImageFont.truetype(font_path, font_size)
                except OSError:
                    continue

    return None


def find_font(
    font_family: Optional[str],
    font_size: float,
    bold: bool = False,
    extra_dirs: Iterable[Union[str, Path]] = (),
) -> AnyFont:
    """查找字体.

    Args:
        font_family: 字体名称
        font_size: 字体大小
        bold: 是否粗体
        extra_dirs: 额外搜索目录

    Returns:
        ImageFont 对象，找不到时回退到默认字体
    """
    size = max(1, round(font_size))
    dirs = tuple(str(d) for d in extra_dirs)

    for family in (font_family, DEFAULT_FONT_NAME):
        if not family:
            continue
        font = _locate_font(family, size, bold, dirs)
        if font is not None:
            return font
        if family == font_family:
            logger.debug(f"字体 '{family}' 未找到，尝试回退")

    return load_default_font(size)


# ===================
# 字体提供者
# ===================


@runtime_checkable
class FontProvider(Protocol):
    """字体提供者接口."""

    def is_ready(self, font_ref: Optional[str]) -> bool:
        """字体是否已可用于渲染."""
        ...


class PillowFontProvider:
    """基于 Pillow 的字体提供者.

    ``load`` 成功从字体文件解析后字体即为就绪；回退到默认字体不算就绪。

    Example:
        >>> provider = PillowFontProvider()
        >>> provider.load("DejaVu Sans")
        >>> provider.is_ready("DejaVu Sans")
    """

    def __init__(self, fonts_dir: Optional[Union[str, Path]] = None) -> None:
        """初始化字体提供者.

        Args:
            fonts_dir: 额外字体目录（例如随模板分发的字体）
        """
        self._extra_dirs: tuple[str, ...] = (str(fonts_dir),) if fonts_dir else ()
        self._loaded: set[str] = set()

    @property
    def loaded_fonts(self) -> list[str]:
        """已就绪的字体名称."""
        return sorted(self._loaded)

    def load(self, font_ref: Optional[str]) -> bool:
        """加载字体.

        Args:
            font_ref: 字体名称

        Returns:
            是否成功从字体文件加载
        """
        if not font_ref:
            return False
        if font_ref in self._loaded:
            return True

        font = _locate_font(font_ref, 24, False, self._extra_dirs)
        if font is None:
            logger.warning(f"字体加载失败: {font_ref}")
            return False

        self._loaded.add(font_ref)
        logger.info(f"字体已就绪: {font_ref}")
        return True

    def is_ready(self, font_ref: Optional[str]) -> bool:
        # 未指定字体时使用默认字体，视为就绪
        if not font_ref:
            return True
        return font_ref in self._loaded

    def get_font(self, font_family: Optional[str], font_size: float, bold: bool = False) -> AnyFont:
        """获取指定大小的字体对象."""
        return find_font(font_family, font_size, bold=bold, extra_dirs=self._extra_dirs)

    def clear(self) -> None:
        """清空就绪记录与字体缓存."""
        self._loaded.clear()
        _locate_font.cache_clear()
