"""字体服务单元测试."""

import pytest
from PIL import ImageFont

from certstudio.services.font_service import (
    FontProvider,
    PillowFontProvider,
    find_font,
    get_font_filename,
    load_default_font,
    parse_font_from_filename,
)


class TestParseFontFromFilename:
    """文件名解析测试类."""

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("Amsterdam Four_ttf 400_Minimalist Certificate.png", "Amsterdam Four_ttf 400"),
            ("BrightWall_Achievement.png", "BrightWall"),
            ("Montserrat_Simple.svg", "Montserrat"),
            ("NoUnderscore.png", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse(self, filename, expected):
        """测试解析字体名称."""
        assert parse_font_from_filename(filename) == expected


class TestFontFilename:
    """字体文件名映射测试类."""

    def test_known_font(self):
        """测试已登记的字体."""
        assert get_font_filename("BrightWall") == "Brightwall Personal Use Only.ttf"

    def test_web_font(self):
        """测试 Web 字体没有文件."""
        assert get_font_filename("Montserrat") is None

    def test_unknown_font(self):
        """测试未登记的字体按名称猜测."""
        assert get_font_filename("Georgia") == "Georgia.ttf"
        assert get_font_filename(None) is None


class TestFindFont:
    """字体查找测试类."""

    def test_fallback_to_default(self):
        """测试找不到字体时回退."""
        font = find_font("Definitely Not A Font", 20)
        assert hasattr(font, "getlength")

    def test_default_font(self):
        """测试默认字体."""
        font = load_default_font(16)
        assert isinstance(font, (ImageFont.ImageFont, ImageFont.FreeTypeFont))


class TestPillowFontProvider:
    """Pillow 字体提供者测试类."""

    def test_protocol(self):
        """测试满足字体提供者接口."""
        assert isinstance(PillowFontProvider(), FontProvider)

    def test_empty_ref_is_ready(self):
        """测试未指定字体时视为就绪."""
        provider = PillowFontProvider()
        assert provider.is_ready(None)
        assert provider.is_ready("")

    def test_unknown_font_not_ready(self, tmp_path):
        """测试未找到的字体不就绪."""
        provider = PillowFontProvider(fonts_dir=tmp_path)

        assert provider.load("Definitely Not A Font") is False
        assert not provider.is_ready("Definitely Not A Font")
        assert provider.loaded_fonts == []

    def test_clear(self):
        """测试清空."""
        provider = PillowFontProvider()
        provider.clear()
        assert provider.loaded_fonts == []
