"""证书模板布局编辑器与模板存储库."""

__version__ = "1.0.0"
