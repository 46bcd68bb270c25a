"""应用常量定义."""

from pathlib import Path

# ===================
# 应用信息
# ===================
APP_NAME = "证书模板布局编辑器"
APP_VERSION = "1.0.0"

# ===================
# 路径常量
# ===================
# 应用数据目录
APP_DATA_DIR = Path.home() / ".certstudio"

# 日志目录
LOG_DIR = APP_DATA_DIR / "logs"

# 模板存储目录
STORAGE_DIR = APP_DATA_DIR / "storage"

# ===================
# 存储设置
# ===================
# 自定义模板集合的命名空间键
DEFAULT_STORAGE_KEY = "certstudio_custom_templates"

# ===================
# 画布设置
# ===================
DEFAULT_CANVAS_WIDTH = 1200
DEFAULT_CANVAS_HEIGHT = 800
DEFAULT_CANVAS_SIZE = (DEFAULT_CANVAS_WIDTH, DEFAULT_CANVAS_HEIGHT)

# 文字元素命中检测的内边距
TEXT_HIT_PADDING = 5.0

# ===================
# 元素默认值
# ===================
DEFAULT_FONT_SIZE = 24.0
DEFAULT_FONT_FAMILY = "Arial"
DEFAULT_FONT_WEIGHT = "normal"
DEFAULT_TEXT_COLOR = "#000000"
DEFAULT_SIGNATURE_WIDTH = 200.0
DEFAULT_SIGNATURE_HEIGHT = 80.0

# ===================
# 历史记录设置
# ===================
DEFAULT_HISTORY_MAX_DEPTH = 100
