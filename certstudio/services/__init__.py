"""服务层模块."""

from certstudio.services.builtin_templates import (
    DEFAULT_TEMPLATE_ID,
    RESERVED_TEMPLATE_IDS,
    create_builtin_templates,
    is_reserved_template_id,
)
from certstudio.services.font_service import (
    FontProvider,
    PillowFontProvider,
    find_font,
    parse_font_from_filename,
)
from certstudio.services.signature_service import (
    InMemorySignatureRepository,
    SignatureRecord,
    SignatureRepository,
)
from certstudio.services.storage_backend import (
    JsonFileStorageBackend,
    MemoryStorageBackend,
    StorageBackend,
)
from certstudio.services.template_repository import (
    DeleteResult,
    ImportResult,
    TemplateRepository,
    validate_template,
)

__all__ = [
    # 内置模板
    "DEFAULT_TEMPLATE_ID",
    "RESERVED_TEMPLATE_IDS",
    "create_builtin_templates",
    "is_reserved_template_id",
    # 字体服务
    "FontProvider",
    "PillowFontProvider",
    "find_font",
    "parse_font_from_filename",
    # 签名服务
    "InMemorySignatureRepository",
    "SignatureRecord",
    "SignatureRepository",
    # 存储后端
    "JsonFileStorageBackend",
    "MemoryStorageBackend",
    "StorageBackend",
    # 模板存储库
    "DeleteResult",
    "ImportResult",
    "TemplateRepository",
    "validate_template",
]
