"""应用初始化和管理."""

from __future__ import annotations

from typing import Optional

from certstudio.models.app_settings import Settings, load_settings
from certstudio.utils.logger import set_log_level, setup_logger

logger = setup_logger(__name__)


class Application:
    """应用管理类.

    负责加载配置并构造存储库、签名存储库和字体提供者，
    宿主界面通过 ``create_session`` 获取编辑会话。

    Example:
        >>> app = Application()
        >>> app.initialize()
        >>> session = app.create_session()
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        """初始化应用管理器.

        Args:
            settings: 应用设置，默认从环境变量加载
        """
        self._settings = settings
        self._repository: Optional["TemplateRepository"] = None  # noqa: F821
        self._signatures: Optional["InMemorySignatureRepository"] = None  # noqa: F821
        self._font_provider: Optional["PillowFontProvider"] = None  # noqa: F821
        self._initialized: bool = False

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = load_settings()
        return self._settings

    @property
    def repository(self) -> "TemplateRepository":  # noqa: F821
        self._require_initialized()
        return self._repository

    @property
    def signatures(self) -> "InMemorySignatureRepository":  # noqa: F821
        self._require_initialized()
        return self._signatures

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """初始化应用.

        执行以下初始化步骤:
        1. 加载配置并应用日志级别
        2. 初始化模板存储库（按配置自动清理）
        3. 初始化签名存储库和字体提供者
        """
        if self._initialized:
            logger.warning("应用已初始化，跳过重复初始化")
            return

        logger.info("开始初始化应用...")

        set_log_level(self.settings.log_level)
        logger.debug(f"日志级别: {self.settings.log_level}")

        self._init_services()

        self._initialized = True
        logger.info("应用初始化完成")

    def _init_services(self) -> None:
        """初始化各服务."""
        from certstudio.services.font_service import PillowFontProvider
        from certstudio.services.signature_service import InMemorySignatureRepository
        from certstudio.services.template_repository import TemplateRepository

        self._repository = TemplateRepository.from_settings(self.settings)
        self._signatures = InMemorySignatureRepository()
        self._font_provider = PillowFontProvider(self.settings.fonts_dir)
        logger.debug(f"模板存储目录: {self.settings.resolved_storage_dir}")

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("应用尚未初始化，请先调用 initialize()")

    def create_session(self, template_id: Optional[str] = None) -> "TemplateEditorSession":  # noqa: F821
        """创建模板编辑会话.

        Args:
            template_id: 要加载的模板ID，默认新建空白模板

        Returns:
            编辑会话
        """
        from certstudio.core.editor_session import TemplateEditorSession

        self._require_initialized()
        session = TemplateEditorSession(
            self._repository,
            signature_lookup=self._signatures,
            font_provider=self._font_provider,
            settings=self.settings,
        )
        if template_id is not None and not session.load_template(template_id):
            logger.warning(f"模板不存在，使用空白模板: {template_id}")
        return session
