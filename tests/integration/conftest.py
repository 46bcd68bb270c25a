"""集成测试配置和共享 fixtures."""

import pytest
from PIL import Image

from certstudio.app import Application
from certstudio.models.app_settings import Settings, load_settings
from certstudio.services.signature_service import SignatureRecord


@pytest.fixture
def app_settings(tmp_path) -> Settings:
    """使用临时存储目录的设置."""
    return load_settings(storage_dir=tmp_path / "storage", fonts_dir=tmp_path / "fonts")


@pytest.fixture
def sample_background_image(tmp_path):
    """创建示例背景图片."""
    path = tmp_path / "Montserrat_Sample.png"
    Image.new("RGB", (1200, 800), color=(255, 255, 255)).save(path)
    return path


@pytest.fixture
def application(app_settings) -> Application:
    """初始化完成的应用（包含一个签名）."""
    app = Application(app_settings)
    app.initialize()
    app.signatures.add(
        SignatureRecord(id="sig-1", signer_name="Ada", signature_data="data:image/png;base64,AAA")
    )
    return app
