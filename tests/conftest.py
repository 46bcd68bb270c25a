"""Pytest 配置和共享 fixtures."""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from certstudio.models.app_settings import Settings, load_settings
from certstudio.models.template_config import (
    FieldRole,
    LegacyFieldPosition,
    SignaturePlaceholderElement,
    TemplateRecord,
    TextFieldElement,
)
from certstudio.services.signature_service import InMemorySignatureRepository, SignatureRecord
from certstudio.services.storage_backend import MemoryStorageBackend
from certstudio.services.template_repository import TemplateRepository


class FakeTextMeasurer:
    """确定性的文字测量：宽度 = 字符数 × 字号 × 0.5."""

    def __init__(self) -> None:
        self.calls = []

    def measure(self, text: str, font_size: float, font_family: str, font_weight: str) -> float:
        self.calls.append((text, font_size, font_family, font_weight))
        return len(text) * font_size * 0.5


@pytest.fixture
def measurer() -> FakeTextMeasurer:
    """返回假的文字测量器."""
    return FakeTextMeasurer()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """返回指向临时目录的设置."""
    return load_settings(storage_dir=tmp_path / "storage", history_max_depth=50)


@pytest.fixture
def memory_backend() -> MemoryStorageBackend:
    """返回内存存储后端."""
    return MemoryStorageBackend()


@pytest.fixture
def repository(memory_backend: MemoryStorageBackend) -> TemplateRepository:
    """返回使用内存后端的模板存储库."""
    return TemplateRepository(memory_backend)


@pytest.fixture
def signature_repository() -> InMemorySignatureRepository:
    """返回包含两个签名的签名存储库."""
    return InMemorySignatureRepository([
        SignatureRecord(id="sig-1", signer_name="Ada", signature_data="data:image/png;base64,AAA"),
        SignatureRecord(id="sig-2", signer_name="Grace", signature_data="data:image/png;base64,BBB"),
    ])


@pytest.fixture
def student_name_element() -> TextFieldElement:
    """返回学员姓名文字元素."""
    return TextFieldElement(field=FieldRole.STUDENT_NAME, x=100, y=100, font_size=24)


@pytest.fixture
def signature_element() -> SignaturePlaceholderElement:
    """返回签名占位元素."""
    return SignaturePlaceholderElement(x=300, y=300, width=200, height=80, signature_id="sig-1")


@pytest.fixture
def valid_record() -> TemplateRecord:
    """返回可通过校验的模板."""
    return TemplateRecord(
        name="结业证书",
        description="测试模板",
        font_ref="Montserrat",
        elements=[
            TextFieldElement(field=FieldRole.STUDENT_NAME, x=600, y=320),
            TextFieldElement(field=FieldRole.COURSE_TYPE, x=600, y=420),
        ],
    )


@pytest.fixture
def legacy_record() -> TemplateRecord:
    """返回旧版结构的模板."""
    return TemplateRecord(
        name="旧版模板",
        legacy_field_positions={
            "studentName": LegacyFieldPosition(x=100, y=50, fontSize=24),
            "courseType": LegacyFieldPosition(x=100, y=120, fontSize=18, fill="#333333"),
        },
    )
