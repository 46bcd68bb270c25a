"""签名查询服务.

编辑器在设置签名占位的 ``signatureId`` 时，通过签名存储库解析出签名位图
引用并冗余写入元素。签名的手绘采集不在本模块范围内。
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from certstudio.utils.logger import setup_logger

logger = setup_logger(__name__)


class SignatureRecord(BaseModel):
    """签名记录.

    Attributes:
        id: 签名ID
        signer_name: 签名人
        signature_data: 签名位图引用（通常为 base64 data URL）
        signed_at: 签名时间
        status: 状态
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    signer_name: str = Field(default="", alias="signerName")
    signature_data: str = Field(alias="signatureData")
    signed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="signedAt",
    )
    status: str = "active"


@runtime_checkable
class SignatureRepository(Protocol):
    """签名存储库接口."""

    def get_signature(self, signature_id: str) -> Optional[SignatureRecord]:
        """根据ID获取签名，不存在返回 None."""
        ...


class InMemorySignatureRepository:
    """内存签名存储库."""

    def __init__(self, signatures: Optional[List[SignatureRecord]] = None) -> None:
        self._signatures: Dict[str, SignatureRecord] = {}
        for signature in signatures or []:
            self.add(signature)

    def add(self, signature: SignatureRecord) -> None:
        """添加或替换签名."""
        self._signatures[signature.id] = signature
        logger.debug(f"签名已登记: {signature.id}")

    def remove(self, signature_id: str) -> bool:
        """删除签名."""
        return self._signatures.pop(signature_id, None) is not None

    def get_signature(self, signature_id: str) -> Optional[SignatureRecord]:
        return self._signatures.get(signature_id)

    def list_signatures(self) -> List[SignatureRecord]:
        """获取全部签名（按登记顺序）."""
        return list(self._signatures.values())
