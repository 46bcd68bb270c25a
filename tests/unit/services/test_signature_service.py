"""签名服务单元测试."""

from certstudio.services.signature_service import (
    InMemorySignatureRepository,
    SignatureRecord,
    SignatureRepository,
)


class TestSignatureRecord:
    """签名记录测试类."""

    def test_storage_aliases(self):
        """测试存储格式字段."""
        record = SignatureRecord.model_validate(
            {"id": "sig-1", "signerName": "Ada", "signatureData": "data:image/png;base64,AAA"}
        )
        assert record.signer_name == "Ada"
        assert record.status == "active"
        assert record.signed_at is not None


class TestInMemorySignatureRepository:
    """内存签名存储库测试类."""

    def test_protocol(self, signature_repository):
        """测试满足签名存储库接口."""
        assert isinstance(signature_repository, SignatureRepository)

    def test_get(self, signature_repository):
        """测试获取签名."""
        assert signature_repository.get_signature("sig-1").signer_name == "Ada"
        assert signature_repository.get_signature("missing") is None

    def test_add_replace_remove(self):
        """测试添加、替换与删除."""
        repository = InMemorySignatureRepository()
        repository.add(SignatureRecord(id="s", signature_data="a"))
        repository.add(SignatureRecord(id="s", signature_data="b"))

        assert [s.signature_data for s in repository.list_signatures()] == ["b"]
        assert repository.remove("s")
        assert repository.remove("s") is False
