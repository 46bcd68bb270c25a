"""模板存储库服务.

管理自定义证书模板的持久化：保存、更新、删除、复制、校验、清理、导入导出，
并负责旧版结构迁移和模板ID冲突的自动修复。

Features:
    - 整个自定义模板集合保存在一个命名空间键下（整体读写）
    - 内置模板只读，不可删除或覆盖
    - ID 缺失或冲突时静默重新分配
    - 元素列表非空时不持久化旧版位置
    - 幂等清理（内置ID冲突、重复ID、旧版位置残留）
    - 逐条容错的批量导入
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import TypeAdapter, ValidationError

from certstudio.models.app_settings import Settings
from certstudio.models.template_config import (
    REQUIRED_FIELD_ROLES,
    ElementType,
    TemplateRecord,
    generate_template_id,
)
from certstudio.services.builtin_templates import (
    RESERVED_TEMPLATE_IDS,
    create_builtin_templates,
)
from certstudio.services.storage_backend import JsonFileStorageBackend, StorageBackend
from certstudio.utils.constants import DEFAULT_STORAGE_KEY
from certstudio.utils.exceptions import StorageError, StorageReadError, StorageWriteError
from certstudio.utils.logger import setup_logger

logger = setup_logger(__name__)

_datetime_adapter: TypeAdapter = TypeAdapter(Optional[datetime])


# ===================
# 结果类型
# ===================


class DeleteResult(str, Enum):
    """删除操作结果."""

    DELETED = "deleted"  # 已删除
    NOT_FOUND = "not_found"  # 不存在
    NOT_PERMITTED = "not_permitted"  # 内置模板，不允许删除

    @property
    def removed(self) -> bool:
        """是否确实删除了记录."""
        return self is DeleteResult.DELETED


@dataclass
class ImportResult:
    """批量导入结果."""

    imported_count: int = 0
    total_count: int = 0
    errors: List[str] = field(default_factory=list)
    success: bool = True


# ===================
# 校验
# ===================


def _is_number(value: Any) -> bool:
    """是否为有限数值（布尔值除外）."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _validate_elements(elements: list) -> List[str]:
    """校验元素列表."""
    errors: List[str] = []

    present_roles = {
        element.get("field")
        for element in elements
        if isinstance(element, Mapping) and element.get("type") == ElementType.TEXT.value
    }
    missing = [role.value for role in REQUIRED_FIELD_ROLES if role.value not in present_roles]
    if missing:
        errors.append(f"Missing required text elements: {', '.join(missing)}")

    known_types = {t.value for t in ElementType}
    seen_ids: set = set()
    for index, element in enumerate(elements, start=1):
        if not isinstance(element, Mapping):
            errors.append(f"Element {index}: Element must be an object")
            continue

        element_id = element.get("id")
        element_type = element.get("type")
        if not element_id or not element_type:
            errors.append(f"Element {index}: Missing id or type")
        elif element_type not in known_types:
            errors.append(f"Element {index}: Unknown element type '{element_type}'")

        if isinstance(element_id, str) and element_id:
            if element_id in seen_ids:
                errors.append(f"Element {index}: Duplicate id '{element_id}'")
            seen_ids.add(element_id)

        if not _is_number(element.get("x")) or not _is_number(element.get("y")):
            errors.append(f"Element {index}: Invalid coordinates (x, y must be finite numbers)")

        if element_type == ElementType.TEXT.value and not element.get("field"):
            errors.append(f"Element {index}: Text elements must have a field")
        if element_type == ElementType.SIGNATURE.value and not element.get("signatureId"):
            errors.append(f"Element {index}: Signature elements must have a signatureId")

    return errors


def _validate_legacy_positions(positions: Mapping) -> List[str]:
    """校验旧版位置映射."""
    errors: List[str] = []
    for role in REQUIRED_FIELD_ROLES:
        position = positions.get(role.value)
        if not position:
            errors.append(f"Missing required text position: {role.value}")
            continue
        if not isinstance(position, Mapping):
            errors.append(f"Invalid text position for {role.value}")
            continue
        if not _is_number(position.get("x")) or not _is_number(position.get("y")):
            errors.append(f"Invalid coordinates for {role.value}: x and y must be numbers")
        font_size = position.get("fontSize")
        if not _is_number(font_size) or font_size <= 0:
            errors.append(f"Invalid fontSize for {role.value}")
    return errors


def validate_template(template: Union[TemplateRecord, Mapping[str, Any]]) -> List[str]:
    """校验模板结构.

    校验失败以违规列表返回，不抛出异常，由调用方决定是否阻止保存。

    Args:
        template: 模板记录或存储格式字典

    Returns:
        违规描述列表，空列表表示通过
    """
    if isinstance(template, TemplateRecord):
        data: Mapping[str, Any] = template.to_storage_dict()
    else:
        data = template

    if not isinstance(data, Mapping):
        return ["Template must be an object"]

    errors: List[str] = []

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("Template name is required")

    elements = data.get("elements")
    legacy = data.get("textPositions")
    if isinstance(elements, list) and (elements or not isinstance(legacy, Mapping)):
        errors.extend(_validate_elements(elements))
    elif isinstance(legacy, Mapping):
        errors.extend(_validate_legacy_positions(legacy))
    else:
        errors.append("Template must have either elements array or textPositions object")

    return errors


def _format_error(error: Exception) -> str:
    """将解析异常格式化为单行消息."""
    if isinstance(error, ValidationError):
        parts = []
        for item in error.errors():
            location = ".".join(str(p) for p in item.get("loc", ()))
            parts.append(f"{location}: {item.get('msg')}" if location else str(item.get("msg")))
        return "; ".join(parts)
    return str(error)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _string_ids(records: List[Any]) -> set:
    """收集记录中的字符串ID."""
    return {
        data["id"] for data in records
        if isinstance(data, dict) and isinstance(data.get("id"), str)
    }


# ===================
# 模板存储库
# ===================


class TemplateRepository:
    """模板存储库.

    每个进程构造一次，通过注入的存储后端读写整个自定义模板集合。
    所有写操作都是“读取-修改-整体写回”，写入失败时存储内容保持不变。

    Example:
        >>> repo = TemplateRepository(MemoryStorageBackend())
        >>> saved = repo.save(TemplateRecord(name="结业证书"))
        >>> repo.get(saved.id).name
        '结业证书'
    """

    def __init__(
        self,
        backend: StorageBackend,
        storage_key: str = DEFAULT_STORAGE_KEY,
        builtin_templates: Optional[Iterable[TemplateRecord]] = None,
        auto_cleanup: bool = True,
    ) -> None:
        """初始化模板存储库.

        Args:
            backend: 存储后端
            storage_key: 自定义模板集合的存储键
            builtin_templates: 内置模板，默认使用应用自带模板
            auto_cleanup: 是否在构造时执行一次清理
        """
        self._backend = backend
        self._storage_key = storage_key

        templates = create_builtin_templates() if builtin_templates is None else builtin_templates
        self._builtins: Dict[str, TemplateRecord] = {}
        for template in templates:
            builtin = template.model_copy(deep=True)
            builtin.is_built_in = True
            self._builtins[builtin.id] = builtin

        if auto_cleanup:
            self.cleanup()

    @classmethod
    def from_settings(cls, settings: Settings) -> "TemplateRepository":
        """根据应用设置创建文件存储的存储库."""
        backend = JsonFileStorageBackend(settings.resolved_storage_dir)
        return cls(
            backend,
            storage_key=settings.storage_key,
            auto_cleanup=settings.auto_cleanup,
        )

    @property
    def storage_key(self) -> str:
        """存储键."""
        return self._storage_key

    @property
    def builtin_ids(self) -> frozenset[str]:
        """内置模板ID（含保留ID）."""
        return frozenset(self._builtins) | RESERVED_TEMPLATE_IDS

    def is_built_in(self, template_id: Optional[str]) -> bool:
        """是否为内置模板ID."""
        return isinstance(template_id, str) and bool(template_id) and template_id in self.builtin_ids

    # ========================
    # 存储读写
    # ========================

    def _load_collection(self) -> List[Any]:
        """读取原始模板集合.

        数据损坏时回退为空集合；后端本身不可用时抛出 StorageError。
        """
        try:
            raw = self._backend.get(self._storage_key)
        except StorageError:
            raise
        except Exception as e:
            raise StorageReadError(self._storage_key, str(e)) from e

        if not raw:
            return []

        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"自定义模板数据损坏，按空集合处理: {e}")
            return []

        if not isinstance(data, list):
            logger.error(f"自定义模板数据不是数组，按空集合处理: {type(data).__name__}")
            return []

        return data

    def _write_collection(self, records: List[Any]) -> None:
        """整体写回模板集合."""
        payload = json.dumps(records, ensure_ascii=False).encode("utf-8")
        try:
            self._backend.set(self._storage_key, payload)
        except StorageError:
            raise
        except Exception as e:
            raise StorageWriteError(self._storage_key, str(e)) from e

    @staticmethod
    def _find_index(records: List[Any], template_id: Optional[str]) -> int:
        """查找ID对应的记录下标，不存在返回 -1."""
        if not template_id:
            return -1
        for i, data in enumerate(records):
            if isinstance(data, dict) and data.get("id") == template_id:
                return i
        return -1

    def _allocate_id(self, records: List[Any]) -> str:
        """分配一个与内置和现有自定义模板都不冲突的ID."""
        taken = _string_ids(records)
        while True:
            template_id = generate_template_id()
            if template_id not in taken and not self.is_built_in(template_id):
                return template_id

    @staticmethod
    def _stored_created_at(data: Dict[str, Any]) -> Optional[datetime]:
        """解析存储记录的创建时间."""
        try:
            return _datetime_adapter.validate_python(data.get("createdAt"))
        except ValidationError:
            return None

    def _parse(self, data: Any) -> Optional[TemplateRecord]:
        """解析存储记录并迁移为元素结构，格式无效或无法迁移返回 None."""
        if not isinstance(data, dict):
            return None
        try:
            return TemplateRecord.from_storage_dict(data).migrate()
        except ValidationError as e:
            logger.warning(f"跳过无法解析的模板 '{data.get('id')}': {_format_error(e)}")
            return None

    # ========================
    # 查询
    # ========================

    def get(self, template_id: str) -> Optional[TemplateRecord]:
        """获取模板.

        返回的是迁移到元素结构的独立副本，修改它不会影响存储内容。

        Args:
            template_id: 模板ID

        Returns:
            模板记录，不存在返回 None
        """
        if template_id in self._builtins:
            return self._builtins[template_id].migrate()

        if self.is_built_in(template_id):
            return None

        records = self._load_collection()
        index = self._find_index(records, template_id)
        if index < 0:
            return None

        return self._parse(records[index])

    def list_custom(self) -> List[TemplateRecord]:
        """获取全部自定义模板.

        跳过与内置模板ID冲突的记录和重复ID（保留第一条）。
        """
        result: List[TemplateRecord] = []
        seen_ids: set = set()
        for data in self._load_collection():
            record = self._parse(data)
            if record is None:
                continue
            if self.is_built_in(record.id):
                logger.warning(f"自定义模板 '{record.name}' 与内置模板ID '{record.id}' 冲突，已跳过")
                continue
            if record.id in seen_ids:
                logger.warning(f"自定义模板ID重复 '{record.id}'（{record.name}），已跳过")
                continue
            seen_ids.add(record.id)
            result.append(record)
        return result

    def list_all(self) -> List[TemplateRecord]:
        """获取全部模板（内置在前，自定义在后）."""
        builtins = [template.migrate() for template in self._builtins.values()]
        return builtins + self.list_custom()

    # ========================
    # 写操作
    # ========================

    def save(self, record: TemplateRecord) -> TemplateRecord:
        """保存模板（新建或更新）.

        1. ID 为空或与内置模板冲突时重新分配；
        2. ID 与另一条自定义模板冲突（不是对同一条记录的更新）时重新分配；
        3. 旧版结构迁移为元素列表，元素非空时不持久化旧版位置；
        4. 按 ID 插入或替换，首次保存写入创建时间，每次保存刷新更新时间。

        是否为同一条记录的更新，以创建时间是否与存储记录一致来判断。

        Args:
            record: 要保存的模板记录（不会被修改）

        Returns:
            实际保存的记录（ID 可能已重新分配）
        """
        saved = record.model_copy(deep=True)
        saved.is_built_in = False

        records = self._load_collection()
        existing_index = self._find_index(records, saved.id)

        if not saved.id or self.is_built_in(saved.id):
            old_id = saved.id
            saved.id = self._allocate_id(records)
            existing_index = -1
            logger.info(f"模板ID缺失或与内置模板冲突（{old_id!r}），已分配新ID: {saved.id}")
        elif existing_index >= 0:
            stored_created = self._stored_created_at(records[existing_index])
            if stored_created != saved.created_at:
                old_id = saved.id
                saved.id = self._allocate_id(records)
                existing_index = -1
                logger.info(f"模板ID与其他自定义模板冲突（{old_id}），已分配新ID: {saved.id}")

        if saved.has_legacy_layout:
            saved = saved.migrate()
            saved.is_built_in = False
        saved.enforce_layout_hygiene()

        now = _utcnow()
        if saved.created_at is None:
            saved.created_at = now
        saved.updated_at = now

        data = saved.to_storage_dict()
        if existing_index >= 0:
            records[existing_index] = data
        else:
            records.append(data)

        self._write_collection(records)
        logger.info(f"模板已保存: {saved.name} ({saved.id})")
        return saved

    def update(self, template_id: str, updates: Mapping[str, Any]) -> Optional[TemplateRecord]:
        """浅合并更新自定义模板.

        Args:
            template_id: 模板ID
            updates: 要合并的字段（存储格式键或模型字段名）

        Returns:
            更新后的记录，模板不存在或为内置模板时返回 None

        Raises:
            pydantic.ValidationError: 合并后的数据无效
        """
        if self.is_built_in(template_id):
            logger.warning(f"不能更新内置模板: {template_id}")
            return None

        records = self._load_collection()
        index = self._find_index(records, template_id)
        if index < 0:
            return None

        merged = dict(records[index])
        merged.update(self._to_storage_keys(updates))
        merged["id"] = template_id

        record = TemplateRecord.from_storage_dict(merged)
        if record.has_legacy_layout:
            record = record.migrate()
        record.enforce_layout_hygiene()
        record.is_built_in = False
        record.updated_at = _utcnow()

        records[index] = record.to_storage_dict()
        self._write_collection(records)
        logger.info(f"模板已更新: {template_id}")
        return record

    @staticmethod
    def _to_storage_keys(updates: Mapping[str, Any]) -> Dict[str, Any]:
        """将模型字段名转换为存储格式键."""
        fields = TemplateRecord.model_fields
        result: Dict[str, Any] = {}
        for key, value in updates.items():
            info = fields.get(key)
            storage_key = info.alias if info is not None and info.alias else key
            if isinstance(value, list):
                value = [v.to_dict() if hasattr(v, "to_dict") else v for v in value]
            result[storage_key] = value
        return result

    def delete(self, template_id: str) -> DeleteResult:
        """删除自定义模板.

        Args:
            template_id: 模板ID

        Returns:
            DELETED / NOT_FOUND，内置模板返回 NOT_PERMITTED
        """
        if self.is_built_in(template_id):
            logger.warning(f"不能删除内置模板: {template_id}")
            return DeleteResult.NOT_PERMITTED

        records = self._load_collection()
        remaining = [
            data for data in records
            if not (isinstance(data, dict) and data.get("id") == template_id)
        ]
        if len(remaining) == len(records):
            return DeleteResult.NOT_FOUND

        self._write_collection(remaining)
        logger.info(f"模板已删除: {template_id}")
        return DeleteResult.DELETED

    def duplicate(self, template_id: str, new_name: Optional[str] = None) -> Optional[TemplateRecord]:
        """复制模板.

        Args:
            template_id: 原模板ID（内置或自定义）
            new_name: 新名称，默认为 ``"<原名称> (Copy)"``

        Returns:
            保存后的副本，原模板不存在返回 None
        """
        source = self.get(template_id)
        if source is None:
            return None

        duplicate = source.model_copy(deep=True)
        duplicate.id = generate_template_id()
        duplicate.name = new_name or f"{source.name} (Copy)"
        duplicate.base_template_id = None
        duplicate.is_built_in = False
        duplicate.created_at = None
        duplicate.updated_at = None

        return self.save(duplicate)

    def create_from_base(self, base_template_id: str, **customizations: Any) -> Optional[TemplateRecord]:
        """基于已有模板创建一个未保存的新模板.

        Args:
            base_template_id: 来源模板ID
            **customizations: 覆盖的字段（模型字段名）

        Returns:
            新模板记录（未保存，ID 为空），来源不存在返回 None
        """
        base = self.get(base_template_id)
        if base is None:
            return None

        data = base.model_dump()
        data.update(customizations)
        data.update(
            id=None,
            base_template_id=base_template_id,
            is_built_in=False,
            created_at=None,
            updated_at=None,
        )
        return TemplateRecord.model_validate(data)

    def validate(self, record: Union[TemplateRecord, Mapping[str, Any]]) -> List[str]:
        """校验模板，返回违规列表."""
        return validate_template(record)

    def cleanup(self) -> int:
        """清理自定义模板集合.

        删除ID无效（非字符串）或与内置ID冲突的记录、重复ID（保留第一条），并移除元素非空
        记录上残留的旧版位置。重复执行不会产生新的修改。

        Returns:
            被处理的记录数
        """
        records = self._load_collection()
        cleaned: List[Any] = []
        seen_ids: set = set()
        touched = 0

        for data in records:
            if not isinstance(data, dict):
                logger.warning("删除无效的模板记录（不是对象）")
                touched += 1
                continue

            template_id = data.get("id")
            if template_id is not None and not isinstance(template_id, str):
                logger.warning(f"删除ID无效的模板 '{data.get('name')}'")
                touched += 1
                continue

            if self.is_built_in(template_id):
                logger.warning(f"删除与内置模板ID '{template_id}' 冲突的模板 '{data.get('name')}'")
                touched += 1
                continue

            if template_id in seen_ids:
                logger.warning(f"删除重复ID '{template_id}' 的模板 '{data.get('name')}'")
                touched += 1
                continue
            seen_ids.add(template_id)

            if data.get("elements") and "textPositions" in data:
                data = {k: v for k, v in data.items() if k != "textPositions"}
                touched += 1

            cleaned.append(data)

        if touched:
            self._write_collection(cleaned)
            logger.info(f"已清理 {touched} 个模板")

        return touched

    def import_templates(
        self,
        batch: Union[str, bytes, List[Any]],
        overwrite: bool = False,
    ) -> ImportResult:
        """批量导入模板.

        单条记录格式错误不会中断整个批次，错误按序号记录。

        Args:
            batch: JSON 字符串或记录列表（与导出格式一致）
            overwrite: ID 已存在时是否合并覆盖；否则分配新ID作为新模板插入

        Returns:
            导入结果
        """
        if isinstance(batch, (str, bytes)):
            try:
                payload = json.loads(batch)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.error(f"导入数据不是有效的 JSON: {e}")
                return ImportResult(success=False, errors=[f"Invalid JSON: {e}"])
        else:
            payload = batch

        if not isinstance(payload, list):
            return ImportResult(success=False, errors=["Imported data must be an array"])

        existing_ids = _string_ids(self._load_collection())
        result = ImportResult(total_count=len(payload))

        for index, item in enumerate(payload, start=1):
            has_layout = isinstance(item, dict) and (
                isinstance(item.get("elements"), list) or bool(item.get("textPositions"))
            )
            if not isinstance(item, dict) or not item.get("name") or not has_layout:
                result.errors.append(
                    f"Template {index}: Missing required fields (name and elements or textPositions)"
                )
                continue

            data = dict(item)
            template_id = data.get("id")
            try:
                if isinstance(template_id, str) and template_id in existing_ids:
                    if overwrite:
                        saved = self.update(template_id, data)
                    else:
                        data["id"] = generate_template_id()
                        saved = self.save(TemplateRecord.from_storage_dict(data))
                else:
                    saved = self.save(TemplateRecord.from_storage_dict(data))
                if saved is not None:
                    existing_ids.add(saved.id)
                result.imported_count += 1
            except ValueError as e:
                result.errors.append(f"Template {index}: {_format_error(e)}")

        logger.info(
            f"导入完成: {result.imported_count}/{result.total_count}，错误 {len(result.errors)} 条"
        )
        return result

    def export_templates(self) -> str:
        """导出全部自定义模板（原样序列化）."""
        return json.dumps(self._load_collection(), ensure_ascii=False, indent=2)

    def clear_all(self) -> None:
        """清空全部自定义模板."""
        self._write_collection([])
        logger.info("已清空全部自定义模板")
