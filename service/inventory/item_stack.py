"""
ItemStack

인벤토리 슬롯에 들어있는 아이템 묶음(불변 값)과 재련 레벨 태그 헬퍼.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

from utils.item_id import canonical_item_id

REFORGE_LEVEL_KEY = "reforge_level"
"""아이템 메타데이터에 저장되는 재련 레벨 키"""


@dataclass(frozen=True)
class ItemStack:
    """아이템 묶음"""

    item_id: str
    quantity: int = 1
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.item_id or self.quantity <= 0

    @property
    def canonical_id(self) -> str:
        return canonical_item_id(self.item_id)

    def with_quantity(self, quantity: int) -> "ItemStack":
        return replace(self, quantity=quantity)

    def with_metadata(self, key: str, value: Any) -> "ItemStack":
        metadata = dict(self.metadata)
        metadata[key] = value
        return replace(self, metadata=metadata)


def get_reforge_level(stack: Optional[ItemStack]) -> Optional[int]:
    """
    아이템 인스턴스의 재련 레벨 태그 조회

    Returns:
        태그 값, 태그가 없거나 잘못된 값이면 None
    """
    if stack is None or stack.is_empty:
        return None
    raw = stack.metadata.get(REFORGE_LEVEL_KEY)
    if isinstance(raw, bool):
        return None
    try:
        level = int(raw)
    except (TypeError, ValueError):
        return None
    return level if level >= 0 else None


def with_reforge_level(stack: ItemStack, level: int) -> ItemStack:
    """재련 레벨 태그가 갱신된 새 인스턴스 반환"""
    return stack.with_metadata(REFORGE_LEVEL_KEY, max(0, level))
