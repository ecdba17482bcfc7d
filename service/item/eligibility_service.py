"""
EligibilityService

아이템 재련 가능 여부 판정과 현재 재련 레벨 조회를 담당합니다.
"""
import logging
from enum import Enum
from typing import Optional

from config import ProgressionTable
from config.manager import ConfigManager
from service.inventory.item_stack import ItemStack, get_reforge_level
from service.item.level_store import LevelStore
from utils.item_id import canonical_item_id

logger = logging.getLogger(__name__)


class ItemCategory(str, Enum):
    WEAPON = "weapon"
    ARMOR = "armor"
    NONE = "none"


class EligibilityService:
    """재련 대상 판정 서비스"""

    def __init__(
        self,
        config_manager: ConfigManager,
        level_store: LevelStore,
        item_metadata_supported: bool = True,
    ):
        self.level_store = level_store
        self.item_metadata_supported = item_metadata_supported
        self._table: ProgressionTable = config_manager.current
        config_manager.subscribe(self._on_config_changed)

    def _on_config_changed(self, table: ProgressionTable) -> None:
        self._table = table

    # =========================================================================
    # 분류
    # =========================================================================

    def is_reforgeable(self, item: Optional[ItemStack]) -> bool:
        """무기 또는 방어구 허용 패턴에 맞고 제외 패턴에 걸리지 않는지"""
        if item is None or item.is_empty:
            return False
        return self._table.allowed_items.is_allowed(item.item_id)

    def is_weapon(self, item: Optional[ItemStack]) -> bool:
        if item is None or item.is_empty:
            return False
        return self._table.allowed_items.is_weapon(item.item_id)

    def is_armor(self, item: Optional[ItemStack]) -> bool:
        if item is None or item.is_empty:
            return False
        return self._table.allowed_items.is_armor(item.item_id)

    def get_item_category(self, item_id: str) -> ItemCategory:
        allowed = self._table.allowed_items
        if allowed.is_weapon(item_id):
            return ItemCategory.WEAPON
        if allowed.is_armor(item_id):
            return ItemCategory.ARMOR
        return ItemCategory.NONE

    # =========================================================================
    # 레벨
    # =========================================================================

    def get_level(self, item: Optional[ItemStack], player_id: int) -> int:
        """
        현재 재련 레벨 조회

        아이템 메타데이터를 지원하는 백엔드에서는 아이템 태그만 신뢰합니다.
        (태그 없음 = 재련 안 됨) 저장소 기록은 메타데이터 미지원 시에만 사용합니다.

        Args:
            item: 대상 아이템
            player_id: 소유 플레이어 ID

        Returns:
            재련 레벨 (기록 없으면 0)
        """
        if item is None or item.is_empty:
            return 0

        if self.item_metadata_supported:
            tag_level = get_reforge_level(item)
            stored_level = self.level_store.get(player_id, item.item_id)
            if tag_level is not None and stored_level and stored_level != tag_level:
                logger.warning(
                    f"Reforge level mismatch for {player_id}/{item.canonical_id}: "
                    f"tag={tag_level}, store={stored_level} (using tag)"
                )
            elif tag_level is None and stored_level:
                logger.debug(
                    f"Ignoring legacy store level {stored_level} for untagged "
                    f"{player_id}/{item.canonical_id}"
                )
            return tag_level or 0

        return self.level_store.get(player_id, item.item_id)

    def is_max_level(self, item: Optional[ItemStack], player_id: int) -> bool:
        if item is None or item.is_empty:
            return False
        return self.get_level(item, player_id) >= self._table.general.max_level

    # =========================================================================
    # 표시
    # =========================================================================

    def get_display_name(self, item_id: str) -> str:
        """
        아이템 표시 이름

        설정된 커스텀 이름이 있으면 사용하고, 없으면 ID에서 만듭니다.
        (예: "Weapon_Sword_Iron" → "Sword Iron")
        """
        names = self._table.custom_item_names
        name = canonical_item_id(item_id)
        if item_id in names:
            return names[item_id]
        if name in names:
            return names[name]

        for prefix in ("Weapon_", "Armor_"):
            if name.startswith(prefix):
                name = name[len(prefix):]
                break
        name = name.replace("_", " ").strip()
        return name or item_id
