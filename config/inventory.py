"""인벤토리 설정"""
from dataclasses import dataclass


@dataclass(frozen=True)
class InventoryConfig:
    """인벤토리 설정"""

    CAPACITY: int = 36
    """컨테이너 슬롯 수 (0 ~ CAPACITY-1)"""

    HELD_ITEM_SLOT: int = -1
    """손에 든 아이템을 가리키는 슬롯 번호"""


INVENTORY = InventoryConfig()
