"""
DatabaseInventoryGateway

tortoise-orm InventorySlot 테이블을 사용하는 인벤토리 백엔드입니다.
"""
from typing import Optional

from config import INVENTORY
from models.inventory_slot import InventorySlot
from service.inventory.inventory_gateway import HELD_ITEM_SLOT, InventoryGateway
from service.inventory.item_stack import ItemStack


def _to_stack(row: Optional[InventorySlot]) -> Optional[ItemStack]:
    if row is None or row.quantity <= 0:
        return None
    return ItemStack(
        item_id=row.item_id,
        quantity=row.quantity,
        metadata=dict(row.item_metadata or {}),
    )


class DatabaseInventoryGateway(InventoryGateway):
    """DB 기반 인벤토리 (아이템 메타데이터 지원)"""

    supports_item_metadata = True

    def __init__(self, slot_capacity: int = INVENTORY.CAPACITY):
        self.slot_capacity = slot_capacity

    async def capacity(self, player_id: int) -> int:
        return self.slot_capacity

    async def get_slot(self, player_id: int, slot: int) -> Optional[ItemStack]:
        row = await InventorySlot.get_or_none(discord_id=player_id, slot=slot)
        return _to_stack(row)

    async def set_slot(self, player_id: int, slot: int, stack: ItemStack) -> None:
        if stack.is_empty:
            await self.remove_slot(player_id, slot)
            return
        await InventorySlot.update_or_create(
            defaults={
                "item_id": stack.item_id,
                "quantity": stack.quantity,
                "item_metadata": dict(stack.metadata) or None,
            },
            discord_id=player_id,
            slot=slot,
        )

    async def remove_slot(self, player_id: int, slot: int) -> None:
        await InventorySlot.filter(discord_id=player_id, slot=slot).delete()

    async def get_held_item(self, player_id: int) -> Optional[ItemStack]:
        return await self.get_slot(player_id, HELD_ITEM_SLOT)

    async def set_held_item(self, player_id: int, stack: Optional[ItemStack]) -> None:
        if stack is None or stack.is_empty:
            await self.remove_slot(player_id, HELD_ITEM_SLOT)
        else:
            await self.set_slot(player_id, HELD_ITEM_SLOT, stack)
