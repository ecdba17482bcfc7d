"""
InventoryGateway

재련 엔진이 요구하는 인벤토리 백엔드 계약입니다.

백엔드는 슬롯 단위 읽기/쓰기/삭제와 손에 든 아이템 읽기/쓰기만 구현하면 되고,
재료 집계/차감/지급은 이 클래스의 공통 메서드가 슬롯 연산으로 처리합니다.
"""
import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Tuple

from config import INVENTORY, MaterialRequirement
from exceptions import InventoryGatewayError
from service.inventory.item_stack import ItemStack
from utils.item_id import canonical_item_id, item_ids_match

logger = logging.getLogger(__name__)

HELD_ITEM_SLOT = INVENTORY.HELD_ITEM_SLOT


class InventoryGateway(ABC):
    """인벤토리 백엔드 추상 클래스"""

    supports_item_metadata: bool = True
    """아이템 인스턴스별 메타데이터(재련 레벨 태그) 저장 가능 여부"""

    @abstractmethod
    async def capacity(self, player_id: int) -> int:
        """컨테이너 슬롯 수"""

    @abstractmethod
    async def get_slot(self, player_id: int, slot: int) -> Optional[ItemStack]:
        """슬롯의 아이템 (비어있으면 None)"""

    @abstractmethod
    async def set_slot(self, player_id: int, slot: int, stack: ItemStack) -> None:
        """슬롯의 아이템 교체"""

    @abstractmethod
    async def remove_slot(self, player_id: int, slot: int) -> None:
        """슬롯 비우기"""

    @abstractmethod
    async def get_held_item(self, player_id: int) -> Optional[ItemStack]:
        """손에 든 아이템"""

    @abstractmethod
    async def set_held_item(self, player_id: int, stack: Optional[ItemStack]) -> None:
        """손에 든 아이템 교체 (None이면 비움)"""

    # =========================================================================
    # 공통 연산
    # =========================================================================

    async def get_item(self, player_id: int, slot_index: int) -> Optional[ItemStack]:
        """
        슬롯 번호로 아이템 조회

        Args:
            slot_index: 컨테이너 슬롯, 음수면 손에 든 아이템

        Returns:
            아이템, 없거나 백엔드 오류면 None
        """
        try:
            if slot_index < 0:
                stack = await self.get_held_item(player_id)
            else:
                if slot_index >= await self.capacity(player_id):
                    return None
                stack = await self.get_slot(player_id, slot_index)
        except Exception as e:
            logger.debug(f"get_item({player_id}, {slot_index}) failed: {e}")
            return None

        if stack is None or stack.is_empty:
            return None
        return stack

    async def put_item(self, player_id: int, slot_index: int, stack: Optional[ItemStack]) -> None:
        """슬롯 번호로 아이템 쓰기 (None이면 제거)"""
        if slot_index < 0:
            await self.set_held_item(player_id, stack)
        elif stack is None or stack.is_empty:
            await self.remove_slot(player_id, slot_index)
        else:
            await self.set_slot(player_id, slot_index, stack)

    async def iter_slots(self, player_id: int) -> List[Tuple[int, ItemStack]]:
        """비어있지 않은 (슬롯, 아이템) 목록"""
        result = []
        for slot in range(await self.capacity(player_id)):
            stack = await self.get_slot(player_id, slot)
            if stack is not None and not stack.is_empty:
                result.append((slot, stack))
        return result

    async def count_item(self, player_id: int, item_id: str) -> int:
        """
        컨테이너 전체에서 아이템 수량 집계

        네임스페이스 유무와 무관하게 비교하며, 백엔드 오류 시 0을 반환합니다.
        """
        try:
            slots = await self.iter_slots(player_id)
        except Exception as e:
            logger.debug(f"count_item({player_id}, {item_id}) failed: {e}")
            return 0
        return sum(stack.quantity for _, stack in slots if item_ids_match(stack.item_id, item_id))

    async def has_items(self, player_id: int, requirements: Iterable[MaterialRequirement]) -> bool:
        for requirement in requirements:
            if await self.count_item(player_id, requirement.item_id) < requirement.count:
                return False
        return True

    async def remove_items(self, player_id: int, requirements: Iterable[MaterialRequirement]) -> None:
        """
        요구 재료 차감

        도중에 백엔드 오류가 나면 이미 바뀐 슬롯을 원래대로 되돌린 뒤
        InventoryGatewayError를 발생시킵니다.

        Raises:
            InventoryGatewayError: 차감 실패 (수량 부족 포함)
        """
        journal: List[Tuple[int, ItemStack]] = []
        try:
            for requirement in requirements:
                remaining = requirement.count
                for slot, stack in await self.iter_slots(player_id):
                    if remaining <= 0:
                        break
                    if not item_ids_match(stack.item_id, requirement.item_id):
                        continue
                    journal.append((slot, stack))
                    if stack.quantity <= remaining:
                        remaining -= stack.quantity
                        await self.remove_slot(player_id, slot)
                    else:
                        await self.set_slot(player_id, slot, stack.with_quantity(stack.quantity - remaining))
                        remaining = 0
                if remaining > 0:
                    raise InventoryGatewayError(
                        "remove", f"{requirement.item_id} short by {remaining}"
                    )
        except Exception as e:
            await self._restore(player_id, journal)
            if isinstance(e, InventoryGatewayError):
                raise
            raise InventoryGatewayError("remove", str(e)) from e

    async def _restore(self, player_id: int, journal: List[Tuple[int, ItemStack]]) -> None:
        for slot, stack in reversed(journal):
            try:
                await self.set_slot(player_id, slot, stack)
            except Exception as e:
                logger.error(f"Failed to restore slot {slot} for {player_id}: {e}")

    async def add_item(self, player_id: int, stack: ItemStack) -> int:
        """
        아이템 지급

        태그가 없는 같은 아이템 묶음에 합치고, 없으면 첫 빈 슬롯에 넣습니다.

        Returns:
            넣지 못한 수량 (인벤토리 가득 참)
        """
        if stack.is_empty:
            return 0
        stack = ItemStack(canonical_item_id(stack.item_id), stack.quantity, stack.metadata)

        capacity = await self.capacity(player_id)
        empty_slot = None
        for slot in range(capacity):
            existing = await self.get_slot(player_id, slot)
            if existing is None or existing.is_empty:
                if empty_slot is None:
                    empty_slot = slot
                continue
            if (
                not existing.metadata
                and not stack.metadata
                and item_ids_match(existing.item_id, stack.item_id)
            ):
                await self.set_slot(player_id, slot, existing.with_quantity(existing.quantity + stack.quantity))
                return 0

        if empty_slot is None:
            logger.warning(f"Inventory full for {player_id}, could not add {stack.item_id} x{stack.quantity}")
            return stack.quantity

        await self.set_slot(player_id, empty_slot, stack)
        return 0
