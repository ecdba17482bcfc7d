"""
ReforgeService

아이템 재련 시도를 담당합니다.

검증 → 코인 차감 → 재료 차감 → 확률 판정 → 결과 적용 순서로 진행하며,
재료 단계에서 실패하면 이미 차감한 코인을 돌려주어 거절된 시도에서
자원이 사라지지 않도록 합니다. 판정 후 인벤토리 반영에 실패한 경우에도
코인과 재료를 되돌리고 아이템은 그대로 둡니다.

플레이어당 동시에 하나의 시도만 진행되며, 진행 중 들어온 중복 요청은 무시됩니다.
"""
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Set, Tuple

from config import LevelDefinition, MaterialRequirement, ProgressionTable
from config.manager import ConfigManager
from exceptions import (
    InventoryGatewayError,
    ItemNotPresentError,
    ItemNotReforgeableError,
    LevelConfigMissingError,
    MaxReforgeLevelError,
    RefusalReason,
)
from service.economy.economy_bridge import EconomyBridge
from service.inventory.inventory_gateway import HELD_ITEM_SLOT, InventoryGateway
from service.inventory.item_stack import ItemStack, with_reforge_level
from service.item.eligibility_service import EligibilityService
from service.item.level_store import LevelStore
from service.item.reverse_recipe_service import ReverseRecipeService

logger = logging.getLogger(__name__)

WITHDRAW_REASON = "EcoReforge: reforge cost"
REFUND_REASON = "EcoReforge: reforge refund"


class ReforgeOutcome(str, Enum):
    """재련 결과"""
    SUCCESS = "success"                      # 성공 (+1)
    FAILURE = "failure"                      # 실패 (파괴, 재료 일부 반환)
    FAILURE_PROTECTED = "failure_protected"  # 실패 (보호, +0 초기화)
    CANNOT_ATTEMPT = "cannot_attempt"        # 코인/재료 부족
    APPLY_FAILED = "apply_failed"            # 결과 적용 실패 (비용 환불, 아이템 유지)


@dataclass
class ReforgeAttemptResult:
    """재련 시도 결과"""
    item_id: str
    current_level: int
    target_level: int
    success_chance: float
    total_cost: float
    weapon_bonus: float
    armor_bonus: float
    outcome: ReforgeOutcome
    refusal: Optional[RefusalReason] = None
    roll: Optional[float] = None
    returned_materials: List[MaterialRequirement] = field(default_factory=list)
    total_weapon_bonus: float = 0.0
    total_armor_bonus: float = 0.0

    @property
    def new_level(self) -> int:
        """시도 후 레벨"""
        if self.outcome == ReforgeOutcome.SUCCESS:
            return self.target_level
        if self.outcome in (ReforgeOutcome.CANNOT_ATTEMPT, ReforgeOutcome.APPLY_FAILED):
            return self.current_level
        return 0

    @property
    def item_destroyed(self) -> bool:
        return self.outcome == ReforgeOutcome.FAILURE


class ReforgeService:
    """아이템 재련 서비스"""

    def __init__(
        self,
        config_manager: ConfigManager,
        eligibility: EligibilityService,
        level_store: LevelStore,
        recipes: ReverseRecipeService,
        economy: EconomyBridge,
        inventory: InventoryGateway,
        roll: Optional[Callable[[], float]] = None,
    ):
        self.eligibility = eligibility
        self.level_store = level_store
        self.recipes = recipes
        self.economy = economy
        self.inventory = inventory
        self._roll = roll or random.random
        self._active_reforges: Set[int] = set()
        self._table: ProgressionTable = config_manager.current
        config_manager.subscribe(self._on_config_changed)

    def _on_config_changed(self, table: ProgressionTable) -> None:
        self._table = table

    # =========================================================================
    # 재련 시도
    # =========================================================================

    async def attempt_reforge(
        self,
        player_id: int,
        slot_index: int = HELD_ITEM_SLOT,
        use_protection: bool = False,
    ) -> Optional[ReforgeAttemptResult]:
        """
        재련 시도

        Args:
            player_id: 플레이어 ID
            slot_index: 인벤토리 슬롯, 음수면 손에 든 아이템
            use_protection: 실패 시 파괴 대신 +0 초기화 (추가 비용)

        Returns:
            재련 결과, 같은 플레이어의 재련이 이미 진행 중이면 None

        Raises:
            ItemNotPresentError: 아이템 없음
            ItemNotReforgeableError: 재련 불가 아이템
            MaxReforgeLevelError: 최대 레벨
            LevelConfigMissingError: 목표 레벨 설정 없음
        """
        # 확인과 등록 사이에 await가 없어야 중복 요청을 막을 수 있음
        if player_id in self._active_reforges:
            logger.debug(f"Reforge blocked - already in progress for {player_id}")
            return None
        self._active_reforges.add(player_id)

        try:
            return await self._do_reforge(player_id, slot_index, use_protection)
        finally:
            self._active_reforges.discard(player_id)

    def is_in_progress(self, player_id: int) -> bool:
        return player_id in self._active_reforges

    async def _do_reforge(
        self,
        player_id: int,
        slot_index: int,
        use_protection: bool,
    ) -> ReforgeAttemptResult:
        table = self._table

        # 1. 검증
        item = await self.inventory.get_item(player_id, slot_index)
        if item is None:
            raise ItemNotPresentError(slot_index)
        if not self.eligibility.is_reforgeable(item):
            raise ItemNotReforgeableError(item.item_id)

        current_level = self.eligibility.get_level(item, player_id)
        max_level = table.general.max_level
        if current_level >= max_level:
            raise MaxReforgeLevelError(item.item_id, max_level)

        # 2. 목표 레벨 설정
        target_level = current_level + 1
        definition = table.level_config(target_level)
        if definition is None:
            raise LevelConfigMissingError(target_level)

        protected = use_protection and table.general.protection_enabled
        total_cost = definition.coin_cost
        if protected:
            total_cost += definition.coin_cost * table.general.protection_cost_multiplier

        def _result(outcome: ReforgeOutcome, **extra) -> ReforgeAttemptResult:
            return ReforgeAttemptResult(
                item_id=item.item_id,
                current_level=current_level,
                target_level=target_level,
                success_chance=definition.success_chance,
                total_cost=total_cost,
                weapon_bonus=definition.weapon_bonus,
                armor_bonus=definition.armor_bonus,
                outcome=outcome,
                **extra,
            )

        # 3. 코인 차감
        if total_cost > 0 and not await self._withdraw_coins(player_id, total_cost):
            return _result(ReforgeOutcome.CANNOT_ATTEMPT, refusal=RefusalReason.INSUFFICIENT_FUNDS)

        # 4. 재료 확인 후 차감
        if not await self._consume_materials(player_id, definition.materials):
            if total_cost > 0:
                await self._refund_coins(player_id, total_cost)
            return _result(ReforgeOutcome.CANNOT_ATTEMPT, refusal=RefusalReason.INSUFFICIENT_MATERIALS)

        # 5. 확률 판정
        roll = self._roll()
        success = roll < definition.success_chance

        logger.info(
            f"[reforge] {player_id} item={item.item_id} lv={current_level}->{target_level} "
            f"chance={definition.success_chance:.2f} roll={roll:.4f} "
            f"result={'SUCCESS' if success else 'FAIL'} protection={protected}"
        )

        # 6. 결과 적용 (인벤토리 쓰기가 먼저, 레벨 기록은 쓰기 성공 후)
        try:
            if success:
                weapon_total, armor_total = await self._handle_success(
                    player_id, item, slot_index, target_level, table
                )
            elif protected:
                await self._handle_failure_protected(player_id, item, slot_index)
            else:
                await self._destroy_item(player_id, item, slot_index)
        except Exception as e:
            logger.error(
                f"[reforge] Failed to apply result for {player_id} "
                f"(item={item.item_id}, slot={slot_index}): {e} - rolling back costs"
            )
            await self._rollback_costs(player_id, total_cost, definition.materials)
            return _result(ReforgeOutcome.APPLY_FAILED, roll=roll)

        if success:
            return _result(
                ReforgeOutcome.SUCCESS,
                roll=roll,
                total_weapon_bonus=weapon_total,
                total_armor_bonus=armor_total,
            )
        if protected:
            return _result(ReforgeOutcome.FAILURE_PROTECTED, roll=roll)

        returned = await self._return_materials(player_id, item, table)
        return _result(ReforgeOutcome.FAILURE, roll=roll, returned_materials=returned)

    # =========================================================================
    # 결과 처리
    # =========================================================================

    async def _handle_success(
        self,
        player_id: int,
        item: ItemStack,
        slot_index: int,
        new_level: int,
        table: ProgressionTable,
    ) -> Tuple[float, float]:
        if self.inventory.supports_item_metadata:
            await self.inventory.put_item(player_id, slot_index, with_reforge_level(item, new_level))
        self.level_store.set(player_id, item.item_id, new_level)

        weapon_total, armor_total = table.cumulative_bonus(new_level)
        logger.info(
            f"[reforge] SUCCESS: item {item.item_id} upgraded to +{new_level} "
            f"(slot={slot_index}, player={player_id}, dmg+={weapon_total:.1f}, def+={armor_total:.1f})"
        )
        return weapon_total, armor_total

    async def _destroy_item(self, player_id: int, item: ItemStack, slot_index: int) -> None:
        await self.inventory.put_item(player_id, slot_index, None)
        self.level_store.remove(player_id, item.item_id)
        logger.info(f"[reforge] FAIL: item {item.item_id} destroyed for {player_id}")

    async def _return_materials(
        self,
        player_id: int,
        item: ItemStack,
        table: ProgressionTable,
    ) -> List[MaterialRequirement]:
        """파괴된 아이템의 재료 일부 반환. 들어가지 않은 양은 반환 목록에서 제외"""
        return_rate = table.general.failure_return_rate
        returned: List[MaterialRequirement] = []
        for material in self.recipes.refund_for(item.item_id, return_rate):
            try:
                leftover = await self.inventory.add_item(player_id, ItemStack(material.item_id, material.count))
            except Exception as e:
                logger.warning(f"[reforge] Failed to return material {material.item_id}: {e}")
                continue
            granted = material.count - leftover
            if granted > 0:
                returned.append(MaterialRequirement(material.item_id, granted))
                logger.info(
                    f"[reforge] Returned {material.item_id} x{granted} "
                    f"({return_rate * 100:.0f}%) to {player_id}"
                )
        return returned

    async def _handle_failure_protected(self, player_id: int, item: ItemStack, slot_index: int) -> None:
        if self.inventory.supports_item_metadata:
            await self.inventory.put_item(player_id, slot_index, with_reforge_level(item, 0))
        self.level_store.remove(player_id, item.item_id)

        logger.info(f"[reforge] FAIL_PROTECTED: item {item.item_id} reset to +0 for {player_id}")

    async def _rollback_costs(self, player_id: int, total_cost: float, materials) -> None:
        """결과 적용에 실패한 시도의 코인과 재료를 되돌림"""
        if total_cost > 0:
            await self._refund_coins(player_id, total_cost)
        for material in materials:
            try:
                leftover = await self.inventory.add_item(player_id, ItemStack(material.item_id, material.count))
            except Exception as e:
                logger.error(f"[reforge] Failed to restore material {material.item_id} for {player_id}: {e}")
                continue
            if leftover > 0:
                logger.error(
                    f"[reforge] Could not restore {material.item_id} x{leftover} for {player_id}: inventory full"
                )

    # =========================================================================
    # 재화 / 재료
    # =========================================================================

    async def _withdraw_coins(self, player_id: int, amount: float) -> bool:
        if not self.economy.is_available():
            logger.debug("Economy not available - coin check skipped")
            return True
        try:
            if not await self.economy.has_balance(player_id, amount):
                return False
            return await self.economy.withdraw(player_id, amount, WITHDRAW_REASON)
        except Exception as e:
            logger.warning(f"Economy withdraw failed: {e}")
            return False

    async def _refund_coins(self, player_id: int, amount: float) -> None:
        if not self.economy.is_available():
            return
        try:
            await self.economy.deposit(player_id, amount, REFUND_REASON)
        except Exception as e:
            logger.error(f"Economy refund failed for {player_id} ({amount}): {e}")

    async def _consume_materials(self, player_id: int, required) -> bool:
        """전부 있는지 먼저 확인한 뒤에만 차감"""
        if not required:
            return True
        if not await self.inventory.has_items(player_id, required):
            return False
        try:
            await self.inventory.remove_items(player_id, required)
        except InventoryGatewayError as e:
            logger.warning(f"[reforge] Material consumption failed for {player_id}: {e}")
            return False
        return True

    # =========================================================================
    # 조회 (정보 화면용)
    # =========================================================================

    def _next_definition(self, current_level: int) -> Optional[LevelDefinition]:
        return self._table.level_config(current_level + 1)

    def get_success_chance(self, current_level: int) -> float:
        definition = self._next_definition(current_level)
        return definition.success_chance if definition else 0.0

    def get_coin_cost(self, current_level: int) -> float:
        definition = self._next_definition(current_level)
        return definition.coin_cost if definition else 0.0

    def get_protection_cost(self, current_level: int) -> float:
        """보호 추가 비용 (보호 비활성화 시 0)"""
        general = self._table.general
        if not general.protection_enabled:
            return 0.0
        return self.get_coin_cost(current_level) * general.protection_cost_multiplier

    def is_protection_enabled(self) -> bool:
        return self._table.general.protection_enabled

    def get_required_materials(self, current_level: int) -> Tuple[MaterialRequirement, ...]:
        definition = self._next_definition(current_level)
        return definition.materials if definition else ()

    def get_weapon_bonus(self, level: int) -> float:
        """+1 ~ level 누적 무기 보너스"""
        return self._table.cumulative_bonus(level)[0]

    def get_armor_bonus(self, level: int) -> float:
        """+1 ~ level 누적 방어구 보너스"""
        return self._table.cumulative_bonus(level)[1]

    async def count_material(self, player_id: int, item_id: str) -> int:
        return await self.inventory.count_item(player_id, item_id)

    async def has_materials(self, player_id: int, current_level: int) -> bool:
        definition = self._next_definition(current_level)
        if definition is None:
            return False
        return await self.inventory.has_items(player_id, definition.materials)

    async def has_coins(self, player_id: int, current_level: int, use_protection: bool = False) -> bool:
        """다음 단계 비용(보호 선택 시 보호 추가 비용 포함)을 낼 수 있는지"""
        definition = self._next_definition(current_level)
        if definition is None:
            return False
        cost = definition.coin_cost
        if use_protection:
            cost += self.get_protection_cost(current_level)
        if cost <= 0 or not self.economy.is_available():
            return True
        try:
            return await self.economy.has_balance(player_id, cost)
        except Exception as e:
            logger.warning(f"Economy has_coins check failed: {e}")
            return False

    async def get_player_balance(self, player_id: int) -> float:
        try:
            return await self.economy.get_balance(player_id)
        except Exception as e:
            logger.debug(f"Economy balance lookup failed: {e}")
            return 0.0

    def format_currency(self, amount: float) -> str:
        return self.economy.format(amount)

    async def get_item_at_slot(self, player_id: int, slot_index: int) -> Optional[ItemStack]:
        return await self.inventory.get_item(player_id, slot_index)

    async def find_reforgeable_slots(self, player_id: int) -> List[Tuple[int, int]]:
        """
        인벤토리에서 재련 가능한 아이템 탐색

        Returns:
            (슬롯 번호, 현재 레벨) 목록, 손에 든 아이템은 슬롯 -1
        """
        result = []
        held = await self.inventory.get_item(player_id, HELD_ITEM_SLOT)
        if held is not None and self.eligibility.is_reforgeable(held):
            result.append((HELD_ITEM_SLOT, self.eligibility.get_level(held, player_id)))

        try:
            slots = await self.inventory.iter_slots(player_id)
        except Exception as e:
            logger.warning(f"[findReforgeableSlots] Failed to scan inventory for {player_id}: {e}")
            return result

        for slot, stack in slots:
            if self.eligibility.is_reforgeable(stack):
                result.append((slot, self.eligibility.get_level(stack, player_id)))
        return result
