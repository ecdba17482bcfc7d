"""
pytest 설정 및 공통 픽스처 정의
"""
import asyncio
import sys
from pathlib import Path
from typing import AsyncGenerator, Dict, Optional, Set
from unittest.mock import AsyncMock, MagicMock

import pytest

# 프로젝트 루트를 Python 경로에 추가
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.manager import ConfigManager  # noqa: E402
from service.economy.economy_bridge import EconomyBridge  # noqa: E402
from service.economy.economy_provider import EconomyProvider  # noqa: E402
from service.inventory.inventory_gateway import InventoryGateway  # noqa: E402
from service.inventory.item_stack import ItemStack  # noqa: E402
from service.item.eligibility_service import EligibilityService  # noqa: E402
from service.item.level_store import LevelStore  # noqa: E402
from service.item.reforge_service import ReforgeService  # noqa: E402
from service.item.reverse_recipe_service import ReverseRecipeService  # noqa: E402


# =============================================================================
# pytest 설정
# =============================================================================


def pytest_configure(config):
    """pytest 설정"""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


# =============================================================================
# 테스트용 백엔드
# =============================================================================


class FakeInventoryGateway(InventoryGateway):
    """
    메모리 인벤토리

    모든 연산에서 한 번씩 이벤트 루프에 양보해 실제 백엔드처럼 중간에 끼어들 수 있게 합니다.
    fail_on 에 연산 이름을 넣으면 해당 연산에서 예외가 발생합니다.
    """

    def __init__(self, slot_capacity: int = 36, supports_item_metadata: bool = True):
        self.slot_capacity = slot_capacity
        self.supports_item_metadata = supports_item_metadata
        self.slots: Dict[int, Dict[int, ItemStack]] = {}
        self.held: Dict[int, ItemStack] = {}
        self.fail_on: Set[str] = set()

    async def _step(self, operation: str):
        await asyncio.sleep(0)
        if operation in self.fail_on:
            raise RuntimeError(f"{operation} failed")

    async def capacity(self, player_id: int) -> int:
        await self._step("capacity")
        return self.slot_capacity

    async def get_slot(self, player_id: int, slot: int) -> Optional[ItemStack]:
        await self._step("get_slot")
        return self.slots.get(player_id, {}).get(slot)

    async def set_slot(self, player_id: int, slot: int, stack: ItemStack) -> None:
        await self._step("set_slot")
        if not self.supports_item_metadata and stack.metadata:
            stack = ItemStack(stack.item_id, stack.quantity)
        self.slots.setdefault(player_id, {})[slot] = stack

    async def remove_slot(self, player_id: int, slot: int) -> None:
        await self._step("remove_slot")
        self.slots.get(player_id, {}).pop(slot, None)

    async def get_held_item(self, player_id: int) -> Optional[ItemStack]:
        await self._step("get_held_item")
        return self.held.get(player_id)

    async def set_held_item(self, player_id: int, stack: Optional[ItemStack]) -> None:
        await self._step("set_held_item")
        if stack is None or stack.is_empty:
            self.held.pop(player_id, None)
        else:
            self.held[player_id] = stack

    # 테스트 헬퍼 (동기)
    def give(self, player_id: int, slot: int, item_id: str, quantity: int = 1, **metadata) -> ItemStack:
        stack = ItemStack(item_id, quantity, metadata)
        self.slots.setdefault(player_id, {})[slot] = stack
        return stack

    def hold(self, player_id: int, item_id: str, **metadata) -> ItemStack:
        stack = ItemStack(item_id, 1, metadata)
        self.held[player_id] = stack
        return stack

    def total(self, player_id: int, item_id: str) -> int:
        return sum(
            stack.quantity
            for stack in self.slots.get(player_id, {}).values()
            if stack.item_id == item_id
        )


class FakeEconomyProvider(EconomyProvider):
    """메모리 지갑"""

    name = "Fake"

    def __init__(self, balances: Optional[Dict[int, float]] = None, available: bool = True):
        self.balances: Dict[int, float] = dict(balances or {})
        self.available = available
        self.fail_withdraw = False
        self.withdraw_calls = 0
        self.deposit_calls = 0

    def is_available(self) -> bool:
        return self.available

    async def deposit(self, player_id: int, amount: float, reason: str) -> bool:
        await asyncio.sleep(0)
        self.deposit_calls += 1
        self.balances[player_id] = self.balances.get(player_id, 0.0) + amount
        return True

    async def withdraw(self, player_id: int, amount: float, reason: str) -> bool:
        await asyncio.sleep(0)
        self.withdraw_calls += 1
        if self.fail_withdraw:
            raise RuntimeError("economy backend down")
        if self.balances.get(player_id, 0.0) < amount:
            return False
        self.balances[player_id] -= amount
        return True

    async def get_balance(self, player_id: int) -> float:
        await asyncio.sleep(0)
        return self.balances.get(player_id, 0.0)

    def format(self, amount: float) -> str:
        return f"{amount:,.0f}c"


class FixedRoll:
    """고정 난수 (값을 바꿔가며 사용 가능)"""

    def __init__(self, value: float = 0.0):
        self.value = value
        self.calls = 0

    def __call__(self) -> float:
        self.calls += 1
        return self.value


# =============================================================================
# 서비스 픽스처
# =============================================================================


@pytest.fixture
def config_manager(tmp_path) -> ConfigManager:
    """기본 진행 테이블이 저장된 설정 관리자"""
    manager = ConfigManager(tmp_path)
    manager.load_or_create()
    return manager


@pytest.fixture
def level_store(tmp_path) -> LevelStore:
    return LevelStore(tmp_path)


@pytest.fixture
def inventory() -> FakeInventoryGateway:
    return FakeInventoryGateway()


@pytest.fixture
def wallet() -> FakeEconomyProvider:
    return FakeEconomyProvider()


@pytest.fixture
def economy(wallet) -> EconomyBridge:
    bridge = EconomyBridge()
    bridge.register_provider("fake", wallet)
    bridge.activate("fake")
    return bridge


@pytest.fixture
def roll() -> FixedRoll:
    return FixedRoll(0.0)


@pytest.fixture
def eligibility(config_manager, level_store, inventory) -> EligibilityService:
    return EligibilityService(
        config_manager, level_store, item_metadata_supported=inventory.supports_item_metadata
    )


@pytest.fixture
def recipes(config_manager) -> ReverseRecipeService:
    return ReverseRecipeService(config_manager)


@pytest.fixture
def reforge_service(config_manager, eligibility, level_store, recipes, economy, inventory, roll) -> ReforgeService:
    return ReforgeService(
        config_manager,
        eligibility,
        level_store,
        recipes,
        economy,
        inventory,
        roll=roll,
    )


# =============================================================================
# 데이터베이스 픽스처
# =============================================================================


@pytest.fixture(scope="function")
async def test_db() -> AsyncGenerator[None, None]:
    """
    테스트용 인메모리 SQLite 데이터베이스
    각 테스트 함수마다 새로운 DB 생성
    """
    from tortoise import Tortoise

    await Tortoise.init(
        db_url="sqlite://:memory:",
        modules={"models": ["models"]}
    )
    await Tortoise.generate_schemas()

    yield

    await Tortoise.close_connections()


# =============================================================================
# Mock 픽스처
# =============================================================================


@pytest.fixture
def mock_discord_interaction() -> MagicMock:
    """Mock Discord Interaction 객체"""
    interaction = MagicMock()
    interaction.user = MagicMock()
    interaction.user.id = 123456789
    interaction.user.name = "TestUser"
    interaction.response = MagicMock()
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.followup = MagicMock()
    interaction.followup.send = AsyncMock()
    return interaction
