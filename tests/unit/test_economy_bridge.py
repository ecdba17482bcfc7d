"""
EconomyBridge 유닛 테스트
"""
import pytest

from service.economy.economy_bridge import EconomyBridge

from conftest import FakeEconomyProvider


class TestActivation:
    """백엔드 선택"""

    def test_preferred_provider(self):
        bridge = EconomyBridge()
        first = FakeEconomyProvider()
        second = FakeEconomyProvider()
        second.name = "Second"
        bridge.register_provider("first", first)
        bridge.register_provider("Second", second)

        assert bridge.activate("SECOND") is True
        assert bridge.provider_name == "Second"

    def test_falls_back_to_first_available(self):
        bridge = EconomyBridge()
        bridge.register_provider("down", FakeEconomyProvider(available=False))
        bridge.register_provider("up", FakeEconomyProvider())

        assert bridge.activate("down") is True
        assert bridge.is_available()
        assert bridge.provider_name == "Fake"

    def test_nothing_available(self):
        bridge = EconomyBridge()
        bridge.register_provider("down", FakeEconomyProvider(available=False))

        assert bridge.activate("down") is False
        assert not bridge.is_available()
        assert bridge.provider_name == "none"


class TestDelegation:
    """활성 백엔드로 전달"""

    @pytest.mark.asyncio
    async def test_delegates_to_active_provider(self, economy, wallet):
        wallet.balances[1] = 100.0

        assert await economy.has_balance(1, 50.0) is True
        assert await economy.withdraw(1, 30.0, "test") is True
        assert await economy.deposit(1, 5.0, "test") is True
        assert await economy.get_balance(1) == 75.0
        assert economy.format(1234) == "1,234c"

    @pytest.mark.asyncio
    async def test_inactive_bridge_defaults(self):
        bridge = EconomyBridge()

        assert await bridge.withdraw(1, 10.0, "test") is False
        assert await bridge.deposit(1, 10.0, "test") is False
        assert await bridge.get_balance(1) == 0
        assert await bridge.has_balance(1, 0.0) is False
        assert bridge.format(1234.4) == "1,234"

    @pytest.mark.asyncio
    async def test_provider_going_down_disables_bridge(self, economy, wallet):
        wallet.available = False
        assert not economy.is_available()
        assert await economy.withdraw(1, 1.0, "test") is False
