"""
EconomyBridge

등록된 경제 백엔드 중 활성화된 하나로 재화 연산을 전달합니다.

설정에서 지정한 백엔드를 우선 사용하고, 사용할 수 없으면 등록 순서상
첫 번째로 사용 가능한 백엔드로 대체합니다.
"""
import logging
from typing import Dict, Optional

from service.economy.economy_provider import EconomyProvider

logger = logging.getLogger(__name__)


class EconomyBridge:
    """경제 백엔드 레지스트리/파사드"""

    def __init__(self):
        self._providers: Dict[str, EconomyProvider] = {}
        self._active: Optional[EconomyProvider] = None

    def register_provider(self, key: str, provider: EconomyProvider) -> None:
        self._providers[key.lower()] = provider
        logger.info(f"Economy provider registered: {key} ({provider.name})")

    def activate(self, preferred_key: Optional[str] = None) -> bool:
        """
        백엔드 활성화

        Args:
            preferred_key: 우선 사용할 백엔드 키

        Returns:
            활성화된 백엔드가 있는지
        """
        if preferred_key:
            provider = self._providers.get(preferred_key.lower())
            if provider is not None and provider.is_available():
                self._active = provider
                logger.info(f"Economy provider activated: {preferred_key} ({provider.name})")
                return True

        for key, provider in self._providers.items():
            if provider.is_available():
                self._active = provider
                logger.info(f"Economy provider fallback: {key} ({provider.name})")
                return True

        self._active = None
        logger.warning("No economy provider available - coin costs will be skipped.")
        return False

    def is_available(self) -> bool:
        return self._active is not None and self._active.is_available()

    @property
    def provider_name(self) -> str:
        return self._active.name if self._active is not None else "none"

    async def deposit(self, player_id: int, amount: float, reason: str) -> bool:
        if not self.is_available():
            return False
        return await self._active.deposit(player_id, amount, reason)

    async def withdraw(self, player_id: int, amount: float, reason: str) -> bool:
        if not self.is_available():
            return False
        return await self._active.withdraw(player_id, amount, reason)

    async def get_balance(self, player_id: int) -> float:
        if not self.is_available():
            return 0
        return await self._active.get_balance(player_id)

    async def has_balance(self, player_id: int, amount: float) -> bool:
        if not self.is_available():
            return False
        return await self._active.has_balance(player_id, amount)

    def format(self, amount: float) -> str:
        if not self.is_available():
            return f"{amount:,.0f}"
        return self._active.format(amount)
