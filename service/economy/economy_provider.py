"""
EconomyProvider

재화 백엔드 공통 인터페이스입니다.
재련은 deposit, withdraw, get_balance, has_balance, format 만 사용합니다.
"""
from abc import ABC, abstractmethod


class EconomyProvider(ABC):
    """경제 백엔드 추상 클래스"""

    name: str = "unknown"
    """사람이 읽을 수 있는 백엔드 이름"""

    @abstractmethod
    def is_available(self) -> bool:
        """백엔드를 호출할 수 있는 상태인지"""

    @abstractmethod
    async def deposit(self, player_id: int, amount: float, reason: str) -> bool:
        """입금, 성공 여부 반환"""

    @abstractmethod
    async def withdraw(self, player_id: int, amount: float, reason: str) -> bool:
        """출금, 잔액 부족/실패 시 False"""

    @abstractmethod
    async def get_balance(self, player_id: int) -> float:
        """현재 잔액"""

    async def has_balance(self, player_id: int, amount: float) -> bool:
        return await self.get_balance(player_id) >= amount

    def format(self, amount: float) -> str:
        return f"{amount:,.0f}"
