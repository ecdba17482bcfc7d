"""
WalletEconomyProvider

봇 DB의 PlayerWallet 테이블을 사용하는 기본 경제 백엔드입니다.
"""
import logging

from tortoise.exceptions import BaseORMException
from tortoise.expressions import F
from tortoise.transactions import in_transaction

from exceptions import EconomyError
from models.player_wallet import PlayerWallet
from service.economy.economy_provider import EconomyProvider

logger = logging.getLogger(__name__)


class WalletEconomyProvider(EconomyProvider):
    """골드 지갑 백엔드"""

    name = "Wallet"

    def __init__(self, currency_suffix: str = "G"):
        self.currency_suffix = currency_suffix
        self._ready = False

    def mark_ready(self) -> None:
        """DB 연결 완료 후 호출"""
        self._ready = True

    def is_available(self) -> bool:
        return self._ready

    async def deposit(self, player_id: int, amount: float, reason: str) -> bool:
        if amount < 0:
            return False
        try:
            async with in_transaction() as conn:
                wallet, _ = await PlayerWallet.get_or_create(discord_id=player_id, using_db=conn)
                await PlayerWallet.filter(id=wallet.id).using_db(conn).update(balance=F("balance") + amount)
        except BaseORMException as e:
            raise EconomyError("deposit", str(e)) from e
        logger.info(f"Wallet deposit: {player_id} +{amount:,.0f} ({reason})")
        return True

    async def withdraw(self, player_id: int, amount: float, reason: str) -> bool:
        if amount < 0:
            return False
        try:
            async with in_transaction() as conn:
                # 잔액 조건부 차감 (동시 출금 시 음수 방지)
                updated = await PlayerWallet.filter(
                    discord_id=player_id, balance__gte=amount
                ).using_db(conn).update(balance=F("balance") - amount)
        except BaseORMException as e:
            raise EconomyError("withdraw", str(e)) from e
        if not updated:
            logger.debug(f"Wallet withdraw refused: {player_id} -{amount:,.0f} ({reason})")
            return False
        logger.info(f"Wallet withdraw: {player_id} -{amount:,.0f} ({reason})")
        return True

    async def get_balance(self, player_id: int) -> float:
        wallet = await PlayerWallet.get_or_none(discord_id=player_id)
        return wallet.balance if wallet else 0.0

    def format(self, amount: float) -> str:
        return f"{amount:,.0f}{self.currency_suffix}"
