"""
PlayerWallet 모델 정의

봇 자체 재화(골드) 잔액을 관리합니다.
"""
from tortoise import models, fields


class PlayerWallet(models.Model):
    """플레이어 지갑 모델"""

    id = fields.IntField(pk=True)
    discord_id = fields.BigIntField(unique=True)
    balance = fields.FloatField(default=0)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "player_wallet"
