"""
InventorySlot 모델 정의

플레이어 인벤토리의 슬롯 하나에 들어있는 아이템 묶음을 관리합니다.
"""
from tortoise import models, fields


class InventorySlot(models.Model):
    """
    인벤토리 슬롯 모델

    - slot = -1 은 손에 든 아이템
    - item_metadata 에 아이템 인스턴스별 정보(재련 레벨 등)를 저장
    """

    id = fields.BigIntField(pk=True)
    discord_id = fields.BigIntField(index=True)
    slot = fields.IntField()
    item_id = fields.CharField(max_length=255)
    quantity = fields.IntField(default=1)
    item_metadata = fields.JSONField(null=True)

    class Meta:
        table = "inventory_slot"
        unique_together = [("discord_id", "slot")]
