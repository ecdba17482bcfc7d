"""
재련 명령어 (/재련, /재련정보, /재련목록, /재련도움말)
"""
import logging
from typing import Iterable, Optional

import discord
from discord import app_commands
from discord.ext import commands

from config import INVENTORY, MaterialRequirement
from exceptions import (
    LevelConfigMissingError,
    MaxReforgeLevelError,
    ReforgeValidationError,
    RefusalReason,
)
from service.inventory.inventory_gateway import HELD_ITEM_SLOT
from service.item.eligibility_service import ItemCategory
from service.item.reforge_service import ReforgeAttemptResult, ReforgeOutcome

logger = logging.getLogger(__name__)

SlotRange = app_commands.Range[int, 0, INVENTORY.CAPACITY - 1]


def _percent(value: float) -> str:
    return f"{value * 100:.0f}"


class ReforgeCommand(commands.Cog):
    """재련 명령어"""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.reforge_service = bot.reforge_service
        self.eligibility = bot.eligibility_service
        self.messages = bot.messages

    def _display_name(self, item_id: str) -> str:
        return self.eligibility.get_display_name(item_id)

    def _format_materials(self, materials: Iterable[MaterialRequirement]) -> str:
        return ", ".join(f"{self._display_name(m.item_id)} x{m.count}" for m in materials)

    def _refusal_text(self, error: ReforgeValidationError) -> str:
        params = {}
        if isinstance(error, MaxReforgeLevelError):
            params["max_level"] = error.max_level
        elif isinstance(error, LevelConfigMissingError):
            params["level"] = error.target_level
        elif error.reason == RefusalReason.NOT_REFORGEABLE:
            params["item"] = self._display_name(getattr(error, "item_id", ""))
        return self.messages.refusal(error.reason, **params)

    def _result_text(self, result: ReforgeAttemptResult) -> str:
        item = self._display_name(result.item_id)
        lines = []

        if result.outcome == ReforgeOutcome.CANNOT_ATTEMPT:
            return self.messages.refusal(
                result.refusal, cost=self.reforge_service.format_currency(result.total_cost)
            )
        if result.outcome == ReforgeOutcome.APPLY_FAILED:
            return self.messages.format("result.apply_failed")

        if result.outcome == ReforgeOutcome.SUCCESS:
            lines.append(self.messages.format(
                "result.success", item=item, old=result.current_level, new=result.target_level
            ))
            lines.append(self.messages.get(
                "result.success_bonus",
                weapon=f"{result.total_weapon_bonus:.1f}",
                armor=f"{result.total_armor_bonus:.1f}",
            ))
        elif result.outcome == ReforgeOutcome.FAILURE_PROTECTED:
            lines.append(self.messages.format("result.failure_protected", item=item))
        else:
            lines.append(self.messages.format("result.failure", item=item))
            if result.returned_materials:
                lines.append(self.messages.get(
                    "result.failure_returned",
                    materials=self._format_materials(result.returned_materials),
                ))

        if result.roll is not None:
            lines.append(self.messages.get(
                "result.roll", chance=_percent(result.success_chance), roll=f"{result.roll:.4f}"
            ))
        return "\n".join(lines)

    # ==================== 재련 ====================

    @app_commands.command(name="재련", description="⚒️ 아이템을 재련합니다")
    @app_commands.rename(slot="슬롯", protect="보호")
    @app_commands.describe(
        slot="인벤토리 슬롯 번호 (생략하면 손에 든 아이템)",
        protect="실패 시 파괴 대신 +0으로 초기화 (추가 비용)",
    )
    async def reforge(
        self,
        interaction: discord.Interaction,
        slot: Optional[SlotRange] = None,
        protect: bool = False,
    ):
        player_id = interaction.user.id
        slot_index = HELD_ITEM_SLOT if slot is None else slot

        try:
            result = await self.reforge_service.attempt_reforge(player_id, slot_index, protect)
        except ReforgeValidationError as e:
            await interaction.response.send_message(self._refusal_text(e), ephemeral=True)
            return

        if result is None:
            await interaction.response.send_message(
                self.messages.refusal(RefusalReason.ALREADY_IN_PROGRESS), ephemeral=True
            )
            return

        color = {
            ReforgeOutcome.SUCCESS: discord.Color.gold(),
            ReforgeOutcome.FAILURE: discord.Color.red(),
            ReforgeOutcome.FAILURE_PROTECTED: discord.Color.orange(),
        }.get(result.outcome)
        if color is None:
            await interaction.response.send_message(self._result_text(result), ephemeral=True)
            return

        embed = discord.Embed(description=self._result_text(result), color=color)
        await interaction.response.send_message(embed=embed)

    # ==================== 재련 정보 ====================

    @app_commands.command(name="재련정보", description="📜 다음 재련 단계의 확률/비용/재료를 확인합니다")
    @app_commands.rename(slot="슬롯")
    @app_commands.describe(slot="인벤토리 슬롯 번호 (생략하면 손에 든 아이템)")
    async def reforge_info(self, interaction: discord.Interaction, slot: Optional[SlotRange] = None):
        player_id = interaction.user.id
        slot_index = HELD_ITEM_SLOT if slot is None else slot

        item = await self.reforge_service.get_item_at_slot(player_id, slot_index)
        if item is None:
            await interaction.response.send_message(
                self.messages.refusal(RefusalReason.NO_ITEM), ephemeral=True
            )
            return
        if not self.eligibility.is_reforgeable(item):
            await interaction.response.send_message(
                self.messages.refusal(RefusalReason.NOT_REFORGEABLE, item=self._display_name(item.item_id)),
                ephemeral=True,
            )
            return

        level = self.eligibility.get_level(item, player_id)
        category = self.eligibility.get_item_category(item.item_id)

        embed = discord.Embed(
            title=f"⚒️ {self.messages.get('info.title')}",
            description=self.messages.get("info.item", item=self._display_name(item.item_id), level=level),
            color=discord.Color.blue(),
        )
        if category != ItemCategory.NONE:
            embed.set_author(name=self.messages.get(f"info.category.{category.value}"))

        embed.add_field(
            name="📈",
            value=self.messages.get(
                "info.current_bonus",
                weapon=f"{self.reforge_service.get_weapon_bonus(level):.1f}",
                armor=f"{self.reforge_service.get_armor_bonus(level):.1f}",
            ),
            inline=False,
        )

        if self.eligibility.is_max_level(item, player_id):
            embed.add_field(name="⭐", value=self.messages.get("info.max_level"), inline=False)
            await interaction.response.send_message(embed=embed, ephemeral=True)
            return

        service = self.reforge_service
        balance = await service.get_player_balance(player_id)
        cost_lines = [
            self.messages.get("info.chance", chance=_percent(service.get_success_chance(level))),
            self.messages.get("info.cost", cost=service.format_currency(service.get_coin_cost(level))),
        ]
        if service.is_protection_enabled():
            cost_lines.append(self.messages.get(
                "info.protection_cost",
                cost=service.format_currency(service.get_protection_cost(level)),
            ))
        cost_lines.append(self.messages.get("info.balance", balance=service.format_currency(balance)))
        embed.add_field(name=f"+{level} → +{level + 1}", value="\n".join(cost_lines), inline=False)

        material_lines = []
        for material in service.get_required_materials(level):
            have = await service.count_material(player_id, material.item_id)
            mark = "✅" if have >= material.count else "❌"
            material_lines.append(f"{mark} " + self.messages.get(
                "info.material_line",
                material=self._display_name(material.item_id),
                have=have,
                need=material.count,
            ))
        embed.add_field(
            name=self.messages.get("info.materials"),
            value="\n".join(material_lines) or self.messages.get("info.no_materials"),
            inline=False,
        )

        await interaction.response.send_message(embed=embed, ephemeral=True)

    # ==================== 재련 목록 ====================

    @app_commands.command(name="재련목록", description="📦 재련 가능한 아이템 목록을 확인합니다")
    async def reforge_list(self, interaction: discord.Interaction):
        slots = await self.reforge_service.find_reforgeable_slots(interaction.user.id)
        if not slots:
            await interaction.response.send_message(self.messages.format("list.empty"), ephemeral=True)
            return

        lines = []
        for slot_index, level in slots:
            item = await self.reforge_service.get_item_at_slot(interaction.user.id, slot_index)
            if item is None:
                continue
            label = self.messages.get("list.held") if slot_index < 0 else str(slot_index)
            lines.append(self.messages.get(
                "list.line", slot=label, item=self._display_name(item.item_id), level=level
            ))

        embed = discord.Embed(
            title=f"📦 {self.messages.get('list.title')}",
            description="\n".join(lines[:25]),
            color=discord.Color.blue(),
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    # ==================== 도움말 ====================

    @app_commands.command(name="재련도움말", description="❓ 재련 시스템 도움말")
    async def reforge_help(self, interaction: discord.Interaction):
        embed = discord.Embed(
            title=f"❓ {self.messages.get('help.title')}",
            description=self.messages.get("help.body"),
            color=discord.Color.light_gray(),
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)


async def setup(bot: commands.Bot):
    await bot.add_cog(ReforgeCommand(bot))
