"""
재련 관리자 명령어 (/재련관리 ...)

모든 수정은 설정 파일에 저장되고 새 스냅샷으로 즉시 반영됩니다.
"""
import logging
from typing import List, Optional

import discord
from discord import app_commands
from discord.ext import commands

from config import MaterialRequirement
from config.manager import PATTERN_CATEGORIES
from exceptions import InvalidConfigValueError

logger = logging.getLogger(__name__)

PATTERN_CATEGORY_CHOICES = [
    app_commands.Choice(name="무기", value="weapons"),
    app_commands.Choice(name="방어구", value="armor"),
    app_commands.Choice(name="제외", value="exclusions"),
]

LANGUAGE_CHOICES = [
    app_commands.Choice(name="한국어", value="ko"),
    app_commands.Choice(name="English", value="en"),
]


def parse_materials(text: str) -> List[MaterialRequirement]:
    """
    재료 문자열 파싱

    형식: "아이템ID=개수, 아이템ID=개수" (개수 생략 시 1)
    예: "Ingredient_Bar_Iron=4, Ingredient_Leather=2"

    Raises:
        InvalidConfigValueError: 형식 오류 또는 개수가 1 미만
    """
    materials = []
    for token in text.split(","):
        token = token.strip()
        if not token:
            continue
        item_id, _, count_text = token.partition("=")
        item_id = item_id.strip()
        if not item_id:
            raise InvalidConfigValueError("materials", token, "missing item id")
        try:
            count = int(count_text) if count_text.strip() else 1
        except ValueError:
            raise InvalidConfigValueError("materials", token, "count must be an integer")
        if count <= 0:
            raise InvalidConfigValueError("materials", token, "count must be > 0")
        materials.append(MaterialRequirement(item_id, count))
    return materials


class ReforgeAdminCommand(commands.Cog):
    """재련 설정 관리"""

    admin = app_commands.Group(
        name="재련관리",
        description="재련 설정 관리 (관리자 전용)",
        default_permissions=discord.Permissions(administrator=True),
        guild_only=True,
    )

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.config_manager = bot.config_manager
        self.messages = bot.messages

    async def _reply_updated(self, interaction: discord.Interaction, detail: str):
        logger.info(f"Reforge config edited by {interaction.user.id}: {detail}")
        await interaction.response.send_message(
            self.messages.format("admin.updated", detail=detail), ephemeral=True
        )

    async def _reply_invalid(self, interaction: discord.Interaction, error: InvalidConfigValueError):
        await interaction.response.send_message(
            self.messages.format("admin.invalid", detail=f"{error.field_name}={error.value} ({error.reason})"),
            ephemeral=True,
        )

    async def _reply_not_found(self, interaction: discord.Interaction, detail: str):
        await interaction.response.send_message(
            self.messages.format("admin.not_found", detail=detail), ephemeral=True
        )

    async def _update_general(self, interaction: discord.Interaction, **changes):
        try:
            self.config_manager.update_general(**changes)
        except InvalidConfigValueError as e:
            await self._reply_invalid(interaction, e)
            return
        detail = ", ".join(f"{k}={v}" for k, v in changes.items())
        await self._reply_updated(interaction, detail)

    # ==================== 파일 ====================

    @admin.command(name="리로드", description="설정 파일을 다시 불러옵니다")
    async def reload(self, interaction: discord.Interaction):
        if self.config_manager.reload():
            await interaction.response.send_message(self.messages.format("admin.reloaded"), ephemeral=True)
        else:
            await interaction.response.send_message(self.messages.format("admin.reload_failed"), ephemeral=True)

    # ==================== 레벨 ====================

    @admin.command(name="레벨설정", description="재련 단계 설정을 변경합니다")
    @app_commands.rename(
        level="단계", chance="성공확률", weapon_bonus="무기보너스",
        armor_bonus="방어구보너스", cost="비용", materials="재료",
    )
    @app_commands.describe(
        level="목표 단계 (+1 이상)",
        chance="성공 확률 (0~1)",
        weapon_bonus="무기 공격력 보너스 (고정 수치)",
        armor_bonus="방어구 방어력 보너스 (고정 수치)",
        cost="코인 비용",
        materials="재료 (예: Ingredient_Bar_Iron=4, Ingredient_Leather=2 / '없음'이면 비움)",
    )
    async def set_level(
        self,
        interaction: discord.Interaction,
        level: app_commands.Range[int, 1],
        chance: Optional[app_commands.Range[float, 0.0, 1.0]] = None,
        weapon_bonus: Optional[app_commands.Range[float, 0.0]] = None,
        armor_bonus: Optional[app_commands.Range[float, 0.0]] = None,
        cost: Optional[app_commands.Range[float, 0.0]] = None,
        materials: Optional[str] = None,
    ):
        changes = {}
        if chance is not None:
            changes["success_chance"] = chance
        if weapon_bonus is not None:
            changes["weapon_bonus"] = weapon_bonus
        if armor_bonus is not None:
            changes["armor_bonus"] = armor_bonus
        if cost is not None:
            changes["coin_cost"] = cost

        try:
            if materials is not None:
                changes["materials"] = () if materials.strip() == "없음" else tuple(parse_materials(materials))
            self.config_manager.update_level(level, **changes)
        except InvalidConfigValueError as e:
            await self._reply_invalid(interaction, e)
            return

        definition = self.config_manager.current.levels[level]
        await self._reply_updated(
            interaction,
            f"+{level} chance={definition.success_chance:.2f} weapon={definition.weapon_bonus} "
            f"armor={definition.armor_bonus} cost={definition.coin_cost:,.0f} "
            f"materials={[f'{m.item_id}x{m.count}' for m in definition.materials]}",
        )

    @admin.command(name="레벨삭제", description="재련 단계 설정을 삭제합니다")
    @app_commands.rename(level="단계")
    async def remove_level(self, interaction: discord.Interaction, level: int):
        if not self.config_manager.remove_level(level):
            await self._reply_not_found(interaction, f"+{level}")
            return
        await self._reply_updated(interaction, f"+{level} removed")

    # ==================== 일반 설정 ====================

    @admin.command(name="최대레벨", description="최대 재련 단계를 설정합니다")
    @app_commands.rename(value="단계")
    async def max_level(self, interaction: discord.Interaction, value: app_commands.Range[int, 0]):
        await self._update_general(interaction, max_level=value)

    @admin.command(name="반환율", description="파괴 시 재료 반환 비율을 설정합니다 (0~1)")
    @app_commands.rename(value="비율")
    async def return_rate(self, interaction: discord.Interaction, value: app_commands.Range[float, 0.0, 1.0]):
        await self._update_general(interaction, failure_return_rate=value)

    @admin.command(name="보호", description="보호 기능을 켜거나 끕니다")
    @app_commands.rename(enabled="사용")
    async def protection(self, interaction: discord.Interaction, enabled: bool):
        await self._update_general(interaction, protection_enabled=enabled)

    @admin.command(name="보호배율", description="보호 추가 비용 배율을 설정합니다")
    @app_commands.rename(value="배율")
    async def protection_multiplier(self, interaction: discord.Interaction, value: app_commands.Range[float, 0.0]):
        await self._update_general(interaction, protection_cost_multiplier=value)

    @admin.command(name="언어", description="메시지 언어를 설정합니다")
    @app_commands.rename(language="언어")
    @app_commands.choices(language=LANGUAGE_CHOICES)
    async def language(self, interaction: discord.Interaction, language: app_commands.Choice[str]):
        await self._update_general(interaction, language=language.value)

    @admin.command(name="디버그", description="디버그 로그를 켜거나 끕니다")
    @app_commands.rename(enabled="사용")
    async def debug(self, interaction: discord.Interaction, enabled: bool):
        await self._update_general(interaction, debug_mode=enabled)

    # ==================== 허용 아이템 ====================

    @admin.command(name="허용추가", description="재련 허용/제외 패턴을 추가합니다 (예: Weapon_*)")
    @app_commands.rename(category="분류", pattern="패턴")
    @app_commands.choices(category=PATTERN_CATEGORY_CHOICES)
    async def add_pattern(
        self,
        interaction: discord.Interaction,
        category: app_commands.Choice[str],
        pattern: str,
    ):
        try:
            self.config_manager.add_allowed_pattern(category.value, pattern.strip())
        except InvalidConfigValueError as e:
            await self._reply_invalid(interaction, e)
            return
        patterns = getattr(self.config_manager.current.allowed_items, category.value)
        await self._reply_updated(interaction, f"{category.value}={list(patterns)}")

    @admin.command(name="허용제거", description="재련 허용/제외 패턴을 제거합니다")
    @app_commands.rename(category="분류", pattern="패턴")
    @app_commands.choices(category=PATTERN_CATEGORY_CHOICES)
    async def remove_pattern(
        self,
        interaction: discord.Interaction,
        category: app_commands.Choice[str],
        pattern: str,
    ):
        if category.value not in PATTERN_CATEGORIES:
            await self._reply_not_found(interaction, category.value)
            return
        if not self.config_manager.remove_allowed_pattern(category.value, pattern.strip()):
            await self._reply_not_found(interaction, pattern)
            return
        patterns = getattr(self.config_manager.current.allowed_items, category.value)
        await self._reply_updated(interaction, f"{category.value}={list(patterns)}")

    # ==================== 복구 레시피 / 이름 ====================

    @admin.command(name="복구레시피", description="파괴 시 반환할 재료 레시피를 설정합니다")
    @app_commands.rename(item="아이템", materials="재료")
    @app_commands.describe(
        item="아이템 ID (예: Weapon_Sword_Iron)",
        materials="재료 (예: Ingredient_Bar_Iron=12)",
    )
    async def set_recipe(self, interaction: discord.Interaction, item: str, materials: str):
        try:
            parsed = parse_materials(materials)
            if not parsed:
                raise InvalidConfigValueError("materials", materials, "at least one material is required")
            self.config_manager.set_reverse_recipe(item.strip(), parsed)
        except InvalidConfigValueError as e:
            await self._reply_invalid(interaction, e)
            return
        await self._reply_updated(
            interaction, f"{item} -> {', '.join(f'{m.item_id}x{m.count}' for m in parsed)}"
        )

    @admin.command(name="복구레시피삭제", description="복구 레시피를 삭제합니다")
    @app_commands.rename(item="아이템")
    async def remove_recipe(self, interaction: discord.Interaction, item: str):
        if not self.config_manager.remove_reverse_recipe(item.strip()):
            await self._reply_not_found(interaction, item)
            return
        await self._reply_updated(interaction, f"{item} recipe removed")

    @admin.command(name="아이템이름", description="아이템 표시 이름을 설정합니다 (이름 생략 시 삭제)")
    @app_commands.rename(item="아이템", name="이름")
    async def item_name(self, interaction: discord.Interaction, item: str, name: Optional[str] = None):
        self.config_manager.set_custom_item_name(item.strip(), name.strip() if name else None)
        await self._reply_updated(interaction, f"{item} -> {name or '(default)'}")


async def setup(bot: commands.Bot):
    await bot.add_cog(ReforgeAdminCommand(bot))
