"""
재련 명령어(cog) 응답 테스트
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from cogs.reforge_admin_command import ReforgeAdminCommand, parse_materials
from cogs.reforge_command import ReforgeCommand
from config import MaterialRequirement
from exceptions import InvalidConfigValueError
from resources.messages import MessageCatalog

PLAYER_ID = 123456789


@pytest.fixture
def messages(config_manager):
    return MessageCatalog(config_manager)


@pytest.fixture
def fake_bot(config_manager, reforge_service, eligibility, messages):
    return SimpleNamespace(
        config_manager=config_manager,
        reforge_service=reforge_service,
        eligibility_service=eligibility,
        messages=messages,
    )


def _sent(interaction):
    """send_message 호출 인자"""
    interaction.response.send_message.assert_awaited_once()
    return interaction.response.send_message.await_args


class TestReforgeCommand:
    """/재련"""

    @pytest.mark.asyncio
    async def test_no_item_reply(self, fake_bot, mock_discord_interaction):
        cog = ReforgeCommand(fake_bot)

        await cog.reforge.callback(cog, mock_discord_interaction)

        call = _sent(mock_discord_interaction)
        assert "재련할 아이템이 없습니다" in call.args[0]
        assert call.kwargs["ephemeral"] is True

    @pytest.mark.asyncio
    async def test_success_reply(self, fake_bot, inventory, wallet, mock_discord_interaction):
        inventory.hold(PLAYER_ID, "Weapon_Sword_Iron")
        inventory.give(PLAYER_ID, 0, "Ingredient_Bar_Iron", 2)
        wallet.balances[PLAYER_ID] = 100.0
        cog = ReforgeCommand(fake_bot)

        await cog.reforge.callback(cog, mock_discord_interaction)

        embed = _sent(mock_discord_interaction).kwargs["embed"]
        assert "재련 성공" in embed.description
        assert "+0 → +1" in embed.description
        assert "누적 보너스: 공격력 +2.0 / 방어력 +1.5" in embed.description

    @pytest.mark.asyncio
    async def test_insufficient_funds_reply(self, fake_bot, inventory, mock_discord_interaction):
        inventory.hold(PLAYER_ID, "Weapon_Sword_Iron")
        cog = ReforgeCommand(fake_bot)

        await cog.reforge.callback(cog, mock_discord_interaction)

        call = _sent(mock_discord_interaction)
        assert "코인이 부족합니다" in call.args[0]
        assert "100c" in call.args[0]

    @pytest.mark.asyncio
    async def test_in_progress_reply(self, fake_bot, mock_discord_interaction, monkeypatch):
        monkeypatch.setattr(fake_bot.reforge_service, "attempt_reforge", AsyncMock(return_value=None))
        cog = ReforgeCommand(fake_bot)

        await cog.reforge.callback(cog, mock_discord_interaction, 3, True)

        fake_bot.reforge_service.attempt_reforge.assert_awaited_once_with(PLAYER_ID, 3, True)
        assert "이미 재련이 진행 중" in _sent(mock_discord_interaction).args[0]

    @pytest.mark.asyncio
    async def test_apply_failed_reply(self, fake_bot, inventory, wallet, mock_discord_interaction):
        inventory.hold(PLAYER_ID, "Weapon_Sword_Iron")
        inventory.give(PLAYER_ID, 0, "Ingredient_Bar_Iron", 2)
        inventory.fail_on.add("set_held_item")
        wallet.balances[PLAYER_ID] = 100.0
        cog = ReforgeCommand(fake_bot)

        await cog.reforge.callback(cog, mock_discord_interaction)

        call = _sent(mock_discord_interaction)
        assert "재련 결과를 반영하지 못했습니다" in call.args[0]
        assert call.kwargs["ephemeral"] is True
        assert wallet.balances[PLAYER_ID] == 100.0


class TestInfoCommands:
    """/재련정보, /재련목록, /재련도움말"""

    @pytest.mark.asyncio
    async def test_info_shows_next_level(self, fake_bot, inventory, wallet, mock_discord_interaction):
        inventory.hold(PLAYER_ID, "Weapon_Sword_Iron", reforge_level=2)
        inventory.give(PLAYER_ID, 0, "Ingredient_Bar_Iron", 3)
        wallet.balances[PLAYER_ID] = 1000.0
        cog = ReforgeCommand(fake_bot)

        await cog.reforge_info.callback(cog, mock_discord_interaction)

        embed = _sent(mock_discord_interaction).kwargs["embed"]
        fields = {field.name: field.value for field in embed.fields}
        assert "Sword Iron" in embed.description
        assert "성공 확률: 75%" in fields["+2 → +3"]
        assert "300c" in fields["+2 → +3"]
        assert "3/6" in fields["필요 재료"]

    @pytest.mark.asyncio
    async def test_list_reforgeable(self, fake_bot, inventory, mock_discord_interaction):
        inventory.hold(PLAYER_ID, "Weapon_Sword_Iron", reforge_level=1)
        inventory.give(PLAYER_ID, 4, "Armor_Iron_Chest")
        cog = ReforgeCommand(fake_bot)

        await cog.reforge_list.callback(cog, mock_discord_interaction)

        embed = _sent(mock_discord_interaction).kwargs["embed"]
        assert "[손] Sword Iron +1" in embed.description
        assert "[4] Iron Chest +0" in embed.description

    @pytest.mark.asyncio
    async def test_list_empty(self, fake_bot, mock_discord_interaction):
        cog = ReforgeCommand(fake_bot)
        await cog.reforge_list.callback(cog, mock_discord_interaction)
        assert "재련 가능한 아이템이 없습니다" in _sent(mock_discord_interaction).args[0]


class TestAdminCommand:
    """/재련관리"""

    def test_parse_materials(self):
        assert parse_materials("Ingredient_Bar_Iron=4, hytale:Gem") == [
            MaterialRequirement("Ingredient_Bar_Iron", 4),
            MaterialRequirement("hytale:Gem", 1),
        ]

    @pytest.mark.parametrize("text", ["=3", "IronBar=x", "IronBar=0"])
    def test_parse_materials_invalid(self, text):
        with pytest.raises(InvalidConfigValueError):
            parse_materials(text)

    @pytest.mark.asyncio
    async def test_return_rate_updates_config(self, fake_bot, config_manager, mock_discord_interaction):
        cog = ReforgeAdminCommand(fake_bot)

        await cog.return_rate.callback(cog, mock_discord_interaction, 0.5)

        assert config_manager.current.general.failure_return_rate == 0.5
        assert "설정이 변경되었습니다" in _sent(mock_discord_interaction).args[0]

    @pytest.mark.asyncio
    async def test_set_level_with_bad_materials(self, fake_bot, config_manager, mock_discord_interaction):
        before = config_manager.current
        cog = ReforgeAdminCommand(fake_bot)

        await cog.set_level.callback(cog, mock_discord_interaction, 3, materials="IronBar=-1")

        assert config_manager.current is before
        assert "잘못된 값입니다" in _sent(mock_discord_interaction).args[0]

    @pytest.mark.asyncio
    async def test_set_level(self, fake_bot, config_manager, mock_discord_interaction):
        cog = ReforgeAdminCommand(fake_bot)

        await cog.set_level.callback(
            cog, mock_discord_interaction, 3, chance=0.5, materials="IronBar=4"
        )

        level = config_manager.current.levels[3]
        assert level.success_chance == 0.5
        assert level.materials == (MaterialRequirement("IronBar", 4),)

    @pytest.mark.asyncio
    async def test_remove_missing_recipe(self, fake_bot, mock_discord_interaction):
        cog = ReforgeAdminCommand(fake_bot)
        await cog.remove_recipe.callback(cog, mock_discord_interaction, "Weapon_Nothing_Here")
        assert "해당 항목이 없습니다" in _sent(mock_discord_interaction).args[0]
