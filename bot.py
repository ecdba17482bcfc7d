# bot.py
import os
import logging
from pathlib import Path

import discord
from discord.app_commands import CommandSignatureMismatch
from discord.ext import commands
from dotenv import load_dotenv
from tortoise import Tortoise

from config import ProgressionTable
from config.manager import ConfigManager
from resources.messages import MessageCatalog
from service.economy.economy_bridge import EconomyBridge
from service.economy.wallet_provider import WalletEconomyProvider
from service.inventory.db_inventory import DatabaseInventoryGateway
from service.item.eligibility_service import EligibilityService
from service.item.level_store import LevelStore
from service.item.reforge_service import ReforgeService
from service.item.reverse_recipe_service import ReverseRecipeService

# 로그 기본 설정
logging.basicConfig(
    level=logging.INFO,  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)

load_dotenv()

TOKEN = os.getenv('DISCORD_TOKEN')
APPLICATION_ID = int(os.getenv('APPLICATION_ID') or 0)
GUILD_ID = int(os.getenv('GUILD_ID') or 0)

DATABASE_URL = os.getenv('DATABASE_URL') or "sqlite://data/reforge.sqlite3"
DATA_DIR = Path(os.getenv('REFORGE_DATA_DIR') or "data")

DEBUG_LOGGERS = ("service", "config")


def apply_debug_mode(table: ProgressionTable) -> None:
    """설정의 debug_mode에 따라 서비스/설정 로거 레벨 전환"""
    level = logging.DEBUG if table.general.debug_mode else logging.INFO
    for name in DEBUG_LOGGERS:
        logging.getLogger(name).setLevel(level)


class ReforgeBot(commands.Bot):
    def __init__(self, data_dir: Path = DATA_DIR, database_url: str = DATABASE_URL):
        intents = discord.Intents.default()
        super().__init__(
            command_prefix="!",
            intents=intents,
            application_id=APPLICATION_ID
        )
        self.database_url = database_url

        # 설정 / 저장소
        self.config_manager = ConfigManager(data_dir)
        self.config_manager.subscribe(apply_debug_mode)
        self.config_manager.load_or_create()
        self.level_store = LevelStore(data_dir)

        # 외부 연동
        self.wallet_provider = WalletEconomyProvider()
        self.economy = EconomyBridge()
        self.economy.register_provider("wallet", self.wallet_provider)
        self.inventory = DatabaseInventoryGateway()

        # 재련 서비스
        self.eligibility_service = EligibilityService(
            self.config_manager,
            self.level_store,
            item_metadata_supported=self.inventory.supports_item_metadata,
        )
        self.reverse_recipe_service = ReverseRecipeService(self.config_manager)
        self.reforge_service = ReforgeService(
            self.config_manager,
            self.eligibility_service,
            self.level_store,
            self.reverse_recipe_service,
            self.economy,
            self.inventory,
        )
        self.messages = MessageCatalog(self.config_manager)

    async def setup_hook(self):
        logging.info("데이터 베이스 연결 시작")
        await self.init_db()
        logging.info("데이터 베이스 연결")

        self.wallet_provider.mark_ready()
        self.economy.activate(self.config_manager.current.general.economy_provider)

        for fn in os.listdir("./cogs"):
            if fn.endswith(".py"):
                await self.load_extension(f"cogs.{fn[:-3]}")
                logging.info(f"Loaded cogs.{fn[:-3]}")

        guild = discord.Object(id=GUILD_ID)
        self.tree.copy_global_to(guild=guild)
        guild_synced = await self.tree.sync(guild=guild)
        logging.info(f"길드 {len(guild_synced)}개 re-synced: {[c.name for c in guild_synced]}")

    async def init_db(self):
        if self.database_url.startswith("sqlite://"):
            Path(self.database_url[len("sqlite://"):]).parent.mkdir(parents=True, exist_ok=True)
        await Tortoise.init(
            db_url=self.database_url,
            modules={"models": ["models"]}
        )
        await Tortoise.generate_schemas()

    async def close(self):
        self.level_store.save()
        await Tortoise.close_connections()
        await super().close()

    async def on_ready(self):
        logging.info(f"Logged in as {self.user} (ID: {self.user.id})")


if __name__ == "__main__":
    if not TOKEN or not APPLICATION_ID or not GUILD_ID:
        raise RuntimeError("환경변수 DISCORD_TOKEN, APPLICATION_ID, GUILD_ID를 .env에 모두 설정해주세요")

    bot = ReforgeBot()

    @bot.tree.error
    async def on_app_command_error(interaction: discord.Interaction, error):
        if isinstance(error, CommandSignatureMismatch):
            await interaction.response.defer(ephemeral=True, thinking=True)
            synced = await bot.tree.sync(guild=discord.Object(id=GUILD_ID))
            return await interaction.followup.send(
                f"⚠️ 명령 시그니처가 갱신되어 `{', '.join(c.name for c in synced)}` 명령어를 재등록했습니다 .\n "
                "다시 시도해 주세요.",
                ephemeral=True
            )
        raise error

    bot.run(TOKEN)
