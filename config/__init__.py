"""
재련 봇 게임 설정

모든 매직 넘버와 게임 밸런스 관련 상수를 여기서 관리합니다.
재련 진행 테이블은 ConfigManager가 JSON 문서로 관리하며,
이 패키지의 기본값은 문서가 없을 때 사용됩니다.
"""
from config.inventory import InventoryConfig, INVENTORY
from config.reforge import (
    MaterialRequirement, GeneralSettings, LevelDefinition, AllowedItems,
    ProgressionTable, DEFAULT_PROGRESSION, build_default_levels,
    ReverseRecipeHeuristicConfig, REVERSE_RECIPE_HEURISTIC,
)

__all__ = [
    # inventory
    "InventoryConfig", "INVENTORY",
    # reforge
    "MaterialRequirement", "GeneralSettings", "LevelDefinition", "AllowedItems",
    "ProgressionTable", "DEFAULT_PROGRESSION", "build_default_levels",
    "ReverseRecipeHeuristicConfig", "REVERSE_RECIPE_HEURISTIC",
]
