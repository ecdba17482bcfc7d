"""
ReverseRecipeService

재련 실패로 아이템이 파괴될 때 돌려줄 재료(역제작 레시피)를 계산합니다.
"""
import logging
from typing import List, Optional, Tuple

from config import REVERSE_RECIPE_HEURISTIC, MaterialRequirement, ProgressionTable
from config.manager import ConfigManager
from utils.item_id import canonical_item_id

logger = logging.getLogger(__name__)

Recipe = Tuple[MaterialRequirement, ...]


class ReverseRecipeService:
    """역제작 레시피 조회 서비스"""

    def __init__(self, config_manager: ConfigManager):
        self._table: ProgressionTable = config_manager.current
        config_manager.subscribe(self._on_config_changed)

    def _on_config_changed(self, table: ProgressionTable) -> None:
        self._table = table

    def resolve(self, item_id: str) -> Optional[Recipe]:
        """
        아이템의 역제작 레시피 조회

        조회 순서:
            1. 설정의 reverseRecipes (네임스페이스 제거한 이름)
            2. 설정의 reverseRecipes (원본 ID)
            3. 아이템 이름 규칙으로 추정

        Returns:
            재료 목록, 알 수 없으면 None
        """
        name = canonical_item_id(item_id)
        recipes = self._table.reverse_recipes
        if name in recipes:
            return recipes[name]
        if item_id in recipes:
            return recipes[item_id]
        return self.guess_recipe(name)

    @staticmethod
    def guess_recipe(item_name: str) -> Optional[Recipe]:
        """
        이름 규칙 기반 레시피 추정

        - "Weapon_<종류>_<재질>" → 재질은 마지막 토큰
        - "Armor_<재질>_<부위>" → 재질은 두 번째 토큰
        예: "Weapon_Sword_Iron" → Ingredient_Bar_Iron x12
        """
        rules = REVERSE_RECIPE_HEURISTIC
        parts = item_name.split("_")
        if len(parts) < 3:
            return None

        if item_name.startswith(rules.WEAPON_PREFIX):
            material_name = parts[-1]
        elif item_name.startswith(rules.ARMOR_PREFIX):
            material_name = parts[1]
        else:
            return None

        if not material_name:
            return None

        count = ReverseRecipeService._base_units(item_name)
        material_id = rules.BASE_MATERIAL_FORMAT.format(material=material_name)
        logger.info(f"[reverseRecipe] Guessed: {item_name} -> {material_id} x{count}")
        return (MaterialRequirement(material_id, count),)

    @staticmethod
    def _base_units(item_name: str) -> int:
        rules = REVERSE_RECIPE_HEURISTIC
        for prefix, units in rules.WEAPON_UNITS:
            if item_name.startswith(prefix):
                return units
        for marker, units in rules.ARMOR_UNITS:
            if marker in item_name:
                return units
        return rules.DEFAULT_UNITS

    def refund_for(self, item_id: str, return_rate: float) -> List[MaterialRequirement]:
        """
        반환할 재료 계산

        각 재료마다 floor(수량 × 반환율), 레시피가 있으면 최소 1개.
        반환 재료 ID는 네임스페이스를 제거합니다.
        """
        recipe = self.resolve(item_id)
        if not recipe:
            return []
        return [
            MaterialRequirement(
                canonical_item_id(material.item_id),
                max(1, int(material.count * return_rate)),
            )
            for material in recipe
        ]
