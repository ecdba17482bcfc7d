"""재련 시스템 설정 (진행 테이블)"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from utils.item_id import canonical_item_id, matches_pattern

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float, high: Optional[float] = None) -> float:
    value = max(low, value)
    if high is not None:
        value = min(high, value)
    return value


def _as_float(raw: Any, default: float) -> float:
    """숫자가 아니거나 inf/nan이면 기본값"""
    if isinstance(raw, bool):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


def _as_int(raw: Any, default: int) -> int:
    if isinstance(raw, bool):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError, OverflowError):
        return default


def _as_bool(raw: Any, default: bool) -> bool:
    """bool 값 또는 true/false 계열 문자열만 인정"""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered in ("true", "yes", "on", "1"):
            return True
        if lowered in ("false", "no", "off", "0"):
            return False
    return default


def _as_str(raw: Any, default: str) -> str:
    return raw if isinstance(raw, str) else default


@dataclass(frozen=True)
class MaterialRequirement:
    """재료 요구량"""

    item_id: str
    count: int

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Optional["MaterialRequirement"]:
        """잘못된 항목(아이디 없음, 수량 0 이하)은 None"""
        if not isinstance(raw, Mapping):
            return None
        item_id = raw.get("itemId")
        count = _as_int(raw.get("count"), 0)
        if not isinstance(item_id, str) or not item_id or count <= 0:
            return None
        return cls(item_id=item_id, count=count)

    def to_dict(self) -> Dict[str, Any]:
        return {"itemId": self.item_id, "count": self.count}


def _parse_materials(raw: Any) -> Tuple[MaterialRequirement, ...]:
    if not isinstance(raw, list):
        return ()
    materials = []
    for entry in raw:
        material = MaterialRequirement.from_dict(entry)
        if material is None:
            logger.warning(f"Skipping invalid material entry: {entry!r}")
            continue
        materials.append(material)
    return tuple(materials)


@dataclass(frozen=True)
class GeneralSettings:
    """일반 설정"""

    max_level: int = 10
    """최대 재련 레벨"""

    failure_return_rate: float = 0.30
    """파괴 시 재료 반환 비율 (0~1)"""

    protection_enabled: bool = True
    """보호 기능 사용 여부"""

    protection_cost_multiplier: float = 2.0
    """보호 추가 비용 배율 (코인 비용 × 배율)"""

    language: str = "ko"
    """메시지 언어"""

    message_prefix: str = "[⚒ 재련]"
    """메시지 접두사"""

    debug_mode: bool = False
    """디버그 로그 출력"""

    economy_provider: str = "wallet"
    """우선 사용할 경제 백엔드 키"""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "GeneralSettings":
        default = cls()
        if not isinstance(raw, Mapping):
            return default
        return cls(
            max_level=max(0, _as_int(raw.get("maxLevel"), default.max_level)),
            failure_return_rate=_clamp(
                _as_float(raw.get("failureReturnRate"), default.failure_return_rate), 0.0, 1.0
            ),
            protection_enabled=_as_bool(raw.get("protectionEnabled"), default.protection_enabled),
            protection_cost_multiplier=_clamp(
                _as_float(raw.get("protectionCostMultiplier"), default.protection_cost_multiplier), 0.0
            ),
            language=_as_str(raw.get("language"), "") or default.language,
            message_prefix=_as_str(raw.get("messagePrefix"), default.message_prefix),
            debug_mode=_as_bool(raw.get("debugMode"), default.debug_mode),
            economy_provider=_as_str(raw.get("economyProvider"), "") or default.economy_provider,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "maxLevel": self.max_level,
            "failureReturnRate": self.failure_return_rate,
            "protectionEnabled": self.protection_enabled,
            "protectionCostMultiplier": self.protection_cost_multiplier,
            "language": self.language,
            "messagePrefix": self.message_prefix,
            "debugMode": self.debug_mode,
            "economyProvider": self.economy_provider,
        }


@dataclass(frozen=True)
class LevelDefinition:
    """레벨별 재련 설정"""

    success_chance: float = 0.90
    weapon_bonus: float = 2.0
    armor_bonus: float = 1.5
    coin_cost: float = 100.0
    materials: Tuple[MaterialRequirement, ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "LevelDefinition":
        default = cls()
        if not isinstance(raw, Mapping):
            return default
        return cls(
            success_chance=_clamp(_as_float(raw.get("successChance"), default.success_chance), 0.0, 1.0),
            weapon_bonus=_clamp(_as_float(raw.get("weaponBonus"), default.weapon_bonus), 0.0),
            armor_bonus=_clamp(_as_float(raw.get("armorBonus"), default.armor_bonus), 0.0),
            coin_cost=_clamp(_as_float(raw.get("coinCost"), default.coin_cost), 0.0),
            materials=_parse_materials(raw.get("materials")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "successChance": self.success_chance,
            "weaponBonus": self.weapon_bonus,
            "armorBonus": self.armor_bonus,
            "coinCost": self.coin_cost,
            "materials": [m.to_dict() for m in self.materials],
        }


@dataclass(frozen=True)
class AllowedItems:
    """재련 가능 아이템 패턴"""

    weapons: Tuple[str, ...] = ("Weapon_*",)
    armor: Tuple[str, ...] = ("Armor_*",)
    exclusions: Tuple[str, ...] = ()

    def is_excluded(self, item_id: str) -> bool:
        name = canonical_item_id(item_id)
        return any(matches_pattern(name, p) for p in self.exclusions)

    def is_weapon(self, item_id: Optional[str]) -> bool:
        if not item_id or self.is_excluded(item_id):
            return False
        name = canonical_item_id(item_id)
        return any(matches_pattern(name, p) for p in self.weapons)

    def is_armor(self, item_id: Optional[str]) -> bool:
        if not item_id or self.is_excluded(item_id):
            return False
        name = canonical_item_id(item_id)
        return any(matches_pattern(name, p) for p in self.armor)

    def is_allowed(self, item_id: Optional[str]) -> bool:
        return self.is_weapon(item_id) or self.is_armor(item_id)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "AllowedItems":
        default = cls()
        if not isinstance(raw, Mapping):
            return default

        def _patterns(key: str, fallback: Tuple[str, ...]) -> Tuple[str, ...]:
            value = raw.get(key)
            if not isinstance(value, list):
                return fallback
            return tuple(p for p in value if isinstance(p, str) and p)

        return cls(
            weapons=_patterns("weapons", default.weapons),
            armor=_patterns("armor", default.armor),
            exclusions=_patterns("exclusions", default.exclusions),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weapons": list(self.weapons),
            "armor": list(self.armor),
            "exclusions": list(self.exclusions),
        }


@dataclass(frozen=True)
class ProgressionTable:
    """
    재련 진행 테이블 (불변 스냅샷)

    리로드/관리자 수정 시 새 스냅샷이 만들어지고 구독자에게 전달됩니다.
    """

    general: GeneralSettings = field(default_factory=GeneralSettings)
    levels: Mapping[int, LevelDefinition] = field(default_factory=dict)
    allowed_items: AllowedItems = field(default_factory=AllowedItems)
    reverse_recipes: Mapping[str, Tuple[MaterialRequirement, ...]] = field(default_factory=dict)
    custom_item_names: Mapping[str, str] = field(default_factory=dict)

    def level_config(self, level: int) -> Optional[LevelDefinition]:
        """
        레벨 설정 조회

        정확히 일치하는 레벨이 없으면 요청 레벨 이하에서 가장 높은 레벨 설정을 재사용합니다.
        (예: 1~5만 설정된 상태에서 8 요청 → 5 사용)
        """
        definition = self.levels.get(level)
        if definition is not None:
            return definition

        candidates = [lvl for lvl in self.levels if lvl <= level]
        if not candidates:
            return None
        return self.levels[max(candidates)]

    def cumulative_bonus(self, level: int) -> Tuple[float, float]:
        """1 ~ level까지 누적 (무기 보너스, 방어구 보너스)"""
        weapon_total = 0.0
        armor_total = 0.0
        for lvl in range(1, level + 1):
            definition = self.level_config(lvl)
            if definition is not None:
                weapon_total += definition.weapon_bonus
                armor_total += definition.armor_bonus
        return weapon_total, armor_total

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ProgressionTable":
        """
        설정 문서를 테이블로 변환

        잘못된 레벨 키, 레시피 항목은 경고 후 건너뜁니다.
        """
        if not isinstance(raw, Mapping):
            raw = {}

        levels: Dict[int, LevelDefinition] = {}
        raw_levels = raw.get("levels")
        if isinstance(raw_levels, Mapping):
            for key, value in raw_levels.items():
                level = _as_int(key, -1)
                if level < 1:
                    logger.warning(f"Skipping invalid level key: {key!r}")
                    continue
                levels[level] = LevelDefinition.from_dict(value)

        recipes: Dict[str, Tuple[MaterialRequirement, ...]] = {}
        raw_recipes = raw.get("reverseRecipes")
        if isinstance(raw_recipes, Mapping):
            for item_name, entries in raw_recipes.items():
                materials = _parse_materials(entries)
                if materials:
                    recipes[str(item_name)] = materials

        names: Dict[str, str] = {}
        raw_names = raw.get("customItems")
        if isinstance(raw_names, Mapping):
            names = {str(k): str(v) for k, v in raw_names.items() if v}

        return cls(
            general=GeneralSettings.from_dict(raw.get("general", {})),
            levels=dict(sorted(levels.items())),
            allowed_items=AllowedItems.from_dict(raw.get("allowedItems", {})),
            reverse_recipes=recipes,
            custom_item_names=names,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "general": self.general.to_dict(),
            "levels": {str(lvl): d.to_dict() for lvl, d in sorted(self.levels.items())},
            "allowedItems": self.allowed_items.to_dict(),
            "reverseRecipes": {
                name: [m.to_dict() for m in materials]
                for name, materials in self.reverse_recipes.items()
            },
            "customItems": dict(self.custom_item_names),
        }


def build_default_levels(count: int = 10) -> Dict[int, LevelDefinition]:
    """기본 레벨 테이블 (단계별 난이도 상승)"""
    levels = {}
    for i in range(1, count + 1):
        levels[i] = LevelDefinition(
            success_chance=round(max(0.05, 0.95 - (i - 1) * 0.10), 2),
            weapon_bonus=i * 2.0,
            armor_bonus=i * 1.5,
            coin_cost=100.0 * i,
            materials=(MaterialRequirement("Ingredient_Bar_Iron", min(i * 2, 20)),),
        )
    return levels


DEFAULT_PROGRESSION = ProgressionTable(levels=build_default_levels())


# =============================================================================
# 역제작(재료 반환) 추정 규칙
# =============================================================================

@dataclass(frozen=True)
class ReverseRecipeHeuristicConfig:
    """레시피 설정이 없는 아이템의 재료 추정 규칙"""

    WEAPON_PREFIX: str = "Weapon_"
    ARMOR_PREFIX: str = "Armor_"

    BASE_MATERIAL_FORMAT: str = "Ingredient_Bar_{material}"
    """추정된 재질 → 기본 재료 ID"""

    WEAPON_UNITS: Tuple[Tuple[str, int], ...] = (
        ("Weapon_Battleaxe", 24),
        ("Weapon_Longsword", 20),
        ("Weapon_Sword", 12),
        ("Weapon_Axe", 16),
        ("Weapon_Mace", 18),
        ("Weapon_Spear", 14),
        ("Weapon_Dagger", 20),
    )
    """무기 종류(접두사)별 기본 재료 수"""

    ARMOR_UNITS: Tuple[Tuple[str, int], ...] = (
        ("_Head", 14),
        ("_Chest", 28),
        ("_Legs", 20),
        ("_Hands", 10),
        ("_Feet", 10),
    )
    """방어구 부위별 기본 재료 수"""

    DEFAULT_UNITS: int = 12


REVERSE_RECIPE_HEURISTIC = ReverseRecipeHeuristicConfig()
