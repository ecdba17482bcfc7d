"""
ConfigManager

재련 진행 테이블 문서(JSON)의 로드/저장/핫 리로드와 관리자 수정을 담당합니다.

테이블은 불변 스냅샷이며, 변경될 때마다 새 스냅샷이 구독자에게 발행됩니다.
"""
import json
import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from config.reforge import (
    DEFAULT_PROGRESSION,
    AllowedItems,
    GeneralSettings,
    LevelDefinition,
    MaterialRequirement,
    ProgressionTable,
)
from exceptions import ConfigLoadError, InvalidConfigValueError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "EcoReforge.json"

PATTERN_CATEGORIES = ("weapons", "armor", "exclusions")

ConfigSubscriber = Callable[[ProgressionTable], None]


class ConfigManager:
    """진행 테이블 설정 관리자"""

    def __init__(self, data_directory: Path, filename: str = CONFIG_FILENAME):
        self.data_directory = Path(data_directory)
        self.config_path = self.data_directory / filename
        self._table: ProgressionTable = DEFAULT_PROGRESSION
        self._subscribers: List[ConfigSubscriber] = []

    @property
    def current(self) -> ProgressionTable:
        """현재 스냅샷"""
        return self._table

    # =========================================================================
    # 구독
    # =========================================================================

    def subscribe(self, callback: ConfigSubscriber, replay: bool = True) -> None:
        """
        스냅샷 변경 구독

        Args:
            callback: 새 스냅샷을 받는 콜백
            replay: True면 현재 스냅샷으로 즉시 한 번 호출
        """
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        if replay:
            callback(self._table)

    def unsubscribe(self, callback: ConfigSubscriber) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def _publish(self, table: ProgressionTable) -> None:
        self._table = table
        for callback in list(self._subscribers):
            try:
                callback(table)
            except Exception as e:
                logger.error(f"Error in config subscriber {callback!r}: {e}", exc_info=True)

    # =========================================================================
    # 파일 입출력
    # =========================================================================

    def load_or_create(self) -> ProgressionTable:
        """설정 파일 로드, 없으면 기본값으로 생성"""
        try:
            self.data_directory.mkdir(parents=True, exist_ok=True)
            if self.config_path.exists():
                self._publish(self._read_file())
                logger.info(f"Config loaded from {self.config_path}")
            else:
                self._publish(DEFAULT_PROGRESSION)
                self.save()
                logger.info(f"Default config generated at {self.config_path}")
        except (OSError, ConfigLoadError) as e:
            logger.error(f"Failed to load config, using defaults: {e}")
            self._publish(DEFAULT_PROGRESSION)
        return self._table

    def reload(self) -> bool:
        """
        설정 파일 다시 읽기

        실패 시 마지막 정상 스냅샷을 유지합니다.

        Returns:
            리로드 성공 여부
        """
        if not self.config_path.exists():
            logger.warning(f"Config file not found: {self.config_path}")
            return False

        try:
            table = self._read_file()
        except ConfigLoadError as e:
            logger.error(f"Failed to reload config: {e}")
            return False

        self._publish(table)
        logger.info("Configuration reloaded successfully.")
        return True

    def save(self) -> bool:
        """현재 스냅샷을 파일로 저장 (임시 파일 → 교체)"""
        tmp_path = self.config_path.with_suffix(self.config_path.suffix + ".tmp")
        try:
            self.data_directory.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._table.to_dict(), f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.config_path)
            return True
        except OSError as e:
            logger.error(f"Failed to save config: {e}")
            return False

    def _read_file(self) -> ProgressionTable:
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigLoadError(str(self.config_path), str(e)) from e

        if raw is None:
            logger.warning("Config parsed as null, using defaults.")
            return DEFAULT_PROGRESSION
        if not isinstance(raw, dict):
            raise ConfigLoadError(str(self.config_path), "top-level value is not an object")
        try:
            return ProgressionTable.from_dict(raw)
        except (TypeError, ValueError, OverflowError) as e:
            raise ConfigLoadError(str(self.config_path), str(e)) from e

    def _commit(self, table: ProgressionTable) -> ProgressionTable:
        self._publish(table)
        self.save()
        return table

    # =========================================================================
    # 관리자 수정
    # =========================================================================

    def update_general(self, **changes) -> ProgressionTable:
        """
        일반 설정 수정

        Raises:
            InvalidConfigValueError: 알 수 없는 필드 또는 범위 밖의 값
        """
        fields = GeneralSettings.__dataclass_fields__
        for name, value in changes.items():
            if name not in fields:
                raise InvalidConfigValueError(name, value, "unknown setting")

        if "max_level" in changes and int(changes["max_level"]) < 0:
            raise InvalidConfigValueError("max_level", changes["max_level"], "must be >= 0")
        if "failure_return_rate" in changes and not 0.0 <= float(changes["failure_return_rate"]) <= 1.0:
            raise InvalidConfigValueError(
                "failure_return_rate", changes["failure_return_rate"], "must be between 0 and 1"
            )
        if "protection_cost_multiplier" in changes and float(changes["protection_cost_multiplier"]) < 0:
            raise InvalidConfigValueError(
                "protection_cost_multiplier", changes["protection_cost_multiplier"], "must be >= 0"
            )

        general = replace(self._table.general, **changes)
        logger.info(f"General settings updated: {changes}")
        return self._commit(replace(self._table, general=general))

    def update_level(self, level: int, **changes) -> ProgressionTable:
        """
        레벨 설정 수정

        해당 레벨이 없으면 대체 규칙으로 찾은 설정(없으면 기본값)을 복사해 새로 만듭니다.
        """
        if level < 1:
            raise InvalidConfigValueError("level", level, "must be >= 1")

        base = self._table.level_config(level) or LevelDefinition()
        try:
            definition = replace(base, **changes)
        except TypeError as e:
            raise InvalidConfigValueError("level", changes, str(e)) from e
        self._validate_level(definition)

        levels: Dict[int, LevelDefinition] = dict(self._table.levels)
        levels[level] = definition
        logger.info(f"Level +{level} updated: {changes}")
        return self._commit(replace(self._table, levels=dict(sorted(levels.items()))))

    def remove_level(self, level: int) -> bool:
        if level not in self._table.levels:
            return False
        levels = {lvl: d for lvl, d in self._table.levels.items() if lvl != level}
        self._commit(replace(self._table, levels=levels))
        logger.info(f"Level +{level} removed")
        return True

    def add_allowed_pattern(self, category: str, pattern: str) -> ProgressionTable:
        patterns = self._patterns(category)
        if pattern in patterns:
            return self._table
        return self._set_patterns(category, patterns + (pattern,))

    def remove_allowed_pattern(self, category: str, pattern: str) -> bool:
        patterns = self._patterns(category)
        if pattern not in patterns:
            return False
        self._set_patterns(category, tuple(p for p in patterns if p != pattern))
        return True

    def set_reverse_recipe(self, item_name: str, materials: Iterable[MaterialRequirement]) -> ProgressionTable:
        materials = tuple(materials)
        for material in materials:
            if material.count <= 0:
                raise InvalidConfigValueError("count", material.count, "must be > 0")
        recipes = dict(self._table.reverse_recipes)
        if materials:
            recipes[item_name] = materials
        else:
            recipes.pop(item_name, None)
        return self._commit(replace(self._table, reverse_recipes=recipes))

    def remove_reverse_recipe(self, item_name: str) -> bool:
        if item_name not in self._table.reverse_recipes:
            return False
        self.set_reverse_recipe(item_name, ())
        return True

    def set_custom_item_name(self, item_id: str, display_name: Optional[str]) -> ProgressionTable:
        names = dict(self._table.custom_item_names)
        if display_name:
            names[item_id] = display_name
        else:
            names.pop(item_id, None)
        return self._commit(replace(self._table, custom_item_names=names))

    def _patterns(self, category: str):
        if category not in PATTERN_CATEGORIES:
            raise InvalidConfigValueError("category", category, f"one of {PATTERN_CATEGORIES}")
        return getattr(self._table.allowed_items, category)

    def _set_patterns(self, category: str, patterns) -> ProgressionTable:
        allowed: AllowedItems = replace(self._table.allowed_items, **{category: tuple(patterns)})
        logger.info(f"Allowed item patterns updated: {category}={list(patterns)}")
        return self._commit(replace(self._table, allowed_items=allowed))

    @staticmethod
    def _validate_level(definition: LevelDefinition) -> None:
        if not 0.0 <= definition.success_chance <= 1.0:
            raise InvalidConfigValueError("success_chance", definition.success_chance, "must be between 0 and 1")
        for name in ("weapon_bonus", "armor_bonus", "coin_cost"):
            value = getattr(definition, name)
            if value < 0:
                raise InvalidConfigValueError(name, value, "must be >= 0")
        for material in definition.materials:
            if material.count <= 0:
                raise InvalidConfigValueError("count", material.count, "must be > 0")
