"""
ConfigManager 유닛 테스트 (파일 입출력, 핫 리로드, 관리자 수정)
"""
import json

import pytest

from config import DEFAULT_PROGRESSION, MaterialRequirement
from config.manager import CONFIG_FILENAME, ConfigManager
from exceptions import InvalidConfigValueError


def _read_document(tmp_path):
    with open(tmp_path / CONFIG_FILENAME, "r", encoding="utf-8") as f:
        return json.load(f)


class TestLoadAndSave:
    """설정 파일 로드/저장"""

    def test_creates_default_file(self, tmp_path):
        manager = ConfigManager(tmp_path)
        table = manager.load_or_create()

        assert table == DEFAULT_PROGRESSION
        assert (tmp_path / CONFIG_FILENAME).exists()
        assert _read_document(tmp_path)["general"]["maxLevel"] == 10

    def test_loads_existing_file(self, tmp_path):
        document = DEFAULT_PROGRESSION.to_dict()
        document["general"]["maxLevel"] = 5
        (tmp_path / CONFIG_FILENAME).write_text(json.dumps(document), encoding="utf-8")

        table = ConfigManager(tmp_path).load_or_create()

        assert table.general.max_level == 5

    def test_broken_file_falls_back_to_defaults(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("{not json", encoding="utf-8")

        table = ConfigManager(tmp_path).load_or_create()

        assert table == DEFAULT_PROGRESSION

    def test_null_document_uses_defaults(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("null", encoding="utf-8")
        assert ConfigManager(tmp_path).load_or_create() == DEFAULT_PROGRESSION

    def test_no_temp_file_left_after_save(self, config_manager, tmp_path):
        config_manager.update_general(max_level=7)
        assert not (tmp_path / (CONFIG_FILENAME + ".tmp")).exists()


class TestReload:
    """핫 리로드"""

    def test_reload_publishes_new_snapshot(self, config_manager, tmp_path):
        received = []
        config_manager.subscribe(received.append, replay=False)

        document = _read_document(tmp_path)
        document["general"]["failureReturnRate"] = 0.5
        (tmp_path / CONFIG_FILENAME).write_text(json.dumps(document), encoding="utf-8")

        assert config_manager.reload() is True
        assert config_manager.current.general.failure_return_rate == 0.5
        assert received == [config_manager.current]

    def test_failed_reload_keeps_last_good_snapshot(self, config_manager, tmp_path):
        config_manager.update_general(max_level=7)
        before = config_manager.current
        (tmp_path / CONFIG_FILENAME).write_text("[broken", encoding="utf-8")

        assert config_manager.reload() is False
        assert config_manager.current is before

    def test_reload_without_file(self, tmp_path):
        manager = ConfigManager(tmp_path)
        assert manager.reload() is False


class TestOutOfRangeNumbers:
    """json 이 inf 로 읽는 거대한 숫자(1e400)"""

    def test_infinite_max_level_uses_default(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text('{"general": {"maxLevel": 1e400}}', encoding="utf-8")

        table = ConfigManager(tmp_path).load_or_create()

        assert table.general.max_level == 10

    def test_reload_skips_infinite_material_count(self, config_manager, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text(
            '{"levels": {"1": {"successChance": 0.5, "materials": ['
            '{"itemId": "IronBar", "count": 1e400}, {"itemId": "Gem", "count": 2}]}}}',
            encoding="utf-8",
        )

        assert config_manager.reload() is True
        level = config_manager.current.levels[1]
        assert level.success_chance == 0.5
        assert level.materials == (MaterialRequirement("Gem", 2),)


class TestSubscription:
    """스냅샷 구독"""

    def test_subscribe_replays_current(self, config_manager):
        received = []
        config_manager.subscribe(received.append)
        assert received == [config_manager.current]

    def test_unsubscribe(self, config_manager):
        received = []
        config_manager.subscribe(received.append, replay=False)
        config_manager.unsubscribe(received.append)
        config_manager.update_general(max_level=3)
        assert received == []

    def test_failing_subscriber_does_not_block_others(self, config_manager):
        received = []

        def _broken(_table):
            raise RuntimeError("boom")

        config_manager.subscribe(_broken, replay=False)
        config_manager.subscribe(received.append, replay=False)
        config_manager.update_general(max_level=3)

        assert len(received) == 1
        assert received[0].general.max_level == 3


class TestAdminEdits:
    """관리자 수정 (저장 + 발행)"""

    def test_update_general_persists(self, config_manager, tmp_path):
        config_manager.update_general(failure_return_rate=0.25, language="en")

        assert config_manager.current.general.failure_return_rate == 0.25
        document = _read_document(tmp_path)
        assert document["general"]["failureReturnRate"] == 0.25
        assert document["general"]["language"] == "en"

    @pytest.mark.parametrize("changes", [
        {"failure_return_rate": 1.5},
        {"max_level": -1},
        {"protection_cost_multiplier": -2},
        {"unknown_field": 1},
    ])
    def test_update_general_rejects_invalid(self, config_manager, changes):
        before = config_manager.current
        with pytest.raises(InvalidConfigValueError):
            config_manager.update_general(**changes)
        assert config_manager.current is before

    def test_update_existing_level(self, config_manager):
        config_manager.update_level(2, success_chance=0.5)

        level = config_manager.current.levels[2]
        assert level.success_chance == 0.5
        assert level.coin_cost == 200.0

    def test_new_level_copies_fallback(self, config_manager, tmp_path):
        config_manager.update_general(max_level=12)
        config_manager.update_level(12, coin_cost=5000.0)

        level = config_manager.current.levels[12]
        assert level.coin_cost == 5000.0
        assert level.success_chance == config_manager.current.levels[10].success_chance
        assert "12" in _read_document(tmp_path)["levels"]

    @pytest.mark.parametrize("level, changes", [
        (0, {"coin_cost": 1.0}),
        (1, {"success_chance": 2.0}),
        (1, {"coin_cost": -1.0}),
        (1, {"materials": (MaterialRequirement("IronBar", 0),)}),
        (1, {"no_such_field": 1}),
    ])
    def test_update_level_rejects_invalid(self, config_manager, level, changes):
        with pytest.raises(InvalidConfigValueError):
            config_manager.update_level(level, **changes)

    def test_remove_level(self, config_manager):
        assert config_manager.remove_level(10) is True
        assert 10 not in config_manager.current.levels
        assert config_manager.remove_level(10) is False

    def test_allowed_patterns(self, config_manager):
        config_manager.add_allowed_pattern("exclusions", "Armor_Cuirass_*")
        assert config_manager.current.allowed_items.exclusions == ("Armor_Cuirass_*",)

        # 중복 추가는 무시
        config_manager.add_allowed_pattern("exclusions", "Armor_Cuirass_*")
        assert config_manager.current.allowed_items.exclusions == ("Armor_Cuirass_*",)

        assert config_manager.remove_allowed_pattern("exclusions", "Armor_Cuirass_*") is True
        assert config_manager.current.allowed_items.exclusions == ()
        assert config_manager.remove_allowed_pattern("exclusions", "Armor_Cuirass_*") is False

    def test_unknown_pattern_category(self, config_manager):
        with pytest.raises(InvalidConfigValueError):
            config_manager.add_allowed_pattern("tools", "Tool_*")

    def test_reverse_recipe_edit(self, config_manager, tmp_path):
        config_manager.set_reverse_recipe("Weapon_Sword_Iron", [MaterialRequirement("IronBar", 10)])
        assert config_manager.current.reverse_recipes["Weapon_Sword_Iron"] == (MaterialRequirement("IronBar", 10),)
        assert _read_document(tmp_path)["reverseRecipes"]["Weapon_Sword_Iron"] == [{"itemId": "IronBar", "count": 10}]

        assert config_manager.remove_reverse_recipe("Weapon_Sword_Iron") is True
        assert "Weapon_Sword_Iron" not in config_manager.current.reverse_recipes
        assert config_manager.remove_reverse_recipe("Weapon_Sword_Iron") is False

    def test_custom_item_name(self, config_manager):
        config_manager.set_custom_item_name("Weapon_Sword_Iron", "철검")
        assert config_manager.current.custom_item_names == {"Weapon_Sword_Iron": "철검"}

        config_manager.set_custom_item_name("Weapon_Sword_Iron", None)
        assert config_manager.current.custom_item_names == {}
