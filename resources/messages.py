"""
재련 메시지 카탈로그 (ko / en)

조회 순서: 설정 언어 → en → 키 그대로
"""
import logging
from typing import Dict

from config import ProgressionTable
from config.manager import ConfigManager
from exceptions import RefusalReason

logger = logging.getLogger(__name__)

FALLBACK_LANGUAGE = "en"

REFUSAL_MESSAGE_KEYS: Dict[RefusalReason, str] = {
    RefusalReason.ALREADY_IN_PROGRESS: "refusal.in_progress",
    RefusalReason.NO_ITEM: "refusal.no_item",
    RefusalReason.NOT_REFORGEABLE: "refusal.not_reforgeable",
    RefusalReason.MAX_LEVEL: "refusal.max_level",
    RefusalReason.NO_LEVEL_CONFIG: "refusal.no_level_config",
    RefusalReason.INSUFFICIENT_FUNDS: "refusal.insufficient_funds",
    RefusalReason.INSUFFICIENT_MATERIALS: "refusal.insufficient_materials",
}

MESSAGES: Dict[str, Dict[str, str]] = {
    "ko": {
        "refusal.in_progress": "이미 재련이 진행 중입니다.",
        "refusal.no_item": "재련할 아이템이 없습니다.",
        "refusal.not_reforgeable": "재련할 수 없는 아이템입니다: {item}",
        "refusal.max_level": "이미 최대 재련 단계(+{max_level})입니다.",
        "refusal.no_level_config": "+{level} 단계 재련 설정이 없습니다.",
        "refusal.insufficient_funds": "코인이 부족합니다. (필요: {cost})",
        "refusal.insufficient_materials": "재료가 부족합니다.",
        "result.success": "재련 성공! {item} +{old} → +{new}",
        "result.success_bonus": "누적 보너스: 공격력 +{weapon} / 방어력 +{armor}",
        "result.failure": "재련 실패... {item}이(가) 파괴되었습니다.",
        "result.failure_returned": "회수한 재료: {materials}",
        "result.failure_protected": "재련 실패! 보호 효과로 {item}이(가) +0으로 초기화되었습니다.",
        "result.apply_failed": "재련 결과를 반영하지 못했습니다. 사용한 코인과 재료를 돌려드렸습니다.",
        "result.roll": "성공 확률 {chance}% / 판정 {roll}",
        "info.title": "재련 정보",
        "info.item": "{item} (+{level})",
        "info.category.weapon": "무기",
        "info.category.armor": "방어구",
        "info.max_level": "최대 재련 단계에 도달했습니다.",
        "info.chance": "성공 확률: {chance}%",
        "info.cost": "비용: {cost}",
        "info.protection_cost": "보호 추가 비용: {cost}",
        "info.balance": "보유 코인: {balance}",
        "info.materials": "필요 재료",
        "info.material_line": "{material} {have}/{need}",
        "info.no_materials": "없음",
        "info.current_bonus": "현재 보너스: 공격력 +{weapon} / 방어력 +{armor}",
        "list.title": "재련 가능한 아이템",
        "list.empty": "재련 가능한 아이템이 없습니다.",
        "list.held": "손",
        "list.line": "[{slot}] {item} +{level}",
        "help.title": "재련 도움말",
        "help.body": (
            "/재련 [슬롯] [보호] - 아이템을 재련합니다. 슬롯을 생략하면 손에 든 아이템\n"
            "/재련정보 [슬롯] - 다음 단계 확률/비용/재료를 확인합니다\n"
            "/재련목록 - 재련 가능한 아이템을 보여줍니다\n"
            "실패하면 아이템이 파괴되고 재료 일부를 돌려받습니다.\n"
            "보호를 사용하면 추가 비용을 내고 실패 시 +0으로 초기화됩니다."
        ),
        "admin.reloaded": "설정을 다시 불러왔습니다.",
        "admin.reload_failed": "설정 파일을 읽지 못했습니다. 기존 설정을 유지합니다.",
        "admin.updated": "설정이 변경되었습니다: {detail}",
        "admin.invalid": "잘못된 값입니다: {detail}",
        "admin.not_found": "해당 항목이 없습니다: {detail}",
    },
    "en": {
        "refusal.in_progress": "A reforge is already in progress.",
        "refusal.no_item": "There is no item to reforge.",
        "refusal.not_reforgeable": "This item cannot be reforged: {item}",
        "refusal.max_level": "Already at the maximum reforge level (+{max_level}).",
        "refusal.no_level_config": "No reforge configuration for level +{level}.",
        "refusal.insufficient_funds": "Not enough coins. (Required: {cost})",
        "refusal.insufficient_materials": "Not enough materials.",
        "result.success": "Reforge succeeded! {item} +{old} -> +{new}",
        "result.success_bonus": "Total bonus: damage +{weapon} / defense +{armor}",
        "result.failure": "Reforge failed... {item} was destroyed.",
        "result.failure_returned": "Recovered materials: {materials}",
        "result.failure_protected": "Reforge failed! Protection reset {item} to +0.",
        "result.apply_failed": "Could not apply the reforge result. Your coins and materials were returned.",
        "result.roll": "Chance {chance}% / roll {roll}",
        "info.title": "Reforge info",
        "info.item": "{item} (+{level})",
        "info.category.weapon": "Weapon",
        "info.category.armor": "Armor",
        "info.max_level": "Maximum reforge level reached.",
        "info.chance": "Success chance: {chance}%",
        "info.cost": "Cost: {cost}",
        "info.protection_cost": "Protection extra cost: {cost}",
        "info.balance": "Balance: {balance}",
        "info.materials": "Required materials",
        "info.material_line": "{material} {have}/{need}",
        "info.no_materials": "None",
        "info.current_bonus": "Current bonus: damage +{weapon} / defense +{armor}",
        "list.title": "Reforgeable items",
        "list.empty": "You have no reforgeable items.",
        "list.held": "Hand",
        "list.line": "[{slot}] {item} +{level}",
        "help.title": "Reforge help",
        "help.body": (
            "/재련 [slot] [protect] - reforge an item. Without a slot, the held item is used\n"
            "/재련정보 [slot] - show chance, cost and materials for the next level\n"
            "/재련목록 - list your reforgeable items\n"
            "On failure the item is destroyed and part of its materials is returned.\n"
            "With protection you pay extra and the item resets to +0 instead."
        ),
        "admin.reloaded": "Configuration reloaded.",
        "admin.reload_failed": "Could not read the configuration file. Keeping the previous settings.",
        "admin.updated": "Configuration updated: {detail}",
        "admin.invalid": "Invalid value: {detail}",
        "admin.not_found": "No such entry: {detail}",
    },
}


class MessageCatalog:
    """설정 언어에 맞는 메시지 조회"""

    def __init__(self, config_manager: ConfigManager):
        self.language = "ko"
        self.prefix = ""
        config_manager.subscribe(self._on_config_changed)

    def _on_config_changed(self, table: ProgressionTable) -> None:
        language = table.general.language.lower()
        if language not in MESSAGES:
            logger.warning(f"Unknown language '{language}', falling back to {FALLBACK_LANGUAGE}")
        self.language = language
        self.prefix = table.general.message_prefix

    def get(self, key: str, **params) -> str:
        template = MESSAGES.get(self.language, {}).get(key)
        if template is None:
            template = MESSAGES[FALLBACK_LANGUAGE].get(key, key)
        if not params:
            return template
        try:
            return template.format(**params)
        except (KeyError, IndexError) as e:
            logger.warning(f"Message '{key}' missing parameter: {e}")
            return template

    def format(self, key: str, **params) -> str:
        """접두사를 붙인 메시지"""
        text = self.get(key, **params)
        return f"{self.prefix} {text}" if self.prefix else text

    def refusal(self, reason: RefusalReason, **params) -> str:
        return self.format(REFUSAL_MESSAGE_KEYS[reason], **params)
