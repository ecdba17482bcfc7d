"""
재련 봇 커스텀 예외 클래스 정의

모든 예외는 ReforgeBotError를 상속받아 일관된 에러 처리를 제공합니다.
"""
from enum import Enum


class RefusalReason(str, Enum):
    """재련 시도가 거절된 사유 (메시지 키와 1:1 대응)"""
    ALREADY_IN_PROGRESS = "already_in_progress"
    NO_ITEM = "no_item"
    NOT_REFORGEABLE = "not_reforgeable"
    MAX_LEVEL = "max_level"
    NO_LEVEL_CONFIG = "no_level_config"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INSUFFICIENT_MATERIALS = "insufficient_materials"


class ReforgeBotError(Exception):
    """재련 봇 기본 예외 클래스"""

    def __init__(self, message: str = "알 수 없는 오류가 발생했습니다"):
        self.message = message
        super().__init__(self.message)


# =============================================================================
# 재련 검증 관련 예외
# =============================================================================


class ReforgeValidationError(ReforgeBotError):
    """재련 전 검증 실패 (자원은 건드리지 않음)"""

    reason: RefusalReason = RefusalReason.NOT_REFORGEABLE

    def __init__(self, message: str):
        super().__init__(message)


class ItemNotPresentError(ReforgeValidationError):
    """슬롯에 아이템이 없음"""

    reason = RefusalReason.NO_ITEM

    def __init__(self, slot_index: int):
        self.slot_index = slot_index
        super().__init__(f"슬롯 {slot_index}에 아이템이 없습니다.")


class ItemNotReforgeableError(ReforgeValidationError):
    """재련 불가 아이템"""

    reason = RefusalReason.NOT_REFORGEABLE

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"{item_id}은(는) 재련할 수 없는 아이템입니다.")


class MaxReforgeLevelError(ReforgeValidationError):
    """이미 최대 재련 레벨"""

    reason = RefusalReason.MAX_LEVEL

    def __init__(self, item_id: str, max_level: int):
        self.item_id = item_id
        self.max_level = max_level
        super().__init__(f"{item_id}은(는) 이미 최대 재련 레벨입니다 (+{max_level})")


class LevelConfigMissingError(ReforgeValidationError):
    """목표 레벨 설정 없음"""

    reason = RefusalReason.NO_LEVEL_CONFIG

    def __init__(self, target_level: int):
        self.target_level = target_level
        super().__init__(f"+{target_level} 레벨 설정을 찾을 수 없습니다.")


# =============================================================================
# 설정 관련 예외
# =============================================================================


class ConfigError(ReforgeBotError):
    """설정 관련 기본 예외"""
    pass


class ConfigLoadError(ConfigError):
    """설정 파일 로드 실패"""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"설정 파일을 읽을 수 없습니다: {path} ({reason})")


class InvalidConfigValueError(ConfigError):
    """잘못된 설정 값"""

    def __init__(self, field_name: str, value, reason: str):
        self.field_name = field_name
        self.value = value
        self.reason = reason
        super().__init__(f"'{field_name}' 값이 올바르지 않습니다: {value} ({reason})")


# =============================================================================
# 외부 연동 관련 예외
# =============================================================================


class InventoryGatewayError(ReforgeBotError):
    """인벤토리 백엔드 오류"""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"인벤토리 작업 실패 ({operation}): {reason}")


class EconomyError(ReforgeBotError):
    """경제 백엔드 오류"""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"경제 작업 실패 ({operation}): {reason}")
