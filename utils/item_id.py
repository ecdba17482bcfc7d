"""
아이템 ID 유틸리티

네임스페이스가 붙은 ID("hytale:Weapon_Sword_Iron")와 붙지 않은 ID를 동일하게 취급합니다.
"""
from typing import Optional


NAMESPACE_SEPARATOR = ":"


def canonical_item_id(item_id: str) -> str:
    """
    네임스페이스를 제거한 정규 아이템 ID 반환

    Args:
        item_id: 원본 아이템 ID

    Returns:
        첫 번째 ':' 이후 문자열 (없으면 그대로)
    """
    if NAMESPACE_SEPARATOR in item_id:
        return item_id.split(NAMESPACE_SEPARATOR, 1)[1]
    return item_id


def item_ids_match(actual: Optional[str], expected: Optional[str]) -> bool:
    """네임스페이스 유무와 무관하게 같은 아이템인지 비교"""
    if not actual or not expected:
        return False
    if actual == expected:
        return True
    return canonical_item_id(actual) == canonical_item_id(expected)


def matches_pattern(name: str, pattern: str) -> bool:
    """
    허용 목록 패턴 매칭

    - "*" : 모든 아이템
    - "Weapon_*" : 접두사 일치
    - "Weapon_Sword_Iron" : 정확히 일치
    """
    if pattern == "*":
        return True
    if pattern.endswith("*"):
        return name.startswith(pattern[:-1])
    return name == pattern
