"""
LevelStore

(플레이어, 아이템 종류) → 재련 레벨 저장소입니다.

아이템 메타데이터를 지원하지 않는 인벤토리 백엔드에서 사용하는 대체/레거시 저장소로,
같은 종류의 아이템을 여러 개 가진 경우 레벨을 공유한다는 한계가 있습니다.

파일 형식: {"<플레이어 ID>": {"<아이템 ID>": 레벨, ...}, ...}
"""
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict

from utils.item_id import canonical_item_id

logger = logging.getLogger(__name__)

DATA_FILE_NAME = "reforge_data.json"


class LevelStore:
    """재련 레벨 저장소 (변경 시마다 전체 파일 저장)"""

    def __init__(self, data_directory: Path, filename: str = DATA_FILE_NAME):
        self.data_file = Path(data_directory) / filename
        self._data: Dict[int, Dict[str, int]] = {}
        self._lock = threading.RLock()
        self.load()

    # =========================================================================
    # 조회 / 변경
    # =========================================================================

    def get(self, player_id: int, item_id: str) -> int:
        """재련 레벨 조회 (기록 없으면 0)"""
        player_data = self._data.get(player_id)
        if not player_data:
            return 0
        return player_data.get(canonical_item_id(item_id), 0)

    def set(self, player_id: int, item_id: str, level: int) -> None:
        """
        재련 레벨 기록 후 즉시 저장

        Args:
            player_id: 플레이어 ID
            item_id: 아이템 ID (네임스페이스는 제거되어 저장)
            level: 새 레벨 (0 이상)
        """
        if level < 0:
            raise ValueError(f"level must be >= 0: {level}")
        key = canonical_item_id(item_id)
        with self._lock:
            self._data.setdefault(player_id, {})[key] = level
            self.save()
        logger.info(f"[LevelStore] Set {player_id} / {key} = level {level}")

    def remove(self, player_id: int, item_id: str) -> None:
        """기록 삭제, 플레이어 기록이 비면 플레이어 항목도 삭제"""
        key = canonical_item_id(item_id)
        with self._lock:
            player_data = self._data.get(player_id)
            if player_data is None or key not in player_data:
                return
            del player_data[key]
            if not player_data:
                del self._data[player_id]
            self.save()
        logger.info(f"[LevelStore] Removed {player_id} / {key}")

    def get_all(self, player_id: int) -> Dict[str, int]:
        """플레이어 기록 복사본"""
        with self._lock:
            return dict(self._data.get(player_id, {}))

    # =========================================================================
    # 영속화
    # =========================================================================

    def save(self) -> bool:
        """전체 데이터를 임시 파일에 쓴 뒤 교체"""
        with self._lock:
            document = {
                str(player_id): dict(items)
                for player_id, items in self._data.items()
            }
            tmp_path = self.data_file.with_suffix(self.data_file.suffix + ".tmp")
            try:
                self.data_file.parent.mkdir(parents=True, exist_ok=True)
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(document, f, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self.data_file)
            except OSError as e:
                logger.error(f"[LevelStore] Failed to save: {e}")
                return False
        logger.debug(f"[LevelStore] Saved {len(document)} player(s) to {self.data_file}")
        return True

    def load(self) -> None:
        """파일에서 로드 (잘못된 항목은 개별적으로 건너뜀)"""
        if not self.data_file.exists():
            logger.info(f"[LevelStore] No data file found at {self.data_file}, starting fresh.")
            return

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"[LevelStore] Failed to load: {e}")
            return

        with self._lock:
            self._data = self._parse(raw)
        logger.info(f"[LevelStore] Loaded {len(self._data)} player(s) from {self.data_file}")

    @staticmethod
    def _parse(raw: Any) -> Dict[int, Dict[str, int]]:
        data: Dict[int, Dict[str, int]] = {}
        if not isinstance(raw, dict):
            logger.error("[LevelStore] Data file is not an object, ignoring contents.")
            return data

        for player_key, items in raw.items():
            try:
                player_id = int(player_key)
            except (TypeError, ValueError):
                logger.warning(f"[LevelStore] Invalid player id: {player_key!r}")
                continue
            if not isinstance(items, dict):
                logger.warning(f"[LevelStore] Invalid entry for player {player_key}: {items!r}")
                continue

            levels: Dict[str, int] = {}
            for item_id, level in items.items():
                if isinstance(level, bool) or not isinstance(level, int) or level < 0:
                    logger.warning(f"[LevelStore] Invalid level for {player_key}/{item_id}: {level!r}")
                    continue
                levels[canonical_item_id(str(item_id))] = level

            if levels:
                data[player_id] = levels
        return data
