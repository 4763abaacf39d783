import json
import os
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

from healthsync_core.config.settings import settings
from healthsync_core.domain.conversation import KeyValueStore
from healthsync_core.domain.exceptions import BusinessError


class MemoryKeyValueStore(KeyValueStore):
    """会话级存储：进程内字典，end_session() 后清空。"""

    lifetime = "session"

    def __init__(self, enabled: bool = True):
        self._data: Dict[str, str] = {}
        self._enabled = enabled

    def available(self) -> bool:
        return self._enabled

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        # 与浏览器存储一致，只保存序列化后的文本
        self._data[key] = json.dumps(value, ensure_ascii=False)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def end_session(self) -> None:
        self._data.clear()


class JsonFileKeyValueStore(KeyValueStore):
    """持久存储：每个 key 一个 JSON 文件，写入时先写临时文件再替换。"""

    lifetime = "durable"

    def __init__(self, root: str | Path | None = None):
        self._root = Path(root or settings.storage_root).resolve() / "kv"

    def available(self) -> bool:
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return os.access(self._root, os.W_OK)

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise BusinessError(code="STORE_READ_ERROR", message=str(e))

    def set(self, key: str, value: Any) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = self._root / f"{path.stem}.{uuid4().hex}.json.tmp"
        try:
            tmp_path.write_text(json.dumps(value, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise BusinessError(code="STORE_WRITE_ERROR", message=str(e))

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise BusinessError(code="STORE_DELETE_ERROR", message=str(e))

    def _path(self, key: str) -> Path:
        safe = "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in key)
        return self._root / f"{safe}.json"
