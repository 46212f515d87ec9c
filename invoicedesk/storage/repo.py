from __future__ import annotations

import glob
import json
import logging
import shutil
import threading
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterable, List, Mapping, Optional, TypeVar, Union
from uuid import uuid4

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Union[BaseModel, Mapping[str, Any]])


def _json_default(o: Any) -> Any:
    if isinstance(o, (date, datetime)):
        return o.isoformat()
    if isinstance(o, Decimal):
        return str(o)
    raise TypeError(f"Object of type {o.__class__.__name__} is not JSON serializable")


class JsonRepository(Generic[T]):
    """
    Generic JSON repository with a configurable primary key.
    - Rotating backups (backup_enabled, backup_keep)
    - Skips the write when the content did not change (less noise, fewer .bak)
    - Each read-modify-write runs under one re-entrant lock
    """

    def __init__(
        self,
        filepath: Union[str, Path],
        entity_name: str = "entity",
        key: str = "id",
        *,
        backup_enabled: bool = True,
        backup_keep: int = 5,
    ) -> None:
        self.filepath = Path(filepath)
        self.entity_name = entity_name
        self.key = key
        self.lock = threading.RLock()
        self.backup_enabled = backup_enabled
        self.backup_keep = max(0, int(backup_keep))

        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        if not self.filepath.exists():
            self._write_raw([])

    # ---------------- low level I/O ---------------- #

    def _read_raw(self) -> List[Dict[str, Any]]:
        with self.lock:  # never read a half-written file
            try:
                with self.filepath.open("r", encoding="utf-8") as f:
                    data = json.load(f)
                return data if isinstance(data, list) else []
            except FileNotFoundError:
                return []
            except json.JSONDecodeError:
                # corrupt file: keep a copy and start from an empty list
                backup = self.filepath.with_suffix(".corrupt.json")
                logger.warning("Corrupt %s store %s, saved as %s", self.entity_name, self.filepath, backup)
                shutil.copy2(self.filepath, backup)
                return []

    def _rotate_backups(self) -> None:
        if not self.backup_enabled or self.backup_keep <= 0:
            return
        pattern = str(self.filepath.with_suffix(".*.bak.json"))
        files = sorted(glob.glob(pattern))
        # keep the most recent ones
        if len(files) > self.backup_keep:
            for old in files[: len(files) - self.backup_keep]:
                Path(old).unlink(missing_ok=True)

    def _write_raw(self, data: Iterable[Mapping[str, Any]]) -> None:
        with self.lock:
            new_dump = json.dumps(list(data), ensure_ascii=False, indent=2, default=_json_default)

            if self.filepath.exists():
                if self.filepath.read_text(encoding="utf-8") == new_dump:
                    return

                if self.backup_enabled:
                    ts = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
                    shutil.copy2(self.filepath, self.filepath.with_suffix(f".{ts}.bak.json"))
                    self._rotate_backups()

            with self.filepath.open("w", encoding="utf-8") as f:
                f.write(new_dump)

    # ---------------- helpers ---------------- #

    @staticmethod
    def _to_dict(item: T) -> Dict[str, Any]:
        if isinstance(item, BaseModel):
            return item.model_dump(mode="json")
        return dict(item)

    # ---------------- CRUD ---------------- #

    def list_all(self) -> List[Dict[str, Any]]:
        return self._read_raw()

    def get_by_id(self, obj_id: Any) -> Optional[Dict[str, Any]]:
        k = self.key
        for it in self._read_raw():
            if str(it.get(k)) == str(obj_id):
                return it
        return None

    def add(self, item: T) -> Dict[str, Any]:
        record = self._to_dict(item)
        k = self.key
        if not record.get(k):
            record[k] = uuid4().hex
        with self.lock:
            data = self._read_raw()
            if any(str(d.get(k)) == str(record[k]) for d in data):
                raise ValueError(f"{self.entity_name} with {k}={record[k]} already exists")
            data.append(record)
            self._write_raw(data)
        return record

    def update(self, item: T) -> Dict[str, Any]:
        """Merge `item` into the stored record (partial records allowed)."""
        record = self._to_dict(item)
        k = self.key
        obj_id = record.get(k)
        if not obj_id:
            raise ValueError(f"Cannot update {self.entity_name} without '{k}'")
        with self.lock:
            data = self._read_raw()
            for idx, existing in enumerate(data):
                if str(existing.get(k)) == str(obj_id):
                    merged = {**existing, **record}
                    data[idx] = merged
                    self._write_raw(data)
                    return merged
        raise KeyError(f"{self.entity_name} with {k}={obj_id} not found")

    def replace(self, item: T) -> Dict[str, Any]:
        """Insert or overwrite the whole record (no merge with stale keys)."""
        record = self._to_dict(item)
        k = self.key
        with self.lock:
            data = self._read_raw()
            for idx, existing in enumerate(data):
                if str(existing.get(k)) == str(record.get(k)):
                    data[idx] = record
                    break
            else:
                data.append(record)
            self._write_raw(data)
        return record

    def delete(self, obj_id: Any) -> bool:
        k = self.key
        with self.lock:
            data = self._read_raw()
            new_data = [d for d in data if str(d.get(k)) != str(obj_id)]
            changed = len(new_data) != len(data)
            if changed:
                self._write_raw(new_data)
        return changed

    # ---------------- queries ---------------- #

    def find(self, predicate: Callable[[Dict[str, Any]], bool]) -> List[Dict[str, Any]]:
        return [r for r in self._read_raw() if predicate(r)]
