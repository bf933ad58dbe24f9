from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from ledger_mirror.application.ports.snapshot_port import SnapshotPort
from ledger_mirror.domain.entities.kinds import EntityKind
from ledger_mirror.domain.exceptions import RecordShapeError


logger = logging.getLogger(__name__)


class JsonlSnapshotStore(SnapshotPort):
    """One ``<entity>.jsonl`` file per kind, one ledger record per line."""

    def __init__(self, directory: str | Path):
        self._directory = Path(directory)

    def path_for(self, kind: EntityKind) -> Path:
        return self._directory / f"{kind.value}.jsonl"

    def exists(self, *, kind: EntityKind) -> bool:
        return self.path_for(kind).is_file()

    def write(self, *, kind: EntityKind, records: Iterable[dict[str, Any]]) -> int:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(kind)
        tmp_path = path.with_name(f".{path.name}.tmp")
        count = 0
        try:
            with tmp_path.open("w", encoding="utf-8") as handle:
                for record in records:
                    handle.write(json.dumps(record, separators=(",", ":"), sort_keys=True))
                    handle.write("\n")
                    count += 1
            os.replace(tmp_path, path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.info("snapshot_store: written entity=%s records=%s path=%s", kind.value, count, path)
        return count

    def read(self, *, kind: EntityKind) -> Iterator[dict[str, Any]]:
        path = self.path_for(kind)
        with path.open("r", encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError as exc:
                    raise RecordShapeError(kind.value, None, f"{path.name}:{line_number} is not JSON: {exc}") from exc
                if not isinstance(record, dict):
                    raise RecordShapeError(kind.value, None, f"{path.name}:{line_number} is not an object")
                yield record
