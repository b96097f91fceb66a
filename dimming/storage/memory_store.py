from __future__ import annotations
from typing import Dict, List, Optional

from ..domain.errors import ConfigUnavailable
from ..domain.models import OutputEvent


class MemoryConfigStore:
    """In-process settings store; also records output history."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})
        self.outputs: List[OutputEvent] = []
        self.fail_reads = False

    async def get_int(self, key: str, default: int = 0) -> int:
        raw = await self.get_string(key)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError as e:
            raise ConfigUnavailable(f"Setting {key} is not an int: {raw!r}") from e

    async def get_string(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise ConfigUnavailable(f"Cannot read setting {key}")
        return self._values.get(key)

    async def put_int(self, key: str, value: int) -> None:
        self._values[key] = str(int(value))

    async def put_string(self, key: str, value: str) -> None:
        self._values[key] = value

    async def get_all_settings(self) -> Dict[str, str]:
        return dict(self._values)

    async def insert_output(self, event: OutputEvent) -> None:
        self.outputs.append(event)

    async def query_outputs(self, start_ts: str, end_ts: str, limit: int) -> List[OutputEvent]:
        rows = [e for e in self.outputs if start_ts <= e.ts_utc.isoformat() <= end_ts]
        return rows[-limit:] if limit > 0 else []
