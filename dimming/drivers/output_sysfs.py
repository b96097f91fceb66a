from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from ..domain.errors import HardwareWriteFailed
from ..domain.models import WriteResult

logger = logging.getLogger(__name__)


class SysfsOutputSink:
    """Writes "1"/"0" to the panel's DC dimming control node."""

    sink_id = "sysfs"

    def __init__(self, node: str | Path) -> None:
        self._node = Path(node)

    @property
    def node(self) -> Path:
        return self._node

    def _write_node(self, enabled: bool) -> None:
        try:
            self._node.write_text("1" if enabled else "0", encoding="utf-8")
        except FileNotFoundError as e:
            raise HardwareWriteFailed(f"No such node {self._node}") from e
        except OSError as e:
            raise HardwareWriteFailed(f"Could not write {self._node}: {e}") from e

    async def write(self, enabled: bool) -> WriteResult:
        # sysfs writes can stall on some panels, keep them off the event loop
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._write_node, enabled)
        except HardwareWriteFailed as e:
            logger.warning("%s", e)
            return WriteResult(ok=False, error=str(e))
        return WriteResult(ok=True)
