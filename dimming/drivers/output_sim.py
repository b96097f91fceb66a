from __future__ import annotations
import logging

from ..domain.models import WriteResult

logger = logging.getLogger(__name__)


class SimulatedOutputSink:
    sink_id = "sim"

    def __init__(self) -> None:
        self.state = False
        self.writes: list[bool] = []
        # Next writes fail while set, to exercise the retry path
        self.fail_with: str | None = None

    async def write(self, enabled: bool) -> WriteResult:
        if self.fail_with:
            return WriteResult(ok=False, error=self.fail_with)
        self.state = bool(enabled)
        self.writes.append(self.state)
        logger.info("DC_DIMMING write=%s", "1" if self.state else "0")
        return WriteResult(ok=True)
