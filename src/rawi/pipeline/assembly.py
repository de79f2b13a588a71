"""Assembly seam for the editing and export stages."""

import asyncio
import logging
from abc import ABC, abstractmethod

from rawi.config import get_settings
from rawi.models.output import GenerationOutput
from rawi.pipeline.retry import Sleep

logger = logging.getLogger(__name__)


class AssemblyService(ABC):
    """Combines generated media into a deliverable.

    Implementations receive a read-only snapshot of the accumulated output.
    """

    @abstractmethod
    async def edit(self, output: GenerationOutput) -> None:
        """Assemble scenes, narration and music."""
        ...

    @abstractmethod
    async def export(self, output: GenerationOutput) -> None:
        """Produce the final exports."""
        ...


class PlaceholderAssembly(AssemblyService):
    """No muxing happens; each stage just waits a fixed delay and succeeds."""

    def __init__(
        self,
        editing_delay: float | None = None,
        export_delay: float | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        settings = get_settings()
        self.editing_delay = (
            settings.editing_delay_seconds if editing_delay is None else editing_delay
        )
        self.export_delay = settings.export_delay_seconds if export_delay is None else export_delay
        self._sleep = sleep

    async def edit(self, output: GenerationOutput) -> None:
        logger.debug(f"Placeholder editing for {self.editing_delay}s")
        await self._sleep(self.editing_delay)

    async def export(self, output: GenerationOutput) -> None:
        logger.debug(f"Placeholder export for {self.export_delay}s")
        await self._sleep(self.export_delay)
