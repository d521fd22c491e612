"""Saga: ordered compensations for multi-step ledger effects.

Each forward step that reserves or moves inventory registers its inverse.
When a later step fails, ``compensate`` runs the inverses newest-first. A
failing inverse means the ledger no longer matches the trade records, so it
surfaces as CompensationFailedError chained to the original failure.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from src.bb_common.errors import CompensationFailedError

logger = logging.getLogger(__name__)

Compensation = Callable[[], Awaitable[Any]]


class Saga:
    def __init__(self, name: str) -> None:
        self.name = name
        self._steps: list[tuple[str, Compensation]] = []

    def on_rollback(self, description: str, compensation: Compensation) -> None:
        self._steps.append((description, compensation))

    @property
    def pending(self) -> list[str]:
        return [description for description, _ in self._steps]

    async def compensate(self, cause: BaseException) -> None:
        if not self._steps:
            return
        logger.warning(
            "Saga %s failed (%s); running %d compensation(s)",
            self.name,
            cause,
            len(self._steps),
        )
        while self._steps:
            description, compensation = self._steps.pop()
            try:
                await compensation()
            except Exception as exc:
                logger.error(
                    "Saga %s: compensation '%s' failed: %s", self.name, description, exc
                )
                raise CompensationFailedError(
                    f"{self.name}: could not {description}"
                ) from cause
