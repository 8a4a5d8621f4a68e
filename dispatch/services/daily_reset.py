"""Once-per-day wipe of the shift collection."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from .shift_service import ShiftService
from .storage_facade import StorageFacade

LAST_RESET_KEY = "lastResetDate"


@dataclass
class ResetOutcome:
    ran: bool
    removed: int
    date: str


class DailyReset:
    def __init__(self, facade: StorageFacade, shifts: ShiftService) -> None:
        self.facade = facade
        self.shifts = shifts

    def run(self, today: str | None = None, force: bool = False) -> ResetOutcome:
        facade = self.facade.pinned()
        day = today or facade.today()
        if not force and facade.get_config().get(LAST_RESET_KEY) == day:
            logger.info("[reset] shifts already reset for {}; skipping", day)
            return ResetOutcome(ran=False, removed=0, date=day)
        removed = self.shifts.reset_all_shifts(facade)
        facade.update_config({LAST_RESET_KEY: day})
        return ResetOutcome(ran=True, removed=removed, date=day)
