"""Periodic colony tax that freezes spending while it is overdue."""
from __future__ import annotations

import logging
import math
from typing import Optional

from .constants import TAX_INITIAL_AMOUNT, TAX_INTERVAL, TAX_SCALE

logger = logging.getLogger(__name__)


class TaxOffice:
    """Tracks when the next payment is due and collects it automatically.

    The timer stays dormant until :meth:`start` is called (the colony commits
    to its first habitat). Once a payment falls due, ``due`` stays ``True``
    until credits cover ``amount``; collection then happens on the next update.
    """

    def __init__(self, interval: float = TAX_INTERVAL, initial_amount: int = TAX_INITIAL_AMOUNT) -> None:
        self.interval = interval
        self.amount: int = initial_amount
        self.next_due: float = 0.0
        self.due = False
        self.started = False
        self.last_paid: Optional[float] = None

    def start(self, now: float) -> None:
        if self.started:
            return
        self.started = True
        self.next_due = now + self.interval
        logger.info("Tax timer started; first payment of %d due at t=%.1fs", self.amount, self.next_due)

    def time_remaining(self, now: float) -> float:
        if not self.started:
            return self.interval
        return max(0.0, self.next_due - now)

    def update(self, now: float, credits: float) -> float:
        """Advance the timer; returns the amount collected this tick (or 0)."""

        if not self.started:
            return 0.0
        if not self.due and now >= self.next_due:
            self.due = True
            logger.info("Tax of %d is due; spending suspended", self.amount)
        if not self.due or credits < self.amount:
            return 0.0

        paid = float(self.amount)
        self.due = False
        self.amount = int(math.floor(self.amount * TAX_SCALE))
        self.next_due = now + self.interval
        self.last_paid = now
        logger.info("Paid tax of %d; next payment %d due at t=%.1fs", int(paid), self.amount, self.next_due)
        return paid
