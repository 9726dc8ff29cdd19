"""
Weighted prize selection for the lucky draw wheel.

Probabilities are percentages that sum to 100 across a campaign. Exhausted
prizes are skipped but their share is NOT redistributed: the walk simply
accumulates the mass of prizes that still have stock, so a draw can run past
the end of the list. In that case the last prize in the list is taken, and if
that one is exhausted too the draw is refused.

The fall-through to the last prize mirrors how the wheel has always behaved.
It has not been confirmed as product intent; keep it until it is.
"""

import logging
import random
from typing import Iterable, Protocol, Sequence

from app.domain.errors import InvalidConfigurationError, PrizesExhaustedError
from app.domain.models import Prize

logger = logging.getLogger(__name__)

PROBABILITY_TOLERANCE = 0.01


class RandomSource(Protocol):
    def random(self) -> float: ...


def select_prize(prizes: Sequence[Prize], rng: RandomSource | None = None) -> Prize:
    """Pick exactly one prize for a spin.

    Args:
        prizes: Campaign prizes in wheel order.
        rng: Source of uniform floats in [0, 1); defaults to the random module.

    Raises:
        PrizesExhaustedError: the chosen prize (including the last-prize
            fallback) has no remaining quantity.
    """
    if not prizes:
        raise PrizesExhaustedError("No prizes available")

    r = (rng or random).random() * 100

    selected = None
    cumulative = 0.0
    for prize in prizes:
        if prize.is_exhausted:
            continue
        cumulative += prize.probability
        if r <= cumulative:
            selected = prize
            break

    if selected is None:
        selected = prizes[-1]
        logger.info(f"Draw r={r:.4f} fell past cumulative mass {cumulative:.2f}, falling back to last prize '{selected.name}'")

    if selected.is_exhausted:
        raise PrizesExhaustedError()

    return selected


def validate_prizes(prizes: Iterable) -> None:
    """Check a campaign's prize list before it is saved.

    Accepts anything with name, quantity and probability attributes
    (PrizeCreate or Prize).

    Raises:
        InvalidConfigurationError: missing details or probabilities that do
            not add up to 100 (within PROBABILITY_TOLERANCE).
    """
    prizes = list(prizes)
    if not prizes:
        raise InvalidConfigurationError("A campaign needs at least one prize")

    for prize in prizes:
        if not (prize.name or "").strip() or prize.quantity <= 0:
            raise InvalidConfigurationError("Please fill in all prize details")
        if prize.probability < 0 or prize.probability > 100:
            raise InvalidConfigurationError("Prize probability must be between 0 and 100")

    total = sum(prize.probability for prize in prizes)
    if abs(total - 100) > PROBABILITY_TOLERANCE:
        raise InvalidConfigurationError(f"Total probability must equal 100% (got {total:g}%)")
