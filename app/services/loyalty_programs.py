"""
Setup and switching of a store's loyalty program (stamp card or points).
"""

import logging

from app.domain.errors import InvalidConfigurationError
from app.domain.schemas import PointsProgramConfig, StampProgramConfig
from app.repositories.loyalty_program import LoyaltyProgramRepository, ProgramKind

logger = logging.getLogger(__name__)


def _dump(config: StampProgramConfig | PointsProgramConfig) -> dict:
    if config.start_date and config.end_date and config.end_date < config.start_date:
        raise InvalidConfigurationError("End date must be after start date")
    data = config.model_dump()
    for key in ("start_date", "end_date"):
        if data[key] is not None:
            data[key] = data[key].isoformat()
    return data


def save_stamp_program(store_id: str, config: StampProgramConfig) -> dict:
    row = LoyaltyProgramRepository.save_config(store_id, "stamps", _dump(config))
    if not row:
        raise RuntimeError("Failed to save stamp card")
    return row


def save_points_program(store_id: str, config: PointsProgramConfig) -> dict:
    row = LoyaltyProgramRepository.save_config(store_id, "points", _dump(config))
    if not row:
        raise RuntimeError("Failed to save points program")
    return row


def set_program_active(store_id: str, kind: ProgramKind, enabled: bool) -> dict:
    """Switch a program on or off. Switching one on switches the other off.

    Raises:
        InvalidConfigurationError: enabling a program that was never set up.
    """
    if enabled and not LoyaltyProgramRepository.get_config(store_id, kind):
        label = "stamp card" if kind == "stamps" else "points program"
        raise InvalidConfigurationError(f"Set up the {label} before enabling it")

    LoyaltyProgramRepository.set_active(store_id, kind, enabled)
    logger.info(f"Store {store_id}: {kind} program {'enabled' if enabled else 'disabled'}")
    return LoyaltyProgramRepository.get_status(store_id)


def get_program_status(store_id: str) -> dict:
    return LoyaltyProgramRepository.get_status(store_id)
