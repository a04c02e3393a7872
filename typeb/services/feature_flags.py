"""Feature flags and kill switches.

Defaults are all off; deployments override individual flags through the
FEATURE_FLAGS setting (a JSON object). Rollout flags are not evaluated
server-side; apps fetch them from /flags. Kill switches gate service calls.
"""

import logging
from enum import StrEnum

from typeb.core.config import settings


logger = logging.getLogger(__name__)


class FeatureFlag(StrEnum):
    """Known feature flags."""

    # Rollout flags, read by clients through /flags
    ENABLE_THUMBNAIL_GENERATION = "enable_thumbnail_generation"
    ENABLE_CLOUD_FUNCTIONS = "enable_cloud_functions"
    ENABLE_ANALYTICS_DASHBOARD = "enable_analytics_dashboard"
    ENABLE_DENORMALIZED_COUNTERS = "enable_denormalized_counters"

    # Kill switches
    KILL_SWITCH_TASK_CREATION = "kill_switch_task_creation"
    KILL_SWITCH_PHOTO_UPLOAD = "kill_switch_photo_upload"
    KILL_SWITCH_NOTIFICATIONS = "kill_switch_notifications"


DEFAULT_FLAGS: dict[FeatureFlag, bool] = {flag: False for flag in FeatureFlag}


def is_enabled(flag: FeatureFlag | str) -> bool:
    """Return the effective value of a flag.

    Unknown flag names are treated as disabled.
    """
    try:
        key = FeatureFlag(flag)
    except ValueError:
        logger.warning("unknown_feature_flag", extra={"flag": str(flag)})
        return False

    override = settings.feature_flags.get(key.value)
    if override is not None:
        return bool(override)
    return DEFAULT_FLAGS[key]


def get_all_flags() -> dict[str, bool]:
    """Return every flag with its effective value."""
    return {flag.value: is_enabled(flag) for flag in FeatureFlag}


def ensure_not_killed(flag: FeatureFlag, action: str) -> None:
    """Reject an action whose kill switch is on.

    Raises:
        ValueError: If the kill switch is enabled
    """
    if is_enabled(flag):
        logger.warning("kill_switch_blocked", extra={"flag": flag.value, "action": action})
        raise ValueError(f"{action} is temporarily disabled. Please try again later.")
