from typeb.services import (
    achievement_service,
    activity_service,
    analytics_service,
    auth_service,
    family_service,
    notification_service,
    reward_service,
    task_service,
    user_service,
    validation_service,
)


__all__ = [
    "achievement_service",
    "activity_service",
    "analytics_service",
    "auth_service",
    "family_service",
    "notification_service",
    "reward_service",
    "task_service",
    "user_service",
    "validation_service",
]
