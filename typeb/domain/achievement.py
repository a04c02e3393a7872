"""Achievement catalog and badge models."""

from enum import StrEnum

from pydantic import BaseModel, Field


class AchievementCategory(StrEnum):
    """Grouping shown in the badge list."""

    MILESTONE = "milestone"
    STREAK = "streak"
    SPECIAL = "special"


class AchievementLevel(StrEnum):
    """Badge tier."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"


class RequirementType(StrEnum):
    """What an achievement measures.

    COUNT compares lifetime completed tasks, STREAK the current daily streak,
    and the two time types the local hour a task was completed at.
    """

    COUNT = "count"
    STREAK = "streak"
    BEFORE_HOUR = "before_hour"
    FROM_HOUR = "from_hour"


class Achievement(BaseModel):
    """A badge members can unlock."""

    id: str
    name: str
    description: str
    icon: str
    category: AchievementCategory
    level: AchievementLevel
    requirement: RequirementType
    value: int = Field(..., gt=0)
    encouragement: str

    @property
    def max_progress(self) -> int:
        """Progress needed to unlock; time badges unlock on a single completion."""
        if self.requirement in (RequirementType.BEFORE_HOUR, RequirementType.FROM_HOUR):
            return 1
        return self.value


class AchievementProgress(BaseModel):
    """A catalog entry together with one member's progress towards it."""

    achievement: Achievement
    progress: int = 0
    max_progress: int
    unlocked: bool = False
    unlocked_at: str | None = None


_ENCOURAGEMENT = {
    "first_step": "Great start! Every journey begins with a single step.",
    "getting_started": "You're building great habits! Keep it up!",
    "dedicated": "Your dedication is inspiring! You're making real progress.",
    "committed": "100 tasks completed! You're truly committed to growth.",
    "champion": "You're a champion! Your consistency is remarkable.",
    "legend": "Legendary achievement! You're an inspiration to everyone.",
    "three_day_streak": "3 days strong! Consistency is key.",
    "week_warrior": "A full week! You're building lasting habits.",
    "fortnight_focus": "Two weeks of consistency! You're unstoppable.",
    "monthly_master": "A full month! You've mastered consistency.",
    "quarterly_quest": "90 days! You've transformed habits into lifestyle.",
}


def _milestone(achievement_id: str, name: str, tasks: int, level: AchievementLevel, icon: str) -> Achievement:
    description = "Complete your very first task!" if tasks == 1 else f"Complete {tasks} tasks"
    return Achievement(
        id=achievement_id,
        name=name,
        description=description,
        icon=icon,
        category=AchievementCategory.MILESTONE,
        level=level,
        requirement=RequirementType.COUNT,
        value=tasks,
        encouragement=_ENCOURAGEMENT[achievement_id],
    )


def _streak(achievement_id: str, name: str, days: int, level: AchievementLevel, icon: str) -> Achievement:
    return Achievement(
        id=achievement_id,
        name=name,
        description=f"Complete tasks for {days} days in a row",
        icon=icon,
        category=AchievementCategory.STREAK,
        level=level,
        requirement=RequirementType.STREAK,
        value=days,
        encouragement=_ENCOURAGEMENT[achievement_id],
    )


ACHIEVEMENTS_CATALOG: list[Achievement] = [
    _milestone("first_step", "First Step", 1, AchievementLevel.BRONZE, "flag"),
    _milestone("getting_started", "Getting Started", 10, AchievementLevel.BRONZE, "trending-up"),
    _milestone("dedicated", "Dedicated", 50, AchievementLevel.SILVER, "award"),
    _milestone("committed", "Committed", 100, AchievementLevel.GOLD, "star"),
    _milestone("champion", "Champion", 500, AchievementLevel.PLATINUM, "crown"),
    _milestone("legend", "Living Legend", 1000, AchievementLevel.DIAMOND, "zap"),
    _streak("three_day_streak", "On a Roll", 3, AchievementLevel.BRONZE, "fire"),
    _streak("week_warrior", "Week Warrior", 7, AchievementLevel.SILVER, "calendar"),
    _streak("fortnight_focus", "Fortnight Focus", 14, AchievementLevel.SILVER, "target"),
    _streak("monthly_master", "Monthly Master", 30, AchievementLevel.GOLD, "medal"),
    _streak("quarterly_quest", "Quarterly Quest", 90, AchievementLevel.PLATINUM, "trophy"),
    Achievement(
        id="early_bird",
        name="Early Bird",
        description="Complete a task before 7 AM",
        icon="sunrise",
        category=AchievementCategory.SPECIAL,
        level=AchievementLevel.BRONZE,
        requirement=RequirementType.BEFORE_HOUR,
        value=7,
        encouragement="The early bird gets things done! Great morning energy.",
    ),
    Achievement(
        id="night_owl",
        name="Night Owl",
        description="Complete a task after 10 PM",
        icon="moon",
        category=AchievementCategory.SPECIAL,
        level=AchievementLevel.BRONZE,
        requirement=RequirementType.FROM_HOUR,
        value=22,
        encouragement="Burning the midnight oil! Your dedication shines.",
    ),
]


def get_achievement(achievement_id: str) -> Achievement | None:
    """Look up a catalog entry by id."""
    return next((a for a in ACHIEVEMENTS_CATALOG if a.id == achievement_id), None)
