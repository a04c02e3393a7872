"""SQLite schema definitions (code-first approach)."""

import logging

from typeb.core import db_client


logger = logging.getLogger(__name__)

# ISO-8601 UTC timestamp matching date_utils.to_iso ordering
_NOW = "(strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now'))"

TABLE_SCHEMAS: dict[str, str] = {
    "users": f"""CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT {_NOW},
        updated TEXT NOT NULL DEFAULT {_NOW},
        email TEXT NOT NULL UNIQUE,
        display_name TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        session_version INTEGER NOT NULL DEFAULT 0,
        role TEXT CHECK (role IN ('parent', 'child')),
        family_id INTEGER REFERENCES families(id) ON DELETE SET NULL,
        is_premium INTEGER NOT NULL DEFAULT 0,
        notifications_enabled INTEGER NOT NULL DEFAULT 1,
        reminder_time TEXT,
        timezone TEXT NOT NULL DEFAULT 'UTC',
        phone_number TEXT,
        avatar_url TEXT,
        points INTEGER NOT NULL DEFAULT 0,
        total_points_earned INTEGER NOT NULL DEFAULT 0,
        tasks_completed INTEGER NOT NULL DEFAULT 0
    )""",
    "families": f"""CREATE TABLE IF NOT EXISTS families (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT {_NOW},
        updated TEXT NOT NULL DEFAULT {_NOW},
        name TEXT NOT NULL,
        invite_code TEXT NOT NULL UNIQUE,
        created_by INTEGER NOT NULL REFERENCES users(id),
        max_members INTEGER NOT NULL,
        is_premium INTEGER NOT NULL DEFAULT 0,
        task_categories TEXT NOT NULL DEFAULT '[]',
        role_config TEXT
    )""",
    "tasks": f"""CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT {_NOW},
        updated TEXT NOT NULL DEFAULT {_NOW},
        family_id INTEGER NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT,
        category TEXT NOT NULL,
        assigned_to INTEGER NOT NULL REFERENCES users(id),
        assigned_by INTEGER REFERENCES users(id),
        created_by INTEGER NOT NULL REFERENCES users(id),
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'in_progress', 'completed', 'cancelled')),
        priority TEXT NOT NULL DEFAULT 'medium'
            CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
        due_date TEXT,
        points INTEGER,
        points_awarded INTEGER,
        requires_photo INTEGER NOT NULL DEFAULT 0,
        photo_url TEXT,
        validation_status TEXT CHECK (validation_status IN ('pending', 'approved', 'rejected')),
        validation_notes TEXT,
        photo_validated_by INTEGER REFERENCES users(id),
        completed_at TEXT,
        completed_by INTEGER REFERENCES users(id),
        is_recurring INTEGER NOT NULL DEFAULT 0,
        recurrence_pattern TEXT,
        reminder_enabled INTEGER NOT NULL DEFAULT 0,
        reminder_time TEXT,
        escalation_level INTEGER NOT NULL DEFAULT 0,
        last_reminder_sent TEXT
    )""",
    "task_submissions": f"""CREATE TABLE IF NOT EXISTS task_submissions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT {_NOW},
        updated TEXT NOT NULL DEFAULT {_NOW},
        task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
        family_id INTEGER NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        submitted_by INTEGER NOT NULL REFERENCES users(id),
        photo_url TEXT NOT NULL,
        submitted_at TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'approved', 'rejected')),
        reviewed_at TEXT,
        reviewed_by INTEGER REFERENCES users(id),
        validation_notes TEXT
    )""",
    "activity_logs": f"""CREATE TABLE IF NOT EXISTS activity_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT {_NOW},
        updated TEXT NOT NULL DEFAULT {_NOW},
        family_id INTEGER NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        user_id INTEGER NOT NULL REFERENCES users(id),
        action TEXT NOT NULL,
        entity_type TEXT NOT NULL,
        entity_id TEXT NOT NULL,
        metadata TEXT,
        timestamp TEXT NOT NULL
    )""",
    "notifications": f"""CREATE TABLE IF NOT EXISTS notifications (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT {_NOW},
        updated TEXT NOT NULL DEFAULT {_NOW},
        user_id INTEGER NOT NULL REFERENCES users(id),
        family_id INTEGER REFERENCES families(id) ON DELETE CASCADE,
        type TEXT NOT NULL,
        title TEXT NOT NULL,
        body TEXT NOT NULL,
        data TEXT,
        read INTEGER NOT NULL DEFAULT 0
    )""",
    "rewards": f"""CREATE TABLE IF NOT EXISTS rewards (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT {_NOW},
        updated TEXT NOT NULL DEFAULT {_NOW},
        family_id INTEGER NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT,
        point_cost INTEGER NOT NULL CHECK (point_cost > 0),
        created_by INTEGER NOT NULL REFERENCES users(id)
    )""",
    "redemptions": f"""CREATE TABLE IF NOT EXISTS redemptions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT {_NOW},
        updated TEXT NOT NULL DEFAULT {_NOW},
        family_id INTEGER NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        member_id INTEGER NOT NULL REFERENCES users(id),
        reward_id INTEGER NOT NULL REFERENCES rewards(id),
        requested_by INTEGER NOT NULL REFERENCES users(id),
        point_cost INTEGER NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'fulfilled', 'cancelled'))
    )""",
    "achievements": f"""CREATE TABLE IF NOT EXISTS achievements (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT {_NOW},
        updated TEXT NOT NULL DEFAULT {_NOW},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        achievement_id TEXT NOT NULL,
        progress INTEGER NOT NULL DEFAULT 0,
        max_progress INTEGER NOT NULL,
        unlocked_at TEXT,
        UNIQUE (user_id, achievement_id)
    )""",
}

INDEXES: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_users_family_id ON users (family_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_family_id ON tasks (family_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_assigned_to ON tasks (assigned_to)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_status_due ON tasks (status, due_date)",
    "CREATE INDEX IF NOT EXISTS idx_submissions_family_status ON task_submissions (family_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_activity_family_time ON activity_logs (family_id, timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications (user_id, read)",
    "CREATE INDEX IF NOT EXISTS idx_rewards_family_id ON rewards (family_id)",
    "CREATE INDEX IF NOT EXISTS idx_achievements_user ON achievements (user_id)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist."""
    conn = await db_client.get_connection(db_path=db_path)

    for name, ddl in TABLE_SCHEMAS.items():
        await conn.execute(ddl)
        logger.debug("Ensured table", extra={"table": name})

    for ddl in INDEXES:
        await conn.execute(ddl)

    await conn.commit()
    logger.info("Database schema initialized", extra={"tables": len(TABLE_SCHEMAS)})
