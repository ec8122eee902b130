"""Task queue configuration and scheduled tasks using Huey.

Provides the periodic job that deletes expired projects (their asset rows
go with them through the foreign key cascade).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from huey import SqliteHuey

_huey_instance: SqliteHuey | None = None
_cleanup_now = None


@dataclass
class TaskQueueSettings:
    """Task queue configuration settings.

    Attributes:
        enabled: Whether task queue is enabled.
        db_path: Path to Huey's SQLite database for task storage.
        immediate: Run tasks immediately (for testing).
        utc: Use UTC timezone for scheduling.
    """

    enabled: bool = True
    db_path: str = "./huey_tasks.db"
    immediate: bool = False
    utc: bool = True

    @classmethod
    def from_env(cls) -> TaskQueueSettings:
        """Create settings from environment variables.

        Environment variables:
            TASK_QUEUE_ENABLED: Set to "false" to disable task queue.
            TASK_QUEUE_DB_PATH: Path to Huey SQLite database.
            TASK_QUEUE_IMMEDIATE: Set to "true" for immediate execution (testing).

        Returns:
            TaskQueueSettings configured from environment.
        """
        return cls(
            enabled=os.environ.get("TASK_QUEUE_ENABLED", "true").lower() != "false",
            db_path=os.environ.get("TASK_QUEUE_DB_PATH", "./huey_tasks.db"),
            immediate=os.environ.get("TASK_QUEUE_IMMEDIATE", "false").lower() == "true",
        )


def get_huey(settings: TaskQueueSettings | None = None) -> SqliteHuey:
    """Get or create the Huey task queue instance.

    Args:
        settings: Task queue settings. If None, loads from environment.

    Returns:
        Configured SqliteHuey instance.

    Raises:
        ImportError: If huey is not installed (tasks extra not installed).
    """
    global _huey_instance  # noqa: PLW0603

    if _huey_instance is not None:
        return _huey_instance

    try:
        from huey import SqliteHuey
    except ImportError as e:
        msg = "Huey is not installed. Install with: pip install codeshare-py[tasks]"
        raise ImportError(msg) from e

    if settings is None:
        settings = TaskQueueSettings.from_env()

    db_path = Path(settings.db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    _huey_instance = SqliteHuey(
        name="codeshare",
        filename=str(db_path),
        immediate=settings.immediate,
        utc=settings.utc,
    )

    return _huey_instance


def register_tasks() -> None:
    """Register all scheduled tasks with Huey.

    This must be called after Huey is configured to register the periodic tasks.
    """
    huey = get_huey()

    from huey import crontab

    @huey.periodic_task(crontab(minute="0"))
    def cleanup_expired_projects_task() -> dict:
        """Delete projects whose expiry has passed."""
        return _run_cleanup_expired_projects()

    # the consumer only runs enqueued cleanups it has registered
    _cleanup_now_task()


def _run_cleanup_expired_projects(database_url: str | None = None) -> dict:
    """Delete expired projects from the database.

    Args:
        database_url: Database to clean. Defaults to ``DATABASE_URL``.

    Returns:
        Dict with cleanup results.
    """
    import asyncio

    import structlog

    logger = structlog.get_logger(__name__)

    async def _cleanup() -> int:
        from codeshare_py.services.projects import ProjectService, get_project_ttl
        from codeshare_py.storage.db.setup import DatabaseManager
        from codeshare_py.storage.db.storage import DatabaseAssetStore, DatabaseProjectStore

        db = DatabaseManager(database_url)
        await db.init()
        try:
            service = ProjectService(
                DatabaseProjectStore(db.session),
                DatabaseAssetStore(db.session),
                ttl=get_project_ttl(),
            )
            return await service.cleanup_expired()
        finally:
            await db.close()

    try:
        deleted = asyncio.run(_cleanup())
    except Exception as e:
        logger.error("Project cleanup failed", error=str(e))
        return {
            "task": "cleanup_expired_projects",
            "error": str(e),
            "timestamp": datetime.now(UTC).isoformat(),
        }

    logger.info("Project cleanup completed", deleted_projects=deleted)

    return {
        "task": "cleanup_expired_projects",
        "deleted": deleted,
        "timestamp": datetime.now(UTC).isoformat(),
    }


def _cleanup_now_task():
    """Register the on-demand cleanup task once and return it."""
    global _cleanup_now  # noqa: PLW0603

    if _cleanup_now is None:
        _cleanup_now = get_huey().task(name="cleanup_expired_projects_now")(_run_cleanup_expired_projects)
    return _cleanup_now


def enqueue_project_cleanup() -> str:
    """Enqueue a project cleanup for the consumer to run as soon as possible.

    Returns:
        The ID of the enqueued task.
    """
    result = _cleanup_now_task()()
    return result.id
