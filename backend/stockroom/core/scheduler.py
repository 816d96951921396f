"""
Background scheduler for periodic tasks.

This module manages background jobs that run on a schedule:
- Sweep orphaned product images: runs every ORPHAN_SWEEP_INTERVAL_HOURS

Request handlers already delete replaced and rejected uploads, but those
deletes are best-effort; the sweep catches whatever a transient filesystem
error left behind.
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from stockroom.core.config import settings
from stockroom.core.database import SessionLocal
import logging

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def sweep_orphaned_images_job():
    """
    Background job to delete image files no product references.

    Runs on its own session, outside any request.
    """
    # Imported here to keep the scheduler importable without the API layer
    from stockroom.api.dependencies import get_image_storage
    from stockroom.repositories.sqlalchemy_store import SqlAlchemyInventoryStore
    from stockroom.services.image_lifecycle import sweep_orphaned_images

    db = SessionLocal()
    try:
        store = SqlAlchemyInventoryStore(db)
        deleted = sweep_orphaned_images(
            get_image_storage(),
            store.list_image_urls(),
            grace_seconds=settings.ORPHAN_SWEEP_GRACE_MINUTES * 60,
        )
        if deleted > 0:
            logger.info(f"Orphan sweep completed: deleted {deleted} image file(s)")
        else:
            logger.info("Orphan sweep completed: no orphaned images found")
    except Exception as e:
        logger.error(f"Error in sweep_orphaned_images_job: {str(e)}")
    finally:
        db.close()


def start_scheduler():
    """
    Start the background scheduler.

    Called from the FastAPI lifespan on startup. Does nothing when the sweep
    is disabled.
    """
    if not settings.ORPHAN_SWEEP_ENABLED:
        logger.info("Orphaned image sweep disabled")
        return
    if not scheduler.running:
        scheduler.add_job(
            sweep_orphaned_images_job,
            trigger=IntervalTrigger(hours=settings.ORPHAN_SWEEP_INTERVAL_HOURS),
            id="sweep_orphaned_images",
            name="Sweep orphaned product images",
            replace_existing=True
        )

        scheduler.start()
        logger.info(
            f"Background scheduler started. Image sweep scheduled every "
            f"{settings.ORPHAN_SWEEP_INTERVAL_HOURS} hours."
        )


def stop_scheduler():
    """
    Stop the background scheduler.

    Called from the FastAPI lifespan on shutdown.
    """
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped.")
