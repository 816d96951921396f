import logging

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once at startup; modules use logging.getLogger(__name__)"""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # APScheduler logs every job run at INFO, which drowns out request logs
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
