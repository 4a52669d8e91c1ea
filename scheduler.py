import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import get_settings
from fx_rates import BcvRateService


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class SchedulerManager:
    def __init__(self) -> None:
        self.settings = get_settings()
        self.scheduler = BackgroundScheduler(timezone=self.settings.timezone)

    def _refresh_rate(self, source: str = "manual") -> None:
        logger.info(f"scheduler_run: source={source}")
        quote = BcvRateService().refresh()
        logger.info(f"scheduler_run: source={source} has_rate={quote is not None}")

    def start(self) -> None:
        self._refresh_rate("startup")

        minutes = max(self.settings.bcv_refresh_minutes, 1)
        self.scheduler.add_job(
            self._refresh_rate,
            IntervalTrigger(minutes=minutes),
            args=["interval"],
            id="bcv_rate_refresh",
            replace_existing=True,
            misfire_grace_time=300,
        )

        self.scheduler.start()
        logger.info(f"Scheduler started with BCV refresh every {minutes} minutes")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
