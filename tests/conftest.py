import pytest

from fakes import START, RecordingHook, portal_config
from wotc_portal_bot.application.services import (
    InMemoryRecordRepository,
    JobRunner,
    LoggingService,
    NotificationService,
    SqlJobStore,
    TimingService,
)
from wotc_portal_bot.db import Database
from wotc_portal_bot.domain.services import EncoderOptions, FixedClock, FormatEncoder


async def _no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def logger():
    return LoggingService(log_level="ERROR")


@pytest.fixture
def clock():
    return FixedClock(START)


@pytest.fixture
def timing(logger):
    return TimingService(logger, sleep=_no_sleep, human_delay=(0.0, 0.0), typing_delay=(0.0, 0.0))


@pytest.fixture
def encoder():
    return FormatEncoder(EncoderOptions(consultant_ein="86-1505473", csdc_pin="PIN123"))


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'jobs.db'}")
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture
def store(database, logger):
    job_store = SqlJobStore(database, logger)
    job_store.save_portal_config(portal_config("AZ"))
    return job_store


@pytest.fixture
def repository():
    return InMemoryRecordRepository()


@pytest.fixture
def hook():
    return RecordingHook()


@pytest.fixture
def make_runner(store, repository, encoder, logger, clock, hook):
    """Build a JobRunner around any driver; notifications go to ``hook``."""

    def _make(driver, hooks=None):
        notifications = NotificationService(hooks if hooks is not None else [hook], logger)
        return JobRunner(store, repository, encoder, driver, notifications, logger, clock=clock)

    return _make
