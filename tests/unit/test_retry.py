import asyncio

import pytest

from domains.file_ingest.errors import ConnectivityError, TransactionError
from domains.file_ingest.processors.retry import OutcomeStatus, RetryController, backoff_delay
from domains.file_ingest.processors.scanner import FileValidator
from domains.file_ingest.processors.transaction import ArchiveTransaction
from domains.file_ingest.processors.workflow import WorkflowTrigger
from tests.fakes import write_pdf


class SleepRecorder:
    def __init__(self, stop_event=None, stop_after=None):
        self.delays = []
        self.stop_event = stop_event
        self.stop_after = stop_after

    async def __call__(self, seconds):
        self.delays.append(seconds)
        if self.stop_after is not None and len(self.delays) >= self.stop_after:
            self.stop_event.set()
            return True
        return False


@pytest.fixture
def item(settings, inbox):
    return FileValidator(settings).validate(write_pdf(inbox / "invoice1.pdf")).item


def make_controller(settings, client, sleep, stop_event=None):
    return RetryController(
        ArchiveTransaction(client, settings),
        WorkflowTrigger(client, settings, sleep=sleep),
        settings,
        stop_event=stop_event,
        sleep=sleep,
    )


@pytest.mark.parametrize("attempt, expected", [(1, 2), (2, 4), (3, 8), (4, 16)])
def test_backoff_is_two_to_the_attempt(attempt, expected):
    assert backoff_delay(attempt) == expected


def test_backoff_scales_with_time_unit():
    assert backoff_delay(3, time_unit=0.5) == 4.0


async def test_success_on_first_attempt(settings, client, archive, item):
    sleep = SleepRecorder()

    outcome = await make_controller(settings, client, sleep).process_with_retry(item)

    assert outcome.status is OutcomeStatus.SUCCEEDED
    assert outcome.attempts == 1
    assert outcome.record_id in archive.records
    assert outcome.workflow_instance in archive.workflows
    assert sleep.delays == []


async def test_exhausted_attempts_sleep_between_but_not_after_last(settings, client, archive, item):
    settings.time_unit = 1.0
    settings.retry_attempts = 4
    archive.fail("upload")
    sleep = SleepRecorder()

    outcome = await make_controller(settings, client, sleep).process_with_retry(item)

    assert outcome.status is OutcomeStatus.FAILED
    assert outcome.attempts == 4
    assert isinstance(outcome.error, TransactionError)
    assert sleep.delays == [2.0, 4.0, 8.0]
    assert sum(sleep.delays) == sum(2 ** k for k in range(1, 4))
    assert archive.records == {}


async def test_recovers_after_transient_outage(settings, client, archive, item):
    archive.fail("find_container", times=2)
    sleep = SleepRecorder()

    outcome = await make_controller(settings, client, sleep).process_with_retry(item)

    assert outcome.succeeded
    assert outcome.attempts == 3
    assert len(archive.committed_records()) == 1


async def test_connectivity_errors_use_up_attempts(settings, client, archive, item):
    archive.down = True
    sleep = SleepRecorder()

    outcome = await make_controller(settings, client, sleep).process_with_retry(item)

    assert outcome.status is OutcomeStatus.FAILED
    assert outcome.attempts == settings.retry_attempts
    assert isinstance(outcome.error, ConnectivityError)


async def test_workflow_failure_does_not_downgrade_success(settings, client, archive, item, log_messages):
    archive.templates = {}
    sleep = SleepRecorder()

    outcome = await make_controller(settings, client, sleep).process_with_retry(item)

    assert outcome.succeeded
    assert outcome.attempts == 1
    assert outcome.workflow_instance is None
    assert len(archive.committed_records()) == 1
    assert any(m.startswith("WARNING") and "import was successful" in m for m in log_messages)


async def test_orphans_are_collected(settings, client, archive, item):
    archive.fail("upload")
    archive.fail("delete", times=1)
    sleep = SleepRecorder()

    outcome = await make_controller(settings, client, sleep).process_with_retry(item)

    assert outcome.status is OutcomeStatus.FAILED
    assert len(outcome.orphans) == 1
    assert list(archive.records) == outcome.orphans


async def test_stop_during_backoff_cancels(settings, client, archive, item):
    stop_event = asyncio.Event()
    archive.fail("upload")
    sleep = SleepRecorder(stop_event=stop_event, stop_after=1)

    outcome = await make_controller(settings, client, sleep, stop_event).process_with_retry(item)

    assert outcome.status is OutcomeStatus.CANCELLED
    assert outcome.attempts == 1
    assert item.path.exists()


async def test_stop_before_first_attempt(settings, client, archive, item):
    stop_event = asyncio.Event()
    stop_event.set()

    outcome = await make_controller(settings, client, SleepRecorder(), stop_event).process_with_retry(item)

    assert outcome.status is OutcomeStatus.CANCELLED
    assert outcome.attempts == 0
    assert archive.calls == []


async def test_default_sleep_is_interrupted_by_stop(settings, client, archive, item):
    settings.time_unit = 30.0
    stop_event = asyncio.Event()
    archive.fail("upload")
    controller = RetryController(
        ArchiveTransaction(client, settings),
        WorkflowTrigger(client, settings),
        settings,
        stop_event=stop_event,
    )

    task = asyncio.create_task(controller.process_with_retry(item))
    await asyncio.sleep(0.05)
    stop_event.set()
    outcome = await asyncio.wait_for(task, timeout=2)

    assert outcome.status is OutcomeStatus.CANCELLED
