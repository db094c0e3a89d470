"""
Workflow trigger for imported records.

Best effort: a couple of attempts with a fixed pause, then the failure is
handed back to the caller, which only logs it.
"""

from typing import Awaitable, Callable, Optional

from loguru import logger

from app.utils.archive_client import ArchiveClient
from app.utils.config import Settings
from app.utils.helpers import interruptible_sleep
from domains.file_ingest.errors import WorkflowError

Sleep = Callable[[float], Awaitable[bool]]

START_COMMENT = "Started by ArchiveIngest"


class WorkflowTrigger:
    """Starts the configured workflow template for a record."""

    def __init__(self, client: ArchiveClient, settings: Settings, sleep: Optional[Sleep] = None):
        self.client = client
        self.template_name = settings.workflow_template
        self.max_attempts = max(1, settings.workflow_attempts)
        self.delay = 2 * settings.time_unit
        self.sleep = sleep or interruptible_sleep

    async def _start_once(self, record_id: str) -> str:
        template = await self.client.lookup_workflow_template(self.template_name)
        if template is None:
            raise WorkflowError(f"Workflow template not found: {self.template_name}")

        instance = await self.client.create_workflow_instance(template, record_id)
        await self.client.start_workflow_instance(instance.id, START_COMMENT)
        return instance.id

    async def start(self, record_id: str) -> str:
        """
        Start the workflow for ``record_id``.

        Returns:
            The workflow instance id

        Raises:
            WorkflowError: every attempt failed
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            logger.info(
                f"Starting workflow for record {record_id} (Attempt {attempt}/{self.max_attempts})"
            )
            try:
                instance_id = await self._start_once(record_id)
            except Exception as e:
                last_error = e
                logger.warning(f"Workflow start attempt {attempt} failed for record {record_id} - {e}")
                if attempt < self.max_attempts and await self.sleep(self.delay):
                    break
                continue

            logger.info(f"Workflow started successfully for record {record_id} (Workflow ID: {instance_id})")
            return instance_id

        raise WorkflowError(
            f"Workflow {self.template_name} could not be started for record {record_id}: {last_error}"
        )
