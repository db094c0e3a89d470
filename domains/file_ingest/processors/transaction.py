"""
Archive transaction: one inbox file becomes one archive record.

Steps, in order:
1. Resolve the destination container (find, else create)
2. Prepare a draft record named after the file, bind the metadata mask
3. Check in the record metadata (the record exists from here on)
4. Open a content check-in, attach version info, upload the bytes
5. Finalize the content check-in

A failure after step 3 deletes the record again. If that delete fails
too, the record is reported as orphaned instead of being dropped silently.
"""

from loguru import logger

from app.models.schemas import ContentCheckin, DocVersion, ServerInfo
from app.utils.archive_client import ArchiveClient, ArchiveConnectionError, ArchiveError
from app.utils.config import Settings
from app.utils.helpers import now_iso, strip_path_marker
from domains.file_ingest.errors import CompensationOutcome, ConnectivityError, TransactionError
from domains.file_ingest.processors.scanner import WorkItem

SERVICE_NAME = "ArchiveIngest"


class ArchiveTransaction:
    """Runs the record/content check-in sequence against the archive."""

    def __init__(self, client: ArchiveClient, settings: Settings):
        self.client = client
        self.archive_path = settings.archive_path
        self.metadata_mask = settings.metadata_mask

    async def probe(self) -> ServerInfo:
        """Check that the archive answers; raises ConnectivityError otherwise."""
        try:
            info = await self.client.get_server_info()
        except ArchiveError as e:
            raise ConnectivityError(f"Archive connection check failed: {e}") from e

        logger.debug(f"Archive connection validated. Server: {info.name}")
        return info

    async def resolve_container(self) -> str:
        """Return the id of the configured container, creating it if absent."""
        existing = await self.client.find_container(self.archive_path)
        if existing is not None:
            logger.debug(f"Found existing archive folder: {self.archive_path}")
            return existing.id

        logger.info(f"Creating archive folder: {self.archive_path}")
        created = await self.client.create_container(
            strip_path_marker(self.archive_path),
            description=f"Created by {SERVICE_NAME} for document imports",
        )
        logger.info(f"Archive folder created with ID: {created.id}")
        return created.id

    async def resolve_mask_id(self):
        """Look up the metadata mask; a missing mask is not fatal."""
        try:
            mask = await self.client.lookup_metadata_schema(self.metadata_mask)
        except ArchiveError as e:
            logger.warning(f"Error getting mask ID for {self.metadata_mask}: {e}")
            return None

        if mask is None:
            logger.warning(f"Mask not found: {self.metadata_mask}")
            return None

        logger.debug(f"Found mask: {mask.name} with ID: {mask.id}")
        return mask.id

    async def create_record(self, item: WorkItem) -> str:
        """Steps 1-3: container, draft, metadata check-in. Returns the record id."""
        try:
            parent_id = await self.resolve_container()
            draft = await self.client.create_draft_record(parent_id)
            draft.name = item.stem
            draft.mask_id = await self.resolve_mask_id()
            draft.type = "document"
            draft.desc = f"Imported by {SERVICE_NAME} on {now_iso()}"
            record = await self.client.checkin_record(draft)
        except ArchiveConnectionError as e:
            raise ConnectivityError(str(e)) from e
        except (ArchiveError, ValueError) as e:
            raise TransactionError(f"Record creation failed for {item.name}: {e}") from e

        return record.id

    async def upload_content(self, record_id: str, item: WorkItem) -> None:
        """Check in the file content for ``record_id``. Raises on any failure."""
        checkin: ContentCheckin = await self.client.begin_content_checkin(record_id)
        checkin.version = DocVersion(
            comment=f"Imported by {SERVICE_NAME} on {now_iso()}",
            version="1.0",
            ext=item.extension.lstrip(".") or "bin",
        )

        data = item.path.read_bytes()
        if not data:
            raise TransactionError(f"No content read from {item.name}", record_id=record_id)

        if not await self.client.upload_bytes(checkin.upload_url, data):
            raise TransactionError(f"Upload rejected for {item.name}", record_id=record_id)

        await self.client.end_content_checkin(checkin)
        logger.debug(f"File uploaded successfully: {item.name} ({len(data)} bytes)")

    async def compensate(self, record_id: str) -> CompensationOutcome:
        """Delete a record whose content never made it in."""
        try:
            await self.client.delete_record(record_id)
        except ArchiveError as e:
            logger.error(f"Failed to clean up record {record_id}, it is now orphaned: {e}")
            return CompensationOutcome.ORPHANED

        logger.info(f"Removed incomplete record {record_id}")
        return CompensationOutcome.COMPENSATED

    async def import_file(self, item: WorkItem) -> str:
        """
        Import one file into the archive.

        Args:
            item: Validated inbox file

        Returns:
            The committed record id

        Raises:
            ConnectivityError: archive unreachable before a record existed
            TransactionError: any other failure; carries the compensation outcome
        """
        record_id = await self.create_record(item)

        try:
            await self.upload_content(record_id, item)
        except Exception as e:
            outcome = await self.compensate(record_id)
            raise TransactionError(
                f"Content upload failed for {item.name}: {e}",
                record_id=record_id,
                compensation=outcome,
            ) from e

        return record_id
