"""
Archive REST client.

Provides:
- Connection management (lazy async httpx client)
- The narrow record/content/workflow contract used by the ingest pipeline
- Error mapping: transport problems vs. server-side failures
"""

from typing import Any, Dict, Optional

import httpx
from loguru import logger

from app.models.schemas import (
    ArchiveRecord,
    Container,
    ContentCheckin,
    DraftRecord,
    MetadataSchema,
    ServerInfo,
    WorkflowInstance,
    WorkflowTemplate,
)
from app.utils.config import get_settings

ROOT_CONTAINER_ID = "1"


class ArchiveError(Exception):
    """Base error for archive calls."""


class ArchiveConnectionError(ArchiveError):
    """Archive unreachable or the call timed out."""


class ArchiveServerError(ArchiveError):
    """Archive answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ArchiveClient:
    """Async client for the document archive's REST interface."""

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        user: str = None,
        password: str = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize archive client."""
        if None in (base_url, timeout, user, password):
            settings = get_settings()
            base_url = base_url or settings.archive_url
            timeout = timeout if timeout is not None else settings.connection_timeout
            user = user if user is not None else settings.archive_user
            password = password if password is not None else settings.archive_password

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user = user
        self.password = password
        self._transport = transport

        self._http: Optional[httpx.AsyncClient] = None

    @property
    def http(self) -> httpx.AsyncClient:
        """Get HTTP client, creating it if necessary."""
        if self._http is None:
            auth = (self.user, self.password or "") if self.user else None
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                auth=auth,
                transport=self._transport,
            )
        return self._http

    async def close(self):
        """Close the HTTP client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def _request(
        self,
        method: str,
        url: str,
        *,
        allow_missing: bool = False,
        **kwargs: Any,
    ) -> Optional[httpx.Response]:
        """Send a request, mapping failures onto the archive error types."""
        try:
            response = await self.http.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise ArchiveConnectionError(f"{method} {url} failed: {e}") from e
        except httpx.HTTPError as e:
            raise ArchiveError(f"{method} {url} failed: {e}") from e

        if allow_missing and response.status_code == 404:
            return None

        if response.is_error:
            raise ArchiveServerError(
                f"{method} {url} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        return response

    # Connectivity -------------------------------------------------------------

    async def get_server_info(self) -> ServerInfo:
        """Probe the archive and return its identification."""
        response = await self._request("GET", "/server-info")
        return ServerInfo.model_validate(response.json())

    # Containers ---------------------------------------------------------------

    async def find_container(self, name: str) -> Optional[Container]:
        """Find the first container whose index name matches ``name``."""
        response = await self._request("GET", "/containers", params={"name": name, "limit": 1})
        containers = response.json().get("containers", [])
        if not containers:
            return None
        return Container.model_validate(containers[0])

    async def create_container(
        self,
        name: str,
        parent_id: str = ROOT_CONTAINER_ID,
        description: Optional[str] = None,
    ) -> Container:
        """Create and commit a container under ``parent_id``."""
        response = await self._request(
            "POST",
            "/containers",
            json={"name": name, "parent_id": parent_id, "desc": description},
        )
        return Container.model_validate(response.json())

    # Records ------------------------------------------------------------------

    async def create_draft_record(self, parent_id: str) -> DraftRecord:
        """Prepare a new, uncommitted record under ``parent_id``."""
        response = await self._request("POST", "/records/draft", json={"parent_id": parent_id})
        return DraftRecord.model_validate(response.json())

    async def lookup_metadata_schema(self, name: str) -> Optional[MetadataSchema]:
        """Resolve a metadata mask by name; None when no mask carries that name."""
        response = await self._request("GET", "/masks")
        for mask in response.json().get("masks", []):
            if mask.get("name") == name:
                return MetadataSchema.model_validate(mask)
        return None

    async def checkin_record(self, draft: DraftRecord) -> ArchiveRecord:
        """Commit a draft record's metadata; the record exists afterwards."""
        response = await self._request("POST", "/records", json=draft.model_dump())
        return ArchiveRecord.model_validate(response.json())

    async def delete_record(self, record_id: str) -> None:
        """Delete a record."""
        await self._request("DELETE", f"/records/{record_id}")

    # Content ------------------------------------------------------------------

    async def begin_content_checkin(self, record_id: str) -> ContentCheckin:
        """Open a content check-in transaction for ``record_id``."""
        response = await self._request("POST", f"/records/{record_id}/content/begin")
        return ContentCheckin.model_validate(response.json())

    async def upload_bytes(self, upload_url: str, data: bytes) -> bool:
        """
        Upload document content.

        Returns:
            True if the archive accepted the content, False if it refused it
        """
        try:
            response = await self.http.put(
                upload_url,
                content=data,
                headers={"Content-Type": "application/octet-stream"},
            )
        except httpx.TransportError as e:
            raise ArchiveConnectionError(f"Upload to {upload_url} failed: {e}") from e
        except httpx.HTTPError as e:
            raise ArchiveError(f"Upload to {upload_url} failed: {e}") from e

        if response.is_error:
            logger.debug(f"Upload refused with {response.status_code}: {response.text[:200]}")
            return False
        return True

    async def end_content_checkin(self, checkin: ContentCheckin) -> ArchiveRecord:
        """Finalize a content check-in; the record is committed with content."""
        response = await self._request(
            "POST",
            f"/records/{checkin.record_id}/content/end",
            json=checkin.model_dump(),
        )
        return ArchiveRecord.model_validate(response.json())

    # Workflows ----------------------------------------------------------------

    async def lookup_workflow_template(self, name: str) -> Optional[WorkflowTemplate]:
        """Resolve a workflow template by name."""
        response = await self._request(
            "GET", "/workflows/templates", params={"name": name}, allow_missing=True
        )
        if response is None:
            return None
        return WorkflowTemplate.model_validate(response.json())

    async def create_workflow_instance(self, template: WorkflowTemplate, record_id: str) -> WorkflowInstance:
        """Instantiate ``template`` bound to ``record_id``."""
        response = await self._request(
            "POST",
            "/workflows",
            json={"template_id": template.id, "record_id": record_id},
        )
        return WorkflowInstance.model_validate(response.json())

    async def start_workflow_instance(self, instance_id: str, comment: str) -> None:
        """Start a previously created workflow instance."""
        payload: Dict[str, Any] = {"comment": comment}
        await self._request("POST", f"/workflows/{instance_id}/start", json=payload)

