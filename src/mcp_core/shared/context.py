from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic

from typing_extensions import TypeVar

from mcp_core.shared.message import MessageMetadata
from mcp_core.types import RequestId, RequestMeta

if TYPE_CHECKING:
    from mcp_core.shared.session import Session

SessionT = TypeVar("SessionT", bound="Session", default="Session")


@dataclass
class RequestContext(Generic[SessionT]):
    """What request handlers receive alongside the request params.

    The session lets a handler talk back to the peer while it runs, for
    example a server tool issuing ``sampling/createMessage`` to the client.
    """

    request_id: RequestId
    method: str
    meta: RequestMeta | None
    session: SessionT
    metadata: MessageMetadata | None = None

    async def report_progress(self, progress: float, total: float | None = None, message: str | None = None) -> None:
        """Send a progress notification if the requester asked for progress."""
        if self.meta is None or self.meta.progress_token is None:
            return
        await self.session.send_progress_notification(
            self.meta.progress_token,
            progress,
            total=total,
            message=message,
            related_request_id=self.request_id,
        )

    @property
    def request_context(self) -> Any:
        """Transport-specific context of the inbound message, if any."""
        return self.metadata.request_context if self.metadata else None
