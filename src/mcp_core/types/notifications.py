"""Parameters for the notifications the core understands."""

from typing import Annotated

from pydantic import Field

from mcp_core.types.base import NotificationParams, ProgressToken
from mcp_core.types.json_rpc import RequestId


class CancelledNotificationParams(NotificationParams):
    request_id: Annotated[RequestId, Field(alias="requestId")]
    reason: str | None = None


class ProgressNotificationParams(NotificationParams):
    progress_token: Annotated[ProgressToken, Field(alias="progressToken")]
    progress: float
    total: float | None = None
    message: str | None = None
