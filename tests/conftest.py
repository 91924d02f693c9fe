import anyio
import pytest
import sse_starlette
from packaging import version


@pytest.fixture
def anyio_backend():
    return "asyncio"


SSE_STARLETTE_VERSION = version.parse(sse_starlette.__version__)
NEEDS_RESET = SSE_STARLETTE_VERSION < version.parse("3.0.0")


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """Reset sse-starlette's global AppStatus singleton before each test.

    Before sse-starlette 3.0, AppStatus.should_exit_event is a module-level
    anyio.Event bound to the first event loop that touches it.
    """
    if not NEEDS_RESET:
        yield
        return

    from sse_starlette.sse import AppStatus

    AppStatus.should_exit_event = anyio.Event()  # type: ignore[attr-defined]

    yield

    AppStatus.should_exit_event = anyio.Event()  # type: ignore[attr-defined]


async def _answer_initialize(
    read_stream,
    write_stream,
    *,
    protocol_version: str | None = None,
    capabilities: dict | None = None,
):
    """Play the server side of the handshake on raw session streams."""
    # Imported here so collecting the conftest does not import the package.
    from mcp_core import types
    from mcp_core.shared.message import SessionMessage

    item = await read_stream.receive()
    request = item.message
    assert isinstance(request, types.JSONRPCRequest)
    assert request.method == types.INITIALIZE

    result = types.InitializeResult(
        protocol_version=protocol_version or request.params["protocolVersion"],
        capabilities=types.ServerCapabilities.model_validate(capabilities or {}),
        server_info=types.Implementation(name="fake-server", version="1.0"),
    )
    await write_stream.send(
        SessionMessage(
            types.JSONRPCResultResponse(
                id=request.id, result=result.model_dump(by_alias=True, mode="json", exclude_none=True)
            )
        )
    )
    return request


@pytest.fixture
def answer_initialize():
    return _answer_initialize
