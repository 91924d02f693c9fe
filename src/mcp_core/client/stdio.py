import logging
import os
import subprocess
import sys
from pathlib import Path
from types import TracebackType
from typing import Literal, TextIO

import anyio
import anyio.lowlevel
from anyio.abc import Process, TaskGroup
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from anyio.streams.text import TextReceiveStream
from pydantic import BaseModel, Field

from mcp_core.settings import get_settings
from mcp_core.shared._exception_utils import exit_task_group
from mcp_core.shared.codec import decode_message, encode_message
from mcp_core.shared.exceptions import MessageDecodeError
from mcp_core.shared.message import SessionMessage
from mcp_core.shared.transport import TransportStreams

logger = logging.getLogger(__name__)

# Environment variables to inherit by default
DEFAULT_INHERITED_ENV_VARS = (
    [
        "APPDATA",
        "HOMEDRIVE",
        "HOMEPATH",
        "LOCALAPPDATA",
        "PATH",
        "PROCESSOR_ARCHITECTURE",
        "SYSTEMDRIVE",
        "SYSTEMROOT",
        "TEMP",
        "USERNAME",
        "USERPROFILE",
    ]
    if sys.platform == "win32"
    else ["HOME", "LOGNAME", "PATH", "SHELL", "TERM", "USER"]
)


def get_default_environment() -> dict[str, str]:
    """Returns a default environment object including only environment variables deemed
    safe to inherit.
    """
    env: dict[str, str] = {}

    for key in DEFAULT_INHERITED_ENV_VARS:
        value = os.environ.get(key)
        if value is None:
            continue

        if value.startswith("()"):
            # Skip functions, which are a security risk
            continue

        env[key] = value

    return env


class StdioServerParameters(BaseModel):
    command: str
    """The executable to run to start the server."""

    args: list[str] = Field(default_factory=list)
    """Command line arguments to pass to the executable."""

    env: dict[str, str] | None = None
    """
    The environment to use when spawning the process, on top of
    get_default_environment().
    """

    cwd: str | Path | None = None
    """The working directory to use when spawning the process."""

    encoding: str = "utf-8"
    """
    The text encoding used when sending/receiving messages to the server

    defaults to utf-8
    """

    encoding_error_handler: Literal["strict", "ignore", "replace"] = "strict"
    """
    The text encoding error handler.

    See https://docs.python.org/3/library/codecs.html#codec-base-classes for
    explanations of possible values
    """


class StdioClientTransport:
    """Client transport for stdio: spawns the server as a child process and
    exchanges newline-delimited JSON over its stdin/stdout.

    The child's stderr is copied to ``errlog``. On exit the child is asked to
    terminate and killed if it has not exited within
    ``process_termination_timeout`` seconds.
    """

    supports_server_requests = True

    def __init__(
        self,
        server_params: StdioServerParameters,
        errlog: TextIO = sys.stderr,
        process_termination_timeout: float | None = None,
    ) -> None:
        self.server_params = server_params
        self.errlog = errlog
        self.process_termination_timeout = (
            process_termination_timeout
            if process_termination_timeout is not None
            else get_settings().process_termination_timeout
        )
        self.process: Process | None = None
        self._tg: TaskGroup | None = None

        self.read_stream_writer: MemoryObjectSendStream[SessionMessage | Exception]
        self.read_stream: MemoryObjectReceiveStream[SessionMessage | Exception]
        self.read_stream_writer, self.read_stream = anyio.create_memory_object_stream(0)

        self.write_stream: MemoryObjectSendStream[SessionMessage]
        self.write_stream_reader: MemoryObjectReceiveStream[SessionMessage]
        self.write_stream, self.write_stream_reader = anyio.create_memory_object_stream(0)

    async def _stdout_reader(self) -> None:
        assert self.process and self.process.stdout, "Opened process is missing stdout"
        try:
            async with self.read_stream_writer:
                buffer = ""
                async for chunk in TextReceiveStream(
                    self.process.stdout,
                    encoding=self.server_params.encoding,
                    errors=self.server_params.encoding_error_handler,
                ):
                    lines = (buffer + chunk).split("\n")
                    buffer = lines.pop()

                    for line in lines:
                        if not line.strip():
                            continue
                        try:
                            message = decode_message(line)
                        except MessageDecodeError as exc:
                            logger.warning("Failed to decode message from server: %s", exc)
                            await self.read_stream_writer.send(exc)
                            continue

                        await self.read_stream_writer.send(SessionMessage(message))
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            await anyio.lowlevel.checkpoint()

    async def _stdin_writer(self) -> None:
        assert self.process and self.process.stdin, "Opened process is missing stdin"
        try:
            async with self.write_stream_reader:
                async for session_message in self.write_stream_reader:
                    data = encode_message(session_message.message) + "\n"
                    await self.process.stdin.send(
                        data.encode(
                            encoding=self.server_params.encoding,
                            errors=self.server_params.encoding_error_handler,
                        )
                    )
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            logger.debug("Server process stdin closed")
            await anyio.lowlevel.checkpoint()

    async def _stderr_reader(self) -> None:
        assert self.process and self.process.stderr, "Opened process is missing stderr"
        try:
            async for chunk in TextReceiveStream(
                self.process.stderr,
                encoding=self.server_params.encoding,
                errors="replace",
            ):
                if not self.errlog.closed:
                    self.errlog.write(chunk)
                    self.errlog.flush()
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            await anyio.lowlevel.checkpoint()

    async def __aenter__(self) -> TransportStreams:
        env = get_default_environment()
        if self.server_params.env is not None:
            env.update(self.server_params.env)

        try:
            self.process = await anyio.open_process(
                [self.server_params.command, *self.server_params.args],
                env=env,
                cwd=self.server_params.cwd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError:
            # Clean up streams if process creation fails
            await self._close_streams()
            raise
        logger.debug("Started server process %s (pid %s)", self.server_params.command, self.process.pid)

        self._tg = anyio.create_task_group()
        await self._tg.__aenter__()
        self._tg.start_soon(self._stdout_reader)
        self._tg.start_soon(self._stdin_writer)
        self._tg.start_soon(self._stderr_reader)

        return self.read_stream, self.write_stream

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        try:
            if self._tg:
                self._tg.cancel_scope.cancel()
                await exit_task_group(self._tg, exc_type, exc_val, exc_tb)
        finally:
            self._tg = None
            if self.process:
                with anyio.CancelScope(shield=True):
                    await self._terminate_process(self.process)
                self.process = None
            await self._close_streams()

    async def _terminate_process(self, process: Process) -> None:
        if process.returncode is not None:
            return
        try:
            if process.stdin:
                await process.stdin.aclose()
            process.terminate()
            with anyio.fail_after(self.process_termination_timeout):
                await process.wait()
        except TimeoutError:
            logger.warning("Server process did not exit after terminate, killing it")
            process.kill()
            await process.wait()
        except ProcessLookupError:
            pass

    async def _close_streams(self) -> None:
        await self.read_stream.aclose()
        await self.read_stream_writer.aclose()
        await self.write_stream.aclose()
        await self.write_stream_reader.aclose()


def stdio_client(server: StdioServerParameters, errlog: TextIO = sys.stderr) -> StdioClientTransport:
    """Client transport for stdio: this will connect to a server by spawning a
    process and communicating with it over stdin/stdout.

    Example:
        ```python
        async with stdio_client(StdioServerParameters(command="python", args=["server.py"])) as (read, write):
            async with ClientSession(read, write) as session:
                await session.initialize()
        ```
    """
    return StdioClientTransport(server, errlog)
