# src/hookrunner/services/scripts/execution.py
from __future__ import annotations

import asyncio
import logging
import os
import shutil
import stat
import time
from pathlib import Path
from typing import Any, Generator, Optional, Sequence

from hookrunner.config import const
from hookrunner.domain import HabitatLease, Interpreter, ResolvedScript
from hookrunner.errors import LaunchError, StagingError
from hookrunner.ports import EventBus
from hookrunner.services.eventbus import emit

_log = logging.getLogger("hookrunner.execution")

_EOF = object()


def _stage(source_dir: Path, habitat_dir: Path) -> None:
    # a leftover from a crashed run must not leak into the new one
    if habitat_dir.exists():
        _remove(habitat_dir)
    shutil.copytree(source_dir, habitat_dir, symlinks=True)


def _make_writable(root: Path) -> None:
    # top-down walk: each directory is opened up before it is listed
    os.chmod(root, stat.S_IRWXU)
    for dirpath, dirnames, _ in os.walk(root):
        for name in dirnames:
            path = os.path.join(dirpath, name)
            if not os.path.islink(path):
                os.chmod(path, stat.S_IRWXU)


def _remove(habitat_dir: Path) -> None:
    try:
        shutil.rmtree(habitat_dir)
    except PermissionError:
        # scripts may leave read-only directories behind
        _make_writable(habitat_dir)
        shutil.rmtree(habitat_dir)


class ActiveExecution:
    """
    A running script.

    ``output`` yields stdout and stderr bytes merged in arrival order. It is a
    single stream: every access returns the same object. Once its reader
    stops (normally, by ``aclose()``, or because the client went away) the
    remaining bytes are read and dropped so the child never stalls on a full
    pipe.

    ``completion`` finishes after both pipes hit EOF and the process has
    exited; the habitat directory is gone by then. Awaiting it before anyone
    has started reading ``output`` gives the output up, so waiting for a
    script whose output nobody wants cannot deadlock. Cancelling a wait on
    ``completion`` leaves the execution running.
    """

    def __init__(self, *, webhook_id: str, habitat: HabitatLease, proc: asyncio.subprocess.Process, queue_size: int) -> None:
        self.webhook_id = webhook_id
        self.habitat = habitat
        self.proc = proc
        self.returncode: Optional[int] = None
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max(queue_size, 2))
        self._detached = False
        self._reading = False
        self._readers = [
            asyncio.create_task(self._pump(proc.stdout)),
            asyncio.create_task(self._pump(proc.stderr)),
        ]
        self._output = _OutputStream(self, len(self._readers))
        self._task: Optional[asyncio.Task] = None

    async def _pump(self, stream: Optional[asyncio.StreamReader]) -> None:
        try:
            while stream is not None:
                chunk = await stream.read(const.READ_CHUNK)
                if not chunk:
                    break
                if not self._detached:
                    await self._queue.put(chunk)
        except BaseException:
            # cancelled mid-run: never block on a queue nobody may be reading
            if not self._detached:
                try:
                    self._queue.put_nowait(_EOF)
                except asyncio.QueueFull:
                    self.detach()
            raise
        if not self._detached:
            await self._queue.put(_EOF)

    @property
    def output(self) -> "_OutputStream":
        return self._output

    @property
    def completion(self) -> "_Completion":
        return _Completion(self)

    def detach(self) -> None:
        """Stop forwarding output; readers keep draining the pipes."""
        if self._detached:
            return
        self._detached = True
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
        # end a reader that is still waiting on the queue
        for _ in self._readers:
            self._queue.put_nowait(_EOF)

    async def wait(self) -> None:
        """Wait for exit and cleanup while someone else reads ``output``."""
        await asyncio.shield(self._task)

    async def _wait(self) -> None:
        try:
            await asyncio.shield(asyncio.gather(*self._readers))
        finally:
            self.returncode = await self.proc.wait()


class _Completion:
    def __init__(self, execution: ActiveExecution) -> None:
        self._execution = execution

    def done(self) -> bool:
        return self._execution._task.done()

    def __await__(self) -> Generator[Any, None, None]:
        if not self._execution._reading:
            self._execution.detach()
        return self._execution.wait().__await__()


class _OutputStream:
    """
    Async iterator over an execution's merged output.

    Closing it, explicitly or by cancelling a pending read, detaches the
    execution so an abandoned reader can never wedge the child process.
    """

    def __init__(self, execution: ActiveExecution, open_streams: int) -> None:
        self._execution = execution
        self._open = open_streams
        self._closed = False

    def __aiter__(self) -> "_OutputStream":
        return self

    async def __anext__(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration
        self._execution._reading = True
        try:
            while self._open:
                item = await self._execution._queue.get()
                if item is _EOF:
                    self._open -= 1
                    continue
                return item
        except BaseException:
            self.close()
            raise
        self.close()
        raise StopAsyncIteration

    async def aclose(self) -> None:
        self.close()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._execution.detach()


class Executor:
    """Stages a resolved script into its habitat and runs it."""

    def __init__(
        self,
        *,
        shell: str = const.SHELL,
        engine_cmd: Sequence[str] = const.ENGINE_CMD,
        bus: Optional[EventBus] = None,
        queue_size: int = const.OUTPUT_QUEUE_SIZE,
    ) -> None:
        self.shell = shell
        self.engine_cmd = tuple(engine_cmd)
        self._bus = bus
        self._queue_size = queue_size

    def command(self, kind: Interpreter, script_path: Path, payload: str) -> list[str]:
        if kind is Interpreter.ENGINE:
            return [*self.engine_cmd, str(script_path), payload]
        return [self.shell, str(script_path), payload]

    async def execute(
        self,
        script: ResolvedScript,
        habitat: HabitatLease,
        payload: str,
        *,
        webhook_id: str = "",
    ) -> ActiveExecution:
        ctx = {"webhook_id": webhook_id, "habitat_id": habitat.id, "script": str(script.path)}

        try:
            await asyncio.to_thread(_stage, script.path.parent, habitat.path)
        except OSError as e:
            _log.error("execution.staging_failed", extra={"extra": {**ctx, "error": repr(e)}})
            await self._cleanup(habitat, ctx)
            raise StagingError(
                webhook_id,
                f"failed to copy '{script.path.parent}' into habitat '{habitat.path}': {e}",
                habitat_id=habitat.id,
                script_path=script.path,
            ) from e

        staged = habitat.path / script.path.name
        cmd = self.command(script.kind, staged, payload)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(habitat.path),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            _log.error("execution.launch_failed", extra={"extra": {**ctx, "cmd": cmd[:-1], "error": repr(e)}})
            await self._cleanup(habitat, ctx)
            raise LaunchError(
                webhook_id,
                f"failed to start '{cmd[0]}' for '{staged}': {e}",
                habitat_id=habitat.id,
                script_path=script.path,
            ) from e

        started_at = time.monotonic()
        if self._bus is not None:
            emit(self._bus, "script.started", {**ctx, "pid": proc.pid, "kind": script.kind.value}, "execution")

        active = ActiveExecution(webhook_id=webhook_id, habitat=habitat, proc=proc, queue_size=self._queue_size)
        active._task = asyncio.create_task(self._complete(active, ctx, started_at))
        return active

    async def _complete(self, active: ActiveExecution, ctx: dict, started_at: float) -> None:
        try:
            await active._wait()
            duration = time.monotonic() - started_at
            _log.info(
                "execution.exited",
                extra={"extra": {**ctx, "returncode": active.returncode, "duration": round(duration, 3)}},
            )
            if self._bus is not None:
                emit(self._bus, "script.exited", {**ctx, "returncode": active.returncode, "duration": duration}, "execution")
        finally:
            await self._cleanup(active.habitat, ctx)

    async def _cleanup(self, habitat: HabitatLease, ctx: dict) -> None:
        if not habitat.path.exists():
            return
        try:
            await asyncio.to_thread(_remove, habitat.path)
        except OSError as e:
            _log.error("execution.cleanup_failed", extra={"extra": {**ctx, "error": repr(e)}})
            raise
        if self._bus is not None:
            emit(self._bus, "habitat.removed", ctx, "execution")
