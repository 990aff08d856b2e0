"""Listener lifecycle: bind, serve, and interrupt-driven shutdown.

The serve loop and the shutdown watcher run as two tasks on one event loop.
They share nothing except the uvicorn server whose exit flags the watcher
sets; setting them closes the listener and ends the serve loop without
draining in-flight requests.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import socket
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any, NoReturn

import uvicorn

from dou.domain.server_fsm import ServerState, ensure_transition
from dou.errors import FatalServiceError, ListenError, ServeError, ServerClosedError
from dou.middleware import FatalErrorMiddleware

if TYPE_CHECKING:
    from dou.service import Service

logger = logging.getLogger(__name__)

# uvicorn cancels request tasks still running after this many seconds of shutdown.
_SHUTDOWN_TASK_GRACE_SECONDS = 0.1


class ShutdownSignal:
    """One-shot stop notification; only the first ``trigger`` counts."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def is_set(self) -> bool:
        return self._event.is_set()

    def trigger(self, reason: str = "interrupt") -> bool:
        if self._event.is_set():
            return False
        self.reason = reason
        self._event.set()
        return True

    async def wait(self) -> str:
        await self._event.wait()
        return self.reason or "interrupt"


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port``, ``:port`` or ``[v6]:port`` into host and port."""
    host, sep, port_text = address.rpartition(":")
    if not sep:
        raise ListenError(address, "missing port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = int(port_text)
    except ValueError:
        raise ListenError(address, f"invalid port {port_text!r}") from None
    if not 0 <= port <= 65535:
        raise ListenError(address, f"port out of range {port}")
    return host, port


def listen(address: str) -> socket.socket:
    """Bind a TCP listener on ``address``."""
    host, port = parse_address(address)
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    try:
        return socket.create_server((host, port), family=family)
    except OSError as exc:
        raise ListenError(address, exc.strerror or str(exc)) from exc


class _Server(uvicorn.Server):
    """uvicorn server that leaves signal handling to ``ServerRunner``."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class ServerRunner:
    """Owns the listener of one ``Service`` for the life of the process.

    ``CREATED -> LISTENING -> SHUTTING_DOWN -> STOPPED``; every run ends by
    raising a ``FatalServiceError`` for the entry point to turn into an exit.
    """

    def __init__(
        self,
        service: Service,
        shutdown: ShutdownSignal | None = None,
        *,
        signals: Sequence[signal.Signals] = (signal.SIGINT,),
    ) -> None:
        self.service = service
        self.shutdown = shutdown or ShutdownSignal()
        self.signals = tuple(signals)
        self.state = ServerState.CREATED
        self.address: str | None = None
        self.fatal_error: FatalServiceError | None = None
        self._listener: socket.socket | None = None
        self._installed_signals: list[signal.Signals] = []

    @property
    def bound_address(self) -> tuple[str, int] | None:
        if self._listener is None or self._listener.fileno() == -1:
            return None
        return self._listener.getsockname()[:2]

    def _transition(self, new_state: ServerState) -> None:
        ensure_transition(self.state, new_state)
        self.state = new_state

    def listen(self, address: str) -> socket.socket:
        self.address = address
        try:
            self._listener = listen(address)
        except ListenError as exc:
            self._transition(ServerState.STOPPED)
            logger.error("server.listen_failed address=%s reason=%s", address, exc.reason)
            raise
        return self._listener

    def run(self, address: str) -> NoReturn:
        """Bind ``address`` and serve until interrupted."""
        listener = self.listen(address)
        try:
            asyncio.run(self.serve(listener))
        except KeyboardInterrupt:
            listener.close()
            raise self._interrupted() from None
        raise AssertionError("serve() returned without raising")  # pragma: no cover

    async def serve(self, listener: socket.socket) -> NoReturn:
        self._listener = listener
        server = _Server(self._uvicorn_config())
        loop = asyncio.get_running_loop()

        self._install_signal_handlers(loop)
        watcher = asyncio.create_task(self._watch_shutdown(server), name="dou-shutdown-watcher")
        self._transition(ServerState.LISTENING)
        logger.info("server.listening address=%s", self.address or listener.getsockname())

        cause: BaseException | None = None
        try:
            await server.serve(sockets=[listener])
        except Exception as exc:
            cause = exc
        finally:
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher
            self._remove_signal_handlers(loop)
            listener.close()

        error = self._stop(cause)
        if cause is not None:
            raise error from cause
        raise error

    def _uvicorn_config(self) -> uvicorn.Config:
        options: dict[str, Any] = {}
        if self.service.max_header_bytes:
            options["http"] = "h11"
            options["h11_max_incomplete_event_size"] = self.service.max_header_bytes
        return uvicorn.Config(
            FatalErrorMiddleware(self.service, on_fatal=self._on_fatal),
            log_config=None,
            access_log=False,
            lifespan="off",
            timeout_graceful_shutdown=_SHUTDOWN_TASK_GRACE_SECONDS,
            **options,
        )

    async def _watch_shutdown(self, server: uvicorn.Server) -> None:
        reason = await self.shutdown.wait()
        self._transition(ServerState.SHUTTING_DOWN)
        logger.info("server.stopping address=%s reason=%s", self.address, reason)
        server.should_exit = True
        server.force_exit = True

    def _stop(self, cause: BaseException | None) -> FatalServiceError:
        logger.info("server.teardown address=%s", self.address)
        error: FatalServiceError
        if self.fatal_error is not None:
            error = self.fatal_error
        elif self.state is ServerState.SHUTTING_DOWN and cause is None:
            error = ServerClosedError(f"Server closed: {self.shutdown.reason}")
        else:
            error = ServeError(f"Error in Serve: {cause or 'serve loop exited without shutdown'}")

        self._transition(ServerState.STOPPED)
        if isinstance(error, ServerClosedError):
            logger.info("server.stopped address=%s error=%s", self.address, error)
        else:
            logger.error("server.failed address=%s error=%s", self.address, error)
        return error

    def _interrupted(self) -> ServerClosedError:
        # SIGINT arrived before serve() installed its own handler.
        self.shutdown.trigger("signal:SIGINT")
        if self.state is ServerState.LISTENING:
            self._transition(ServerState.SHUTTING_DOWN)
        logger.info("server.stopping address=%s reason=%s", self.address, self.shutdown.reason)
        logger.info("server.teardown address=%s", self.address)
        error = ServerClosedError(f"Server closed: {self.shutdown.reason}")
        if self.state is not ServerState.STOPPED:
            self._transition(ServerState.STOPPED)
        logger.info("server.stopped address=%s error=%s", self.address, error)
        return error

    def _on_fatal(self, exc: FatalServiceError) -> None:
        if self.fatal_error is None:
            self.fatal_error = exc
        self.shutdown.trigger("fatal")

    def _on_signal(self, signum: signal.Signals) -> None:
        name = signal.Signals(signum).name
        if not self.shutdown.trigger(f"signal:{name}"):
            logger.debug("server.signal_ignored signal=%s state=%s", name, self.state)

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for signum in self.signals:
            try:
                loop.add_signal_handler(signum, self._on_signal, signum)
            except (NotImplementedError, RuntimeError, ValueError) as exc:
                logger.warning("server.signal_unavailable signal=%s reason=%s", signum.name, exc)
                continue
            self._installed_signals.append(signum)

    def _remove_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        while self._installed_signals:
            loop.remove_signal_handler(self._installed_signals.pop())


__all__ = ["ServerRunner", "ShutdownSignal", "listen", "parse_address"]
