"""SMB2 file-server sink with a self-healing session.

The sink keeps one TCP connection, NTLM session and mounted share for its
whole lifetime. A monitor task checks the share every ``monitor_interval``
seconds; when the check fails it tears the session down and reconnects with
jittered exponential back-off. Uploads and the monitor take the same lock,
so a health check never interleaves with a file being written.

smbprotocol is blocking; every call into it runs in a worker thread.

Usage
-----
>>> sink = SmbSink(SmbShareConnector(SmbConfig.from_env()))
>>> await sink.start()
>>> await sink.upload("/reports", files)
>>> await sink.close()

"""

from __future__ import annotations

import asyncio
import contextlib
import pathlib
import random
import typing as typ
import uuid

from smbprotocol.connection import Connection
from smbprotocol.exceptions import SMBException
from smbprotocol.open import (
    CreateDisposition,
    CreateOptions,
    DirectoryAccessMask,
    FileAttributes,
    FilePipePrinterAccessMask,
    ImpersonationLevel,
    Open,
    ShareAccess,
)
from smbprotocol.session import Session
from smbprotocol.tree import TreeConnect

from cardcast.delivery.errors import SmbConnectionError, UploadError
from cardcast.logging import get_logger, log_debug, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from cardcast.delivery.config import SmbConfig
    from cardcast.models import FileSet, ImageSet

logger = get_logger(__name__)

# Failures smbprotocol surfaces while talking to the server.
SMB_FAILURES: tuple[type[Exception], ...] = (SMBException, OSError, ValueError)
_CONNECT_FAILURES: tuple[type[Exception], ...] = (SmbConnectionError, *SMB_FAILURES)

type Sleeper = cabc.Callable[[float], cabc.Awaitable[None]]


def remote_file_path(remote: str, name: str) -> str:
    r"""Join an upload directory and file name into a share-relative path.

    >>> remote_file_path("/reports/daily", "r.csv")
    'reports\\daily\\r.csv'

    """
    joined = pathlib.PurePosixPath("/", remote.replace("\\", "/"), name)
    return str(joined).lstrip("/").replace("/", "\\")


def reconnect_sleep(
    delay: float, rand: cabc.Callable[[], float] = random.random
) -> float:
    """Return a jittered wait in ``[delay / 2, delay]``."""
    half = delay / 2
    return half + rand() * half


@typ.runtime_checkable
class MountedShare(typ.Protocol):
    """A connected share that files can be written to."""

    def write_file(self, path: str, content: bytes) -> None:
        """Create or overwrite ``path`` with ``content``."""
        ...

    def stat_root(self) -> None:
        """Open and close the share root; raise if the session is gone."""
        ...

    def close(self) -> None:
        """Unmount, log off and close the transport, in that order."""
        ...


@typ.runtime_checkable
class ShareConnector(typ.Protocol):
    """Factory for mounted shares."""

    def connect(self) -> MountedShare:
        """Dial, authenticate and mount the configured share."""
        ...


class _SmbProtocolShare:
    """A share mounted through smbprotocol's low-level API."""

    def __init__(
        self, connection: Connection, session: Session, tree: TreeConnect
    ) -> None:
        self._connection = connection
        self._session = session
        self._tree = tree

    def write_file(self, path: str, content: bytes) -> None:
        handle = Open(self._tree, path)
        handle.create(
            ImpersonationLevel.Impersonation,
            FilePipePrinterAccessMask.GENERIC_WRITE,
            FileAttributes.FILE_ATTRIBUTE_NORMAL,
            ShareAccess.FILE_SHARE_READ,
            CreateDisposition.FILE_OVERWRITE_IF,
            CreateOptions.FILE_NON_DIRECTORY_FILE,
        )
        try:
            chunk = self._connection.max_write_size
            for offset in range(0, len(content), chunk):
                handle.write(content[offset : offset + chunk], offset)
        finally:
            handle.close()

    def stat_root(self) -> None:
        handle = Open(self._tree, "")
        handle.create(
            ImpersonationLevel.Impersonation,
            DirectoryAccessMask.FILE_READ_ATTRIBUTES,
            FileAttributes.FILE_ATTRIBUTE_DIRECTORY,
            ShareAccess.FILE_SHARE_READ | ShareAccess.FILE_SHARE_WRITE,
            CreateDisposition.FILE_OPEN,
            CreateOptions.FILE_DIRECTORY_FILE,
        )
        handle.close()

    def close(self) -> None:
        steps: tuple[tuple[str, cabc.Callable[[], object]], ...] = (
            ("unmount share", self._tree.disconnect),
            ("log off session", self._session.disconnect),
            ("close connection", lambda: self._connection.disconnect(close=True)),
        )
        for label, step in steps:
            try:
                step()
            except SMB_FAILURES as exc:
                log_error(logger, "SMB failed to %s: %s", label, exc)


class SmbShareConnector:
    """Connect to the share described by an ``SmbConfig``."""

    def __init__(self, config: SmbConfig, *, timeout: float = 30.0) -> None:
        """Store connection settings; nothing is dialled yet."""
        self._config = config
        self._timeout = timeout

    def _username(self) -> str:
        if self._config.domain:
            return f"{self._config.domain}\\{self._config.user}"
        return self._config.user

    def connect(self) -> MountedShare:
        """Dial, authenticate with NTLM and mount the share.

        Raises
        ------
        SmbConnectionError
            If any step fails; handles opened by earlier steps are released.

        """
        server = self._config.server
        connection = Connection(uuid.uuid4(), server, self._config.port)
        try:
            connection.connect(timeout=self._timeout)
        except SMB_FAILURES as exc:
            raise SmbConnectionError.connect_failed(server, f"dial: {exc}") from exc

        session = Session(
            connection,
            username=self._username(),
            password=self._config.password,
            require_encryption=False,
            auth_protocol="ntlm",
        )
        try:
            session.connect()
        except SMB_FAILURES as exc:
            connection.disconnect(close=True)
            raise SmbConnectionError.connect_failed(server, f"session: {exc}") from exc

        tree = TreeConnect(session, rf"\\{server}\{self._config.share}")
        try:
            tree.connect()
        except SMB_FAILURES as exc:
            session.disconnect()
            connection.disconnect(close=True)
            raise SmbConnectionError.connect_failed(server, f"mount: {exc}") from exc

        log_info(logger, "SMB connected to share %s on %s", self._config.share, server)
        return _SmbProtocolShare(connection, session, tree)


class SmbSink:
    """Upload artifacts over a long-lived SMB session.

    Parameters
    ----------
    connector
        Factory producing mounted shares.
    monitor_interval
        Seconds between share health checks.
    reconnect_initial_delay, reconnect_max_delay
        Bounds of the reconnect back-off; the delay doubles after every
        failed attempt.
    sleep, rand
        Injected for tests.

    """

    def __init__(
        self,
        connector: ShareConnector,
        *,
        monitor_interval: float = 300.0,
        reconnect_initial_delay: float = 1.0,
        reconnect_max_delay: float = 60.0,
        sleep: Sleeper = asyncio.sleep,
        rand: cabc.Callable[[], float] = random.random,
    ) -> None:
        """Create an unconnected sink."""
        self._connector = connector
        self._monitor_interval = monitor_interval
        self._initial_delay = reconnect_initial_delay
        self._max_delay = reconnect_max_delay
        self._sleep = sleep
        self._rand = rand
        self._lock = asyncio.Lock()
        self._share: MountedShare | None = None
        self._monitor: asyncio.Task[None] | None = None

    @property
    def connected(self) -> bool:
        """Return whether a share is currently mounted."""
        return self._share is not None

    async def start(self) -> None:
        """Connect once and start the health monitor.

        Raises
        ------
        SmbConnectionError
            If the initial connection fails.

        """
        async with self._lock:
            self._share = await asyncio.to_thread(self._connector.connect)
        self._monitor = asyncio.create_task(self._monitor_loop(), name="smb-monitor")

    async def upload(self, remote: str, *artifacts: FileSet | ImageSet) -> None:
        """Write every payload under ``remote``.

        Raises
        ------
        UploadError
            If any file failed; the remaining files were still attempted.
        SmbConnectionError
            If no share is mounted.

        """
        async with self._lock:
            share = self._share
            if share is None:
                raise SmbConnectionError.not_connected()
            errors: list[Exception] = []
            for artifact in artifacts:
                for item in artifact:
                    path = remote_file_path(remote, item.name)
                    try:
                        await asyncio.to_thread(share.write_file, path, item.content)
                    except SMB_FAILURES as exc:
                        log_error(logger, "SMB upload of %s failed: %s", path, exc)
                        errors.append(exc)
                    else:
                        log_debug(logger, "SMB uploaded %s", path)
        if errors:
            raise UploadError(errors)

    async def check(self) -> bool:
        """Probe the share root; return ``False`` if the session is unusable."""
        async with self._lock:
            if self._share is None:
                return False
            try:
                await asyncio.to_thread(self._share.stat_root)
            except SMB_FAILURES as exc:
                log_warning(logger, "SMB check failed, starting reconnect: %s", exc)
                return False
        return True

    async def reconnect(self) -> None:
        """Replace the session, retrying with jittered back-off until it works."""
        delay = self._initial_delay
        while True:
            async with self._lock:
                await self._teardown()
                try:
                    self._share = await asyncio.to_thread(self._connector.connect)
                except _CONNECT_FAILURES as exc:
                    log_warning(logger, "SMB reconnect attempt failed: %s", exc)
                else:
                    log_info(logger, "SMB reconnected")
                    return
            wait = reconnect_sleep(delay, self._rand)
            log_info(logger, "SMB waiting %.2fs before next reconnect", wait)
            await self._sleep(wait)
            delay = min(delay * 2, self._max_delay)

    async def _monitor_loop(self) -> None:
        log_info(logger, "SMB monitor started")
        while True:
            await self._sleep(self._monitor_interval)
            if not await self.check():
                await self.reconnect()

    async def _teardown(self) -> None:
        share, self._share = self._share, None
        if share is not None:
            await asyncio.to_thread(share.close)

    async def close(self) -> None:
        """Stop the monitor and release the session."""
        if self._monitor is not None:
            self._monitor.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._monitor
            self._monitor = None
        async with self._lock:
            await self._teardown()
        log_info(logger, "SMB connection closed")
