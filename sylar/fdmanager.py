"""Bookkeeping for file descriptors used by cooperative I/O.

Each tracked descriptor records whether it is a socket, whether it was put
into non-blocking mode by the framework or by the user, and its receive and
send timeouts in milliseconds (None meaning no timeout).
"""

from __future__ import annotations

import enum
import os
import socket
import stat
import threading
from typing import List, Optional


class TimeoutKind(enum.IntEnum):
    """Which timeout of a descriptor is meant."""

    RECV = getattr(socket, "SO_RCVTIMEO", 20)
    SEND = getattr(socket, "SO_SNDTIMEO", 21)


class FdCtx:
    """State of one file descriptor."""

    def __init__(self, fd: int) -> None:
        self.fd = fd
        self.is_init = False
        self.is_socket = False
        self.sys_nonblock = False
        self.user_nonblock = False
        self.is_closed = False
        self.recv_timeout: Optional[int] = None
        self.send_timeout: Optional[int] = None
        self.init()

    def init(self) -> bool:
        """Inspect the descriptor; make sockets non-blocking. Return whether it is valid."""
        if self.is_init:
            return True
        self.recv_timeout = None
        self.send_timeout = None
        try:
            mode = os.fstat(self.fd).st_mode
        except OSError:
            self.is_init = False
            self.is_socket = False
        else:
            self.is_init = True
            self.is_socket = stat.S_ISSOCK(mode)

        if self.is_socket:
            try:
                if os.get_blocking(self.fd):
                    os.set_blocking(self.fd, False)
            except OSError:
                pass
            self.sys_nonblock = True
        else:
            self.sys_nonblock = False

        self.user_nonblock = False
        self.is_closed = False
        return self.is_init

    def set_timeout(self, kind: TimeoutKind, value: Optional[int]) -> None:
        """Set a timeout in milliseconds; None removes it."""
        if kind == TimeoutKind.RECV:
            self.recv_timeout = value
        else:
            self.send_timeout = value

    def get_timeout(self, kind: TimeoutKind) -> Optional[int]:
        if kind == TimeoutKind.RECV:
            return self.recv_timeout
        return self.send_timeout

    def __repr__(self) -> str:
        return f"FdCtx(fd={self.fd}, socket={self.is_socket}, init={self.is_init})"


class FdManager:
    """Thread-safe table of :class:`FdCtx` indexed by descriptor number."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._datas: List[Optional[FdCtx]] = [None] * 64

    def get(self, fd: int, auto_create: bool = False) -> Optional[FdCtx]:
        """The context of ``fd``; created on demand when ``auto_create`` is set."""
        if fd < 0:
            raise ValueError(f"invalid file descriptor: {fd}")
        with self._lock:
            if fd >= len(self._datas):
                if not auto_create:
                    return None
                new_size = max(int(len(self._datas) * 1.5), fd + 1)
                self._datas.extend([None] * (new_size - len(self._datas)))
            else:
                existing = self._datas[fd]
                if existing is not None or not auto_create:
                    return existing
            ctx = FdCtx(fd)
            self._datas[fd] = ctx
            return ctx

    def delete(self, fd: int) -> None:
        """Forget the context of ``fd``."""
        if fd < 0:
            raise ValueError(f"invalid file descriptor: {fd}")
        with self._lock:
            if fd < len(self._datas):
                self._datas[fd] = None