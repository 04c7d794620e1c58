"""A bounded pool of reusable TCP connections, and a pool per address."""

from __future__ import annotations

import socket
import threading
import time
from typing import Any, Callable

DialFunc = Callable[[str], socket.socket]
Probe = Callable[[socket.socket], bool]


class PoolError(Exception):
    """Base class for pool failures."""


class PoolClosedError(PoolError):
    def __init__(self) -> None:
        super().__init__("connection pool is closed")


class PoolExhaustedError(PoolError):
    def __init__(self) -> None:
        super().__init__("connection pool exhausted")


class ConnTimeoutError(PoolError):
    def __init__(self) -> None:
        super().__init__("connection timeout")


def _ping(sock: socket.socket) -> bool:
    """Send one ping byte and expect one byte back within 50 ms."""
    try:
        previous = sock.gettimeout()
    except OSError:
        return False
    try:
        sock.settimeout(0.05)
        sock.sendall(b"\x01")
        return len(sock.recv(1)) == 1
    except OSError:
        return False
    finally:
        try:
            sock.settimeout(previous)
        except OSError:
            pass


class PooledConnection:
    """A socket borrowed from a pool; closing it hands it back."""

    def __init__(self, sock: socket.socket, pool: ConnPool, created_at: float) -> None:
        self.sock = sock
        self.pool = pool
        self.created_at = created_at
        self.last_used = created_at
        self._released = False

    def recv(self, size: int) -> bytes:
        return self.sock.recv(size)

    def sendall(self, data: bytes) -> None:
        self.sock.sendall(data)

    def close(self) -> None:
        """Return the connection to its pool."""
        self.pool.put(self)

    def __enter__(self) -> PooledConnection:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class ConnPool:
    """Connections to one address, at most ``max_active`` at a time."""

    def __init__(self, addr: str, max_active: int, min_idle: int, max_idle: int,
                 idle_timeout: float, conn_ttl: float, max_wait: float,
                 dial_func: DialFunc, probe: Probe = _ping) -> None:
        self.addr = addr
        self.max_active = max_active
        self.min_idle = min_idle
        self.max_idle = max_idle
        self.idle_timeout = idle_timeout
        self.conn_ttl = conn_ttl
        self.max_wait = max_wait
        self.dial_func = dial_func
        self._probe = probe
        self._cond = threading.Condition(threading.Lock())
        self._idle: list[PooledConnection] = []
        self._active = 0
        self._closed = False
        self._hits = 0
        self._misses = 0
        self._timeouts = 0
        self._errors = 0
        self._stop = threading.Event()
        if idle_timeout > 0:
            threading.Thread(target=self._run_cleaner, daemon=True).start()

    def get(self) -> PooledConnection:
        """Borrow a connection, reusing an idle one or dialling a new one."""
        deadline = time.monotonic() + self.max_wait if self.max_wait > 0 else None
        with self._cond:
            while True:
                if self._closed:
                    raise PoolClosedError()
                if self._idle:
                    conn = self._idle.pop()
                    self._hits += 1
                    if not self._is_healthy(conn):
                        conn.sock.close()
                        self._active -= 1
                        continue
                    conn.last_used = time.monotonic()
                    conn._released = False
                    return conn
                if self._active < self.max_active:
                    self._active += 1
                    self._misses += 1
                    break
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._timeouts += 1
                    raise ConnTimeoutError()
                self._cond.wait(remaining)
        try:
            sock = self.dial_func(self.addr)
        except Exception:
            with self._cond:
                self._active -= 1
                self._errors += 1
                self._cond.notify()
            raise
        return PooledConnection(sock, self, time.monotonic())

    def put(self, conn: Any) -> None:
        """Hand a connection back; unhealthy or surplus ones are closed."""
        if not isinstance(conn, PooledConnection) or conn.pool is not self:
            if isinstance(conn, PooledConnection):
                conn.sock.close()
            else:
                conn.close()
            return
        if conn._released:
            return
        conn._released = True
        with self._cond:
            if self._closed:
                conn.sock.close()
                return
            if not self._is_healthy(conn) or len(self._idle) >= self.max_idle:
                conn.sock.close()
                self._active -= 1
                self._cond.notify()
                return
            conn.last_used = time.monotonic()
            self._idle.append(conn)
            self._cond.notify()

    def close(self) -> None:
        """Close idle connections and refuse further borrowing."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            for conn in self._idle:
                conn.sock.close()
            self._idle.clear()
            self._cond.notify_all()
        self._stop.set()

    def stats(self) -> dict[str, int]:
        """Counters describing the pool."""
        with self._cond:
            return {
                "active": self._active,
                "idle": len(self._idle),
                "hits": self._hits,
                "misses": self._misses,
                "timeouts": self._timeouts,
                "errors": self._errors,
            }

    def _is_healthy(self, conn: PooledConnection) -> bool:
        if time.monotonic() - conn.created_at > self.conn_ttl:
            return False
        try:
            return bool(self._probe(conn.sock))
        except OSError:
            return False

    def _clean_idle(self) -> None:
        with self._cond:
            now = time.monotonic()
            retained = []
            for conn in self._idle:
                if now - conn.created_at > self.idle_timeout:
                    conn.sock.close()
                    self._active -= 1
                else:
                    retained.append(conn)
            self._idle = retained
            self._cond.notify_all()

    def _run_cleaner(self) -> None:
        while not self._stop.wait(self.idle_timeout / 2):
            self._clean_idle()


def _dial(addr: str) -> socket.socket:
    host, _, port = addr.rpartition(":")
    sock = socket.create_connection((host.strip("[]") or "localhost", int(port)), timeout=2.0)
    sock.settimeout(None)
    return sock


class PoolManager:
    """Keeps one pool per address."""

    def __init__(self, dial_func: DialFunc | None = None) -> None:
        self._dial = dial_func or _dial
        self._lock = threading.Lock()
        self._pools: dict[str, ConnPool] = {}

    def get_pool(self, addr: str) -> ConnPool:
        """Return the pool for ``addr``, creating it on first use."""
        with self._lock:
            pool = self._pools.get(addr)
            if pool is None:
                pool = ConnPool(addr, 10, 2, 5, 60.0, 300.0, 0.0, self._dial)
                self._pools[addr] = pool
            return pool