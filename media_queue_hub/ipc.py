from __future__ import annotations

import itertools
import json
import logging
import os
import socket
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Optional, Sequence

from media_queue_hub.config import REQUEST_TIMEOUT_SEC, SEND_BACKOFF_SEC, SEND_RETRIES
from media_queue_hub.errors import PlayerIPCError

log = logging.getLogger(__name__)

WINDOWS_PIPE_PREFIX = "\\\\.\\pipe\\"

# shared by every client in the process so ids never repeat
_request_ids = itertools.count(1)


class ValueKind(str, Enum):
    NONE = "none"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    LIST = "list"
    MAP = "map"


@dataclass(frozen=True, slots=True)
class PropertyValue:
    """
    The "data" field of an mpv reply, tagged by JSON type. Callers pick the
    accessor matching the property they asked for; a mismatch yields the
    default instead of a surprise type.
    """

    kind: ValueKind
    value: Any = None

    @classmethod
    def from_json(cls, data: Any) -> "PropertyValue":
        if data is None:
            return cls(ValueKind.NONE)
        if isinstance(data, bool):
            return cls(ValueKind.BOOL, data)
        if isinstance(data, (int, float)):
            return cls(ValueKind.NUMBER, data)
        if isinstance(data, str):
            return cls(ValueKind.STRING, data)
        if isinstance(data, list):
            return cls(ValueKind.LIST, tuple(cls.from_json(v) for v in data))
        if isinstance(data, dict):
            return cls(ValueKind.MAP, {str(k): cls.from_json(v) for k, v in data.items()})
        raise PlayerIPCError(f"unexpected JSON value in mpv reply: {data!r}")

    def as_str(self, default: Optional[str] = None) -> Optional[str]:
        return self.value if self.kind is ValueKind.STRING else default

    def as_float(self, default: Optional[float] = None) -> Optional[float]:
        return float(self.value) if self.kind is ValueKind.NUMBER else default

    def as_bool(self, default: bool = False) -> bool:
        return self.value if self.kind is ValueKind.BOOL else default

    def as_list(self) -> tuple["PropertyValue", ...]:
        return self.value if self.kind is ValueKind.LIST else ()

    def as_map(self) -> dict[str, "PropertyValue"]:
        return self.value if self.kind is ValueKind.MAP else {}

    def get(self, key: str) -> "PropertyValue":
        return self.as_map().get(key, NONE)


NONE = PropertyValue(ValueKind.NONE)


def encode_message(command: Sequence[Any], request_id: Optional[int] = None) -> bytes:
    payload: dict[str, Any] = {"command": list(command)}
    if request_id is not None:
        payload["request_id"] = request_id
    return json.dumps(payload, separators=(",", ":")).encode("utf-8") + b"\n"


def is_windows_pipe_path(path: str) -> bool:
    return path.startswith(WINDOWS_PIPE_PREFIX)


class MpvIPC:
    """
    Line-delimited JSON over mpv's --input-ipc-server endpoint. Every call
    opens its own connection.
    """

    def __init__(
        self,
        path: str,
        *,
        is_windows_pipe: Optional[bool] = None,
        retries: int = SEND_RETRIES,
        backoff: float = SEND_BACKOFF_SEC,
        timeout: float = REQUEST_TIMEOUT_SEC,
    ) -> None:
        self.path = path
        self.is_windows_pipe = (
            is_windows_pipe_path(path) if is_windows_pipe is None else is_windows_pipe
        )
        self.retries = max(1, retries)
        self.backoff = backoff
        self.timeout = timeout

    def available(self) -> bool:
        if self.is_windows_pipe:
            try:
                with open(self.path, "r+b", buffering=0):
                    return True
            except OSError:
                return False
        return os.path.exists(self.path)

    @contextmanager
    def _connect(
        self, timeout: Optional[float]
    ) -> Iterator[tuple[Callable[[bytes], Any], Callable[[], bytes]]]:
        if self.is_windows_pipe:
            with open(self.path, "r+b", buffering=0) as pipe:
                yield pipe.write, pipe.readline
            return

        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.settimeout(timeout)
            sock.connect(self.path)
            reader = sock.makefile("rb")
            try:
                yield sock.sendall, reader.readline
            finally:
                reader.close()
        finally:
            sock.close()

    def send(self, command: Sequence[Any]) -> None:
        """Fire-and-forget: connect, write one line, hang up."""
        payload = encode_message(command)
        last_error: Optional[OSError] = None
        for attempt in range(self.retries):
            try:
                with self._connect(self.timeout) as (write, _readline):
                    write(payload)
                return
            except OSError as e:
                last_error = e
                log.debug("mpv send attempt %d/%d failed: %r", attempt + 1, self.retries, e)
                if attempt + 1 < self.retries:
                    time.sleep(self.backoff)
        raise PlayerIPCError(f"mpv unreachable at {self.path}: {last_error}")

    def request(
        self, command: Sequence[Any], timeout: Optional[float] = None
    ) -> PropertyValue:
        """
        Correlated request. mpv may push event lines on the same connection
        before our reply, so read until the request_id matches.
        """
        request_id = next(_request_ids)
        payload = encode_message(command, request_id)
        deadline = self.timeout if timeout is None else timeout
        try:
            with self._connect(deadline) as (write, readline):
                write(payload)
                while True:
                    line = readline()
                    if not line:
                        raise PlayerIPCError("mpv closed the connection before replying")
                    try:
                        msg = json.loads(line)
                    except ValueError:
                        log.debug("ignoring undecodable mpv line: %r", line)
                        continue
                    if not isinstance(msg, dict) or msg.get("request_id") != request_id:
                        continue
                    error = msg.get("error", "success")
                    if error != "success":
                        raise PlayerIPCError(str(error))
                    return PropertyValue.from_json(msg.get("data"))
        except OSError as e:
            raise PlayerIPCError(f"mpv request {command[0]!r} failed: {e}") from e
