"""
Remote position source: TCP server accepting JSON from Android/iOS or other clients.

Protocol: one JSON object per line (newline-delimited).
- {"lat":float,"lon":float,"time":float|null}  (degrees, epoch seconds)
Lines without a valid lat/lon are ignored. A missing time means "now".
"""

import json
import logging
import socket
import threading
from typing import List, Optional

from locationteller.gps_reader import Fix
from locationteller.sources.base import FixListener, PositionSource

logger = logging.getLogger(__name__)


class RemoteSource(PositionSource):
    """
    Position source fed by a remote TCP client.

    Start the server with start(); each valid line becomes the latest fix
    and is passed to all registered listeners.
    """

    def __init__(self, host: str = "0.0.0.0", port: int = 2949) -> None:
        super().__init__()
        self._host = host
        self._port = port
        self._lock = threading.Lock()
        self._last_fix: Optional[Fix] = None
        self._listeners: List[FixListener] = []
        self._sock: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._shutdown = False

    def start(self) -> bool:
        """Bind and start the listener thread. Return True on success."""
        try:
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._sock.bind((self._host, self._port))
            self._sock.listen(1)
            self._sock.settimeout(1.0)
            self._thread = threading.Thread(target=self._accept_loop, daemon=True)
            self._thread.start()
            logger.info(
                "Remote source listening on %s:%s (Android/iOS clients)",
                self._host,
                self._port,
            )
            return True
        except OSError as e:
            logger.error("Remote source bind failed: %s", e)
            return False

    def stop(self) -> None:
        """Stop the listener, close the socket, and release pending waits."""
        self._shutdown = True
        self.cancel_pending()
        if self._sock:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None
        if self._thread:
            self._thread.join(timeout=2.0)
            self._thread = None

    def _accept_loop(self) -> None:
        while not self._shutdown and self._sock:
            try:
                client, addr = self._sock.accept()
                logger.info("Remote client connected from %s", addr)
                try:
                    client.settimeout(30.0)
                    with client.makefile(
                        mode="r", encoding="utf-8", errors="replace"
                    ) as f:
                        for line in f:
                            if self._shutdown:
                                break
                            line = line.strip()
                            if not line:
                                continue
                            self._parse_line(line)
                except OSError as e:
                    logger.debug("Remote client error: %s", e)
                finally:
                    try:
                        client.close()
                    except OSError:
                        pass
                    logger.info("Remote client disconnected")
            except socket.timeout:
                continue
            except OSError:
                if not self._shutdown:
                    logger.debug("Remote accept error")
                break

    def _parse_line(self, line: str) -> None:
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            return
        fix = Fix.from_dict(data)
        if fix is None:
            return
        with self._lock:
            self._last_fix = fix
            listeners = list(self._listeners)
        for listener in listeners:
            listener(fix)

    def request_updates(self, listener: FixListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_updates(self, listener: FixListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def get_fix(self) -> Optional[Fix]:
        """Latest fix received, or None."""
        with self._lock:
            return self._last_fix


def create_remote_source(host: str, port: int) -> Optional[RemoteSource]:
    """Create and start the remote source. Returns None on bind failure."""
    source = RemoteSource(host=host, port=port)
    if source.start():
        return source
    return None
