from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from ports_core.models import PortRecord
from ports_core.modules.lsof import fetch_lsof_output
from ports_core.parser import parse_lsof
from ports_core.reconcile import changes, reconcile

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0

Subscriber = Callable[[tuple], None]


class PortMonitor:
    """
    Owns the published port list.

    Scans run on a worker pool; `publish` is the only writer of the list and
    runs under a lock, so publishes are applied one at a time in arrival
    order. Readers get an immutable tuple and may see it change between
    reads.
    """

    def __init__(
        self,
        refresh_interval: float = DEFAULT_INTERVAL,
        lsof_path: str = "lsof",
        fetch: Optional[Callable[[], Optional[str]]] = None,
        max_workers: int = 2,
    ):
        if refresh_interval <= 0:
            raise ValueError(f"refresh_interval must be positive, got {refresh_interval}")
        self.refresh_interval = refresh_interval
        self._fetch = fetch or (lambda: fetch_lsof_output(lsof_path))
        self._ports: tuple = ()
        self._loading = False
        self._version = 0
        self._publish_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._subscribers: list[Subscriber] = []
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ports-scan")
        self._timer: Optional[threading.Timer] = None
        self._periodic: Optional[Future] = None
        self._stopped = threading.Event()

    @property
    def ports(self) -> tuple:
        return self._ports

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def version(self) -> int:
        return self._version

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._state_lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._state_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def start_monitoring(self) -> Future:
        """Scan now, then every `refresh_interval` seconds until stop()."""
        first = self.refresh_ports(show_loading=True)
        self._schedule()
        return first

    def _schedule(self) -> None:
        with self._state_lock:
            if self._stopped.is_set():
                return
            self._timer = threading.Timer(self.refresh_interval, self._tick)
            self._timer.daemon = True
            self._timer.start()

    def _tick(self) -> None:
        if self._stopped.is_set():
            return
        pending = self._periodic
        if pending is None or pending.done():
            # periodic scans never flip the loading flag
            self._periodic = self.refresh_ports(show_loading=False)
        else:
            logger.debug("Previous periodic scan still running, skipping tick")
        self._schedule()

    def refresh_ports(self, show_loading: bool = True) -> Future:
        """Schedule one scan. The future resolves to True if it published."""
        if self._stopped.is_set():
            done: Future = Future()
            done.set_result(False)
            return done

        if show_loading:
            self._loading = True
        try:
            return self._executor.submit(self._scan, show_loading)
        except RuntimeError:
            # executor shut down between the check above and submit
            self._loading = False
            done = Future()
            done.set_result(False)
            return done

    def scan(self) -> Optional[list[PortRecord]]:
        """Blocking scan. None means the listing command gave no data."""
        output = self._fetch()
        if output is None:
            return None
        return parse_lsof(output)

    def _scan(self, show_loading: bool) -> bool:
        try:
            records = self.scan()
            if records is None:
                return False
            return self.publish(records)
        except Exception:
            logger.exception("Port scan failed, keeping previous list")
            return False
        finally:
            if show_loading:
                self._loading = False

    def publish(self, records) -> bool:
        with self._publish_lock:
            old = self._ports
            merged = reconcile(old, records)
            if merged is None:
                return False

            self._ports = tuple(merged)
            self._version += 1
            logger.debug(f"Published ports: {changes(old, merged)}", extra={"count": len(merged), "version": self._version})

            with self._state_lock:
                subscribers = list(self._subscribers)
            for callback in subscribers:
                try:
                    callback(self._ports)
                except Exception:
                    logger.exception("Port list subscriber failed")
            return True

    def stop(self) -> None:
        with self._state_lock:
            self._stopped.set()
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._executor.shutdown(wait=False)

    def __enter__(self) -> "PortMonitor":
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
