"""Process-wide registry of pending session timers.

At most one timer is live per session: arming a new one cancels the
previous handle first. Handles run on a background worker supplied by the
caller (Socket.IO's ``start_background_task`` in the app, a virtual clock in
tests) and call back exactly once unless cancelled.
"""

import logging
import threading
from itertools import count
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

_handle_ids = count(1)


class TimerHandle:
    """A cancellable deferred call bound to one session."""

    def __init__(self, session_id: int, delay: float, callback: Callable[['TimerHandle'], None],
                 heartbeat: float = 0):
        self.id = next(_handle_ids)
        self.session_id = session_id
        self.delay = delay
        self.heartbeat = heartbeat
        self._callback = callback
        self._cancelled = threading.Event()
        self._fired = False
        self._fire_lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def fired(self) -> bool:
        return self._fired

    def cancel(self) -> None:
        self._cancelled.set()

    def run(self) -> None:
        """Worker body: wait out the delay, then fire unless cancelled."""
        if self.heartbeat and self.heartbeat > 0:
            waited = 0.0
            while waited < self.delay:
                step = min(self.heartbeat, self.delay - waited)
                if self._cancelled.wait(step):
                    return
                waited += step
                logger.info(
                    f"[timer-heartbeat] session={self.session_id} handle={self.id} "
                    f"remaining={max(0, self.delay - waited)}s"
                )
        elif self._cancelled.wait(self.delay):
            return
        self.fire()

    def fire(self) -> bool:
        """Invoke the callback once. Returns False if cancelled or already fired."""
        with self._fire_lock:
            if self._cancelled.is_set() or self._fired:
                return False
            self._fired = True
        logger.info(f"[timer-fire] session={self.session_id} handle={self.id}")
        try:
            self._callback(self)
        except Exception:
            logger.exception(f"[timer-error] session={self.session_id} handle={self.id}")
        return True

    def __repr__(self):
        return f"<TimerHandle {self.id} session={self.session_id} delay={self.delay}>"


def spawn_thread(handle: TimerHandle) -> None:
    threading.Thread(target=handle.run, name=f"session-timer-{handle.session_id}", daemon=True).start()


class TimerRegistry:
    """Maps session id to its single pending :class:`TimerHandle`."""

    def __init__(self, spawn: Optional[Callable[[TimerHandle], None]] = None, heartbeat: float = 0):
        self._spawn = spawn or spawn_thread
        self._heartbeat = heartbeat
        self._handles: Dict[int, TimerHandle] = {}
        self._lock = threading.Lock()

    def arm(self, session_id: int, delay: float, callback: Callable[[TimerHandle], None]) -> TimerHandle:
        handle = TimerHandle(session_id, delay, callback, heartbeat=self._heartbeat)
        with self._lock:
            previous = self._handles.get(session_id)
            if previous is not None:
                previous.cancel()
            self._handles[session_id] = handle
        logger.info(f"[timer-set] session={session_id} handle={handle.id} delay={delay}s")
        self._spawn(handle)
        return handle

    def cancel(self, session_id: int) -> bool:
        with self._lock:
            handle = self._handles.pop(session_id, None)
        if handle is None:
            return False
        handle.cancel()
        logger.info(f"[timer-cancel] session={session_id} handle={handle.id}")
        return True

    def cancel_all(self) -> int:
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.cancel()
        if handles:
            logger.info(f"[timer-cancel-all] cancelled={len(handles)}")
        return len(handles)

    def is_current(self, handle: TimerHandle) -> bool:
        with self._lock:
            return self._handles.get(handle.session_id) is handle

    def discard(self, handle: TimerHandle) -> None:
        """Forget a handle that has fired, if it is still the registered one."""
        with self._lock:
            if self._handles.get(handle.session_id) is handle:
                del self._handles[handle.session_id]

    def get(self, session_id: int) -> Optional[TimerHandle]:
        with self._lock:
            return self._handles.get(session_id)

    def __len__(self):
        with self._lock:
            return len(self._handles)

    def __contains__(self, session_id):
        with self._lock:
            return session_id in self._handles
