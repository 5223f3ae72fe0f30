"""
Autosave Controller - Debounced, Single-Flight Draft Persistence

Observes a draft, schedules persistence after a quiet period, and never lets
the result of an older save attempt overwrite the result of a newer one.

Guarantees:
1. Debounce - rapid schedule() calls coalesce into one save of the last data
2. Single-flight - a new attempt waits for the in-flight attempt to settle
3. Revision stamping - status effects apply only for the latest attempt

Last write scheduled wins, never last write completed.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Final, Optional, Union

from core.wizard.sanitize import deep_strip
from core.wizard.storage import KeyValueStore


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_DEBOUNCE_MS: Final[int] = 2000

DEFAULT_STORAGE_KEY: Final[str] = "development-wizard-storage"

_UNSET: Final = object()

SaveCallback = Callable[[Any], Union[Awaitable[None], None]]


# =============================================================================
# Status Snapshot
# =============================================================================


@dataclass(frozen=True)
class AutoSaveStatus:
    """
    Ephemeral per-session save status.

    Owned by the editing session only. Never persisted.
    """

    last_saved: Optional[datetime] = None
    is_saving: bool = False
    error: Optional[BaseException] = None

    def to_dict(self) -> dict:
        """Convert status to dictionary."""
        return {
            "lastSaved": self.last_saved.isoformat() if self.last_saved else None,
            "isSaving": self.is_saving,
            "error": str(self.error) if self.error else None,
        }


# =============================================================================
# Controller
# =============================================================================


class AutoSaveController:
    """
    Debounced autosave with single-flight writes and stale-result protection.

    Usage:
        controller = AutoSaveController(on_save=api.save_draft, debounce_ms=2000)
        controller.schedule(draft_payload)   # on every change
        await controller.save_now()          # explicit "save draft"

    Must be driven from a running asyncio event loop.
    """

    def __init__(
        self,
        on_save: Optional[SaveCallback] = None,
        *,
        store: Optional[KeyValueStore] = None,
        storage_key: str = DEFAULT_STORAGE_KEY,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        enabled: bool = True,
        should_skip_save: Optional[Callable[[Any], bool]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
        prepare: Optional[Callable[[Any], Any]] = None,
    ):
        """
        Initialise the controller.

        Args:
            on_save: Save callback (coroutine function or plain function)
            store: Fallback key-value store used when on_save is absent
            storage_key: Key written in the fallback store
            debounce_ms: Quiet period before a scheduled save runs
            enabled: Kill-switch for scheduled saves (e.g. while hydrating)
            should_skip_save: Dirty-check predicate; True skips scheduling
            on_error: Called with the exception of the latest failed attempt
            prepare: Transform applied to data before it reaches the sink
        """
        if on_save is None and store is None:
            raise ValueError("AutoSaveController needs an on_save callback or a fallback store")
        if debounce_ms < 0:
            raise ValueError("debounce_ms cannot be negative")

        self._on_save = on_save
        self._store = store
        self._storage_key = storage_key
        self._debounce_ms = debounce_ms
        self._enabled = enabled
        self._should_skip_save = should_skip_save
        self._on_error = on_error
        self._prepare = prepare

        self._revision = 0
        self._status = AutoSaveStatus()
        self._timer: Optional[asyncio.Task] = None
        self._gate: Optional[asyncio.Future] = None
        self._latest: Any = _UNSET
        self._pending: Any = _UNSET

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def status(self) -> AutoSaveStatus:
        """Get current status snapshot."""
        return self._status

    @property
    def revision(self) -> int:
        """Get the revision of the most recent save attempt."""
        return self._revision

    @property
    def has_pending(self) -> bool:
        """Check if a debounced save is waiting to run."""
        return self._timer is not None and not self._timer.done()

    @property
    def debounce_ms(self) -> int:
        """Quiet period before a scheduled save fires, in milliseconds."""
        return self._debounce_ms

    @property
    def enabled(self) -> bool:
        """Whether schedule() arms the timer. Disabling cancels a pending save."""
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value
        if not value:
            self.cancel()

    # =========================================================================
    # Scheduling
    # =========================================================================

    def schedule(self, data: Any) -> bool:
        """
        Observe a change and (re)start the debounce timer.

        Args:
            data: Latest observed draft data

        Returns:
            True if a save was scheduled, False if skipped

        Raises:
            RuntimeError: If a save is due but no event loop is running
        """
        if not self._enabled or (self._should_skip_save is not None and self._should_skip_save(data)):
            self._latest = data
            return False

        loop = asyncio.get_running_loop()
        self._latest = data
        self._cancel_timer()
        self._pending = data
        self._timer = loop.create_task(self._run_debounced(data))
        return True

    async def _run_debounced(self, data: Any) -> None:
        await asyncio.sleep(self._debounce_ms / 1000)
        # Past this point the timer can no longer be cancelled
        self._timer = None
        self._pending = _UNSET
        try:
            await self.perform_save(data)
        except Exception:
            logger.warning("Scheduled autosave failed (revision %s)", self._revision, exc_info=True)

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    def cancel(self) -> None:
        """Drop any pending debounced save without saving."""
        self._cancel_timer()
        self._pending = _UNSET

    async def save_now(self, data: Any = _UNSET) -> Optional[AutoSaveStatus]:
        """
        Cancel the pending timer and save immediately.

        Runs even while scheduled saves are disabled.

        Args:
            data: Data to save. Defaults to the latest observed data.

        Returns:
            Status snapshot after the save, or None if nothing was observed

        Raises:
            Exception: Whatever the save sink raised
        """
        self._cancel_timer()
        self._pending = _UNSET
        if data is _UNSET:
            data = self._latest
        if data is _UNSET:
            logger.debug("save_now called before any data was observed")
            return None
        self._latest = data
        await self.perform_save(data)
        return self._status

    async def flush(self) -> Optional[AutoSaveStatus]:
        """Run a pending debounced save immediately, if there is one."""
        if not self.has_pending:
            return None
        return await self.save_now(self._pending)

    async def wait_idle(self) -> None:
        """Wait until no save is in flight."""
        while self._gate is not None:
            await asyncio.shield(self._gate)

    async def aclose(self) -> None:
        """Cancel pending work and wait for the in-flight save to settle."""
        self.cancel()
        await self.wait_idle()

    def clear_save_status(self) -> None:
        """Reset last_saved and error on the status snapshot."""
        self._status = replace(self._status, last_saved=None, error=None)

    # =========================================================================
    # Save Routine
    # =========================================================================

    def _is_current(self, revision: int) -> bool:
        return revision == self._revision

    async def perform_save(self, data: Any) -> None:
        """
        The single save routine.

        Stamps a revision, waits for any in-flight attempt, then writes.
        Status side effects apply only if this attempt is still the latest.

        Raises:
            Exception: Whatever the save sink raised
        """
        self._revision += 1
        revision = self._revision
        self._status = replace(self._status, is_saving=True, error=None)

        previous = self._gate
        gate = asyncio.get_running_loop().create_future()
        self._gate = gate

        try:
            if previous is not None:
                # Outcome of the previous attempt is irrelevant here
                await asyncio.shield(previous)
            payload = self._prepare(data) if self._prepare is not None else data
            await self._write(payload)
        except asyncio.CancelledError:
            if self._is_current(revision):
                self._status = replace(self._status, is_saving=False)
            raise
        except Exception as e:
            if self._is_current(revision):
                self._status = replace(self._status, is_saving=False, error=e)
                if self._on_error is not None:
                    self._on_error(e)
            else:
                logger.debug("Ignoring failure of superseded autosave revision %s", revision)
            raise
        else:
            if self._is_current(revision):
                self._status = AutoSaveStatus(
                    last_saved=datetime.now(timezone.utc),
                    is_saving=False,
                    error=None,
                )
            else:
                logger.debug("Ignoring completion of superseded autosave revision %s", revision)
        finally:
            if not gate.done():
                gate.set_result(None)
            if self._gate is gate:
                self._gate = None

    async def _write(self, payload: Any) -> None:
        if self._on_save is not None:
            result = self._on_save(payload)
            if inspect.isawaitable(result):
                await result
            return
        self._store.set(self._storage_key, json.dumps(deep_strip(payload)))
