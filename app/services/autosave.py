# backend/app/services/autosave.py

import asyncio
import inspect
import logging
from typing import Callable, Optional, Set

from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.errors import PersistenceError
from app.schemas.form import Form

logger = logging.getLogger(__name__)


class AutoSaver:
    """
    Debounced persistence writes for the form builder.

    Each schedule() replaces the pending snapshot and restarts the quiet
    period. A write that has already started is never cancelled; a later
    edit only cancels the timer of a write that has not started yet.
    """

    def __init__(
        self,
        save: Callable,
        delay: Optional[float] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        on_saved: Optional[Callable[[Form], None]] = None,
    ):
        self._save = save
        self.delay = settings.AUTOSAVE_DEBOUNCE_SECONDS if delay is None else delay
        self._on_error = on_error
        self._on_saved = on_saved
        self._pending: Optional[Form] = None
        self._timer: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()
        self.saving = False

    @property
    def pending(self) -> Optional[Form]:
        return self._pending

    def schedule(self, form: Form) -> None:
        self._pending = form
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._wait_then_write())

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending = None

    async def flush(self) -> None:
        """Write the pending snapshot now and wait for every in-flight write."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        await self._write()
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _wait_then_write(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        task = asyncio.current_task()
        self._in_flight.add(task)
        try:
            await self._write()
        finally:
            self._in_flight.discard(task)

    async def _write(self) -> None:
        form = self._pending
        if form is None:
            return
        self._pending = None
        self.saving = True
        try:
            if inspect.iscoroutinefunction(self._save):
                await self._save(form)
            else:
                await run_in_threadpool(self._save, form)
            logger.info(f"Autosaved form {form.id}")
            if self._on_saved:
                self._on_saved(form)
        except Exception as e:
            # The builder keeps its in-memory form; the next edit retries
            logger.error(f"Autosave failed for form {form.id}: {e}", exc_info=True)
            if self._on_error:
                error = e if isinstance(e, PersistenceError) else PersistenceError(str(e) or None)
                self._on_error(error)
        finally:
            self.saving = False
