"""Single-flight page render scheduling.

Only one page render may be outstanding.  Requests that arrive while a render
is running are not queued: they overwrite a single *pending* slot, so a burst
of navigation collapses into one trailing render of the last page asked for.
"""
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Protocol, Union

from pagecrop import data_store


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Rendering:
    page: int
    pending: Optional[int] = None


SchedulerState = Union[Idle, Rendering]

IDLE = Idle()


class RenderTarget(Protocol):
    """What the scheduler drives.  All methods run on the GUI thread."""

    def build_render_job(self, page: int) -> Callable[[], Any]:
        """Prepare rendering *page*; return the (possibly slow) job to run."""
        ...

    def apply_render(self, page: int, result: Any) -> None:
        ...

    def render_failed(self, page: int, error: BaseException) -> None:
        ...

    def render_settled(self, page: int) -> None:
        """Called after every render, successful or not."""
        ...


class PageRenderScheduler:
    def __init__(self, target: RenderTarget, runner):
        self._target = target
        self._runner = runner
        self._state: SchedulerState = IDLE
        self._generation = 0

    # ── State ─────────────────────────────────────────────────────────────────

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def rendering(self) -> bool:
        return isinstance(self._state, Rendering)

    @property
    def pending_page(self) -> Optional[int]:
        if isinstance(self._state, Rendering):
            return self._state.pending
        return None

    # ── Requests ──────────────────────────────────────────────────────────────

    def request(self, page: int) -> None:
        """Render *page* now, or remember it as the next page if busy."""
        state = self._state
        if isinstance(state, Rendering):
            if state.pending is not None and state.pending != page:
                data_store.dbg(f"Pending page {state.pending} superseded by {page}")
            self._state = replace(state, pending=page)
            return
        self._begin(page)

    def reset(self) -> None:
        """Forget all state; results of jobs already running are ignored."""
        self._generation += 1
        self._state = IDLE

    # ── Internals ─────────────────────────────────────────────────────────────

    def _begin(self, page: int) -> None:
        self._state = Rendering(page)
        generation = self._generation
        try:
            job = self._target.build_render_job(page)
        except Exception as exc:
            self._complete(generation, page, None, exc)
            return
        self._runner.submit(
            job,
            lambda result: self._complete(generation, page, result, None),
            lambda exc: self._complete(generation, page, None, exc),
        )

    def _complete(self, generation: int, page: int, result: Any,
                  error: Optional[BaseException]) -> None:
        if generation != self._generation:
            data_store.dbg(f"Dropping stale render of page {page}")
            return
        try:
            if error is None:
                try:
                    self._target.apply_render(page, result)
                except Exception as exc:
                    error = exc
            if error is not None:
                self._target.render_failed(page, error)
        finally:
            state = self._state
            pending = state.pending if isinstance(state, Rendering) else None
            self._state = IDLE
            self._target.render_settled(page)
            if pending is not None:
                data_store.dbg(f"Rendering pending page {pending}")
                self.request(pending)
