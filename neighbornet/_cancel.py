"""
_cancel.py
==========
Cooperative cancellation for long-running ordering computations.

The engine and the expander call a ``Checkpoint`` at fixed points.  A
checkpoint wraps the caller's cancel hook, which may be:

- None: never cancel.
- A zero-argument callable: a truthy return value requests cancellation.
  The callable may also raise ``CanceledError`` itself.
- Any object with an ``is_set()`` method (e.g. ``threading.Event``).

Cancellation always surfaces as ``CanceledError``; no partial ordering is
ever returned.
"""

from typing import Any, Callable, Optional


class CanceledError(Exception):
    """Raised when a computation is canceled through its cancel hook."""

    def __init__(self, message: str = "computation canceled", checks: int = 0):
        super().__init__(message)
        self.checks = checks


class Checkpoint:
    """
    Callable wrapper around a cancel hook.

    Attributes
    ----------
    checks : int   Number of times the checkpoint has been passed.
    stage  : str   Label of the current phase, reported in CanceledError.
    """

    def __init__(self, cancel: Optional[Any] = None) -> None:
        self._poll = self._resolve(cancel)
        self.checks = 0
        self.stage = ""

    @staticmethod
    def _resolve(cancel) -> Optional[Callable[[], Any]]:
        if cancel is None:
            return None
        if isinstance(cancel, Checkpoint):
            return cancel._poll
        is_set = getattr(cancel, "is_set", None)
        if callable(is_set):
            return is_set
        if callable(cancel):
            return cancel
        raise TypeError(
            "cancel must be None, a callable, or an object with is_set(), "
            f"got {type(cancel).__name__}"
        )

    @property
    def cancellable(self) -> bool:
        return self._poll is not None

    def __call__(self) -> None:
        self.checks += 1
        if self._poll is not None and self._poll():
            where = f" during {self.stage}" if self.stage else ""
            raise CanceledError(
                f"computation canceled{where} after {self.checks} check(s)",
                checks=self.checks,
            )
