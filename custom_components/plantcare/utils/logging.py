"""Log throttling helpers."""

from __future__ import annotations

import time

_LAST: dict[str, float] = {}
_MAX_CODES = 256


def warn_once(logger, code: str, message: str, window: int = 300) -> None:
    """Log a warning at most once per ``window`` seconds for ``code``.

    A store that stays unreachable fails every call; this keeps one line per
    outage window in the log instead of one per plant action.
    """
    now = time.monotonic()
    last = _LAST.get(code)
    if last is None or now - last > window:
        if len(_LAST) >= _MAX_CODES:
            oldest = min(_LAST, key=_LAST.get)
            _LAST.pop(oldest, None)
        _LAST[code] = now
        logger.warning("%s: %s", code, message)
    else:
        logger.debug("%s: %s", code, message)


def clear_warning(code: str) -> None:
    """Forget ``code`` so the next failure is reported immediately."""

    _LAST.pop(code, None)
