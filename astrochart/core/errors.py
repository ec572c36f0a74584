# astrochart/core/errors.py
"""
Error taxonomy shared by the core and the HTTP layer.

Every failure carries a stable ``kind`` string; the API maps kinds to status
codes and serializes ``to_dict()`` into the JSON body.

    AstroError
     ├── InputError          (InvalidDate / InvalidInput)       also a ValueError
     ├── RangeError          (EphemerisUnavailable)
     └── UnknownEntityError  (UnknownBody / UnknownHouseSystem / UnknownAspect / UnknownLocation)

ConvergenceWarning is a RuntimeWarning emitted through ``warnings.warn``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

__all__ = [
    "AstroError",
    "InputError",
    "RangeError",
    "UnknownEntityError",
    "ConvergenceWarning",
]


class AstroError(Exception):
    """Categorized error with structured context."""

    kind: str = "AstroError"

    def __init__(self, message: str, *, kind: Optional[str] = None, **context: Any):
        super().__init__(message)
        if kind:
            self.kind = kind
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"error": self.kind, "message": self.message}
        out.update(self.context)
        return out


class InputError(AstroError, ValueError):
    """Non-finite or out-of-domain numeric input."""

    kind = "InvalidInput"


class RangeError(AstroError):
    """Requested JD lies outside the loaded ephemeris coverage (or no data at all)."""

    kind = "EphemerisUnavailable"

    def __init__(
        self,
        message: str,
        *,
        body: Optional[str] = None,
        jd: Optional[float] = None,
        min_jd: Optional[float] = None,
        max_jd: Optional[float] = None,
        min_date: Optional[str] = None,
        max_date: Optional[str] = None,
    ):
        super().__init__(
            message,
            body=body,
            jd=jd,
            min_jd=min_jd,
            max_jd=max_jd,
            min_date=min_date,
            max_date=max_date,
        )
        self.body = body
        self.jd = jd
        self.min_jd = min_jd
        self.max_jd = max_jd
        self.min_date = min_date
        self.max_date = max_date


_NOUNS = {
    "UnknownBody": "body",
    "UnknownHouseSystem": "house system",
    "UnknownAspect": "aspect",
    "UnknownLocation": "location",
}


class UnknownEntityError(AstroError):
    """Unrecognized body, house system or aspect name."""

    kind = "UnknownEntity"

    def __init__(self, kind: str, name: Any, suggestions: Sequence[str] = (), supported: Sequence[str] = ()):
        msg = f"unknown {_NOUNS.get(kind, 'entity')} {name!r}"
        if suggestions:
            msg += f"; did you mean: {', '.join(suggestions)}?"
        super().__init__(msg, kind=kind, name=str(name), suggestions=list(suggestions), supported=list(supported))
        self.name = str(name)
        self.suggestions: List[str] = list(suggestions)


class ConvergenceWarning(RuntimeWarning):
    """Kepler solver stopped at its iteration cap; the estimate is under-converged."""
