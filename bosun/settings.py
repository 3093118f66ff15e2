"""
Process-wide coercion settings.

- delimiter: separator used to split sequence-valued tokens (default ",").
- timeformat: strptime format for datetime tokens; Unset means RFC 3339
  (e.g. "2021-01-02T15:04:05Z"; the offset is required).

Settings are read when a token is coerced, not when a codec is resolved, so a
change applies to every registered flag immediately. Use override() to scope a
change (tests, one-off runs):

    from bosun.settings import settings

    with settings.override(delimiter=";"):
        coerce("a;b", list[str])
"""
from contextlib import contextmanager

from .utils import Unset, UnsetType


class Settings:
    __slots__ = ("_delimiter", "_timeformat")

    def __init__(self, delimiter=",", timeformat=Unset):
        self.delimiter = delimiter
        self.timeformat = timeformat

    @property
    def delimiter(self):
        return self._delimiter

    @delimiter.setter
    def delimiter(self, value):
        if not isinstance(value, str):
            raise TypeError("settings 'delimiter' must be a string")
        elif not value:
            raise ValueError("settings 'delimiter' cannot be empty")
        self._delimiter = value

    @property
    def timeformat(self):
        return self._timeformat

    @timeformat.setter
    def timeformat(self, value):
        if not isinstance(value, str | UnsetType):
            raise TypeError("settings 'timeformat' must be a string")
        elif isinstance(value, str) and not value.strip():
            raise ValueError("settings 'timeformat' cannot be empty")
        self._timeformat = value

    @contextmanager
    def override(self, **changes):
        """
        Temporarily replace one or more settings, restoring them on exit.

        Unknown names raise AttributeError before anything is changed.
        """
        for name in changes:
            if name not in ("delimiter", "timeformat"):
                raise AttributeError(f"settings has no attribute {name!r}")
        previous = {name: getattr(self, name) for name in changes}
        try:
            for name, value in changes.items():
                setattr(self, name, value)
            yield self
        finally:
            for name, value in previous.items():
                setattr(self, name, value)

    def __repr__(self):
        return f"settings(delimiter={self.delimiter!r}, timeformat={self.timeformat!r})"


settings = Settings()


__all__ = (
    "Settings",
    "settings",
)
