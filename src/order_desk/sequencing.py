from __future__ import annotations


class RequestSequencer:
    """
    Mint strictly increasing tokens and answer whether one is still the latest.

    A response may be committed only while its token is current; anything
    older was superseded by a later request and is dropped by the caller.
    """

    def __init__(self) -> None:
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    def begin(self) -> int:
        self._current += 1
        return self._current

    def is_current(self, token: int) -> bool:
        return token == self._current
