"""Failure taxonomy of the GTP interpreter.

Malformed input is reported by raising :class:`GTPSyntaxError` from the codecs
and argument parsers.  Everything that reaches the dispatch loop is a plain
value instead:

``Success``      - positive reply, optionally asking the loop to stop.
``Recoverable``  - negative reply; the session carries on.
``Fatal``        - no reply; the session ends and the connection must be
                   discarded because controller and engine may disagree.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


class GTPSyntaxError(Exception):
    """Raised when a command line or one of its arguments is malformed.

    The message is sent verbatim to the controller.
    """


@dataclass(frozen=True)
class Success:
    """Successful command result."""

    message: str = ""
    stop: bool = False


@dataclass(frozen=True)
class Recoverable:
    """Failed command result that keeps the session alive."""

    message: str

    def __post_init__(self) -> None:
        if not self.message:
            raise ValueError("Failure responses need a message")


@dataclass(frozen=True)
class Fatal:
    """Unrecoverable fault; nothing more is written to the controller."""

    cause: BaseException


Result = Union[Success, Recoverable, Fatal]


__all__ = ["GTPSyntaxError", "Success", "Recoverable", "Fatal", "Result"]
