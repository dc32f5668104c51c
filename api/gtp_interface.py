"""GTP (Go Text Protocol, version 2) interpreter and TCP server.

A :class:`GTPSession` reads one command per line from a text stream, runs it
against a :class:`core.engine.GoEngine` and writes one response frame per
command.  Requests look like::

    [id] command_name [arguments...] [# comment]

and responses like::

    =[id] [message]\\n\\n     (success)
    ?[id] [message]\\n\\n     (failure)

Malformed requests, unknown commands and requests the engine rejects are
answered with a failure frame and the session continues.  Any other fault
(an engine exception, a broken output stream) ends the session without a
further response; the caller must then drop the connection since controller
and engine may no longer agree on the game state.

:class:`GTPServer` exposes sessions over TCP on ``localhost:6617``, one
controller at a time, with a fresh engine for every connection.
"""

from __future__ import annotations

import logging
import math
import re
import socket
import threading
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, NamedTuple, Optional, TextIO, Tuple

from core.engine import GoEngine, SimpleEngine
from core.errors import Fatal, GTPSyntaxError, Recoverable, Result, Success
from core.move import MAX_BOARD_SIZE, MIN_BOARD_SIZE, Move
from core.player import Player

logger = logging.getLogger(__name__)

HOST = "localhost"
PORT = 6617

PROTOCOL_VERSION = "2"

# Failure messages defined by the GTP specification.
ILLEGAL_MOVE = "illegal move"
UNACCEPTABLE_SIZE = "unacceptable size"
UNKNOWN_COMMAND = "unknown command"

_CONTROL_CHARS = re.compile(r"[\x00-\x09\x0b-\x1f\x7f]")
_ID_TOKEN = re.compile(r"[0-9]+")
_INT_TOKEN = re.compile(r"[+-]?[0-9]+")
_FLOAT_TOKEN = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

Handler = Callable[[List[str]], Result]


class Command(NamedTuple):
    """A registered GTP command."""

    name: str
    min_args: int
    handler: Handler


class ParsedLine(NamedTuple):
    """A request split into its grammatical parts.

    ``name`` is ``None`` when the line carries an id but no command.
    """

    ident: Optional[int]
    name: Optional[str]
    args: List[str]


# ----------------------------------------------------------------------
# Line handling
# ----------------------------------------------------------------------
def clean_line(raw: str) -> str:
    """Remove control characters and the line terminator from ``raw``.

    Horizontal tabs are turned into spaces first so that they still separate
    tokens.
    """
    text = _CONTROL_CHARS.sub("", raw.replace("\t", " "))
    return text.rstrip("\n")


def parse_line(line: str) -> Optional[ParsedLine]:
    """Split a cleaned line into id, command name and arguments.

    Returns ``None`` for lines that are empty once the comment is removed.
    """
    text = line.split("#", 1)[0].strip()
    if not text:
        return None
    tokens = text.split()
    ident: Optional[int] = None
    if _ID_TOKEN.fullmatch(tokens[0]):
        ident = int(tokens.pop(0))
    if not tokens:
        return ParsedLine(ident, None, [])
    return ParsedLine(ident, tokens[0], tokens[1:])


def format_response(success: bool, ident: Optional[int], message: str) -> str:
    """Return a complete GTP response frame, blank line terminator included."""
    parts = ["=" if success else "?"]
    if ident is not None:
        parts.append(str(ident))
    if message:
        parts.append(" " + message)
    parts.append("\n\n")
    return "".join(parts)


def _parse_int(token: str) -> int:
    if not _INT_TOKEN.fullmatch(token):
        raise GTPSyntaxError(f"Not an integer: {token}!")
    return int(token)


def _parse_float(token: str) -> float:
    """Parse a plain decimal literal; infinities, NaN and overflow are rejected."""
    if not _FLOAT_TOKEN.fullmatch(token) or not math.isfinite(float(token)):
        raise GTPSyntaxError(f"Not a float: {token}!")
    return float(token)


class GTPSession:
    """Interpreter serving one controller with one engine.

    The command table is fixed at construction.  ``final_score`` is only
    offered when ``engine.can_score()`` reports scoring support, and that
    answer is not asked for again.
    """

    def __init__(self, engine: GoEngine) -> None:
        """Create a session answering requests with ``engine``."""
        self.engine = engine
        self.commands: Mapping[str, Command] = MappingProxyType(self._build_commands())

    def _build_commands(self) -> Dict[str, Command]:
        table = [
            Command("protocol_version", 0, self.handle_protocol_version),
            Command("name", 0, self.handle_name),
            Command("version", 0, self.handle_version),
            Command("known_command", 1, self.handle_known_command),
            Command("list_commands", 0, self.handle_list_commands),
            Command("quit", 0, self.handle_quit),
            Command("boardsize", 1, self.handle_boardsize),
            Command("clear_board", 0, self.handle_clear_board),
            Command("komi", 1, self.handle_komi),
            Command("play", 2, self.handle_play),
            Command("genmove", 1, self.handle_genmove),
        ]
        if self.engine.can_score():
            table.append(Command("final_score", 0, self.handle_final_score))
        return {cmd.name: cmd for cmd in table}

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------
    def handle_protocol_version(self, args: List[str]) -> Result:
        return Success(PROTOCOL_VERSION)

    def handle_name(self, args: List[str]) -> Result:
        return Success(self.engine.get_name())

    def handle_version(self, args: List[str]) -> Result:
        return Success(self.engine.get_version())

    def handle_known_command(self, args: List[str]) -> Result:
        return Success("true" if args[0] in self.commands else "false")

    def handle_list_commands(self, args: List[str]) -> Result:
        return Success("\n".join(self.commands))

    def handle_quit(self, args: List[str]) -> Result:
        """Acknowledge and end the session."""
        return Success(stop=True)

    def handle_boardsize(self, args: List[str]) -> Result:
        """Resize the board; sizes outside 2..25 never reach the engine."""
        size = _parse_int(args[0])
        if MIN_BOARD_SIZE <= size <= MAX_BOARD_SIZE and self.engine.resize_board(size):
            return Success()
        return Recoverable(UNACCEPTABLE_SIZE)

    def handle_clear_board(self, args: List[str]) -> Result:
        self.engine.new_game()
        return Success()

    def handle_komi(self, args: List[str]) -> Result:
        self.engine.set_komi(_parse_float(args[0]))
        return Success()

    def handle_play(self, args: List[str]) -> Result:
        """Forward a move to the engine, which may veto it."""
        player = Player.from_string(args[0])
        move = Move.from_string(args[1])
        if self.engine.add_move(move, player):
            return Success()
        return Recoverable(ILLEGAL_MOVE)

    def handle_genmove(self, args: List[str]) -> Result:
        player = Player.from_string(args[0])
        return Success(str(self.engine.next_move(player)))

    def handle_final_score(self, args: List[str]) -> Result:
        score = self.engine.get_score()
        if score is None:
            return Fatal(RuntimeError("get_score() returned None"))
        return Success(str(score))

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def dispatch(self, raw: str) -> Tuple[Optional[int], Optional[Result]]:
        """Run the command in ``raw`` and classify the outcome.

        Returns the correlation id together with the result, or ``None`` as
        result when the line holds no request at all.
        """
        line = clean_line(raw)
        logger.debug("Remote sent: %s", line)
        parsed = parse_line(line)
        if parsed is None:
            return None, None

        command = self.commands.get(parsed.name) if parsed.name else None
        if command is None:
            return parsed.ident, Recoverable(UNKNOWN_COMMAND)

        try:
            if len(parsed.args) < command.min_args:
                raise GTPSyntaxError("Invalid number of arguments!")
            result = command.handler(parsed.args)
        except GTPSyntaxError as exc:
            result = Recoverable(f"syntax error in command: {line}\nError was: {exc}")
        except Exception as exc:
            result = Fatal(exc)

        if isinstance(result, Fatal):
            logger.error(
                "Terminating due to failure in %r: %s",
                command.name,
                result.cause,
                exc_info=result.cause,
            )
        return parsed.ident, result

    def execute(self, raw: str) -> Tuple[str, bool]:
        """Return the response frame for ``raw`` and whether to keep going.

        The frame is empty for blank lines and for fatal failures; the
        latter also return ``False``.
        """
        ident, result = self.dispatch(raw)
        if result is None:
            return "", True
        if isinstance(result, Fatal):
            return "", False
        success = isinstance(result, Success)
        frame = format_response(success, ident, result.message)
        return frame, not (success and result.stop)

    def run(self, reader: TextIO, writer: TextIO) -> Optional[Fatal]:
        """Serve requests from ``reader`` until end of stream or ``quit``.

        Returns ``None`` when the session ended normally and the
        :class:`~core.errors.Fatal` result that ended it otherwise.  Neither
        stream is closed.
        """
        while True:
            try:
                raw = reader.readline()
            except (OSError, ValueError) as exc:
                logger.error("Failed to read from controller: %s", exc)
                return Fatal(exc)
            if not raw:
                logger.debug("Remote closed the stream")
                return None

            ident, result = self.dispatch(raw)
            if result is None:
                continue
            if isinstance(result, Fatal):
                return result

            success = isinstance(result, Success)
            frame = format_response(success, ident, result.message)
            try:
                writer.write(frame)
                writer.flush()
            except (OSError, ValueError) as exc:
                logger.error("Failed to write to controller, closing connection: %s", exc)
                return Fatal(exc)
            logger.debug("Local sent: %r", frame)

            if success and result.stop:
                return None


# ----------------------------------------------------------------------
# TCP server
# ----------------------------------------------------------------------
class GTPServer:
    """Serve GTP sessions over TCP, one connection at a time.

    Parameters
    ----------
    host, port:
        Address to listen on.  Port ``0`` picks a free port; the chosen one
        is stored in :attr:`port` before :attr:`ready` is set.
    engine_factory:
        Callable returning a new engine for every accepted connection.
    """

    def __init__(
        self,
        host: str = HOST,
        port: int = PORT,
        engine_factory: Callable[[], GoEngine] = SimpleEngine,
    ) -> None:
        self.host = host
        self.port = port
        self.engine_factory = engine_factory
        self.ready = threading.Event()

    def handle_connection(self, conn: socket.socket) -> Optional[Fatal]:
        """Run one session on ``conn``."""
        rfile = conn.makefile("r", encoding="utf-8", errors="replace", newline="\n")
        wfile = conn.makefile("w", encoding="utf-8", newline="\n")
        try:
            return GTPSession(self.engine_factory()).run(rfile, wfile)
        finally:
            rfile.close()
            try:
                wfile.close()
            except OSError as exc:
                logger.debug("Ignoring error while closing connection: %s", exc)

    def serve(self, max_sessions: Optional[int] = 1) -> None:
        """Accept controllers until ``max_sessions`` sessions have ended.

        ``None`` serves forever.
        """
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(1)
            self.port = sock.getsockname()[1]
            logger.info("GTP server listening on %s:%d", self.host, self.port)
            self.ready.set()
            served = 0
            while max_sessions is None or served < max_sessions:
                conn, addr = sock.accept()
                logger.info("Controller connected from %s", addr[0])
                with conn:
                    fatal = self.handle_connection(conn)
                if fatal is not None:
                    logger.warning("Session ended abnormally; connection dropped")
                served += 1


def main() -> None:
    """Entry point for running the GTP server from the command line."""
    logging.basicConfig(level=logging.INFO)
    server = GTPServer()
    server.serve(max_sessions=None)


if __name__ == "__main__":  # pragma: no cover
    main()
