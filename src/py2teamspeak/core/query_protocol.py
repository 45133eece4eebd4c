"""
Text protocol encoding and decoding for ServerQuery communication.

The query interface is line oriented. Every line is one command, one data
row, one terminator or one notification. Payload values may not contain
whitespace or the record separator, so they are escaped on the wire.

Line Structure:
    Command:      <name> [-option ...] [key=value ...] [key=v1|key=v2 ...]
    Data row:     key=value key=value|key=value key=value
    Terminator:   error id=<int> msg=<escaped text> [extra fields]
    Notification: notify<event> key=value ...|key=value ...

Escape table (applied in this order by escape(), reversed by unescape()):

    ====== ======
    raw    wire
    ====== ======
    \\     \\\\
    /      \\/
    |      \\p
    \\n    \\n
    \\r    \\r
    \\t    \\t
    \\v    \\v
    \\f    \\f
    space  \\s
    ====== ======
"""

import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

ParsedRecord = Dict[str, Union[str, int]]
ParsedResponse = Optional[Union[ParsedRecord, List[ParsedRecord]]]


class LinePrefix:
    """Prefixes used to classify incoming lines."""

    TERMINATOR = "error"
    NOTIFICATION = "notify"


RECORD_SEPARATOR = "|"
TOKEN_SEPARATOR = " "
LINE_TERMINATOR = "\n"

# Backslash must come first so later substitutions are not re-escaped.
_ESCAPE_TABLE = (
    ("\\", "\\\\"),
    ("/", "\\/"),
    ("|", "\\p"),
    ("\n", "\\n"),
    ("\r", "\\r"),
    ("\t", "\\t"),
    ("\v", "\\v"),
    ("\f", "\\f"),
    (" ", "\\s"),
)

_UNESCAPE_TABLE = {
    "s": " ",
    "p": "|",
    "n": "\n",
    "f": "\f",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "/": "/",
    "\\": "\\",
}

# One pass, left to right: an escaped backslash followed by "s" must not be
# read as a backslash plus an escaped space.
_ESCAPE_SEQUENCE = re.compile(r"\\(.)", re.DOTALL)


def escape(raw: str) -> str:
    """
    Escape a string for transmission.

    Args:
        raw: Plain text

    Returns:
        Text safe to embed as a name, key or value in a protocol line

    Example:
        >>> escape("hello world|x")
        'hello\\\\sworld\\\\px'
    """
    for plain, encoded in _ESCAPE_TABLE:
        raw = raw.replace(plain, encoded)
    return raw


def unescape(raw: str) -> str:
    """
    Reverse escape().

    Unknown sequences such as ``\\x`` are kept as they are.
    """
    if "\\" not in raw:
        return raw
    return _ESCAPE_SEQUENCE.sub(
        lambda match: _UNESCAPE_TABLE.get(match.group(1), match.group(0)),
        raw
    )


def coerce_value(value: str) -> Union[str, int]:
    """
    Convert a value to int when it survives a round trip unchanged.

    "42" and "-7" become integers; "01", "+1", "1_000" and "" stay strings.
    """
    try:
        number = int(value, 10)
    except ValueError:
        return value
    if str(number) != value:
        return value
    return number


def parse_record(record: str) -> ParsedRecord:
    """Parse one space-separated group of key=value tokens."""
    parsed: ParsedRecord = {}
    for token in record.split(TOKEN_SEPARATOR):
        if not token:
            continue
        key, sep, value = token.partition("=")
        if sep:
            parsed[unescape(key)] = coerce_value(unescape(value))
        else:
            parsed[unescape(key)] = ""
    return parsed


def parse_line(raw: str) -> ParsedResponse:
    """
    Parse a protocol line into records.

    Args:
        raw: One line with the trailing newline removed

    Returns:
        None for an empty line, a dict for a single record, or a list of
        dicts when the line holds several ``|``-separated records

    Example:
        >>> parse_line("a=1|a=2")
        [{'a': 1}, {'a': 2}]
        >>> parse_line("msg=ok")
        {'msg': 'ok'}
    """
    if not raw:
        return None

    records = [parse_record(record) for record in raw.split(RECORD_SEPARATOR)]

    if len(records) == 1:
        return records[0]
    return records


def records_of(response: ParsedResponse) -> List[ParsedRecord]:
    """Normalize a ParsedResponse to a list of records."""
    if response is None:
        return []
    if isinstance(response, list):
        return response
    return [response]


def _render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def build_command_line(
    name: str,
    options: Optional[Sequence[str]] = None,
    parameters: Optional[Mapping[str, Any]] = None
) -> str:
    """
    Serialize a command into one protocol line (without line terminator).

    Args:
        name: Command name, e.g. ``"serverlist"``
        options: Flags, rendered as ``-flag`` in the given order
        parameters: Key/value arguments in insertion order. A list or tuple
                    value becomes a multi-record argument ``k=a|k=b``.

    Returns:
        Escaped command line

    Example:
        >>> build_command_line("clientkick", ["x"], {"clid": [1, 2], "reasonmsg": "go away"})
        'clientkick -x clid=1|clid=2 reasonmsg=go\\\\saway'
    """
    line = escape(name)

    for option in options or ():
        line += " -" + escape(option)

    for key, value in (parameters or {}).items():
        if isinstance(value, (list, tuple)):
            pairs = [
                escape(str(key)) + "=" + escape(_render_value(item))
                for item in value
            ]
            line += TOKEN_SEPARATOR + RECORD_SEPARATOR.join(pairs)
        else:
            line += TOKEN_SEPARATOR + escape(str(key)) + "=" + escape(_render_value(value))

    return line
