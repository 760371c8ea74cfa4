"""
Restricted JSON path support for choosing which value fragments to embed.

Supported syntax (a small subset of JSONPath):
    $                   the whole value
    $.a.b / a.b         nested fields
    a[0], a[*], a.*     list index, all list items, all field values
    $['a b']            quoted field names

Anything else is rejected with a ValidationError.
"""

import json
import re
from typing import Any, List, Tuple, Union

from partitioned_memory.errors import ValidationError

Token = Union[str, int]

ALL = "*"

_TOKEN_PATTERN = re.compile(
    r"""
    \.(?P<dotted>[^.\[\]'"]+)       # .name or .*
    | \[(?P<index>\d+)\]            # [0]
    | \[(?P<star>\*)\]              # [*]
    | \['(?P<single>[^']*)'\]       # ['name']
    | \["(?P<double>[^"]*)"\]       # ["name"]
    """,
    re.VERBOSE,
)


def parse_json_path(path: str) -> Tuple[Token, ...]:
    """
    Tokenize a restricted JSON path.

    Returns:
        Tuple of field names (str), list indexes (int) and "*" wildcards

    Raises:
        ValidationError: If the path uses unsupported syntax
    """
    rest = path.strip()
    if rest.startswith("$"):
        rest = rest[1:]
    elif rest and rest[0] not in ".[":
        rest = "." + rest

    tokens: List[Token] = []
    position = 0
    while position < len(rest):
        match = _TOKEN_PATTERN.match(rest, position)
        if match is None:
            raise ValidationError(f"Unsupported JSONPath syntax: {path!r}")
        if match.group("dotted") is not None:
            tokens.append(match.group("dotted"))
        elif match.group("index") is not None:
            tokens.append(int(match.group("index")))
        elif match.group("star") is not None:
            tokens.append(ALL)
        elif match.group("single") is not None:
            tokens.append(match.group("single"))
        else:
            tokens.append(match.group("double"))
        position = match.end()

    return tuple(tokens)


def query(value: Any, tokens: Tuple[Token, ...]) -> List[Any]:
    """All fragments of ``value`` selected by the tokenized path."""
    current = [value]
    for token in tokens:
        selected = []
        for node in current:
            if token == ALL:
                if isinstance(node, dict):
                    selected.extend(node.values())
                elif isinstance(node, list):
                    selected.extend(node)
            elif isinstance(token, int):
                if isinstance(node, list) and token < len(node):
                    selected.append(node[token])
            elif isinstance(node, dict) and token in node:
                selected.append(node[token])
        current = selected
    return current


def to_text(fragment: Any) -> Union[str, None]:
    if fragment is None:
        return None
    if isinstance(fragment, str):
        return fragment
    # Integral floats render without a fraction: 1.0 -> "1"
    if isinstance(fragment, float) and fragment.is_integer():
        return str(int(fragment))
    return json.dumps(fragment)


def extract_texts(value: Any, paths: List[str]) -> List[str]:
    """Texts to embed for a value: each non-empty selected fragment as a string, in path order."""
    texts = []
    for path in paths:
        for fragment in query(value, parse_json_path(path)):
            text = to_text(fragment)
            if text:
                texts.append(text)
    return texts
