# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Lexical helpers shared by the detectors.

This is not a lexer. It knows about double-quoted strings, line comments and
block comments, and enough about braces to tell a map type such as
``{String: Int}`` or a restricted type such as ``&{NonFungibleToken.NFT}``
from a function body. Unusual constructs (parameter lists containing
parentheses, types spanning several lines) can still confuse it; detectors
built on top accept that trade-off instead of carrying a full grammar.

The central trick is ``mask_non_code``: string contents and comments are
replaced with spaces so that every offset, line and column in the masked
text is identical to the original, while pattern searches only see code.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from cadenceqa.core.models import CodeLocation

COMMENT_PREFIXES = ("//", "/*", "*")

# Characters after which a "{" starts a type rather than a body
_TYPE_OPENERS = frozenset(":@&<,{[(")

_INTEGER_TYPES = frozenset(
    ["Int", "UInt"]
    + [f"{prefix}{bits}" for prefix in ("Int", "UInt", "Word") for bits in (8, 16, 32, 64, 128, 256)]
)
_FIXED_POINT_TYPES = frozenset({"UFix64", "Fix64"})

# Text after the first ":" up to "=" is taken as the type annotation
ANNOTATION_PATTERN = re.compile(r":\s*([^=]+)")

FUNCTION_PATTERN = re.compile(
    r"(?P<access>access\s*\([^)]*\)\s+)?"
    r"(?:(?:static|native|view)\s+)*"
    r"\bfun\s+(?P<name>\w+)\s*\((?P<params>[^)]*)\)"
)

INTERFACE_PATTERN = re.compile(r"\b(?:resource|struct|contract)\s+interface\s+\w+[^{;]*\{")


# =============================================================================
# Lines, strings and comments
# =============================================================================


def is_comment_line(line: str) -> bool:
    return line.strip().startswith(COMMENT_PREFIXES)


def in_string(line: str, index: int) -> bool:
    """Return True if ``index`` falls inside a double-quoted literal on ``line``."""
    inside = False
    escaped = False
    for ch in line[:index]:
        if escaped:
            escaped = False
        elif ch == "\\" and inside:
            escaped = True
        elif ch == '"':
            inside = not inside
    return inside


def code_part(line: str) -> str:
    """Return ``line`` without a trailing ``//`` comment."""
    inside = False
    escaped = False
    for i, ch in enumerate(line):
        if escaped:
            escaped = False
        elif ch == "\\" and inside:
            escaped = True
        elif ch == '"':
            inside = not inside
        elif not inside and line.startswith("//", i):
            return line[:i]
    return line


def mask_non_code(text: str, mask_strings: bool = True) -> str:
    """Blank out string contents and comments, preserving offsets and newlines.

    Quote characters themselves are kept so that ``""`` stays recognisable.
    With ``mask_strings=False`` only comments are blanked, which is what
    import checks need (``import "NonFungibleToken"``).
    """
    return _mask(text, mask_strings)[0]


def unterminated_comment_start(text: str) -> Optional[int]:
    """Offset of a ``/*`` comment still open at end of text, or None."""
    return _mask(text, True)[1]


def _mask(text: str, mask_strings: bool) -> Tuple[str, Optional[int]]:
    out = list(text)
    n = len(text)
    i = 0
    state = "code"
    comment_start = 0
    while i < n:
        ch = text[i]
        if state == "code":
            if ch == '"':
                state = "string"
            elif text.startswith("//", i):
                state = "line_comment"
                out[i] = out[i + 1] = " "
                i += 2
                continue
            elif text.startswith("/*", i):
                state = "block_comment"
                comment_start = i
                out[i] = out[i + 1] = " "
                i += 2
                continue
        elif state == "string":
            if ch == "\\" and i + 1 < n and text[i + 1] != "\n":
                out[i] = out[i + 1] = " "
                i += 2
                continue
            if ch == '"':
                state = "code"
            elif ch == "\n":
                # Unterminated literal ends with its line
                state = "code"
            elif mask_strings:
                out[i] = " "
        elif state == "line_comment":
            if ch == "\n":
                state = "code"
            else:
                out[i] = " "
        else:
            if text.startswith("*/", i):
                out[i] = out[i + 1] = " "
                state = "code"
                i += 2
                continue
            if ch != "\n":
                out[i] = " "
        i += 1
    return "".join(out), (comment_start if state == "block_comment" else None)


# =============================================================================
# Positions
# =============================================================================


def line_col(text: str, offset: int) -> Tuple[int, int]:
    """Convert a 0-based offset to a 1-based (line, column) pair."""
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column


def line_bounds(text: str, offset: int) -> Tuple[int, int]:
    """Return (start, end) offsets of the line containing ``offset``; end excludes the newline."""
    start = text.rfind("\n", 0, offset) + 1
    end = text.find("\n", offset)
    return start, (len(text) if end == -1 else end)


def location_at(text: str, offset: int, length: int = 0) -> CodeLocation:
    line, column = line_col(text, offset)
    start, end = line_bounds(text, offset)
    return CodeLocation(line=line, column=column, length=length, context=text[start:end].strip())


def offset_of(text: str, location: CodeLocation) -> int:
    """Convert a location back to an offset in ``text``."""
    offset = 0
    for _ in range(location.line - 1):
        offset = text.index("\n", offset) + 1
    return offset + location.column - 1


def indentation(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


# =============================================================================
# Type defaults
# =============================================================================


def default_for_type(annotation: Optional[str]) -> str:
    """Return the zero value for a Cadence type annotation.

    Optionals and unknown types map to ``nil``.
    """
    if not annotation:
        return "nil"
    type_name = annotation.strip()
    if not type_name or type_name.endswith("?"):
        return "nil"
    if type_name.startswith("["):
        return "[]"
    if type_name.startswith("{"):
        return "{}"
    if type_name == "String":
        return '""'
    if type_name in _INTEGER_TYPES:
        return "0"
    if type_name == "Bool":
        return "false"
    if type_name == "Address":
        return "0x0"
    if type_name in _FIXED_POINT_TYPES:
        return "0.0"
    return "nil"


def infer_default_from_line(line: str) -> str:
    """Infer a default value from the first type annotation on ``line``."""
    match = ANNOTATION_PATTERN.search(line)
    if not match:
        return "nil"
    return default_for_type(match.group(1))


# =============================================================================
# Braces and function bodies
# =============================================================================


@dataclass(frozen=True)
class BodySpan:
    """Offsets of a body's opening brace and its matching closer (None if unclosed)."""

    open_offset: int
    close_offset: Optional[int]

    @property
    def closed(self) -> bool:
        return self.close_offset is not None


def match_brace(masked: str, open_offset: int) -> Optional[int]:
    """Return the offset of the ``}`` matching the ``{`` at ``open_offset``."""
    depth = 0
    for i in range(open_offset, len(masked)):
        ch = masked[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def _body_search_limit(masked: str, start: int) -> int:
    """A body brace must be on the signature line or start the next non-blank line."""
    line_end = masked.find("\n", start)
    if line_end == -1:
        return len(masked)
    next_start = line_end + 1
    while True:
        next_end = masked.find("\n", next_start)
        if next_end == -1:
            next_end = len(masked)
        segment = masked[next_start:next_end]
        if segment.strip() or next_end >= len(masked):
            break
        next_start = next_end + 1
    if segment.lstrip().startswith("{"):
        return next_end
    return line_end


def _opens_type(masked: str, start: int, index: int) -> bool:
    j = index - 1
    while j >= start and masked[j].isspace():
        j -= 1
    if j < start:
        return False
    return masked[j] in _TYPE_OPENERS


def type_end(masked: str, start: int, limit: int) -> int:
    """Offset just past the type expression that starts at ``start``.

    Scanning stops at the first character that cannot continue a type outside
    brackets, so ``Int,`` yields ``Int`` and ``@{NFT}? {`` yields ``@{NFT}?``.
    """
    i = start
    while i < limit and masked[i] in " \t":
        i += 1
    end = i
    depth = 0
    previous = ""
    while i < limit:
        ch = masked[i]
        if depth:
            if ch in "{[<(":
                depth += 1
            elif ch in "}]>)":
                depth -= 1
                if depth == 0:
                    end = i + 1
                    previous = ch
            i += 1
            continue
        if ch.isalnum() or ch in "_.?":
            end = i + 1
        elif ch in "@&":
            pass
        elif ch in "[<" or (ch == "{" and previous in ("", "@", "&")):
            depth = 1
        elif ch == "(" and (previous.isalnum() or previous == "_"):
            # auth(Withdraw) &Vault
            depth = 1
        elif ch in " \t" and previous in (")", " ", "\t"):
            i += 1
            continue
        else:
            break
        previous = ch
        i += 1
    return end


def find_body(masked: str, start: int) -> Optional[BodySpan]:
    """Find the body that follows a signature ending at ``start``.

    Braces that open a type (``{String: Int}``, ``@{NFT}``, ``&{NFT}?``) are
    skipped along with their contents. Returns None when no body brace is
    found before the search limit.
    """
    limit = _body_search_limit(masked, start)
    depth = 0
    for i in range(start, limit):
        ch = masked[i]
        if ch == "{":
            if depth > 0 or _opens_type(masked, start, i):
                depth += 1
            else:
                return BodySpan(i, match_brace(masked, i))
        elif ch == "}" and depth > 0:
            depth -= 1
        elif ch == ";" and depth == 0:
            return None
    return None


@dataclass(frozen=True)
class FunctionSignature:
    """A function declaration located in source text."""

    name: str
    access: Optional[str]
    params: str
    return_type: Optional[str]
    start: int
    signature_end: int
    body: Optional[BodySpan]
    # Interface members may legitimately omit the body
    in_interface: bool = False

    @property
    def has_body(self) -> bool:
        return self.body is not None

    @property
    def returns_value(self) -> bool:
        return bool(self.return_type) and self.return_type != "Void"

    def body_text(self, text: str) -> Optional[str]:
        """Text strictly between the body braces, or None if there is no closed body."""
        if self.body is None or self.body.close_offset is None:
            return None
        return text[self.body.open_offset + 1 : self.body.close_offset]

    def param_list(self) -> List[str]:
        return [p.strip() for p in self.params.split(",") if p.strip()]


def interface_spans(masked: str) -> List[Tuple[int, int]]:
    """Return (open, close) offsets of every interface body; unclosed ones run to EOF."""
    spans = []
    for match in INTERFACE_PATTERN.finditer(masked):
        open_offset = match.end() - 1
        close_offset = match_brace(masked, open_offset)
        spans.append((open_offset, len(masked) if close_offset is None else close_offset))
    return spans


def iter_functions(text: str, masked: Optional[str] = None) -> List[FunctionSignature]:
    """Locate every ``fun`` declaration outside strings and comments."""
    masked = mask_non_code(text) if masked is None else masked
    interfaces = interface_spans(masked)
    functions: List[FunctionSignature] = []
    for match in FUNCTION_PATTERN.finditer(masked):
        end = match.end()
        body = find_body(masked, end)
        return_type: Optional[str] = None
        colon = re.match(r"[ \t]*:", masked[end:])
        if colon:
            type_start = end + colon.end()
            if body is not None:
                limit = body.open_offset
            else:
                limit = line_bounds(masked, type_start)[1]
            return_type = masked[type_start : type_end(masked, type_start, limit)].strip() or None
        access = match.group("access")
        functions.append(
            FunctionSignature(
                name=match.group("name"),
                access=access.strip() if access else None,
                params=text[match.start("params") : match.end("params")],
                return_type=return_type,
                start=match.start(),
                signature_end=end,
                body=body,
                in_interface=any(start < match.start() < stop for start, stop in interfaces),
            )
        )
    return functions
