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

"""Tests for detection/scanner module."""

import pytest

from cadenceqa.core.models import CodeLocation
from cadenceqa.detection.scanner import (
    code_part,
    default_for_type,
    in_string,
    infer_default_from_line,
    iter_functions,
    line_col,
    mask_non_code,
    offset_of,
    unterminated_comment_start,
)


class TestMasking:
    """Tests for mask_non_code."""

    def test_unterminated_comment_start(self):
        """A block comment still open at end of text is located."""
        text = "let x = 1\n/** Increments"
        assert unterminated_comment_start(text) == text.index("/**")
        assert unterminated_comment_start(text + " */") is None
        assert unterminated_comment_start('let s = "/*"\n') is None

    def test_preserves_offsets(self):
        """Masked text has the same length and newlines as the input."""
        text = 'let s = "a { b"\n// comment {\n/* block\n ( */ let x = 1\n'
        masked = mask_non_code(text)
        assert len(masked) == len(text)
        assert masked.count("\n") == text.count("\n")

    def test_masks_strings_and_comments(self):
        """Brackets inside strings and comments disappear."""
        text = 'let s = "a { b" // undefined\n/* ( */ let y = 2'
        masked = mask_non_code(text)
        assert "{" not in masked
        assert "(" not in masked
        assert "undefined" not in masked
        assert '""' not in masked  # quotes kept, content blanked
        assert masked.count('"') == 2
        assert "let y = 2" in masked

    def test_keeps_strings_on_request(self):
        """String contents survive when only comments are masked."""
        text = 'import "NonFungibleToken" // standard'
        masked = mask_non_code(text, mask_strings=False)
        assert '"NonFungibleToken"' in masked
        assert "standard" not in masked

    def test_escaped_quote_stays_in_string(self):
        """An escaped quote does not end the literal."""
        masked = mask_non_code('let s = "say \\"{\\"" + x')
        assert "{" not in masked
        assert "+ x" in masked


class TestLinesAndPositions:
    """Tests for line and offset helpers."""

    def test_line_col_round_trip(self):
        """offset_of inverts line_col."""
        text = "first\nsecond line\nthird"
        offset = text.index("line")
        line, column = line_col(text, offset)
        assert (line, column) == (2, 8)
        assert offset_of(text, CodeLocation(line=line, column=column)) == offset

    def test_in_string(self):
        """Positions inside a literal are detected."""
        line = 'let s = "undefined"'
        assert in_string(line, line.index("undefined"))
        assert not in_string(line, line.index("let"))

    def test_code_part_strips_comment(self):
        """Trailing comments are removed but // inside strings is kept."""
        assert code_part("let x = 1 // note") == "let x = 1 "
        assert code_part('let u = "http://x"') == 'let u = "http://x"'


class TestDefaults:
    """Tests for type default inference."""

    @pytest.mark.parametrize(
        "annotation,expected",
        [
            ("String", '""'),
            ("Int", "0"),
            ("UInt64", "0"),
            ("Word8", "0"),
            ("UFix64", "0.0"),
            ("Bool", "false"),
            ("Address", "0x0"),
            ("[String]", "[]"),
            ("{String: Int}", "{}"),
            ("String?", "nil"),
            ("@NFT", "nil"),
            (None, "nil"),
        ],
    )
    def test_default_for_type(self, annotation, expected):
        """Each type annotation maps to its zero value."""
        assert default_for_type(annotation) == expected

    def test_infer_from_line(self):
        """The annotation before '=' decides the default."""
        assert infer_default_from_line("    access(all) var name: String = ") == '""'
        assert infer_default_from_line("self.count = ") == "nil"


class TestIterFunctions:
    """Tests for function signature discovery."""

    def test_map_return_type_is_not_a_body(self):
        """A map type brace is skipped when looking for the body."""
        text = "access(all) fun get(): {String: Int} {\n    return {}\n}\n"
        (func,) = iter_functions(text)
        assert func.name == "get"
        assert func.has_body
        assert func.return_type == "{String: Int}"
        assert func.returns_value

    def test_restricted_reference_type(self):
        """Restricted reference types are skipped as well."""
        text = "access(all) view fun borrow(id: UInt64): &{NonFungibleToken.NFT}? {\n    return nil\n}\n"
        (func,) = iter_functions(text)
        assert func.has_body
        assert func.return_type == "&{NonFungibleToken.NFT}?"
        assert func.param_list() == ["id: UInt64"]

    def test_body_on_next_line(self):
        """A brace starting the next line is the body."""
        text = "access(all) fun run()\n{\n    log(1)\n}\n"
        (func,) = iter_functions(text)
        assert func.has_body
        assert func.body_text(text).strip() == "log(1)"

    def test_bodiless_function(self):
        """A signature followed by another declaration has no body."""
        text = "access(all) fun total(): Int\naccess(all) let x: Int\n"
        (func,) = iter_functions(text)
        assert not func.has_body
        assert func.return_type == "Int"

    def test_interface_member(self):
        """Functions declared inside an interface are marked as such."""
        text = (
            "access(all) resource interface Receiver {\n"
            "    access(all) fun deposit(amount: UFix64)\n"
            "}\n"
        )
        (func,) = iter_functions(text)
        assert func.in_interface
        assert not func.has_body

    def test_functions_in_comments_ignored(self):
        """Commented-out functions are not reported."""
        text = "// access(all) fun old() {}\naccess(all) fun new() {\n    log(1)\n}\n"
        assert [f.name for f in iter_functions(text)] == ["new"]

    @pytest.mark.parametrize(
        "signature, return_type",
        [
            ("access(all) fun total(a: Int): Int,\n", "Int"),
            ("access(all) fun total(): Int;\n", "Int"),
            ("access(all) fun borrow(): &{NonFungibleToken.NFT}?\n", "&{NonFungibleToken.NFT}?"),
            ("access(all) fun ids(): [UInt64]\n", "[UInt64]"),
            ("access(all) fun withdraw(): auth(Withdraw) &Vault\n", "auth(Withdraw) &Vault"),
            ("access(all) fun run()\n", None),
        ],
    )
    def test_return_type_stops_at_separator(self, signature, return_type):
        """Only the type expression is taken as the return type."""
        (func,) = iter_functions(signature)
        assert func.return_type == return_type
