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

"""Tests for the undefined, bracket and statement detectors."""

from cadenceqa.core.models import Severity
from cadenceqa.detection.brackets import BracketMatcher
from cadenceqa.detection.statements import IncompleteStatementDetector
from cadenceqa.detection.undefined import UndefinedValueDetector


def issue_types(issues):
    return [issue.type for issue in issues]


class TestUndefinedValueDetector:
    """Tests for UndefinedValueDetector."""

    def setup_method(self):
        self.detector = UndefinedValueDetector()

    def test_literal_undefined_with_typed_default(self):
        """The suggested value follows the declared type."""
        issues = self.detector.detect("access(all) var count: Int = undefined\n")
        (issue,) = issues
        assert issue.type == "literal-undefined"
        assert issue.severity == Severity.CRITICAL
        assert issue.auto_fixable
        assert issue.suggested_value == "0"
        assert issue.location.line == 1
        assert issue.location.column == len("access(all) var count: Int = ") + 1

    def test_string_and_bool_defaults(self):
        """String and Bool declarations get '""' and false."""
        text = "let name: String = undefined\nlet done: Bool = undefined\n"
        values = [issue.suggested_value for issue in self.detector.detect(text)]
        assert values == ['""', "false"]

    def test_undefined_in_string_or_comment_ignored(self):
        """Only code occurrences are reported."""
        text = 'let msg: String = "undefined"\n// undefined here\n'
        assert self.detector.detect(text) == []

    def test_incomplete_declaration(self):
        """A declaration ending at '=' is fixable."""
        (issue,) = self.detector.detect("    access(all) var name: String =\n")
        assert issue.type == "incomplete-declaration"
        assert issue.suggested_value == '""'
        assert issue.auto_fixable

    def test_incomplete_assignment(self):
        """A bare assignment ending at '=' is not fixable."""
        (issue,) = self.detector.detect("    self.total =\n")
        assert issue.type == "incomplete-assignment"
        assert not issue.auto_fixable

    def test_missing_return(self):
        """A non-Void function without return is reported."""
        text = "access(all) fun name(): String {\n    let x = 1\n}\n"
        (issue,) = self.detector.detect(text)
        assert issue.type == "missing-return"
        assert issue.suggested_value == '""'

    def test_void_function_needs_no_return(self):
        """Functions without a return type are fine."""
        assert self.detector.detect("access(all) fun run() {\n    log(1)\n}\n") == []

    def test_optional_parameter_warning(self):
        """Optional parameters produce a warning."""
        text = "access(all) fun greet(name: String?) {\n    log(name)\n}\n"
        (issue,) = self.detector.detect(text)
        assert issue.type == "missing-default"
        assert issue.severity == Severity.WARNING


class TestBracketMatcher:
    """Tests for BracketMatcher."""

    def setup_method(self):
        self.matcher = BracketMatcher()

    def test_balanced(self):
        """Balanced text has no issues."""
        assert self.matcher.detect("fun f(a: [Int]) { return a[0] }") == []

    def test_unclosed_brace_is_fixable(self):
        """An unclosed opener suggests its closer."""
        (issue,) = self.matcher.detect("access(all) contract X {\n")
        assert issue.type == "missing-close"
        assert issue.suggested_value == "}"
        assert issue.auto_fixable

    def test_unmatched_closer_not_fixable(self):
        """A stray closer cannot be repaired."""
        (issue,) = self.matcher.detect("let x = 1)\n")
        assert issue.type == "missing-open"
        assert not issue.auto_fixable
        assert issue.location.column == len("let x = 1") + 1

    def test_independent_stacks(self):
        """Each bracket kind is tracked on its own stack."""
        issues = self.matcher.detect("{ ( }")
        assert issue_types(issues) == ["missing-close"]
        assert issues[0].suggested_value == ")"

    def test_brackets_in_strings_ignored(self):
        """Brackets inside literals and comments do not count."""
        assert self.matcher.detect('let s = "{[("\n// )\n') == []

    def test_unclosed_innermost_first(self):
        """Unclosed openers are ordered so closers can be appended in order."""
        _, unclosed = self.matcher.scan("{ [ (")
        assert [opener for opener, _ in unclosed] == ["(", "[", "{"]


class TestIncompleteStatementDetector:
    """Tests for IncompleteStatementDetector."""

    def setup_method(self):
        self.detector = IncompleteStatementDetector()

    def test_bodiless_function(self):
        """A function without a body is critical and fixable."""
        text = "access(all) fun total(): Int\ninit() {}\n"
        (issue,) = self.detector.detect(text)
        assert issue.type == "incomplete-function-signature"
        assert issue.severity == Severity.CRITICAL
        assert issue.suggested_value == "{ return 0 }"

    def test_interface_members_exempt(self):
        """Interface requirements have no body by design."""
        text = (
            "access(all) resource interface Provider {\n"
            "    access(all) fun withdraw(amount: UFix64): @Vault\n"
            "}\n"
        )
        assert self.detector.detect(text) == []

    def test_trailing_comma(self):
        """A comma before ')' is a fixable warning."""
        (issue,) = self.detector.detect("foo(a, b, )\n")
        assert issue.type == "trailing-comma"
        assert issue.severity == Severity.WARNING
        assert issue.auto_fixable
