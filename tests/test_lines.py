"""Tests for single-line classification helpers."""

import pytest

from reqfile.lines import (
    LineKind,
    classify_line,
    comment_body,
    is_http_token,
    parse_directive,
    parse_external_file_line,
    parse_import,
    parse_variable_definition,
    separator_name,
)


class TestClassifyLine:
    @pytest.mark.parametrize(
        "line, kind",
        [
            ("", LineKind.BLANK),
            ("   \t", LineKind.BLANK),
            ("###", LineKind.SEPARATOR),
            ("### get users", LineKind.SEPARATOR),
            ("  ### indented", LineKind.SEPARATOR),
            ("# plain comment", LineKind.COMMENT),
            ("// slash comment", LineKind.COMMENT),
            ("# @name login", LineKind.COMMENT),
            ("@host = example.com", LineKind.VARIABLE),
            ("GET https://example.com", LineKind.CONTENT),
            ("Content-Type: application/json", LineKind.CONTENT),
            ('{"a": 1}', LineKind.CONTENT),
        ],
    )
    def test_kinds(self, line, kind):
        assert classify_line(line) is kind

    def test_separator_wins_over_comment(self):
        """### starts with # but must be a separator."""
        assert classify_line("#### four hashes") is LineKind.SEPARATOR


class TestHelpers:
    def test_separator_name(self):
        assert separator_name("###   create user  ") == "create user"
        assert separator_name("###") == ""

    def test_comment_body(self):
        assert comment_body("#   hello ") == "hello"
        assert comment_body("// @no-redirect") == "@no-redirect"

    @pytest.mark.parametrize("token", ["GET", "post", "M-SEARCH", "X_CUSTOM", "A!#$%&'*+.^`|~"])
    def test_valid_tokens(self, token):
        assert is_http_token(token)

    @pytest.mark.parametrize("token", ["", "Content-Type:", '{"a"', "a b", "(x)"])
    def test_invalid_tokens(self, token):
        assert not is_http_token(token)

    def test_parse_directive(self):
        assert parse_directive("@timeout 500") == ("timeout", "500")
        assert parse_directive("@no-cookie-jar") == ("no-cookie-jar", "")
        assert parse_directive("just text") is None

    def test_parse_import_quotes(self):
        assert parse_import('@import "shared/common.http"') == "shared/common.http"
        assert parse_import("@import 'other.http'") == "other.http"
        assert parse_import("@import other.http") is None


class TestVariableDefinition:
    def test_trims_name_and_value(self):
        assert parse_variable_definition("@ host =  example.com  ") == ("host", "example.com")

    def test_value_may_contain_equals(self):
        assert parse_variable_definition("@q = a=b") == ("q", "a=b")

    def test_missing_equals(self):
        assert parse_variable_definition("@host example.com") is None

    def test_empty_name(self):
        assert parse_variable_definition("@ = value") == ("", "value")


class TestExternalFileLine:
    def test_static(self):
        assert parse_external_file_line("< ./data/body.json") == ("./data/body.json", "", False)

    def test_with_variables(self):
        assert parse_external_file_line("<@ ./body.json") == ("./body.json", "", True)

    def test_with_encoding(self):
        assert parse_external_file_line("<@ LATIN1 ./body.txt") == ("./body.txt", "latin1", True)

    def test_encoding_attached_to_marker(self):
        assert parse_external_file_line("<@cp1252 ./body.txt") == ("./body.txt", "cp1252", True)

    def test_unknown_encoding_is_part_of_path(self):
        assert parse_external_file_line("<@ utf-16 body.txt") == ("utf-16 body.txt", "", True)

    def test_not_a_reference(self):
        assert parse_external_file_line("<html>") is None
        assert parse_external_file_line("<") is None
