"""
Unit tests for query line encoding and decoding.

Tests escape/unescape, parse_line and build_command_line.
"""

import unittest

from py2teamspeak.core.query_protocol import (
    escape,
    unescape,
    coerce_value,
    parse_line,
    records_of,
    build_command_line,
    LinePrefix
)


class TestEscaping(unittest.TestCase):
    """Test the escape table."""

    def test_escape_each_special_character(self):
        """Test that each special character maps to its two-character sequence."""
        cases = {
            "\\": "\\\\",
            "/": "\\/",
            "|": "\\p",
            "\n": "\\n",
            "\r": "\\r",
            "\t": "\\t",
            "\v": "\\v",
            "\f": "\\f",
            " ": "\\s",
        }
        for raw, expected in cases.items():
            with self.subTest(raw=repr(raw)):
                self.assertEqual(escape(raw), expected)

    def test_escape_backslash_first(self):
        """Test that backslashes inserted by later rules are not re-escaped."""
        self.assertEqual(escape("a b"), "a\\sb")
        self.assertEqual(escape("\\ "), "\\\\\\s")

    def test_unescape_message(self):
        """Test unescaping a typical server message."""
        self.assertEqual(unescape("invalid\\sparameter"), "invalid parameter")
        self.assertEqual(unescape("a\\pb\\/c"), "a|b/c")

    def test_plain_text_unchanged(self):
        """Test that text without special characters passes through."""
        self.assertEqual(escape("serverlist"), "serverlist")
        self.assertEqual(unescape("serverlist"), "serverlist")

    def test_round_trip(self):
        """Test that unescape reverses escape for mixed special characters."""
        samples = [
            "",
            "hello world",
            "\\s",
            "\\\\p",
            "a\\b/c|d\ne\rf\tg\vh\fi j",
            "trailing backslash\\",
            "\\\\\\",
            " | / \\ ",
            "path/to\\file name|x",
        ]
        for sample in samples:
            with self.subTest(sample=repr(sample)):
                self.assertEqual(unescape(escape(sample)), sample)


class TestCoerceValue(unittest.TestCase):
    """Test numeric coercion."""

    def test_integers_coerced(self):
        self.assertEqual(coerce_value("0"), 0)
        self.assertEqual(coerce_value("1024"), 1024)
        self.assertEqual(coerce_value("-7"), -7)

    def test_non_canonical_integers_kept_as_strings(self):
        """Test that values which do not re-render identically stay strings."""
        for value in ("01", "+1", "1_000", " 1", "1.0", "", "-0", "00"):
            with self.subTest(value=value):
                self.assertEqual(coerce_value(value), value)

    def test_text_kept(self):
        self.assertEqual(coerce_value("ok"), "ok")


class TestParseLine(unittest.TestCase):
    """Test parse_line."""

    def test_empty_line_is_none(self):
        self.assertIsNone(parse_line(""))

    def test_single_record(self):
        self.assertEqual(parse_line("a=1"), {"a": 1})

    def test_multiple_records(self):
        self.assertEqual(parse_line("a=1|a=2"), [{"a": 1}, {"a": 2}])

    def test_leading_zero_not_coerced(self):
        self.assertEqual(parse_line("a=01"), {"a": "01"})

    def test_key_without_value(self):
        """Test that a token without '=' maps to an empty string."""
        self.assertEqual(parse_line("virtualserver_flag_password a=1"),
                         {"virtualserver_flag_password": "", "a": 1})

    def test_empty_value(self):
        self.assertEqual(parse_line("client_away_message="), {"client_away_message": ""})

    def test_split_on_first_equals(self):
        self.assertEqual(parse_line("token=a=b"), {"token": "a=b"})

    def test_values_unescaped(self):
        result = parse_line("virtualserver_name=My\\sServer\\p1 path=\\/home")
        self.assertEqual(result, {"virtualserver_name": "My Server|1", "path": "/home"})

    def test_escaped_pipe_does_not_split_records(self):
        result = parse_line("msg=a\\pb|msg=c")
        self.assertEqual(result, [{"msg": "a|b"}, {"msg": "c"}])

    def test_repeated_spaces_skipped(self):
        self.assertEqual(parse_line("a=1  b=2"), {"a": 1, "b": 2})

    def test_realistic_clientlist(self):
        line = ("clid=1 cid=1 client_database_id=1 client_nickname=serveradmin\\sfrom\\s127.0.0.1 "
                "client_type=1|clid=2 cid=1 client_database_id=2 client_nickname=Bob client_type=0")
        result = parse_line(line)
        self.assertIsInstance(result, list)
        self.assertEqual(len(result), 2)
        self.assertEqual(result[0]["client_nickname"], "serveradmin from 127.0.0.1")
        self.assertEqual(result[1]["clid"], 2)
        self.assertEqual(result[1]["client_type"], 0)

    def test_records_of_normalizes(self):
        self.assertEqual(records_of(None), [])
        self.assertEqual(records_of({"a": 1}), [{"a": 1}])
        self.assertEqual(records_of([{"a": 1}, {"a": 2}]), [{"a": 1}, {"a": 2}])


class TestBuildCommandLine(unittest.TestCase):
    """Test build_command_line."""

    def test_name_only(self):
        self.assertEqual(build_command_line("version"), "version")

    def test_options_in_order(self):
        self.assertEqual(build_command_line("clientlist", ["uid", "away", "voice"]),
                         "clientlist -uid -away -voice")

    def test_scalar_parameters(self):
        line = build_command_line("login", parameters={
            "client_login_name": "serveradmin",
            "client_login_password": "p a/ss"
        })
        self.assertEqual(line,
                         "login client_login_name=serveradmin client_login_password=p\\sa\\/ss")

    def test_parameter_order_preserved(self):
        line = build_command_line("x", parameters={"z": 1, "a": 2, "m": 3})
        self.assertEqual(line, "x z=1 a=2 m=3")

    def test_list_parameter_becomes_multi_record(self):
        line = build_command_line("clientkick", parameters={
            "clid": [1, 2, 3],
            "reasonid": 5,
            "reasonmsg": "go away"
        })
        self.assertEqual(line, "clientkick clid=1|clid=2|clid=3 reasonid=5 reasonmsg=go\\saway")

    def test_options_precede_parameters(self):
        line = build_command_line("serverlist", ["uid"], {"sid": 1})
        self.assertEqual(line, "serverlist -uid sid=1")

    def test_boolean_rendered_as_digit(self):
        self.assertEqual(build_command_line("x", parameters={"flag": True, "off": False}),
                         "x flag=1 off=0")

    def test_list_parameter_not_mutated(self):
        values = ["a b", "c"]
        build_command_line("x", parameters={"k": values})
        self.assertEqual(values, ["a b", "c"])

    def test_escaped_name_and_option(self):
        self.assertEqual(build_command_line("a b", ["c|d"]), "a\\sb -c\\pd")

    def test_built_line_parses_back(self):
        """Test that parameter tokens of a built line parse back to the values."""
        line = build_command_line("cmd", parameters={"name": "x|y z", "id": 7})
        self.assertEqual(parse_line(line.split(" ", 1)[1]), {"name": "x|y z", "id": 7})


class TestLinePrefix(unittest.TestCase):

    def test_prefixes(self):
        self.assertEqual(LinePrefix.TERMINATOR, "error")
        self.assertEqual(LinePrefix.NOTIFICATION, "notify")


if __name__ == '__main__':
    unittest.main()
