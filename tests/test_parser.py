"""
Tests for the SCON literal parser.
"""

import pytest

from scon import (
    Bool, Bytes, Char, ErrorKind, Int, Map, ParseError, Seq, String, Tuple,
    UInt, Unit, parse_value,
)
from scon.parser import get_parser


def parse_error(text: str) -> ParseError:
    """Parse `text`, expecting failure, and return the error."""
    with pytest.raises(ParseError) as exc_info:
        parse_value(text)
    return exc_info.value


class TestScalars:
    """Leaf values."""

    def test_unit(self):
        assert parse_value("()") == Unit()

    def test_bools(self):
        assert parse_value("true") == Bool(True)
        assert parse_value("false") == Bool(False)

    def test_unsigned(self):
        assert parse_value("5") == UInt(5)
        assert parse_value("0") == UInt(0)
        assert parse_value("1234567890") == UInt(1234567890)

    def test_signed(self):
        assert parse_value("-5") == Int(-5)
        assert parse_value("-0") == Int(0)

    def test_signed_and_unsigned_differ(self):
        assert parse_value("-0") != parse_value("0")

    def test_128_bit_limits(self):
        assert parse_value(str(2**128 - 1)) == UInt(2**128 - 1)
        assert parse_value(str(-2**127)) == Int(-2**127)

    def test_char(self):
        assert parse_value("'x'") == Char("x")
        assert parse_value("' '") == Char(" ")
        assert parse_value("'é'") == Char("é")

    def test_char_takes_any_character(self):
        assert parse_value("'''") == Char("'")
        assert parse_value("'\"'") == Char('"')

    def test_string(self):
        assert parse_value('"hi"') == String("hi")
        assert parse_value('""') == String("")
        assert parse_value('"with spaces and \'quotes\'"') == String("with spaces and 'quotes'")

    def test_string_escapes_are_decoded(self):
        assert parse_value('"a\\nb"') == String("a\nb")
        assert parse_value('"\\"\\\\\\/\\b\\f\\r\\t"') == String('"\\/\b\f\r\t')

    def test_unicode_escapes(self):
        assert parse_value('"\\u00e9"') == String("é")
        assert parse_value('"\\ud83d\\ude00"') == String("😀")

    def test_bytes(self):
        assert parse_value("0xA1B2") == Bytes(b"\xa1\xb2")
        assert parse_value("0x00ff") == Bytes(b"\x00\xff")
        assert parse_value("0xab") == Bytes(b"\xab")


class TestIdentifiers:
    """Bare identifiers and names."""

    def test_bare_identifier_is_empty_named_tuple(self):
        assert parse_value("Foo") == Tuple("Foo", [])
        assert parse_value("None") == Tuple("None")

    def test_identifier_forms(self):
        assert parse_value("_") == Tuple("_")
        assert parse_value("_private") == Tuple("_private")
        assert parse_value("snake_case_name") == Tuple("snake_case_name")
        assert parse_value("a1b2") == Tuple("a1b2")
        assert parse_value("élan") == Tuple("élan")

    def test_must_start_with_letter_or_underscore(self):
        err = parse_error("½")
        assert err.kind is ErrorKind.UNPARSEABLE
        assert err.pos == 0
        assert parse_error("²x").kind is ErrorKind.UNPARSEABLE
        assert parse_error("[1, ½]").kind is ErrorKind.UNPARSEABLE
        assert parse_error("{½: 1}").kind is ErrorKind.UNPARSEABLE

    def test_keyword_prefix_is_an_identifier(self):
        assert parse_value("trueish") == Tuple("trueish")
        assert parse_value("false_flag") == Tuple("false_flag")

    def test_keyword_as_tuple_name(self):
        assert parse_value("true(1)") == Tuple("true", [UInt(1)])
        assert parse_value("false()") == Tuple("false")

    def test_double_underscore_splits_identifier(self):
        assert parse_error("a__b").kind is ErrorKind.TRAILING_INPUT

    def test_trailing_underscore(self):
        err = parse_error("name_")
        assert err.kind is ErrorKind.TRAILING_INPUT
        assert err.pos == 4


class TestSequences:
    """[ ... ] literals."""

    def test_seq(self):
        assert parse_value("[1,2,3]") == Seq([UInt(1), UInt(2), UInt(3)])

    def test_empty_seq(self):
        assert parse_value("[]") == Seq([])

    def test_trailing_comma(self):
        assert parse_value("[1,2,]") == parse_value("[1,2]")

    def test_lone_comma_is_empty(self):
        assert parse_value("[,]") == Seq([])
        assert parse_value("[ , ]") == Seq([])

    def test_doubled_comma_rejected(self):
        assert parse_error("[1,,2]").kind is ErrorKind.UNPARSEABLE
        assert parse_error("[,1]").kind is ErrorKind.UNPARSEABLE
        assert parse_error("[,,]").kind is ErrorKind.UNPARSEABLE

    def test_nested(self):
        assert parse_value("[[1], [], [[-2]]]") == Seq([
            Seq([UInt(1)]),
            Seq([]),
            Seq([Seq([Int(-2)])]),
        ])

    def test_mixed_elements(self):
        assert parse_value('[(), true, \'c\', "s", 0x01, Foo]') == Seq([
            Unit(), Bool(True), Char("c"), String("s"), Bytes(b"\x01"), Tuple("Foo"),
        ])


class TestTuples:
    """( ... ) and Name( ... ) literals."""

    def test_unnamed(self):
        assert parse_value("(1,2)") == Tuple(None, [UInt(1), UInt(2)])

    def test_named(self):
        assert parse_value("Foo(1,2)") == Tuple("Foo", [UInt(1), UInt(2)])

    def test_named_empty(self):
        assert parse_value("Foo()") == Tuple("Foo")
        assert parse_value("Foo ( )") == Tuple("Foo")
        assert parse_value("Foo ()") == Tuple("Foo")

    def test_lone_comma_is_empty(self):
        assert parse_value("(,)") == Tuple(None, [])
        assert parse_value("Foo(,)") == Tuple("Foo")

    def test_unit_versus_empty_tuple(self):
        assert parse_value("()") == Unit()
        assert parse_value("( )") == Tuple(None, [])

    def test_single_element_with_trailing_comma(self):
        assert parse_value("(1,)") == Tuple(None, [UInt(1)])

    def test_single_element(self):
        assert parse_value("(1)") == Tuple(None, [UInt(1)])
        assert parse_value("(x)") == Tuple(None, [Tuple("x")])

    def test_unit_inside_tuple(self):
        assert parse_value("(())") == Tuple(None, [Unit()])
        assert parse_value("Some(())") == Tuple("Some", [Unit()])

    def test_nested_named(self):
        assert parse_value("Some(Ok(7))") == Tuple("Some", [Tuple("Ok", [UInt(7)])])


class TestMaps:
    """{ ... } and Name( key: value ) literals."""

    def test_unnamed(self):
        assert parse_value("{a:1,b:2}") == Map(None, [
            (String("a"), UInt(1)),
            (String("b"), UInt(2)),
        ])

    def test_entry_order_is_kept(self):
        value = parse_value("{z: 1, a: 2, m: 3}")
        assert [k for k, _ in value.entries] == [String("z"), String("a"), String("m")]

    def test_duplicate_keys_are_kept(self):
        value = parse_value("{a: 1, a: 2}")
        assert value.entries == ((String("a"), UInt(1)), (String("a"), UInt(2)))

    def test_named_with_braces(self):
        assert parse_value("Point {x: 1, y: -2}") == Map("Point", [
            (String("x"), UInt(1)),
            (String("y"), Int(-2)),
        ])

    def test_named_with_parens(self):
        assert parse_value("Point(x: 1, y: 2)") == Map("Point", [
            (String("x"), UInt(1)),
            (String("y"), UInt(2)),
        ])

    def test_unnamed_with_parens(self):
        assert parse_value("(a: true)") == Map(None, [(String("a"), Bool(True))])

    def test_empty(self):
        assert parse_value("{}") == Map(None, [])
        assert parse_value("Foo {}") == Map("Foo", [])

    def test_lone_comma_is_empty(self):
        assert parse_value("{,}") == Map(None, [])
        assert parse_value("Foo {,}") == Map("Foo")

    def test_trailing_comma(self):
        assert parse_value("{a: 1,}") == parse_value("{a: 1}")
        assert parse_value("(a: 1,)") == Map(None, [(String("a"), UInt(1))])

    def test_key_forms(self):
        assert parse_value('{"a b": 1, 7: 2, -1: 3, id: 4}') == Map(None, [
            (String("a b"), UInt(1)),
            (UInt(7), UInt(2)),
            (Int(-1), UInt(3)),
            (String("id"), UInt(4)),
        ])

    def test_keyword_key_is_a_string(self):
        assert parse_value("{true: false}") == Map(None, [(String("true"), Bool(False))])

    def test_string_key_escapes(self):
        assert parse_value('{"\\n": 0}') == Map(None, [(String("\n"), UInt(0))])

    def test_nested_values(self):
        assert parse_value("{a: {b: [Foo(1)]}}") == Map(None, [
            (String("a"), Map(None, [
                (String("b"), Seq([Tuple("Foo", [UInt(1)])])),
            ])),
        ])

    def test_mismatched_closer_rejected(self):
        assert parse_error("(a: 1}").kind is ErrorKind.UNPARSEABLE
        assert parse_error("{a: 1)").kind is ErrorKind.UNPARSEABLE
        assert parse_error("Foo(a: 1}").kind is ErrorKind.UNPARSEABLE

    def test_entries_and_values_do_not_mix(self):
        assert parse_error("(a: 1, 2)").kind is ErrorKind.UNPARSEABLE
        assert parse_error("(1, a: 2)").kind is ErrorKind.UNPARSEABLE

    def test_invalid_keys(self):
        assert parse_error("{[1]: 2}").kind is ErrorKind.UNPARSEABLE
        assert parse_error("{'c': 2}").kind is ErrorKind.UNPARSEABLE
        assert parse_error("{Foo(1): 2}").kind is ErrorKind.UNPARSEABLE

    def test_value_required(self):
        assert parse_error("{1}").kind is ErrorKind.UNPARSEABLE
        assert parse_error("{a:}").kind is ErrorKind.UNPARSEABLE


class TestWhitespace:
    """Whitespace around tokens is never significant."""

    def test_around_seq(self):
        assert parse_value(" [ 1 , 2 ] ") == parse_value("[1,2]")

    def test_tabs_and_newlines(self):
        text = "\n\tFoo {\n\t\ta : 1 ,\n\t\tb : [ 'x' ] ,\n\t}\n"
        assert parse_value(text) == parse_value("Foo{a:1,b:['x']}")

    def test_name_separated_from_paren(self):
        assert parse_value("Foo (1)") == Tuple("Foo", [UInt(1)])

    def test_whitespace_inside_string_is_kept(self):
        assert parse_value('" a "') == String(" a ")

    def test_sign_must_touch_digits(self):
        assert parse_error("- 5").kind is ErrorKind.UNPARSEABLE


class TestComposite:
    """Realistic deeply mixed literals."""

    def test_call_arguments(self):
        text = 'Transfer { to: Alice, amount: 1000, memo: "rent", data: 0xdeadbeef }'
        assert parse_value(text) == Map("Transfer", [
            (String("to"), Tuple("Alice")),
            (String("amount"), UInt(1000)),
            (String("memo"), String("rent")),
            (String("data"), Bytes(b"\xde\xad\xbe\xef")),
        ])

    def test_everything(self):
        text = "Outer(Inner {a: [(), ( ), Foo]}, 'c', \"s\")"
        assert parse_value(text) == Tuple("Outer", [
            Map("Inner", [(String("a"), Seq([Unit(), Tuple(None), Tuple("Foo")]))]),
            Char("c"),
            String("s"),
        ])

    def test_each_parse_is_independent(self):
        first = parse_value("[1, 2]")
        second = parse_value("[1, 2]")
        assert first == second
        assert first is not second


class TestParserInstance:

    def test_parser_is_cached(self):
        assert get_parser() is get_parser()
