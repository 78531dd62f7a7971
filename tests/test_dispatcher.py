"""Tests for per-request dispatch."""

import json
from concurrent.futures import ThreadPoolExecutor

import pytest
from objrpc.dispatcher import call
from objrpc.registry import build
from objrpc_wire import ErrorPayload, is_error
from receivers import Empty, Thing

# (func, param, expected body or None, should_err)
SAMPLE_CASES = [
    ("foo", "", b'"Foo!"', False),
    ("foo", "1", None, True),
    ("foo_err", "", None, True),
    ("bar", "7", b'"Bar 7"', False),
    ("bar", "", None, True),
    ("bar", '"7"', None, True),
    ("bar", "true", None, True),
    ("bar_err", "7", None, True),
    ("baz", '["x","y"]', b'"Baz x"', False),
    ("baz", "", None, True),
    ("baz", '["x",1]', None, True),
    ("baz_err", '["x","y"]', None, True),
    ("fun", '{"i":7,"s":"aaa"}', b'"Fun 7 aaa"', False),
    ("fun", '{"i":7,"s":"aaa"{', None, True),
    ("fun", "", None, True),
    ("fun", "[1,2]", None, True),
    ("fun_err", '{"i":7,"s":"aaa"}', None, True),
    ("missing", "", None, True),
]


@pytest.mark.parametrize("func, param, expected, should_err", SAMPLE_CASES)
def test_sample_calls(sample_registry, func, param, expected, should_err):
    result = call(sample_registry, func, param.encode())
    assert is_error(result) == should_err, result
    if not should_err:
        assert result == expected


class TestErrors:
    def test_no_such_function(self, sample_registry):
        assert call(sample_registry, "nope", b"") == b'{"error":"No such function \'nope\'."}'

    def test_no_such_function_on_empty_registry(self):
        assert is_error(call(build(Empty()), "anything", b"123"))

    def test_zero_arg_rejects_param(self, sample_registry):
        err = ErrorPayload.parse(call(sample_registry, "foo", b"1"))
        assert err.message == "Function 'foo' does not accept parameters."

    def test_error_message_is_forwarded(self, sample_registry):
        assert call(sample_registry, "foo_err", b"") == b'{"error":"Foo error"}'
        assert ErrorPayload.parse(call(sample_registry, "bar_err", b"3")).message == "Bar error 3"

    def test_decode_error(self, sample_registry):
        err = ErrorPayload.parse(call(sample_registry, "bar", b""))
        assert err.message.startswith("Error decoding JSON")

    def test_raised_exception(self, shapes_registry):
        assert ErrorPayload.parse(call(shapes_registry, "boom", b"")).message == "boom"

    def test_encode_error(self, shapes_registry):
        err = ErrorPayload.parse(call(shapes_registry, "unencodable", b""))
        assert err.message.startswith("Error encoding result")

    def test_not_a_pair(self, shapes_registry):
        err = ErrorPayload.parse(call(shapes_registry, "not_a_pair", b""))
        assert "(value, error)" in err.message

    def test_method_not_invoked_on_decode_error(self, shapes, shapes_registry):
        assert is_error(call(shapes_registry, "check", b"oops"))
        assert is_error(call(shapes_registry, "record", b'{"i":"x"}'))
        assert shapes.calls == []

    def test_record_constructor_error(self, records, records_registry):
        for func, param in (("take", b'{"n":-1}'), ("many", b'[{"n":1},{"n":-1}]')):
            err = ErrorPayload.parse(call(records_registry, func, param))
            assert err.message == "Error decoding JSON: n must be >= 0"
        assert records.calls == []

    def test_null_for_plain_value(self, shapes_registry):
        err = ErrorPayload.parse(call(shapes_registry, "half", b"null"))
        assert err.message.startswith("Error decoding JSON")


class TestShapes:
    def test_void(self, shapes, shapes_registry):
        assert call(shapes_registry, "ping", b"") == b""
        assert shapes.calls == ["ping"]

    def test_error_only(self, shapes_registry):
        assert call(shapes_registry, "check", b"1") == b""
        assert ErrorPayload.parse(call(shapes_registry, "check", b"-2")).message == "negative: -2"

    def test_value_only(self, shapes_registry):
        assert call(shapes_registry, "half", b"10") == b"5"

    def test_str_param(self, shapes_registry):
        assert call(shapes_registry, "half", "9") == b"4"

    def test_untyped(self, shapes_registry):
        result = call(shapes_registry, "untyped", b'{"a":[1,2,null]}')
        assert json.loads(result) == {"a": [1, 2, None]}

    def test_variadic_tuple_is_a_value(self, shapes_registry):
        assert call(shapes_registry, "numbers", b"") == b"[1,2,3]"

    def test_keyword_only(self, shapes_registry):
        assert call(shapes_registry, "only", b'"k"') == b'"k"'

    def test_static_and_class_methods(self, shapes_registry):
        assert call(shapes_registry, "twice", b"4") == b"8"
        assert call(shapes_registry, "kind", b"") == b'"ShapesAPI"'


class TestInstanceInput:
    def test_fields_round_trip(self, shapes, shapes_registry):
        assert call(shapes_registry, "record", b'{"i":42,"s":"abc"}') == b""
        assert shapes.calls == [Thing(i=42, s="abc")]

    def test_missing_fields_are_zero(self, shapes, shapes_registry):
        call(shapes_registry, "record", b'{"s":"only"}')
        call(shapes_registry, "record", b"{}")
        assert shapes.calls == [Thing(i=0, s="only"), Thing(i=0, s="")]

    def test_unknown_fields_are_ignored(self, shapes, shapes_registry):
        call(shapes_registry, "record", b'{"i":1,"s":"a","extra":true}')
        assert shapes.calls == [Thing(i=1, s="a")]

    def test_fresh_instance_per_call(self, shapes, shapes_registry):
        call(shapes_registry, "record", b'{"i":1}')
        call(shapes_registry, "record", b'{"i":1}')
        assert shapes.calls[0] == shapes.calls[1]
        assert shapes.calls[0] is not shapes.calls[1]

    def test_nested_struct(self, shapes_registry):
        result = json.loads(call(shapes_registry, "nested", b'{"name":"x"}'))
        assert result == {"name": "x", "tags": [], "thing": {"i": 0, "s": ""}, "note": "default"}

    def test_nested_partial_record(self, shapes_registry):
        result = json.loads(call(shapes_registry, "nested", b'{"thing":{"s":"t"}}'))
        assert result["thing"] == {"i": 0, "s": "t"}

    def test_defaulted_record_field(self, records_registry):
        result = json.loads(call(records_registry, "outer", b'{"name":"n","inner":{"s":"x"}}'))
        assert result == {"name": "n", "inner": {"i": 0, "s": "x"}, "maybe_inner": None}

    def test_defaulted_record_field_omitted(self, records_registry):
        result = json.loads(call(records_registry, "outer", b"{}"))
        assert result["inner"] == {"i": 1, "s": "preset"}

    def test_optional_record_field(self, records_registry):
        result = json.loads(call(records_registry, "outer", b'{"maybe_inner":{"i":2}}'))
        assert result["maybe_inner"] == {"i": 2, "s": ""}

    def test_array_like_struct(self, records_registry):
        assert call(records_registry, "point", b'[3,"p"]') == b'"p@3"'
        assert is_error(call(records_registry, "point", b'{"x":3}'))

    def test_nested_struct_full(self, shapes_registry):
        body = {"name": "x", "tags": ["a"], "thing": {"i": 3, "s": "t"}, "note": "n"}
        result = json.loads(call(shapes_registry, "nested", json.dumps(body).encode()))
        assert result == body

    def test_nullable(self, shapes_registry):
        assert call(shapes_registry, "maybe", b"null") == b'"none"'
        assert call(shapes_registry, "maybe", b'{"s":"x"}') == b'"x"'

    def test_null_rejected_when_not_nullable(self, shapes_registry):
        err = ErrorPayload.parse(call(shapes_registry, "record", b"null"))
        assert err.message.startswith("Error decoding JSON")


def test_concurrent_calls(sample_registry):
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda i: call(sample_registry, "bar", str(i)), range(100)))
    assert results == [f'"Bar {i}"'.encode() for i in range(100)]
