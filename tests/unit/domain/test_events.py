"""
Tests for the closed event set and per-kind argument shapes.
"""

import pytest

from dtrader.domain.errors import EventPayloadError, UnknownEventKindError
from dtrader.domain.events import EVENT_SHAPES, EventKind, shape_of

pytestmark = pytest.mark.unit


class TestEventKind:
    def test_every_kind_has_a_shape(self):
        assert set(EVENT_SHAPES) == set(EventKind)

    def test_parse_wire_name(self):
        assert EventKind.parse("terminal:resize") is EventKind.TERMINAL_RESIZE

    def test_parse_passes_kind_through(self):
        assert EventKind.parse(EventKind.APP_STOP) is EventKind.APP_STOP

    def test_parse_unknown_name_raises(self):
        with pytest.raises(UnknownEventKindError) as exc_info:
            EventKind.parse("engine:start")
        assert exc_info.value.kind == "engine:start"

    def test_str_is_wire_name(self):
        assert str(EventKind.APP_ERROR) == "app:error"
        assert f"{EventKind.TERMINAL_KEY}" == "terminal:key"


class TestEventShape:
    @pytest.mark.parametrize(
        "kind,arity",
        [
            (EventKind.APP_START, 0),
            (EventKind.APP_STOP, 0),
            (EventKind.APP_ERROR, 1),
            (EventKind.TERMINAL_EXIT, 0),
            (EventKind.TERMINAL_KEY, 2),
            (EventKind.TERMINAL_RESIZE, 2),
            (EventKind.CONFIG_LOADED, 1),
            (EventKind.CONFIG_ERROR, 1),
        ],
    )
    def test_arity(self, kind, arity):
        assert shape_of(kind).arity == arity

    def test_resize_names(self):
        assert shape_of("terminal:resize").names == ("width", "height")

    def test_valid_payloads_pass(self):
        shape_of(EventKind.TERMINAL_RESIZE).validate((80, 24))
        shape_of(EventKind.TERMINAL_KEY).validate(("CTRL_X", b"\x18"))
        shape_of(EventKind.TERMINAL_KEY).validate(("a", bytearray(b"a")))
        shape_of(EventKind.APP_ERROR).validate((RuntimeError("boom"),))
        shape_of(EventKind.CONFIG_LOADED).validate(({"app": {}},))
        shape_of(EventKind.APP_START).validate(())

    def test_wrong_arity_raises(self):
        with pytest.raises(EventPayloadError) as exc_info:
            shape_of(EventKind.TERMINAL_RESIZE).validate((80,))
        assert exc_info.value.details["received"] == 1
        assert exc_info.value.error_code == "EVENT_PAYLOAD"

    def test_extra_argument_for_no_payload_kind_raises(self):
        with pytest.raises(EventPayloadError):
            shape_of(EventKind.APP_STOP).validate(("unexpected",))

    def test_wrong_type_raises(self):
        with pytest.raises(EventPayloadError) as exc_info:
            shape_of(EventKind.TERMINAL_RESIZE).validate(("80", 24))
        assert exc_info.value.details["argument"] == "width"

    def test_bool_is_not_a_dimension(self):
        with pytest.raises(EventPayloadError):
            shape_of(EventKind.TERMINAL_RESIZE).validate((True, 24))

    def test_key_data_must_be_bytes(self):
        with pytest.raises(EventPayloadError):
            shape_of(EventKind.TERMINAL_KEY).validate(("a", "a"))

    def test_error_payload_must_be_exception(self):
        with pytest.raises(EventPayloadError):
            shape_of(EventKind.APP_ERROR).validate(("boom",))
