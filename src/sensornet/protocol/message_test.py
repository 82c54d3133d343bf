import unittest

from hamcrest import assert_that, calling, equal_to, is_, is_not, raises

from sensornet.protocol.message import Direction, Internal, Message, MessageType, ParseError, Presentation, SetReq, \
    generate_mqtt_string, heartbeat_request, parse, parse_mqtt, serialize, version_request


class ParseTest(unittest.TestCase):

    def test_parse_set(self):
        m = parse("2;1;1;0;0;25.5\n")
        assert_that(m, is_(equal_to(Message(2, 1, MessageType.SET, 0, SetReq.V_TEMP, "25.5"))))
        assert_that(m.direction, is_(Direction.INCOMING))
        assert_that(m.incoming, is_(True))

    def test_parse_bytes_with_crlf(self):
        m = parse(b"0;255;3;0;2;2.3.1\r\n")
        assert_that(m.is_version_response(), is_(True))
        assert_that(m.payload, is_("2.3.1"))

    def test_payload_may_contain_separator(self):
        m = parse("3;4;1;0;47;a;b;c")
        assert_that(m.payload, is_("a;b;c"))

    def test_empty_payload(self):
        m = parse("5;255;3;0;3;")
        assert_that(m.is_id_request(), is_(True))
        assert_that(m.payload, is_(""))

    def test_too_few_fields(self):
        assert_that(calling(parse).with_args("1;2;3;0;1"), raises(ParseError))

    def test_non_numeric(self):
        assert_that(calling(parse).with_args("a;2;3;0;1;x"), raises(ParseError, "node id"))

    def test_unknown_type(self):
        assert_that(calling(parse).with_args("1;2;9;0;1;x"), raises(ParseError, "message type"))

    def test_invalid_ack(self):
        assert_that(calling(parse).with_args("1;2;1;2;1;x"), raises(ParseError, "ack"))

    def test_parse_error_is_value_error(self):
        assert_that(calling(parse).with_args(""), raises(ValueError))


class SerializeTest(unittest.TestCase):

    def test_serialize(self):
        m = Message(255, 255, MessageType.INTERNAL, 0, Internal.I_ID_RESPONSE, "1")
        assert_that(serialize(m), is_("255;255;3;0;4;1\n"))

    def test_round_trip(self):
        messages = [Message(2, 1, MessageType.SET, 1, SetReq.V_STATUS, "1"),
                    Message(0, 255, MessageType.INTERNAL, 0, Internal.I_VERSION, ""),
                    Message(7, 3, MessageType.PRESENTATION, 0, Presentation.S_POWER, "2.3.1"),
                    Message(12, 0, MessageType.REQ, 0, SetReq.V_TEXT, "semi;colons;inside")]
        for m in messages:
            assert_that(parse(serialize(m)), is_(equal_to(m)))

    def test_mqtt_round_trip(self):
        m = Message(2, 1, MessageType.SET, 0, SetReq.V_TEMP, "25")
        assert_that(generate_mqtt_string(m), is_("2/1/1/0/0"))
        assert_that(parse_mqtt(generate_mqtt_string(m), m.payload), is_(equal_to(m)))

    def test_mqtt_bytes_payload(self):
        m = parse_mqtt("/4/2/1/0/2/", b"1")
        assert_that(m, is_(equal_to(Message(4, 2, MessageType.SET, 0, SetReq.V_STATUS, "1"))))

    def test_mqtt_wrong_segments(self):
        assert_that(calling(parse_mqtt).with_args("4/2/1/0", "1"), raises(ParseError))
        assert_that(calling(parse_mqtt).with_args("4/2/x/0/1", "1"), raises(ParseError))


class MessageTest(unittest.TestCase):

    def test_equality_ignores_local_flags(self):
        a = Message(1, 1, MessageType.SET, 0, 2, "1", revert=True)
        b = Message(1, 1, MessageType.SET, 0, 2, "1", direction=Direction.INCOMING)
        assert_that(a, is_(equal_to(b)))
        assert_that(hash(a), is_(hash(b)))
        assert_that(a, is_not(equal_to(a.copy(payload="0"))))

    def test_matches_ignores_ack(self):
        sent = Message(1, 1, MessageType.SET, 1, 2, "1")
        echo = sent.copy(ack=0, direction=Direction.INCOMING)
        assert_that(sent.matches(echo), is_(True))
        assert_that(sent.matches(echo.copy(payload="0")), is_(False))

    def test_subtype_code(self):
        assert_that(Message(1, 1, MessageType.SET, 0, 0, "").subtype_code, is_(SetReq.V_TEMP))
        assert_that(Message(1, 1, MessageType.INTERNAL, 0, 99, "").subtype_code, is_(99))

    def test_wake_up(self):
        assert_that(Message(1, 255, MessageType.INTERNAL, 0, Internal.I_PRE_SLEEP_NOTIFICATION).is_wake_up(), is_(True))
        assert_that(Message(1, 255, MessageType.INTERNAL, 0, Internal.I_HEARTBEAT_RESPONSE).is_wake_up(), is_(True))
        assert_that(Message(1, 255, MessageType.SET, 0, Internal.I_HEARTBEAT_RESPONSE).is_wake_up(), is_(False))

    def test_canned_messages(self):
        assert_that(serialize(version_request()), is_("0;255;3;0;2;\n"))
        assert_that(serialize(heartbeat_request(4)), is_("4;255;3;0;18;\n"))
