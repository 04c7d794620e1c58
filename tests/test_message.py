from hellorpc.message import CONTEXT_MSG_KEY, Message, get_message


def test_new_message_has_empty_names():
    _, msg = get_message({})
    assert msg == Message(service_name="", method_name="")


def test_missing_message_is_attached_to_a_copy():
    original = {"trace": "abc"}
    new_ctx, msg = get_message(original)
    assert new_ctx[CONTEXT_MSG_KEY] is msg
    assert new_ctx["trace"] == "abc"
    assert CONTEXT_MSG_KEY not in original


def test_existing_message_is_returned_with_same_context():
    msg = Message(service_name="helloworld", method_name="Hello")
    ctx = {CONTEXT_MSG_KEY: msg}
    got_ctx, got_msg = get_message(ctx)
    assert got_ctx is ctx
    assert got_msg is msg


def test_none_context_gets_a_message():
    ctx, msg = get_message(None)
    assert ctx == {CONTEXT_MSG_KEY: msg}


def test_foreign_value_under_key_is_replaced():
    ctx = {CONTEXT_MSG_KEY: "not a message"}
    new_ctx, msg = get_message(ctx)
    assert new_ctx[CONTEXT_MSG_KEY] is msg
    assert ctx[CONTEXT_MSG_KEY] == "not a message"


def test_message_fields_are_mutable():
    ctx, msg = get_message({})
    msg.method_name = "Hello"
    _, again = get_message(ctx)
    assert again.method_name == "Hello"