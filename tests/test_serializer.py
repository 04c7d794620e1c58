import pytest

from hellorpc.serializer import SerializationError, marshal, unmarshal


class _Text:
    def __init__(self, value=""):
        self.value = value

    def SerializeToString(self):
        return self.value.encode("utf-8")

    def ParseFromString(self, data):
        self.value = data.decode("utf-8")
        return len(data)


class _Broken:
    def SerializeToString(self):
        raise ValueError("cannot encode")

    def ParseFromString(self, data):
        raise ValueError("cannot decode")


def test_marshal_returns_serialized_bytes():
    assert marshal(_Text("world")) == b"world"


def test_round_trip():
    target = _Text()
    unmarshal(marshal(_Text("hello")), target)
    assert target.value == "hello"


def test_marshal_rejects_plain_object():
    with pytest.raises(SerializationError, match="does not implement"):
        marshal(object())


def test_unmarshal_rejects_plain_object():
    with pytest.raises(SerializationError, match="does not implement"):
        unmarshal(b"x", object())


def test_marshal_wraps_failure():
    with pytest.raises(SerializationError, match="cannot encode"):
        marshal(_Broken())


def test_unmarshal_wraps_failure():
    with pytest.raises(SerializationError, match="cannot decode"):
        unmarshal(b"x", _Broken())