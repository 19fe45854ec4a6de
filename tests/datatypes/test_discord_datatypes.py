import pytest

from pitbot.datatypes.discord_datatypes import UserID


class DummyObj:
    def __init__(self, id_val=None):
        self.id = id_val


def test_userid_from_int_and_str_and_equality_and_hash():
    u1 = UserID(12345)
    assert u1.to_int() == 12345
    assert str(u1) == "12345"

    u2 = UserID(" 12345 ")
    assert u1 == u2
    assert UserID(u1) == u1

    u3 = UserID.from_user(DummyObj(id_val=111))  # type: ignore
    assert u3.to_int() == 111

    # equality with raw types
    assert u3 == 111
    assert u3 == "111"
    assert repr(u3) == "UserID('111')"

    # hashing and set membership
    assert len({u1, u2, u3}) == 2


@pytest.mark.parametrize("value", [[], None, True, "not-a-number"])
def test_userid_invalid(value):
    with pytest.raises(ValueError):
        UserID(value)  # type: ignore


def test_userid_mention_and_bool_comparison():
    uid = UserID(42)
    assert uid.mention == "<@42>"
    assert uid != True  # noqa: E712
    assert UserID("0042") == 42
