import pytest

from codec import LinkCodec, RoomLink
from errors import MalformedUrl
from identifiers import new_identifier


def test_encode_embeds_both_roles(codec):
    url = codec.encode(RoomLink(push_id="room42", audience="viewerKeyABC"))
    assert url == "https://vdo.ninja/?push=room42&audience=viewerKeyABC"


def test_empty_audience_is_omitted(codec):
    url = codec.encode(RoomLink(push_id="room42"))
    assert url == "https://vdo.ninja/?push=room42"
    assert codec.decode(url) == RoomLink(push_id="room42", audience="")


def test_round_trip(codec):
    links = [
        RoomLink(push_id="room42", audience="viewerKeyABC"),
        RoomLink(push_id="a.b~c-d_e"),
        RoomLink(push_id=new_identifier(), audience=new_identifier()),
    ]
    for link in links:
        assert codec.decode(codec.encode(link)) == link


def test_decode_accepts_parameters_in_any_order(codec):
    link = codec.decode("https://vdo.ninja/?audience=viewer&push=room")
    assert link == RoomLink(push_id="room", audience="viewer")


def test_decode_host_is_case_insensitive(codec):
    assert codec.decode("https://VDO.Ninja/?push=room").push_id == "room"


@pytest.mark.parametrize(
    "url",
    [
        "",
        "http://vdo.ninja/?push=room",
        "https://evil.example/?push=room",
        "https://vdo.ninja/other/?push=room",
        "https://vdo.ninja/",
        "https://vdo.ninja/?audience=viewer",
        "https://vdo.ninja/?push=",
        "https://vdo.ninja/?push=room&audience=",
        "https://vdo.ninja/?push=room&push=other",
        "https://vdo.ninja/?push=room&room=other",
        "https://vdo.ninja/?push=room&audience=a!b",
        "https://vdo.ninja/?push=a%20b",
        "https://vdo.ninja/?push=a+b",
        "https://vdo.ninja/?push=room#audience=x",
        "https://vdo.ninja/?push",
    ],
)
def test_decode_rejects_malformed(codec, url):
    with pytest.raises(MalformedUrl):
        codec.decode(url)


def test_decode_rejects_non_string(codec):
    with pytest.raises(MalformedUrl):
        codec.decode(None)


def test_room_link_validates_fields():
    with pytest.raises(ValueError):
        RoomLink(push_id="")
    with pytest.raises(ValueError):
        RoomLink(push_id="room", audience="has space")


def test_room_link_repr_hides_values():
    link = RoomLink(push_id="room42", audience="viewerKeyABC")
    assert "room42" not in repr(link)
    assert "viewerKeyABC" not in repr(link)


def test_versioned_base_endpoint():
    versioned = LinkCodec("https://vdo.ninja/v24/")
    url = versioned.encode(RoomLink(push_id="room"))
    assert url == "https://vdo.ninja/v24/?push=room"
    assert versioned.decode(url).push_id == "room"
    with pytest.raises(MalformedUrl):
        versioned.decode("https://vdo.ninja/?push=room")


@pytest.mark.parametrize("base", ["http://vdo.ninja/", "https://vdo.ninja/?x=1", "not a url"])
def test_invalid_base_endpoint(base):
    with pytest.raises(ValueError):
        LinkCodec(base)
