from __future__ import annotations

import base64

import pytest

from conftest import make_png, to_data_uri
from facematch.errors import DecodeError
from facematch.utils.image import decode_base64_image, decode_image_bytes, strip_data_uri


@pytest.mark.parametrize(
    "payload, expected",
    [
        ("data:image/jpeg;base64,/9j/4AAQ", "/9j/4AAQ"),
        ("data:image/png,iVBORw0K", "iVBORw0K"),
        ("/9j/4AAQ", "/9j/4AAQ"),
    ],
)
def test_strip_data_uri(payload: str, expected: str):
    assert strip_data_uri(payload) == expected


def test_decode_image_bytes_keeps_natural_size():
    image = decode_image_bytes(make_png(42, width=6, height=4))

    assert image.shape == (4, 6, 3)
    assert int(image[0, 0, 0]) == 42


def test_decode_data_uri():
    image = decode_base64_image(to_data_uri(make_png(17, width=5, height=3)))

    assert image.shape == (3, 5, 3)
    assert int(image[2, 4, 1]) == 17


def test_decode_bare_base64_and_wrapped_lines():
    encoded = base64.encodebytes(make_png(99)).decode("ascii")
    assert "\n" in encoded

    image = decode_base64_image(encoded)
    assert int(image[0, 0, 0]) == 99


@pytest.mark.parametrize(
    "payload",
    [
        "data:image/png;base64,this is not base64!!",
        "data:image/png;base64,abc",
        "",
        base64.b64encode(b"plain text, not an image").decode("ascii"),
    ],
)
def test_malformed_payloads_raise_decode_error(payload: str):
    with pytest.raises(DecodeError):
        decode_base64_image(payload)


def test_non_string_payload_raises_decode_error():
    with pytest.raises(DecodeError):
        decode_base64_image(None)


def test_empty_bytes_raise_decode_error():
    with pytest.raises(DecodeError):
        decode_image_bytes(b"")
