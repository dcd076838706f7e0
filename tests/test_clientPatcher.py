import base64

import pytest

from clientPatcher import (
    ORIGINAL_URL,
    find_all_positions,
    pad_endpoint,
    patch_binary,
    patch_buffer,
    replace_all_but_last,
)
from errors import BinaryIoError, PayloadTooLarge

TARGET = "https://gdps.rigby.host/abc/db////"
ORIGINAL_B64 = base64.b64encode(ORIGINAL_URL)


def build(*parts):
    return b"".join(parts)


def test_pad_endpoint_fills_slot_with_zeros():
    padded = pad_endpoint(TARGET)
    assert len(padded) == len(ORIGINAL_URL)
    assert padded == TARGET.encode() + b"\x00"


def test_pad_endpoint_accepts_exact_width():
    url = "x" * len(ORIGINAL_URL)
    assert pad_endpoint(url) == url.encode()


def test_pad_endpoint_rejects_longer_url():
    with pytest.raises(PayloadTooLarge) as excinfo:
        pad_endpoint("x" * (len(ORIGINAL_URL) + 1))
    assert excinfo.value.max_len == len(ORIGINAL_URL)
    assert excinfo.value.got_len == len(ORIGINAL_URL) + 1


def test_pad_endpoint_counts_utf8_bytes():
    # 18 two-byte characters are 36 bytes
    with pytest.raises(PayloadTooLarge):
        pad_endpoint("é" * 18)


def test_base64_forms_have_equal_length():
    assert len(base64.b64encode(pad_endpoint(TARGET))) == len(ORIGINAL_B64)
    assert len(base64.b64encode(pad_endpoint("h"))) == len(ORIGINAL_B64)


def test_find_all_positions_sees_overlaps():
    assert find_all_positions(b"aaaa", b"aa") == [0, 1, 2]
    assert find_all_positions(b"abc", b"x") == []
    assert find_all_positions(b"abc", b"") == []


@pytest.mark.parametrize("count", [0, 1])
def test_replace_all_but_last_leaves_zero_or_one_match(count):
    data = bytearray(build(b"head", *[ORIGINAL_URL + b"--"] * count, b"tail"))
    before = bytes(data)
    assert replace_all_but_last(data, ORIGINAL_URL, pad_endpoint(TARGET)) == 0
    assert bytes(data) == before


@pytest.mark.parametrize("count", [2, 3, 5])
def test_replace_all_but_last_skips_highest_offset(count):
    data = bytearray(build(*[b"<" + ORIGINAL_URL + b">"] * count))
    new = pad_endpoint(TARGET)

    assert replace_all_but_last(data, ORIGINAL_URL, new) == count - 1

    stride = len(ORIGINAL_URL) + 2
    for i in range(count - 1):
        assert bytes(data[i * stride + 1 : i * stride + 1 + len(new)]) == new
    last = (count - 1) * stride + 1
    assert bytes(data[last : last + len(ORIGINAL_URL)]) == ORIGINAL_URL
    assert len(data) == count * stride


def test_replace_all_but_last_requires_equal_lengths():
    with pytest.raises(ValueError):
        replace_all_but_last(bytearray(b"abcabc"), b"abc", b"ab")


def test_patch_buffer_rewrites_raw_and_base64_independently():
    data = build(
        b"\x7fELF",
        ORIGINAL_URL, b"\x00",
        ORIGINAL_B64, b"\x00",
        ORIGINAL_URL, b"\x00",
        ORIGINAL_B64, b"\x00",
        ORIGINAL_B64, b"\x00",
        ORIGINAL_URL, b"\x00",
    )
    new = pad_endpoint(TARGET)
    new_b64 = base64.b64encode(new)

    patched = patch_buffer(data, TARGET)

    assert len(patched) == len(data)
    assert find_all_positions(patched, new) == [4, 4 + 36 + 49]
    assert find_all_positions(patched, ORIGINAL_URL) == [len(data) - 36]
    assert len(find_all_positions(patched, new_b64)) == 2
    assert find_all_positions(patched, ORIGINAL_B64) == [4 + 36 + 49 + 36 + 49]


def test_patch_buffer_single_raw_match_still_patches_base64():
    data = build(ORIGINAL_URL, b"|", ORIGINAL_B64, b"|", ORIGINAL_B64)
    patched = patch_buffer(data, TARGET)

    assert patched.startswith(ORIGINAL_URL)
    assert patched.endswith(ORIGINAL_B64)
    assert base64.b64encode(pad_endpoint(TARGET)) in patched


def test_patch_buffer_is_deterministic():
    data = build(*[ORIGINAL_URL + ORIGINAL_B64] * 3)
    assert patch_buffer(data, TARGET) == patch_buffer(data, TARGET)


def test_patch_binary_rewrites_file_in_place(tmp_path):
    binary = tmp_path / "GeometryDash.exe"
    original = build(b"MZ", ORIGINAL_URL, b"\x90" * 64, ORIGINAL_URL, b"\x90", ORIGINAL_URL)
    binary.write_bytes(original)

    patch_binary(str(binary), TARGET)

    data = binary.read_bytes()
    assert len(data) == len(original)
    assert find_all_positions(data, pad_endpoint(TARGET)) == [2, 2 + 35 + 64]
    assert data.endswith(ORIGINAL_URL)


def test_patch_binary_rejects_oversized_url_before_io(tmp_path):
    binary = tmp_path / "GeometryDash.exe"
    original = build(ORIGINAL_URL, ORIGINAL_URL)
    binary.write_bytes(original)

    with pytest.raises(PayloadTooLarge):
        patch_binary(str(binary), "https://gdps.rigby.host/toolong/db////")
    assert binary.read_bytes() == original

    # No read is attempted either
    with pytest.raises(PayloadTooLarge):
        patch_binary(str(tmp_path / "missing.exe"), "x" * 100)


def test_patch_binary_missing_file(tmp_path):
    with pytest.raises(BinaryIoError):
        patch_binary(str(tmp_path / "missing.exe"), TARGET)
