import pytest

from winscp_decode import (
    PASSWORD_MAGIC,
    MalformedEncoding,
    NibbleCursor,
    decode_byte,
    decode_password,
    encode_password,
    unpack_hex,
)

# root@10.0.0.1 / secret, extended record as WinSCP writes it (minus padding)
ROOT_SECRET = "A35C4E5C2E3333286D6C726C726C726D2F393F2E3928"
# flag=5, skip=0, "admin"
ADMIN = "595C3D38313532"


@pytest.mark.parametrize(
    "a, b, expected",
    [
        (0x0, 0x0, 0x5C),
        (0xF, 0xF, 0xA3),
        (0xA, 0x3, 0xFF),
        (0x5, 0xC, 0x00),
        (0x1, 0x2, 0x4E),
        (0x7, 0x0, 0x2C),
        (0x3, 0xD, ord("a")),
        (0xF, 0x0, 0xAC),
    ],
)
def test_decode_byte_table(a, b, expected):
    assert decode_byte(a, b) == expected


def test_decode_byte_matches_formula():
    for a in range(16):
        for b in range(16):
            assert decode_byte(a, b) == (~(((a << 4) + b) ^ PASSWORD_MAGIC)) & 0xFF


@pytest.mark.parametrize(
    "text, nibbles",
    [
        ("", []),
        ("A35c", [0xA, 0x3, 0x5, 0xC]),
        ("09af", [0, 9, 10, 15]),
        ("1z3", [1, 0, 3]),
        ("g", [0]),
        ("+-", [0, 0]),
    ],
)
def test_unpack_hex(text, nibbles):
    assert unpack_hex(text) == nibbles


def test_unpack_hex_splits_bytes_high_nibble_first():
    data = bytes(range(256))
    nibbles = unpack_hex(data.hex())
    assert nibbles[0::2] == [x >> 4 for x in data]
    assert nibbles[1::2] == [x & 0xF for x in data]
    assert unpack_hex(data.hex()) == nibbles


@pytest.mark.parametrize("nibbles", [[], [7]])
def test_next_byte_exhausted_is_zero(nibbles):
    cursor = NibbleCursor(nibbles)
    assert cursor.next_byte() == 0
    assert cursor.remaining == 0
    assert cursor.next_byte() == 0


def test_next_byte_consumes_two_nibbles():
    cursor = NibbleCursor(unpack_hex("5C3D1"))
    assert cursor.next_byte() == 0x00
    assert cursor.remaining == 3
    assert cursor.next_byte() == ord("a")
    assert cursor.remaining == 1
    assert cursor.next_byte() == 0
    assert cursor.remaining == 0


def test_cursor_skip():
    cursor = NibbleCursor(unpack_hex("00003D"))
    cursor.skip(2)
    assert cursor.next_byte() == ord("a")
    with pytest.raises(MalformedEncoding):
        NibbleCursor(unpack_hex("0000")).skip(3)


def test_decode_simple_record():
    assert decode_password("10.0.0.1", "root", ADMIN) == "admin"


def test_decode_extended_record():
    assert decode_password("10.0.0.1", "root", ROOT_SECRET) == "secret"
    assert decode_password("10.0.0.1", "root", ROOT_SECRET.lower()) == "secret"


def test_decode_ignores_trailing_padding():
    assert decode_password("h", "u", ADMIN + "5C5C2F") == "admin"


def test_decode_invalid_hex_reads_as_zero():
    # last pair "3G" becomes (3, 0)
    assert decode_password("h", "u", ADMIN[:-2] + "3G") == "admil"


@pytest.mark.parametrize("host, username", [("", ""), ("h", "u")])
def test_decode_empty(host, username):
    assert decode_password(host, username, "") == ""


@pytest.mark.parametrize(
    "encoded",
    [
        "595C3D38",  # declares 5 characters, carries 2
        "5D5F3D",  # skip of 3 with one byte left
        "59",  # header only
        "A35C5E5C2E33",  # extended body "ro" shorter than "root10.0.0.1"
        "A3",  # extended flag only
    ],
)
def test_decode_malformed(encoded):
    with pytest.raises(MalformedEncoding):
        decode_password("10.0.0.1", "root", encoded)


def test_encode_matches_stored_value():
    assert encode_password("10.0.0.1", "root", "secret") == ROOT_SECRET
    assert encode_password("10.0.0.1", "root", "admin", extended=False) == ADMIN


@pytest.mark.parametrize("skip", [0, 1, 17])
@pytest.mark.parametrize("extended", [True, False])
def test_encode_decode(skip, extended):
    encoded = encode_password("sftp.example.com", "deploy", "p@ss w0rd!", skip=skip, extended=extended)
    assert decode_password("sftp.example.com", "deploy", encoded) == "p@ss w0rd!"


def test_encode_rejects_unrepresentable():
    with pytest.raises(ValueError):
        encode_password("h", "u", "x" * 300)
    with pytest.raises(ValueError):
        encode_password("h", "u", "snowman ☃")
    with pytest.raises(ValueError):
        encode_password("h", "u", "x", skip=256)
