# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Primitives to build DER encoded integer fields.

The Integer-to-Octet-String Primitive (I2OSP) is defined in RFC 3447 Section 4.1.
Unlike the RFC version, the output is meant to be the content of a DER `INTEGER`,
so a value whose first octet has the high bit set gets an extra leading zero octet,
otherwise it would be read as a negative number.

|    i2osp(b"\\x7f", 1)  -> 7f
|    i2osp(b"\\xff", 1)  -> 00 ff
|    i2osp(b"\\x01", 3)  -> 00 00 01

The other functions put the octets into complete DER `INTEGER` and `SEQUENCE` fields.
They are used by the key types, which export their numbers as PKCS#1 structures.
"""

from robot.api.deco import keyword, not_keyword

DER_TAG_INTEGER = 0x02
DER_TAG_SEQUENCE = 0x30


@keyword(name="I2OSP")
def i2osp(x: bytes, size: int) -> bytes:  # noqa: D417 undocumented-param
    """Convert a nonnegative big-endian integer to an octet string of at least `size` bytes.

    Leading zero bytes inside `x` are kept, and `x` is never truncated, if it is
    already longer than `size`. An empty input with `size` 0 returns an empty string,
    because there is no first octet to check the sign bit of.

    Arguments:
    ---------
        - `x`: The big-endian bytes of the nonnegative integer.
        - `size`: The intended length of the octet string.

    Returns:
    -------
        - The octet string, `size` bytes long or one byte longer, if the high bit was set.

    Examples:
    --------
    | ${octets}= | I2OSP | ${modulus_bytes} | 256 |

    """
    padding = max(size - len(x), 0)
    octets = b"\x00" * padding + bytes(x)
    if octets and octets[0] >= 0x80:
        octets = b"\x00" + octets
    return octets


@not_keyword
def i2osp_bytearray(x: bytes, size: int) -> bytearray:
    """Return the same octets as `i2osp`, as a new mutable buffer owned by the caller."""
    return bytearray(i2osp(x, size))


@not_keyword
def int_to_octets(value: int) -> bytes:
    """Convert a nonnegative integer to its minimal big-endian bytes.

    :param value: The integer to convert.
    :return: The bytes, empty for `0`.
    :raises ValueError: If the value is negative.
    """
    if value < 0:
        raise ValueError(f"Only nonnegative integers can be converted. Got: {value}")
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


@not_keyword
def encode_der_length(length: int) -> bytes:
    """Encode the length octets of a DER field.

    :param length: The number of content octets.
    :return: The short form for lengths below 128, otherwise the long form.
    """
    if length < 0:
        raise ValueError(f"The length must be nonnegative. Got: {length}")
    if length < 0x80:
        return bytes([length])
    length_bytes = int_to_octets(length)
    return bytes([0x80 | len(length_bytes)]) + length_bytes


@not_keyword
def encode_der_integer(value: int, size: int = 0) -> bytes:
    """Encode a nonnegative integer as a DER `INTEGER` field.

    :param value: The integer to encode.
    :param size: The minimal number of content octets before the sign correction.
    Defaults to `0`, which gives the canonical encoding.
    :return: The tag, length and content octets.
    """
    content = i2osp(int_to_octets(value), max(size, 1))
    return bytes([DER_TAG_INTEGER]) + encode_der_length(len(content)) + content


@not_keyword
def encode_der_sequence(*fields: bytes) -> bytes:
    """Wrap already encoded DER fields into a `SEQUENCE`.

    :param fields: The encoded fields, in order.
    :return: The DER encoded `SEQUENCE`.
    """
    content = b"".join(fields)
    return bytes([DER_TAG_SEQUENCE]) + encode_der_length(len(content)) + content
