# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Helpers to decode the `pyasn1` structures of keys."""

from typing import Optional

from pyasn1.codec.der import decoder, encoder
from pyasn1.error import PyAsn1Error
from pyasn1.type import base, univ
from robot.api.deco import not_keyword

from der_keys.exceptions import BadAsn1Data, InvalidKeyData
from der_keys.oidutils import oid_to_bytes


@not_keyword
def decode_der_structure(data: bytes, asn1_spec: base.Asn1Item, structure_name: Optional[str] = None):
    """Decode DER data into the given structure, which must consume all of the data.

    :param data: The DER encoded data.
    :param asn1_spec: The `pyasn1` structure to decode into.
    :param structure_name: The name used inside the error messages. Defaults to the class name of the structure.
    :return: The decoded structure.
    :raises InvalidKeyData: If the data cannot be decoded into the structure.
    :raises BadAsn1Data: If the data has a remainder.
    """
    name = structure_name or type(asn1_spec).__name__
    if not isinstance(data, (bytes, bytearray)):
        raise InvalidKeyData(f"Expected bytes to decode a `{name}` structure. Got: {type(data).__name__}")

    try:
        obj, rest = decoder.decode(bytes(data), asn1Spec=asn1_spec)
    except PyAsn1Error as err:
        raise InvalidKeyData(f"Could not decode the `{name}` structure.", error_details=str(err)) from err

    if rest:
        raise BadAsn1Data(name, remainder=rest)

    return obj


@not_keyword
def get_alg_id_parameters(alg_id) -> Optional[bytes]:
    """Return the DER encoded parameters of an `AlgorithmIdentifier`.

    :param alg_id: The `AlgorithmIdentifier` structure.
    :return: The encoded parameters, or `None` if they are absent.
    """
    params = alg_id["parameters"]
    if not params.isValue:
        return None
    if isinstance(params, univ.Any):
        return params.asOctets()

    return encoder.encode(params)


@not_keyword
def get_parameters_oid(params: Optional[bytes]) -> Optional[bytes]:
    """Return the content octets of an OID stored as `AlgorithmIdentifier` parameters.

    :param params: The DER encoded parameters, as returned by `get_alg_id_parameters`.
    :return: The OID bytes, or `None` if the parameters are absent or not an OID.
    """
    if not params or params[0] != 0x06:
        return None
    try:
        oid, _ = decoder.decode(params, asn1Spec=univ.ObjectIdentifier())
    except PyAsn1Error:
        return None
    return oid_to_bytes(oid)
