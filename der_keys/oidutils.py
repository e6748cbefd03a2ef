"""Defines the Object Identifiers (OIDs) and algorithm identities of the supported key types."""

# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

from dataclasses import dataclass
from typing import Dict, Optional

from cryptography.hazmat.primitives.asymmetric import ec
from pyasn1.codec.der import decoder, encoder
from pyasn1.error import PyAsn1Error
from pyasn1.type import univ
from robot.api.deco import not_keyword

from der_keys.derutils import encode_der_length

# The OIDs are kept as the content octets of the DER `OBJECT IDENTIFIER`,
# so `2A 86 48 86 F7 0D 01 01 01` is `1.2.840.113549.1.1.1`.
RSA_ENCRYPTION_OID = bytes.fromhex("2A864886F70D010101")
RSASSA_PSS_OID = bytes.fromhex("2A864886F70D01010A")
EC_PUBLIC_KEY_OID = bytes.fromhex("2A8648CE3D0201")
ED25519_OID = bytes.fromhex("2B6570")
ED448_OID = bytes.fromhex("2B6571")

SECP256R1_OID = bytes.fromhex("2A8648CE3D030107")
SECP384R1_OID = bytes.fromhex("2B81040022")
SECP521R1_OID = bytes.fromhex("2B81040023")
SECP256K1_OID = bytes.fromhex("2B8104000A")

CURVE_NAME_2_OID: Dict[str, bytes] = {
    "secp256r1": SECP256R1_OID,
    "secp384r1": SECP384R1_OID,
    "secp521r1": SECP521R1_OID,
    "secp256k1": SECP256K1_OID,
}

CURVE_OID_2_NAME: Dict[bytes, str] = {y: x for x, y in CURVE_NAME_2_OID.items()}

CURVE_NAMES_TO_INSTANCES = {
    "secp256r1": ec.SECP256R1(),  # NIST P-256
    "prime256v1": ec.SECP256R1(),  # NIST P-256 (alias)
    "secp384r1": ec.SECP384R1(),  # NIST P-384
    "secp521r1": ec.SECP521R1(),  # NIST P-521
    "secp256k1": ec.SECP256K1(),  # SECG curve over a 256 bit prime field
}

KEY_OID_2_NAME: Dict[bytes, str] = {
    RSA_ENCRYPTION_OID: "rsaEncryption",
    RSASSA_PSS_OID: "id-RSASSA-PSS",
    EC_PUBLIC_KEY_OID: "id-ecPublicKey",
    ED25519_OID: "id-Ed25519",
    ED448_OID: "id-Ed448",
}

ALL_KNOWN_OIDS_2_NAME: Dict[bytes, str] = {}
ALL_KNOWN_OIDS_2_NAME.update(KEY_OID_2_NAME)
ALL_KNOWN_OIDS_2_NAME.update(CURVE_OID_2_NAME)


@dataclass(frozen=True)
class AlgorithmIdentity:
    """The OIDs a key type is identified by.

    Attributes
    ----------
        primary: The OID of the algorithm family, e.g. `rsaEncryption`.
        secondary: The OID which qualifies the parameters, e.g. the named curve. `None` if absent.

    """

    primary: bytes
    secondary: Optional[bytes] = None

    def __str__(self) -> str:
        """Return the human-readable names of the OIDs."""
        if self.secondary is None:
            return may_return_oid_to_name(self.primary)
        return f"{may_return_oid_to_name(self.primary)}/{may_return_oid_to_name(self.secondary)}"


@not_keyword
def oid_to_bytes(oid: univ.ObjectIdentifier) -> bytes:
    """Return the content octets of the DER encoded OID.

    :param oid: The OID to convert.
    :return: The encoded OID without the tag and length octets.
    """
    der_data = encoder.encode(univ.ObjectIdentifier(oid))
    header_size = 2 if der_data[1] < 0x80 else 2 + (der_data[1] & 0x7F)
    return der_data[header_size:]


@not_keyword
def bytes_to_oid(oid_bytes: bytes) -> univ.ObjectIdentifier:
    """Create a `pyasn1` OID from the content octets of a DER encoded OID.

    :param oid_bytes: The content octets.
    :return: The OID.
    :raises pyasn1.error.PyAsn1Error: If the octets are not a valid OID.
    """
    der_data = b"\x06" + encode_der_length(len(oid_bytes)) + oid_bytes
    oid, _ = decoder.decode(der_data, asn1Spec=univ.ObjectIdentifier())
    return oid


@not_keyword
def may_return_oid_to_name(oid: bytes) -> str:
    """Check if the OID is known and then return a human-readable representation, or the dotted string.

    :param oid: The content octets of the OID to perform the lookup for.
    :return: Either a human-readable name, the dotted string or the hex value for invalid OIDs.
    """
    out = ALL_KNOWN_OIDS_2_NAME.get(bytes(oid))
    if out is not None:
        return out
    try:
        return str(bytes_to_oid(oid))
    except PyAsn1Error:
        return oid.hex()


@not_keyword
def get_curve_instance(curve_name: str) -> ec.EllipticCurve:
    """Retrieve an instance of an elliptic curve based on its name.

    :param curve_name: A string name of the elliptic curve to retrieve.
    :raises ValueError: If the specified curve name is not supported.
    :return: `cryptography.hazmat.primitives.ec` EllipticCurve instance.
    """
    if curve_name not in CURVE_NAMES_TO_INSTANCES:
        raise ValueError(f"The Curve: {curve_name} is not Supported!")

    return CURVE_NAMES_TO_INSTANCES[curve_name]
