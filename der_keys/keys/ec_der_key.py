# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Elliptic curve key types, one for each supported named curve."""

import logging
from typing import ClassVar, Optional, Union

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from pyasn1.codec.der import encoder
from pyasn1.type import tag, univ
from pyasn1_alt_modules import rfc5915

from der_keys.asn1utils import decode_der_structure
from der_keys.codec_config import DecodeConfigVars, EncodeConfigVars
from der_keys.exceptions import InvalidKeyData, MismatchingKey, MismatchingOID, MissingKeyMaterial
from der_keys.keys.abstract_der_keys import DERCodable
from der_keys.oidutils import (
    EC_PUBLIC_KEY_OID,
    SECP256K1_OID,
    SECP256R1_OID,
    SECP384R1_OID,
    SECP521R1_OID,
    bytes_to_oid,
    get_curve_instance,
    oid_to_bytes,
)

ECKey = Union[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey]


class ECDERKey(DERCodable):
    """Base class for elliptic curve keys.

    The public key is exported as `SubjectPublicKeyInfo` (RFC 5480) and the private key
    as `ECPrivateKey` (RFC 5915), both with the `namedCurve` parameters of the key type.
    """

    primary_oid = EC_PUBLIC_KEY_OID
    _name = "ecc"
    curve_name: ClassVar[Optional[str]] = None

    _private_key: Optional[ec.EllipticCurvePrivateKey]
    _public_key: ec.EllipticCurvePublicKey

    def __init__(self, key: ECKey, encode_config: Optional[EncodeConfigVars] = None):
        """Initialize the EC key.

        :param key: The `cryptography` EC private or public key, on the curve of the key type.
        :param encode_config: The configuration for exporting the key. Defaults to `EncodeConfigVars()`.
        :raises TypeError: If the class does not name a curve.
        :raises ValueError: If the key is not an EC key or is on a different curve.
        """
        if self.curve_name is None:
            raise TypeError(f"{type(self).__name__} does not name a curve, use a curve specific key type.")

        if isinstance(key, ec.EllipticCurvePrivateKey):
            self._private_key = key
            self._public_key = key.public_key()
        elif isinstance(key, ec.EllipticCurvePublicKey):
            self._private_key = None
            self._public_key = key
        else:
            raise ValueError(f"Expected an EC key. Got: {type(key).__name__}")

        if key.curve.name != self.curve_name:
            raise ValueError(f"Expected a key on the curve: {self.curve_name}. Got: {key.curve.name}")
        self.encode_config = encode_config or EncodeConfigVars()

    @classmethod
    def get_curve(cls) -> ec.EllipticCurve:
        """Return the `cryptography` curve of the key type."""
        return get_curve_instance(cls.curve_name)

    @classmethod
    def _private_value_size(cls) -> int:
        """Return the length of the private value in bytes."""
        return (cls.get_curve().key_size + 7) // 8

    @classmethod
    def generate(cls) -> "ECDERKey":
        """Generate a private key on the curve of the key type."""
        return cls(ec.generate_private_key(cls.get_curve()))

    @classmethod
    def from_cryptography_key(cls, key: ECKey) -> "ECDERKey":
        """Wrap a `cryptography` EC key, which must be on the curve of the key type."""
        return cls(key)

    @classmethod
    def _load_point(cls, point: bytes) -> ec.EllipticCurvePublicKey:
        """Load an X9.62 encoded point on the curve of the key type."""
        try:
            return ec.EllipticCurvePublicKey.from_encoded_point(cls.get_curve(), point)
        except ValueError as err:
            raise InvalidKeyData(f"Invalid point for the curve: {cls.curve_name}", error_details=str(err)) from err

    @classmethod
    def _check_public_point(cls, private_key: ec.EllipticCurvePrivateKey, point: bytes) -> None:
        """Check that an embedded public point belongs to the private key."""
        public_key = cls._load_point(point)
        if public_key.public_numbers() != private_key.public_key().public_numbers():
            raise MismatchingKey("The embedded public key does not match the EC private key.")

    @classmethod
    def _load_ec_private_key(
        cls, data: bytes, config: DecodeConfigVars, inside_pkcs8: bool = False
    ) -> ec.EllipticCurvePrivateKey:
        """Load an `ECPrivateKey` structure.

        Outside of a PKCS#8 structure the `namedCurve` parameters must be present,
        otherwise the curve of the key is unknown.

        :param data: The DER encoded structure.
        :param config: The decode configuration.
        :param inside_pkcs8: Whether the structure was wrapped inside a PKCS#8 structure.
        :return: The loaded private key.
        """
        ec_private_key = decode_der_structure(data, rfc5915.ECPrivateKey())
        version = int(ec_private_key["version"])
        if version != 1:
            raise InvalidKeyData(f"Unsupported `ECPrivateKey` version: {version}")

        if ec_private_key["parameters"].isValue:
            params = ec_private_key["parameters"]
            if params.getName() != "namedCurve":
                raise InvalidKeyData(f"Only named curves are supported. Got: {params.getName()}")
            curve_oid = oid_to_bytes(params["namedCurve"])
            if curve_oid != cls.secondary_oid:
                raise MismatchingOID(cls.secondary_oid, curve_oid, key_type=cls.__name__, what="curve")
        elif not inside_pkcs8:
            raise InvalidKeyData("The `ECPrivateKey` structure does not name its curve.")

        private_value = int.from_bytes(ec_private_key["privateKey"].asOctets(), "big")
        try:
            private_key = ec.derive_private_key(private_value, cls.get_curve())
        except ValueError as err:
            raise InvalidKeyData("The EC private value is invalid.", error_details=str(err)) from err

        if ec_private_key["publicKey"].isValue and config.check_public_key:
            cls._check_public_point(private_key, ec_private_key["publicKey"].asOctets())

        return private_key

    @classmethod
    def from_public_der(cls, data: bytes, config: Optional[DecodeConfigVars] = None) -> "ECDERKey":
        """Load an EC public key from a DER encoded `SubjectPublicKeyInfo` structure.

        :param data: The DER encoded public key.
        :param config: The decode configuration. Not used, because the public key is always a `SubjectPublicKeyInfo`.
        :return: The public-only EC key.
        :raises InvalidKeyData: If the data is not an EC public key.
        :raises MismatchingOID: If the algorithm or the curve does not match the key type.
        """
        point = cls._load_spki(data)
        return cls(cls._load_point(point))

    @classmethod
    def from_private_der(cls, data: bytes, config: Optional[DecodeConfigVars] = None) -> "ECDERKey":
        """Load an EC private key from a DER encoded `ECPrivateKey` or PKCS#8 `OneAsymmetricKey` structure.

        :param data: The DER encoded private key.
        :param config: The decode configuration. Defaults to `DecodeConfigVars()`.
        :return: The EC private key.
        :raises InvalidKeyData: If the data is not an EC private key.
        :raises MismatchingOID: If the algorithm or the curve does not match the key type.
        :raises MismatchingKey: If an embedded public key does not match the private key.
        """
        config = config or DecodeConfigVars()
        one_asym_key = cls._try_decode_one_asym_key(data) if config.allow_pkcs8 else None
        if one_asym_key is None:
            return cls(cls._load_ec_private_key(data, config))

        logging.debug("Load the %s private key from a PKCS#8 structure.", cls.curve_name)
        private_key_bytes, public_key_bytes = cls._load_one_asym_key(one_asym_key)
        private_key = cls._load_ec_private_key(private_key_bytes, config, inside_pkcs8=True)

        if public_key_bytes is not None and config.check_public_key:
            cls._check_public_point(private_key, public_key_bytes)

        return cls(private_key)

    def _encoded_point(self) -> bytes:
        """Return the X9.62 encoded public point."""
        point_format = (
            PublicFormat.CompressedPoint if self.encode_config.ec_compressed_point else PublicFormat.UncompressedPoint
        )
        return self._public_key.public_bytes(Encoding.X962, point_format)

    def public_key_der(self) -> bytes:
        """Export the public key as DER encoded `SubjectPublicKeyInfo` structure."""
        return self.to_spki()

    def private_key_der(self) -> bytes:
        """Export the private key as DER encoded `ECPrivateKey` structure.

        :raises MissingKeyMaterial: If the key only holds the public key.
        """
        if self._private_key is None:
            raise MissingKeyMaterial(f"The {self.curve_name} key only holds public key material.")

        private_nums = self._private_key.private_numbers()
        ec_private_key = rfc5915.ECPrivateKey()
        ec_private_key["version"] = 1
        ec_private_key["privateKey"] = univ.OctetString(
            private_nums.private_value.to_bytes(self._private_value_size(), "big")
        )
        ec_private_key["parameters"]["namedCurve"] = bytes_to_oid(self.secondary_oid)

        if self.encode_config.ec_include_public_key:
            ec_private_key["publicKey"] = univ.BitString(hexValue=self._encoded_point().hex()).subtype(
                explicitTag=tag.Tag(tag.tagClassContext, tag.tagFormatSimple, 1)
            )

        return encoder.encode(ec_private_key)

    def _get_subject_public_key(self) -> bytes:
        """Return the encoded point for the `SubjectPublicKeyInfo`."""
        return self._encoded_point()

    def _export_private_key(self) -> bytes:
        """Return the `ECPrivateKey` structure for the `OneAsymmetricKey`."""
        return self.private_key_der()

    @property
    def has_private_key(self) -> bool:
        """Return whether the key holds the private key."""
        return self._private_key is not None

    @property
    def key_size(self) -> int:
        """Return the size of the curve in bits."""
        return self.get_curve().key_size

    def public_key(self) -> "ECDERKey":
        """Return the public-only EC key."""
        return type(self)(self._public_key, encode_config=self.encode_config)

    def to_cryptography_key(self) -> ECKey:
        """Return the wrapped `cryptography` key, the private key if present."""
        return self._private_key if self._private_key is not None else self._public_key


class ECP256DERKey(ECDERKey):
    """EC key on the NIST P-256 curve."""

    secondary_oid = SECP256R1_OID
    curve_name = "secp256r1"


class ECP384DERKey(ECDERKey):
    """EC key on the NIST P-384 curve."""

    secondary_oid = SECP384R1_OID
    curve_name = "secp384r1"


class ECP521DERKey(ECDERKey):
    """EC key on the NIST P-521 curve."""

    secondary_oid = SECP521R1_OID
    curve_name = "secp521r1"


class ECSecp256k1DERKey(ECDERKey):
    """EC key on the SECG secp256k1 curve."""

    secondary_oid = SECP256K1_OID
    curve_name = "secp256k1"
