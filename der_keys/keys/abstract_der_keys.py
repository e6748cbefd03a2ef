# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Abstract classes for keys, which can be loaded from and exported to DER.

These classes define the abstract methods that must be implemented by the concrete
key classes, and the methods every key type gets on top of them.

- The `from_public_der` and `from_private_der` class methods create a key from the
DER encoded public or private key structure of the key type.

- The `public_key_der` and `private_key_der` methods export the key as the DER encoded
public or private key structure of the key type.

- The `from_raw_representation` class method loads DER data, without knowing if it holds
a private or a public key. The private key is tried first, because for the common algorithms
the private key structure cannot be mistaken for the public one.

- The `external_representation` method exports the private key if the key has one,
otherwise the public key. The `public_key_external_representation` method always exports
the public key.

The key type is identified by the class attributes `primary_oid` and `secondary_oid`,
which hold the content octets of the DER encoded OIDs. They are used for checking the
`AlgorithmIdentifier` of loaded structures, as well as for building the `SubjectPublicKeyInfo`
and `OneAsymmetricKey` structures.
"""

import logging
from abc import ABC, abstractmethod
from typing import ClassVar, Optional, Tuple, Type, TypeVar

from pyasn1.codec.der import encoder
from pyasn1.type import univ
from pyasn1_alt_modules import rfc5280, rfc5958

from der_keys.asn1utils import decode_der_structure, get_alg_id_parameters, get_parameters_oid
from der_keys.codec_config import DecodeConfigVars
from der_keys.derutils import encode_der_length
from der_keys.exceptions import DERKeyError, FallbackExhausted, InvalidKeyData, MismatchingOID, MissingKeyMaterial
from der_keys.oidutils import AlgorithmIdentity, bytes_to_oid, oid_to_bytes

T = TypeVar("T", bound="DERDecodable")

DER_NULL = encoder.encode(univ.Null(""))


class BaseDERKey(ABC):
    """Abstract Base Class for the identity of all DER key types."""

    # The content octets of the OIDs, e.g. `rsaEncryption` and `None`.
    # Set by the concrete key type, never per instance.
    primary_oid: ClassVar[bytes]
    secondary_oid: ClassVar[Optional[bytes]] = None

    @classmethod
    def algorithm_identity(cls) -> AlgorithmIdentity:
        """Return the algorithm identity of the key type.

        :return: The primary and the optional secondary OID.
        :raises TypeError: If the key type does not declare its OIDs as bytes.
        """
        primary = getattr(cls, "primary_oid", None)
        if not isinstance(primary, bytes) or not primary:
            raise TypeError(f"The key type {cls.__name__} does not declare a primary OID.")
        if cls.secondary_oid is not None and not isinstance(cls.secondary_oid, bytes):
            raise TypeError(f"The secondary OID of the key type {cls.__name__} must be bytes or `None`.")
        return AlgorithmIdentity(primary=primary, secondary=cls.secondary_oid)


class DERDecodable(BaseDERKey):
    """Abstract class for key types, which can be loaded from DER."""

    @classmethod
    @abstractmethod
    def from_public_der(cls: Type[T], data: bytes, config: Optional[DecodeConfigVars] = None) -> T:
        """Load a public key from its DER encoded structure.

        :param data: The DER encoded public key.
        :param config: The decode configuration. Defaults to `DecodeConfigVars()`.
        :return: The loaded key.
        :raises InvalidKeyData: If the data is not a public key structure of the key type.
        :raises MismatchingOID: If the algorithm identifier does not match the key type.
        """

    @classmethod
    @abstractmethod
    def from_private_der(cls: Type[T], data: bytes, config: Optional[DecodeConfigVars] = None) -> T:
        """Load a private key from its DER encoded structure.

        :param data: The DER encoded private key.
        :param config: The decode configuration. Defaults to `DecodeConfigVars()`.
        :return: The loaded key.
        :raises InvalidKeyData: If the data is not a private key structure of the key type.
        :raises MismatchingOID: If the algorithm identifier does not match the key type.
        """

    @classmethod
    def from_raw_representation(cls: Type[T], data: bytes, config: Optional[DecodeConfigVars] = None) -> T:
        """Load a key from DER data, which either holds a private or a public key.

        The data is loaded as private key first, and only if that fails, as public key.

        :param data: The DER encoded private or public key.
        :param config: The decode configuration. Defaults to `DecodeConfigVars()`.
        :return: The loaded key.
        :raises FallbackExhausted: If the data is neither a private nor a public key of the key type.
        """
        try:
            return cls.from_private_der(data, config=config)
        except DERKeyError as private_err:
            logging.debug("Could not load the data as %s private key: %s", cls.__name__, private_err)
            try:
                return cls.from_public_der(data, config=config)
            except DERKeyError as public_err:
                raise FallbackExhausted(
                    f"The data is neither a private nor a public {cls.__name__} key.",
                    errors=[private_err, public_err],
                ) from private_err


class DEREncodable(BaseDERKey):
    """Abstract class for keys, which can be exported as DER."""

    @abstractmethod
    def public_key_der(self) -> bytes:
        """Export the public key as DER encoded structure."""

    @abstractmethod
    def private_key_der(self) -> bytes:
        """Export the private key as DER encoded structure.

        :raises MissingKeyMaterial: If the key only holds public key material.
        """

    def external_representation(self) -> bytes:
        """Export the private key, or the public key for public-only keys.

        :return: The DER encoded private or public key.
        :raises FallbackExhausted: If neither the private nor the public key could be exported.
        """
        try:
            return self.private_key_der()
        except DERKeyError as private_err:
            logging.debug("Export the public key of %s instead: %s", type(self).__name__, private_err)
            try:
                return self.public_key_der()
            except DERKeyError as public_err:
                raise FallbackExhausted(
                    f"Neither the private nor the public {type(self).__name__} key could be exported.",
                    errors=[private_err, public_err],
                ) from private_err

    def public_key_external_representation(self) -> bytes:
        """Export the public key, also for private keys.

        :return: The DER encoded public key.
        """
        return self.public_key_der()


class DERCodable(DERDecodable, DEREncodable):
    """Abstract class for key types, which can be loaded from and exported to DER.

    Provides the `SubjectPublicKeyInfo` and `OneAsymmetricKey` structures for all key types.
    """

    _name: str = "base"

    def __eq__(self, other) -> bool:
        """Compare two keys of the same type by their public and private key."""
        if type(self) is not type(other):
            return False
        if self.has_private_key != other.has_private_key:
            return False
        if self.public_key_der() != other.public_key_der():
            return False
        if self.has_private_key:
            return self.private_key_der() == other.private_key_der()
        return True

    def __repr__(self) -> str:
        """Return the key type and whether it holds a private key."""
        return f"{type(self).__name__}(key_size={self.key_size}, private={self.has_private_key})"

    @property
    def name(self) -> str:
        """Get the name of the key."""
        return self._name.lower()

    @property
    @abstractmethod
    def has_private_key(self) -> bool:
        """Return whether the key holds private key material."""

    @property
    @abstractmethod
    def key_size(self) -> int:
        """Retrieve the size of the key in bits."""

    @abstractmethod
    def public_key(self):
        """Return the public-only key of this key."""

    @abstractmethod
    def _get_subject_public_key(self) -> bytes:
        """Get the public key for the `SubjectPublicKeyInfo` structure.

        MUST not include the BIT STRING encoding.
        """

    @abstractmethod
    def _export_private_key(self) -> bytes:
        """Export the private key as bytes, to put it inside a `OneAsymmetricKey` structure."""

    @classmethod
    def _expected_parameters(cls) -> bytes:
        """Return the DER encoded parameters of the algorithm identifier.

        The secondary OID, or `NULL` if the key type has none.
        """
        identity = cls.algorithm_identity()
        if identity.secondary is None:
            return DER_NULL
        return b"\x06" + encode_der_length(len(identity.secondary)) + identity.secondary

    @classmethod
    def algorithm_identifier(cls) -> rfc5280.AlgorithmIdentifier:
        """Return the `AlgorithmIdentifier` of the key type."""
        alg_id = rfc5280.AlgorithmIdentifier()
        alg_id["algorithm"] = bytes_to_oid(cls.algorithm_identity().primary)
        alg_id["parameters"] = univ.Any(cls._expected_parameters())
        return alg_id

    @classmethod
    def check_algorithm_identifier(cls, alg_id: rfc5280.AlgorithmIdentifier) -> None:
        """Check that an `AlgorithmIdentifier` belongs to the key type.

        Absent parameters are accepted, if the key type expects `NULL` parameters.

        :param alg_id: The algorithm identifier of a loaded structure.
        :raises MismatchingOID: If the algorithm or the parameters do not match.
        """
        identity = cls.algorithm_identity()
        found = oid_to_bytes(alg_id["algorithm"])
        if found != identity.primary:
            raise MismatchingOID(identity.primary, found, key_type=cls.__name__)

        params = get_alg_id_parameters(alg_id)
        if identity.secondary is None:
            if params is not None and params != DER_NULL:
                raise MismatchingOID(None, get_parameters_oid(params) or params, cls.__name__, what="parameters")
            return

        if params != cls._expected_parameters():
            raise MismatchingOID(identity.secondary, get_parameters_oid(params), cls.__name__, what="parameters")

    @classmethod
    def _load_spki(cls, data: bytes) -> bytes:
        """Load a `SubjectPublicKeyInfo` structure of the key type.

        :param data: The DER encoded structure.
        :return: The content of the `subjectPublicKey` field.
        """
        spki = decode_der_structure(data, rfc5280.SubjectPublicKeyInfo())
        cls.check_algorithm_identifier(spki["algorithm"])
        return spki["subjectPublicKey"].asOctets()

    @classmethod
    def _load_one_asym_key(cls, one_asym_key: rfc5958.OneAsymmetricKey) -> Tuple[bytes, Optional[bytes]]:
        """Check a `OneAsymmetricKey` structure and return the key bytes.

        :param one_asym_key: The decoded structure.
        :return: The private key bytes and the public key bytes, if present.
        :raises InvalidKeyData: If the version is unsupported or the version `0` structure has a public key.
        :raises MismatchingOID: If the algorithm identifier does not match the key type.
        """
        version = int(one_asym_key["version"])
        if version not in (0, 1):
            raise InvalidKeyData(f"Unsupported PKCS#8 version: {version}")

        if one_asym_key["publicKey"].isValue and version == 0:
            raise InvalidKeyData("Public key is not allowed in PKCS#8 version 0.")

        cls.check_algorithm_identifier(one_asym_key["privateKeyAlgorithm"])
        private_key_bytes = one_asym_key["privateKey"].asOctets()
        public_key_bytes = one_asym_key["publicKey"].asOctets() if one_asym_key["publicKey"].isValue else None
        return private_key_bytes, public_key_bytes

    @classmethod
    def _try_decode_one_asym_key(cls, data: bytes) -> Optional[rfc5958.OneAsymmetricKey]:
        """Decode the data as `OneAsymmetricKey`, if it has the shape of one.

        :return: The decoded structure, or `None` if the data is a different structure.
        :raises BadAsn1Data: If the structure has a remainder.
        """
        try:
            return decode_der_structure(data, rfc5958.OneAsymmetricKey())
        except InvalidKeyData:
            return None

    @classmethod
    def _try_decode_spki(cls, data: bytes) -> Optional[rfc5280.SubjectPublicKeyInfo]:
        """Decode the data as `SubjectPublicKeyInfo`, if it has the shape of one.

        :return: The decoded structure, or `None` if the data is a different structure.
        :raises BadAsn1Data: If the structure has a remainder.
        """
        try:
            return decode_der_structure(data, rfc5280.SubjectPublicKeyInfo())
        except InvalidKeyData:
            return None

    def to_spki(self) -> bytes:
        """Encode the public key into the `SubjectPublicKeyInfo` (spki) format.

        :return: The public key in DER-encoded spki format as bytes.
        """
        spki = rfc5280.SubjectPublicKeyInfo()
        spki["algorithm"]["algorithm"] = bytes_to_oid(self.algorithm_identity().primary)
        spki["algorithm"]["parameters"] = univ.Any(self._expected_parameters())
        spki["subjectPublicKey"] = univ.BitString.fromOctetString(self._get_subject_public_key())
        return encoder.encode(spki)

    def to_one_asym_key(self) -> bytes:
        """Convert the private key to a `OneAsymmetricKey` `v0` structure.

        :return: The DER-encoded `OneAsymmetricKey` structure.
        :raises MissingKeyMaterial: If the key only holds public key material.
        """
        if not self.has_private_key:
            raise MissingKeyMaterial(f"The {type(self).__name__} key only holds public key material.")

        data = rfc5958.OneAsymmetricKey()
        data["version"] = 0
        data["privateKeyAlgorithm"]["algorithm"] = bytes_to_oid(self.algorithm_identity().primary)
        data["privateKeyAlgorithm"]["parameters"] = univ.Any(self._expected_parameters())
        data["privateKey"] = univ.OctetString(self._export_private_key())
        return encoder.encode(data)
