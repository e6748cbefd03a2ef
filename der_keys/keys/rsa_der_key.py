# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""RSA key type, which is loaded from and exported to PKCS#1 DER structures.

The public key is exported as `RSAPublicKey` and the private key as `RSAPrivateKey`
(RFC 8017 Appendix A.1), the same structures a platform key store exports for RSA keys.
On loading, the keys may also be wrapped inside a `SubjectPublicKeyInfo` or a
PKCS#8 `OneAsymmetricKey` structure, in which case the algorithm identifier must be
`rsaEncryption`.
"""

import logging
from typing import Optional, Union

from cryptography.hazmat.primitives.asymmetric import rsa
from pyasn1_alt_modules import rfc8017

from der_keys.asn1utils import decode_der_structure
from der_keys.codec_config import DecodeConfigVars, EncodeConfigVars
from der_keys.derutils import encode_der_integer, encode_der_sequence
from der_keys.exceptions import InvalidKeyData, MismatchingKey, MissingKeyMaterial
from der_keys.keys.abstract_der_keys import DERCodable
from der_keys.oidutils import RSA_ENCRYPTION_OID


class RSADERKey(DERCodable):
    """RSA key, which holds either a private key or only a public key."""

    primary_oid = RSA_ENCRYPTION_OID
    secondary_oid = None
    _name = "rsa"

    _private_key: Optional[rsa.RSAPrivateKey]
    _public_key: rsa.RSAPublicKey

    def __init__(
        self,
        key: Union[rsa.RSAPrivateKey, rsa.RSAPublicKey],
        encode_config: Optional[EncodeConfigVars] = None,
    ):
        """Initialize the RSA key.

        :param key: The `cryptography` RSA private or public key.
        :param encode_config: The configuration for exporting the key. Defaults to `EncodeConfigVars()`.
        :raises ValueError: If the key is not an RSA key.
        """
        if isinstance(key, rsa.RSAPrivateKey):
            self._private_key = key
            self._public_key = key.public_key()
        elif isinstance(key, rsa.RSAPublicKey):
            self._private_key = None
            self._public_key = key
        else:
            raise ValueError(f"Expected an RSA key. Got: {type(key).__name__}")
        self.encode_config = encode_config or EncodeConfigVars()

    @classmethod
    def generate(cls, key_size: int = 2048, public_exponent: int = 65537) -> "RSADERKey":
        """Generate an RSA private key.

        :param key_size: The size of the key in bits. Defaults to `2048`.
        :param public_exponent: The public exponent. Defaults to `65537`.
        :return: The generated key.
        """
        return cls(rsa.generate_private_key(public_exponent=public_exponent, key_size=key_size))

    @classmethod
    def from_cryptography_key(cls, key: Union[rsa.RSAPrivateKey, rsa.RSAPublicKey]) -> "RSADERKey":
        """Wrap a `cryptography` RSA key."""
        return cls(key)

    @staticmethod
    def _load_public_numbers(n: int, e: int) -> rsa.RSAPublicKey:
        """Create the public key from its numbers."""
        try:
            return rsa.RSAPublicNumbers(e=e, n=n).public_key()
        except ValueError as err:
            raise InvalidKeyData("The RSA public numbers are invalid.", error_details=str(err)) from err

    @classmethod
    def _load_pkcs1_public_key(cls, data: bytes) -> rsa.RSAPublicKey:
        """Load a PKCS#1 `RSAPublicKey` structure."""
        rsa_pub = decode_der_structure(data, rfc8017.RSAPublicKey())
        return cls._load_public_numbers(n=int(rsa_pub["modulus"]), e=int(rsa_pub["publicExponent"]))

    @classmethod
    def _load_pkcs1_private_key(cls, data: bytes) -> rsa.RSAPrivateKey:
        """Load a PKCS#1 `RSAPrivateKey` structure.

        :param data: The DER encoded structure.
        :return: The loaded private key.
        :raises InvalidKeyData: If the structure is invalid, a multi-prime key or the numbers are inconsistent.
        """
        rsa_priv = decode_der_structure(data, rfc8017.RSAPrivateKey())
        version = int(rsa_priv["version"])
        if version != 0:
            raise InvalidKeyData(f"Only two-prime RSA private keys are supported. Got version: {version}")

        public_numbers = rsa.RSAPublicNumbers(e=int(rsa_priv["publicExponent"]), n=int(rsa_priv["modulus"]))
        private_numbers = rsa.RSAPrivateNumbers(
            p=int(rsa_priv["prime1"]),
            q=int(rsa_priv["prime2"]),
            d=int(rsa_priv["privateExponent"]),
            dmp1=int(rsa_priv["exponent1"]),
            dmq1=int(rsa_priv["exponent2"]),
            iqmp=int(rsa_priv["coefficient"]),
            public_numbers=public_numbers,
        )
        try:
            return private_numbers.private_key()
        except ValueError as err:
            raise InvalidKeyData("The RSA private numbers are inconsistent.", error_details=str(err)) from err

    @classmethod
    def from_public_der(cls, data: bytes, config: Optional[DecodeConfigVars] = None) -> "RSADERKey":
        """Load an RSA public key from a DER encoded `RSAPublicKey` or `SubjectPublicKeyInfo` structure.

        :param data: The DER encoded public key.
        :param config: The decode configuration. Defaults to `DecodeConfigVars()`.
        :return: The public-only RSA key.
        :raises InvalidKeyData: If the data is not an RSA public key.
        :raises MismatchingOID: If the `SubjectPublicKeyInfo` is not for `rsaEncryption`.
        """
        config = config or DecodeConfigVars()
        if config.allow_spki and cls._try_decode_spki(data) is not None:
            data = cls._load_spki(data)

        return cls(cls._load_pkcs1_public_key(data))

    @classmethod
    def from_private_der(cls, data: bytes, config: Optional[DecodeConfigVars] = None) -> "RSADERKey":
        """Load an RSA private key from a DER encoded `RSAPrivateKey` or PKCS#8 `OneAsymmetricKey` structure.

        :param data: The DER encoded private key.
        :param config: The decode configuration. Defaults to `DecodeConfigVars()`.
        :return: The RSA private key.
        :raises InvalidKeyData: If the data is not an RSA private key.
        :raises MismatchingOID: If the PKCS#8 structure is not for `rsaEncryption`.
        :raises MismatchingKey: If the PKCS#8 public key does not match the private key.
        """
        config = config or DecodeConfigVars()
        one_asym_key = cls._try_decode_one_asym_key(data) if config.allow_pkcs8 else None
        if one_asym_key is None:
            return cls(cls._load_pkcs1_private_key(data))

        logging.debug("Load the RSA private key from a PKCS#8 structure.")
        private_key_bytes, public_key_bytes = cls._load_one_asym_key(one_asym_key)
        private_key = cls._load_pkcs1_private_key(private_key_bytes)

        if public_key_bytes is not None and config.check_public_key:
            public_key = cls._load_pkcs1_public_key(public_key_bytes)
            if public_key.public_numbers() != private_key.public_key().public_numbers():
                raise MismatchingKey("The PKCS#8 public key does not match the RSA private key.")

        return cls(private_key)

    def public_key_der(self) -> bytes:
        """Export the public key as DER encoded `RSAPublicKey` structure."""
        numbers = self._public_key.public_numbers()
        return encode_der_sequence(
            encode_der_integer(numbers.n, size=(self.key_size + 7) // 8),
            encode_der_integer(numbers.e),
        )

    def private_key_der(self) -> bytes:
        """Export the private key as DER encoded two-prime `RSAPrivateKey` structure.

        :raises MissingKeyMaterial: If the key only holds the public key.
        """
        if self._private_key is None:
            raise MissingKeyMaterial("The RSA key only holds public key material.")

        private_nums = self._private_key.private_numbers()
        return encode_der_sequence(
            encode_der_integer(0),
            encode_der_integer(private_nums.public_numbers.n, size=(self.key_size + 7) // 8),
            encode_der_integer(private_nums.public_numbers.e),
            encode_der_integer(private_nums.d),
            encode_der_integer(private_nums.p),
            encode_der_integer(private_nums.q),
            encode_der_integer(private_nums.dmp1),
            encode_der_integer(private_nums.dmq1),
            encode_der_integer(private_nums.iqmp),
        )

    def _get_subject_public_key(self) -> bytes:
        """Return the `RSAPublicKey` structure for the `SubjectPublicKeyInfo`."""
        return self.public_key_der()

    def _export_private_key(self) -> bytes:
        """Return the `RSAPrivateKey` structure for the `OneAsymmetricKey`."""
        return self.private_key_der()

    @property
    def has_private_key(self) -> bool:
        """Return whether the key holds the private key."""
        return self._private_key is not None

    @property
    def key_size(self) -> int:
        """Return the size of the modulus in bits."""
        return self._public_key.key_size

    @property
    def public_numbers(self) -> rsa.RSAPublicNumbers:
        """Return the public modulus and exponent of the RSA key."""
        return self._public_key.public_numbers()

    def public_key(self) -> "RSADERKey":
        """Return the public-only RSA key."""
        return RSADERKey(self._public_key, encode_config=self.encode_config)

    def to_cryptography_key(self) -> Union[rsa.RSAPrivateKey, rsa.RSAPublicKey]:
        """Return the wrapped `cryptography` key, the private key if present."""
        return self._private_key if self._private_key is not None else self._public_key
