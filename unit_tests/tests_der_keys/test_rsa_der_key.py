# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

import unittest

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat, PublicFormat
from pyasn1.codec.der import decoder, encoder
from pyasn1.type import univ
from pyasn1_alt_modules import rfc5280, rfc5958, rfc8017

from der_keys.codec_config import DecodeConfigVars
from der_keys.exceptions import (
    BadAsn1Data,
    FallbackExhausted,
    InvalidKeyData,
    MismatchingKey,
    MismatchingOID,
    MissingKeyMaterial,
)
from der_keys.keys.rsa_der_key import RSADERKey
from der_keys.oidutils import RSA_ENCRYPTION_OID, RSASSA_PSS_OID, bytes_to_oid


class TestRSADERKey(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.crypto_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        cls.key = RSADERKey(cls.crypto_key)
        cls.private_der = cls.crypto_key.private_bytes(Encoding.DER, PrivateFormat.TraditionalOpenSSL, NoEncryption())
        cls.public_der = cls.crypto_key.public_key().public_bytes(Encoding.DER, PublicFormat.PKCS1)

    def test_algorithm_identity(self):
        """
        GIVEN the RSA key type.
        WHEN its algorithm identity is requested.
        THEN it is `rsaEncryption` without a secondary OID.
        """
        identity = RSADERKey.algorithm_identity()
        self.assertEqual(identity.primary, RSA_ENCRYPTION_OID)
        self.assertIsNone(identity.secondary)

    def test_public_key_der_is_pkcs1(self):
        """
        GIVEN an RSA private key.
        WHEN the public key is exported.
        THEN it is byte-identical to the PKCS#1 `RSAPublicKey` export of `cryptography`.
        """
        self.assertEqual(self.key.public_key_der(), self.public_der)

    def test_private_key_der_is_pkcs1(self):
        """
        GIVEN an RSA private key.
        WHEN the private key is exported.
        THEN it is byte-identical to the PKCS#1 `RSAPrivateKey` export of `cryptography`.
        """
        self.assertEqual(self.key.private_key_der(), self.private_der)

    def test_modulus_has_leading_zero(self):
        """
        GIVEN an RSA public key, whose modulus always has the high bit set.
        WHEN the public key is exported.
        THEN the modulus `INTEGER` carries a leading zero byte.
        """
        rsa_pub, _ = decoder.decode(self.key.public_key_der(), asn1Spec=rfc8017.RSAPublicKey())
        self.assertEqual(int(rsa_pub["modulus"]), self.crypto_key.public_key().public_numbers().n)
        # 30 82 01 0a 02 82 01 01 00 ...
        self.assertEqual(self.key.public_key_der()[4:9], b"\x02\x82\x01\x01\x00")

    def test_raw_representation_of_private_der(self):
        """
        GIVEN a PKCS#1 RSA private key.
        WHEN it is loaded without knowing its form.
        THEN the same key as with the explicit private key loader is returned.
        """
        loaded = RSADERKey.from_raw_representation(self.private_der)
        self.assertTrue(loaded.has_private_key)
        self.assertEqual(loaded, RSADERKey.from_private_der(self.private_der))
        self.assertEqual(loaded, self.key)

    def test_raw_representation_of_public_der(self):
        """
        GIVEN a PKCS#1 RSA public key.
        WHEN it is loaded without knowing its form.
        THEN the private attempt fails and the public key is loaded.
        """
        with self.assertRaises(InvalidKeyData):
            RSADERKey.from_private_der(self.public_der)

        loaded = RSADERKey.from_raw_representation(self.public_der)
        self.assertFalse(loaded.has_private_key)
        self.assertEqual(loaded, RSADERKey.from_public_der(self.public_der))
        self.assertEqual(loaded, self.key.public_key())

    def test_round_trip_keeps_public_key(self):
        """
        GIVEN an RSA private key.
        WHEN it is exported and loaded again.
        THEN the public key of the loaded key matches the original one.
        """
        loaded = RSADERKey.from_private_der(self.key.private_key_der())
        self.assertEqual(loaded.public_key_der(), self.key.public_key_der())
        self.assertEqual(loaded.private_key_der(), self.key.private_key_der())

    def test_load_spki_and_pkcs8(self):
        """
        GIVEN the RSA key as `SubjectPublicKeyInfo` and PKCS#8 structures from `cryptography`.
        WHEN they are loaded.
        THEN the same keys are returned.
        """
        spki = self.crypto_key.public_key().public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)
        pkcs8 = self.crypto_key.private_bytes(Encoding.DER, PrivateFormat.PKCS8, NoEncryption())
        self.assertEqual(RSADERKey.from_public_der(spki), self.key.public_key())
        self.assertEqual(RSADERKey.from_private_der(pkcs8), self.key)
        self.assertEqual(RSADERKey.from_raw_representation(spki), self.key.public_key())
        self.assertEqual(RSADERKey.from_raw_representation(pkcs8), self.key)

    def test_export_spki_and_pkcs8(self):
        """
        GIVEN an RSA private key.
        WHEN it is exported as `SubjectPublicKeyInfo` and PKCS#8 structure.
        THEN both are equal to the exports of `cryptography`.
        """
        spki = self.crypto_key.public_key().public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)
        pkcs8 = self.crypto_key.private_bytes(Encoding.DER, PrivateFormat.PKCS8, NoEncryption())
        self.assertEqual(self.key.to_spki(), spki)
        self.assertEqual(self.key.to_one_asym_key(), pkcs8)

    def test_disallowed_wrappers(self):
        """
        GIVEN `SubjectPublicKeyInfo` and PKCS#8 structures.
        WHEN they are loaded with a configuration, which does not allow the wrappers.
        THEN an `InvalidKeyData` exception is raised.
        """
        config = DecodeConfigVars(allow_spki=False, allow_pkcs8=False)
        with self.assertRaises(InvalidKeyData):
            RSADERKey.from_public_der(self.key.to_spki(), config=config)
        with self.assertRaises(InvalidKeyData):
            RSADERKey.from_private_der(self.key.to_one_asym_key(), config=config)

    def test_wrong_algorithm_oid(self):
        """
        GIVEN a structurally valid `SubjectPublicKeyInfo` with the `id-RSASSA-PSS` OID.
        WHEN it is loaded as `rsaEncryption` key.
        THEN a `MismatchingOID` exception is raised.
        """
        spki, _ = decoder.decode(self.key.to_spki(), asn1Spec=rfc5280.SubjectPublicKeyInfo())
        spki["algorithm"]["algorithm"] = bytes_to_oid(RSASSA_PSS_OID)
        der_data = encoder.encode(spki)

        with self.assertRaises(MismatchingOID):
            RSADERKey.from_public_der(der_data)

        with self.assertRaises(FallbackExhausted) as context:
            RSADERKey.from_raw_representation(der_data)
        self.assertIsInstance(context.exception.public_error, MismatchingOID)
        self.assertIsInstance(context.exception.private_error, InvalidKeyData)

    def test_wrong_algorithm_parameters(self):
        """
        GIVEN a `SubjectPublicKeyInfo` for `rsaEncryption`, with an OID as parameters instead of `NULL`.
        WHEN it is loaded.
        THEN a `MismatchingOID` exception is raised.
        """
        spki, _ = decoder.decode(self.key.to_spki(), asn1Spec=rfc5280.SubjectPublicKeyInfo())
        spki["algorithm"]["parameters"] = univ.Any(encoder.encode(univ.ObjectIdentifier("1.2.3.4")))
        with self.assertRaises(MismatchingOID):
            RSADERKey.from_public_der(encoder.encode(spki))

    def test_absent_parameters_are_accepted(self):
        """
        GIVEN a `SubjectPublicKeyInfo` for `rsaEncryption` without parameters.
        WHEN it is loaded.
        THEN the public key is returned.
        """
        spki = rfc5280.SubjectPublicKeyInfo()
        spki["algorithm"]["algorithm"] = rfc8017.rsaEncryption
        spki["subjectPublicKey"] = univ.BitString.fromOctetString(self.public_der)
        self.assertEqual(RSADERKey.from_public_der(encoder.encode(spki)), self.key.public_key())

    def test_pkcs8_with_mismatching_public_key(self):
        """
        GIVEN a PKCS#8 version 2 structure, whose public key belongs to a different RSA key.
        WHEN it is loaded.
        THEN a `MismatchingKey` exception is raised, unless the check is disabled.
        """
        other_key = RSADERKey.generate(key_size=1024)
        one_asym_key, _ = decoder.decode(self.key.to_one_asym_key(), asn1Spec=rfc5958.OneAsymmetricKey())
        one_asym_key["version"] = 1
        one_asym_key["publicKey"] = rfc5958.PublicKey.fromOctetString(other_key.public_key_der()).subtype(
            implicitTag=one_asym_key["publicKey"].tagSet[-1]
        )
        der_data = encoder.encode(one_asym_key)

        with self.assertRaises(MismatchingKey):
            RSADERKey.from_private_der(der_data)

        loaded = RSADERKey.from_private_der(der_data, config=DecodeConfigVars(check_public_key=False))
        self.assertEqual(loaded, self.key)

    def test_trailing_data_is_rejected(self):
        """
        GIVEN a valid RSA private and public key with appended bytes.
        WHEN they are loaded.
        THEN a `BadAsn1Data` exception is raised and the fallback fails.
        """
        with self.assertRaises(BadAsn1Data):
            RSADERKey.from_private_der(self.private_der + b"\x00")
        with self.assertRaises(BadAsn1Data):
            RSADERKey.from_public_der(self.public_der + b"\x00")
        with self.assertRaises(FallbackExhausted):
            RSADERKey.from_raw_representation(self.public_der + b"\x00")

    def test_garbage_fails_both_attempts(self):
        """
        GIVEN bytes which are no DER structure.
        WHEN they are loaded without knowing the form.
        THEN a `FallbackExhausted` exception is raised, chained to the private attempt.
        """
        with self.assertRaises(FallbackExhausted) as context:
            RSADERKey.from_raw_representation(b"\x01\x02\x03")
        self.assertIs(context.exception.__cause__, context.exception.private_error)
        self.assertEqual(len(context.exception.get_error_details()), 2)

    def test_inconsistent_private_numbers(self):
        """
        GIVEN a PKCS#1 private key structure with a modified private exponent.
        WHEN it is loaded.
        THEN an `InvalidKeyData` exception is raised.
        """
        rsa_priv, _ = decoder.decode(self.private_der, asn1Spec=rfc8017.RSAPrivateKey())
        rsa_priv["privateExponent"] = int(rsa_priv["privateExponent"]) + 2
        with self.assertRaises(InvalidKeyData):
            RSADERKey.from_private_der(encoder.encode(rsa_priv))

    def test_multi_prime_version_is_rejected(self):
        """
        GIVEN a PKCS#1 private key structure with version 1.
        WHEN it is loaded.
        THEN an `InvalidKeyData` exception is raised.
        """
        rsa_priv, _ = decoder.decode(self.private_der, asn1Spec=rfc8017.RSAPrivateKey())
        rsa_priv["version"] = 1
        with self.assertRaises(InvalidKeyData):
            RSADERKey.from_private_der(encoder.encode(rsa_priv))

    def test_public_only_key(self):
        """
        GIVEN a public-only RSA key.
        WHEN the private key and the external representation are exported.
        THEN the private export fails, and the external representation is the public key.
        """
        public_key = self.key.public_key()
        with self.assertRaises(MissingKeyMaterial):
            public_key.private_key_der()
        with self.assertRaises(MissingKeyMaterial):
            public_key.to_one_asym_key()
        self.assertEqual(public_key.external_representation(), self.public_der)
        self.assertEqual(public_key.public_key_external_representation(), self.public_der)

    def test_external_representation_of_private_key(self):
        """
        GIVEN an RSA private key.
        WHEN the external representations are exported.
        THEN the private key is exported, and the public-only export gives the public key.
        """
        self.assertEqual(self.key.external_representation(), self.private_der)
        self.assertEqual(self.key.public_key_external_representation(), self.public_der)

    def test_wrapped_key_properties(self):
        """
        GIVEN an RSA private key.
        WHEN the properties are read.
        THEN they reflect the wrapped `cryptography` key.
        """
        self.assertEqual(self.key.key_size, 2048)
        self.assertEqual(self.key.name, "rsa")
        self.assertEqual(self.key.public_numbers.e, 65537)
        self.assertIs(self.key.to_cryptography_key(), self.crypto_key)
        self.assertIsInstance(self.key.public_key().to_cryptography_key(), rsa.RSAPublicKey)
        loaded = serialization.load_der_private_key(self.key.private_key_der(), password=None)
        self.assertEqual(loaded.private_numbers(), self.crypto_key.private_numbers())

    def test_invalid_key_object(self):
        """
        GIVEN an object which is not an RSA key.
        WHEN an RSA key is created from it.
        THEN a `ValueError` is raised.
        """
        with self.assertRaises(ValueError):
            RSADERKey(b"not a key")  # type: ignore


if __name__ == "__main__":
    unittest.main()
