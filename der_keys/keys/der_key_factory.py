# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Factory to load DER encoded keys of an unknown key type.

The factory keeps a registration table of the key types, keyed by their algorithm identity.
Loading tries every registered key type in registration order, each with the
private-then-public fallback of `from_raw_representation`.
"""

import logging
from typing import Dict, Iterable, List, Optional, Type

from pyasn1_alt_modules import rfc5280
from robot.api.deco import keyword, not_keyword

from der_keys.asn1utils import get_alg_id_parameters, get_parameters_oid
from der_keys.codec_config import DecodeConfigVars
from der_keys.exceptions import DERKeyError, FallbackExhausted, UnknownOID
from der_keys.keys.abstract_der_keys import DERCodable
from der_keys.keys.ec_der_key import ECP256DERKey, ECP384DERKey, ECP521DERKey, ECSecp256k1DERKey
from der_keys.keys.rsa_der_key import RSADERKey
from der_keys.oidutils import AlgorithmIdentity, may_return_oid_to_name, oid_to_bytes


class DERKeyFactory:
    """Registration table for the DER key types."""

    def __init__(self, key_types: Optional[Iterable[Type[DERCodable]]] = None):
        """Initialize the factory and register the key types.

        :param key_types: The key types to register, in order. Defaults to none.
        """
        self._key_types: Dict[AlgorithmIdentity, Type[DERCodable]] = {}
        for key_type in key_types or []:
            self.register(key_type)

    def register(self, key_type: Type[DERCodable]) -> Type[DERCodable]:
        """Register a key type, can also be used as class decorator.

        :param key_type: The key type to register.
        :return: The registered key type.
        :raises ValueError: If another key type is already registered for the same algorithm identity.
        """
        identity = key_type.algorithm_identity()
        registered = self._key_types.get(identity)
        if registered is not None and registered is not key_type:
            raise ValueError(f"The algorithm identity {identity} is already registered for: {registered.__name__}")

        logging.debug("Register the key type %s for: %s", key_type.__name__, identity)
        self._key_types[identity] = key_type
        return key_type

    @property
    def key_types(self) -> List[Type[DERCodable]]:
        """Return the registered key types in registration order."""
        return list(self._key_types.values())

    def get_key_type(self, identity: AlgorithmIdentity) -> Type[DERCodable]:
        """Return the key type registered for an algorithm identity.

        :param identity: The algorithm identity to look up.
        :return: The registered key type.
        :raises UnknownOID: If no key type is registered for the identity.
        """
        key_type = self._key_types.get(identity)
        if key_type is None:
            extra_info = "" if identity.secondary is None else f"with: {may_return_oid_to_name(identity.secondary)}"
            raise UnknownOID(identity.primary, extra_info=extra_info)
        return key_type

    def get_key_type_for_alg_id(self, alg_id: rfc5280.AlgorithmIdentifier) -> Type[DERCodable]:
        """Return the key type registered for the OIDs of an `AlgorithmIdentifier`.

        :param alg_id: The algorithm identifier, e.g. of a `SubjectPublicKeyInfo` structure.
        :return: The registered key type.
        :raises UnknownOID: If no key type is registered for the OIDs.
        """
        secondary = get_parameters_oid(get_alg_id_parameters(alg_id))
        identity = AlgorithmIdentity(primary=oid_to_bytes(alg_id["algorithm"]), secondary=secondary)
        return self.get_key_type(identity)

    def load_der_key(
        self,
        data: bytes,
        key_types: Optional[Iterable[Type[DERCodable]]] = None,
        config: Optional[DecodeConfigVars] = None,
    ) -> DERCodable:
        """Load a DER encoded private or public key of an unknown key type.

        :param data: The DER encoded key.
        :param key_types: The key types to try, in order. Defaults to all registered key types.
        :param config: The decode configuration. Defaults to `DecodeConfigVars()`.
        :return: The key of the first key type, which could load the data.
        :raises FallbackExhausted: If no key type could load the data.
        """
        candidates = list(key_types) if key_types is not None else self.key_types
        errors: List[Exception] = []
        for key_type in candidates:
            try:
                key = key_type.from_raw_representation(data, config=config)
            except DERKeyError as err:
                errors.append(err)
                continue

            logging.info("Loaded the DER data as %s key.", key_type.__name__)
            return key

        names = ", ".join(key_type.__name__ for key_type in candidates)
        raise FallbackExhausted(f"The data could not be loaded as any of the key types: {names}", errors=errors) from (
            errors[0] if errors else None
        )


DEFAULT_KEY_FACTORY = DERKeyFactory(
    [
        RSADERKey,
        ECP256DERKey,
        ECP384DERKey,
        ECP521DERKey,
        ECSecp256k1DERKey,
    ]
)

KEY_NAME_2_TYPE: Dict[str, Type[DERCodable]] = {
    "rsa": RSADERKey,
    "ecc": ECP256DERKey,
    "ec": ECP256DERKey,
    "secp256r1": ECP256DERKey,
    "prime256v1": ECP256DERKey,
    "secp384r1": ECP384DERKey,
    "secp521r1": ECP521DERKey,
    "secp256k1": ECSecp256k1DERKey,
}


@not_keyword
def get_key_type_by_name(name: str) -> Type[DERCodable]:
    """Return the key type for a name, e.g. "rsa" or "secp384r1".

    :param name: The name of the key type.
    :return: The key type.
    :raises ValueError: If the name is unknown.
    """
    key_type = KEY_NAME_2_TYPE.get(name.lower())
    if key_type is None:
        raise ValueError(f"Unknown key type: {name}. Supported are: {', '.join(KEY_NAME_2_TYPE)}")
    return key_type


@keyword(name="Generate DER Key")
def generate_der_key(algorithm: str = "rsa", length: int = 2048) -> DERCodable:  # noqa: D417 undocumented-param
    """Generate a private key of a DER key type.

    Arguments:
    ---------
        - `algorithm`: The name of the key type, e.g. "rsa", "ecc" or "secp384r1". Defaults to "rsa".
        - `length`: The size of an RSA key in bits. Defaults to `2048`.

    Returns:
    -------
        - The generated key.

    Raises:
    ------
        - `ValueError`: If the key type is unknown.

    Examples:
    --------
    | ${key}= | Generate DER Key | rsa | length=3072 |
    | ${key}= | Generate DER Key | secp384r1 |

    """
    key_type = get_key_type_by_name(algorithm)
    if key_type is RSADERKey:
        return RSADERKey.generate(key_size=length)
    return key_type.generate()  # type: ignore


@keyword(name="Load DER Key")
def load_der_key(  # noqa: D417 undocumented-param
    data: bytes,
    key_name: Optional[str] = None,
    config: Optional[DecodeConfigVars] = None,
) -> DERCodable:
    """Load a DER encoded private or public key.

    The private key structure is tried first, then the public key structure.

    Arguments:
    ---------
        - `data`: The DER encoded key.
        - `key_name`: The name of the expected key type, e.g. "rsa". Defaults to all known key types.
        - `config`: The decode configuration. Defaults to `DecodeConfigVars()`.

    Returns:
    -------
        - The loaded key.

    Raises:
    ------
        - `FallbackExhausted`: If the data could not be loaded.

    Examples:
    --------
    | ${key}= | Load DER Key | ${der_data} |
    | ${key}= | Load DER Key | ${der_data} | key_name=secp256r1 |

    """
    key_types = None if key_name is None else [get_key_type_by_name(key_name)]
    return DEFAULT_KEY_FACTORY.load_der_key(data, key_types=key_types, config=config)


@keyword(name="Export DER Key")
def export_der_key(key: DERCodable, public_only: bool = False) -> bytes:  # noqa: D417 undocumented-param
    """Export a key as DER.

    Arguments:
    ---------
        - `key`: The key to export.
        - `public_only`: If the public key is exported, also for private keys. Defaults to `False`.

    Returns:
    -------
        - The DER encoded private key, or the public key for public-only keys or if `public_only` is set.

    Examples:
    --------
    | ${der_data}= | Export DER Key | ${key} |
    | ${der_data}= | Export DER Key | ${key} | public_only=True |

    """
    if public_only:
        return key.public_key_external_representation()
    return key.external_representation()
