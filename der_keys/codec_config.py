# SPDX-FileCopyrightText: Copyright 2025 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Dataclasses for configuration variables used by the key types."""

from abc import ABC
from dataclasses import dataclass, fields


@dataclass
class ConfigVal(ABC):
    """Base class for configuration values."""

    def to_dict(self) -> dict:
        """Convert the configuration to a dictionary."""
        out = {}
        for x in fields(self):
            out[x.name] = getattr(self, x.name)
        return out


@dataclass
class DecodeConfigVars(ConfigVal):
    """Configuration variables for loading keys from DER.

    Attributes
    ----------
        allow_spki: If a public key may be wrapped inside a `SubjectPublicKeyInfo` structure,
        for key types whose native public key structure is different. Defaults to `True`.
        allow_pkcs8: If a private key may be wrapped inside a PKCS#8 `OneAsymmetricKey` structure. \
        Defaults to `True`.
        check_public_key: If a public key stored next to a private key must match it. Defaults to `True`.

    """

    allow_spki: bool = True
    allow_pkcs8: bool = True
    check_public_key: bool = True


@dataclass
class EncodeConfigVars(ConfigVal):
    """Configuration variables for exporting keys as DER.

    Attributes
    ----------
        ec_compressed_point: If EC public keys are exported as compressed points. Defaults to `False`.
        ec_include_public_key: If the `ECPrivateKey` structure carries the public key. Defaults to `True`.

    """

    ec_compressed_point: bool = False
    ec_include_public_key: bool = True
