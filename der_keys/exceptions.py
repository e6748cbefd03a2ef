# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Contains Custom Exceptions for the DER key codec."""

from typing import List, Optional, Sequence, Union

from der_keys.oidutils import may_return_oid_to_name


class DERKeyError(Exception):
    """Base class for DER key codec errors."""

    error_details: List[str]

    def __init__(self, message: str, error_details: Optional[Union[List[str], str]] = None):
        """Initialize the exception with the message.

        :param message: The message to display.
        :param error_details: Additional details about the error.
        """
        self.message = message
        if error_details is None:
            self.error_details = []
        elif isinstance(error_details, str):
            self.error_details = [error_details]
        else:
            self.error_details = list(error_details)
        super().__init__(message)

    def get_error_details(self) -> List[str]:
        """Return the error details."""
        return self.error_details


#########################
# Malformed Structure
##########################


class BadDataFormat(DERKeyError):
    """Raised when the ASN.1 data cannot be decoded."""

    def __init__(self, message: str, error_details: Optional[Union[List[str], str]] = None):
        """Initialize the exception with the message.

        :param message: The message to display.
        :param error_details: Additional details about the error.
        """
        super().__init__(f"Bad data format: {message}", error_details=error_details)
        self.message = message


class InvalidKeyData(BadDataFormat):
    """Raised when the key cannot be loaded or decoded."""


class MismatchingKey(InvalidKeyData):
    """Raised when an embedded public key does not belong to the private key."""


class BadAsn1Data(DERKeyError):
    """Raised when the ASN.1 data has a remainder."""

    def __init__(self, message: str, remainder: Optional[bytes] = None):
        """Initialize the exception with the structure name and the remainder.

        :param message: The name of the decoded structure.
        :param remainder: The remainder of the ASN.1 data.
        """
        r = "" if remainder is None else remainder.hex()
        super().__init__(f"Decoding the `{message}` structure had a remainder: {r}.")
        self.message = message
        self.remainder = remainder


#########################
# Identity Errors
##########################


class UnknownOID(DERKeyError):
    """Raised when no key type is known for an OID."""

    def __init__(self, oid: bytes, extra_info: str = ""):
        """Initialize the exception with the OID and extra information.

        :param oid: The content bytes of the OID that is unknown.
        :param extra_info: Additional information about the unknown OID.
        """
        oid_name = may_return_oid_to_name(oid)
        super().__init__(f"Unknown OID: {oid_name} {extra_info}".rstrip())
        self.oid = oid


class MismatchingOID(DERKeyError):
    """Raised when the algorithm identifier of a structure does not match the key type."""

    def __init__(self, expected: Optional[bytes], got: Optional[bytes], key_type: str, what: str = "algorithm"):
        """Initialize the exception with the expected and the found OID.

        :param expected: The OID bytes the key type declares (`None` for absent or `NULL` parameters).
        :param got: The OID bytes found inside the structure (`None` for absent or `NULL` parameters).
        :param key_type: The name of the key type which was decoded.
        :param what: Which part of the algorithm identifier did not match.
        """
        exp_name = "NULL" if expected is None else may_return_oid_to_name(expected)
        got_name = "NULL" if got is None else may_return_oid_to_name(got)
        super().__init__(f"The {what} OID does not match the {key_type} key. Expected: {exp_name}. Got: {got_name}")
        self.expected = expected
        self.got = got


#########################
# Encoding Errors
##########################


class MissingKeyMaterial(DERKeyError):
    """Raised when a private key export is requested for a public-only key."""


class FallbackExhausted(DERKeyError):
    """Raised when every attempt of a fallback operation failed.

    The errors are kept in the order they were raised, so for the
    private-then-public operations the first one belongs to the private attempt.
    """

    def __init__(self, message: str, errors: Sequence[Exception]):
        """Initialize the exception with the collected errors.

        :param message: The message to display.
        :param errors: The errors of the single attempts, in order.
        """
        self.errors = list(errors)
        details = [f"{type(err).__name__}: {err}" for err in self.errors]
        super().__init__(message, error_details=details)

    @property
    def private_error(self) -> Optional[Exception]:
        """Return the error of the private-key attempt."""
        return self.errors[0] if self.errors else None

    @property
    def public_error(self) -> Optional[Exception]:
        """Return the error of the public-key attempt."""
        return self.errors[1] if len(self.errors) > 1 else None
