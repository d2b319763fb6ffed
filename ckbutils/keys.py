# Copyright (C) 2024-2025 The ckb-signing-utils developers
#
# This file is part of ckb-signing-utils
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of ckb-signing-utils, including this file, may be copied, modified,
# propagated, or distributed except according to the terms contained in the
# LICENSE file.

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from typing import Optional

from ecdsa import SigningKey, VerifyingKey, SECP256k1, BadSignatureError  # type: ignore
from ecdsa.util import sigencode_string_canonize, sigdecode_string  # type: ignore
from sympy.ntheory import sqrt_mod  # type: ignore

from ckbutils.constants import CKB_HASH_LENGTH, SIGNATURE_SIZE
from ckbutils.hashfunctions import blake160
from ckbutils.utils import b_to_h, h_to_b


# curve field prime and group order (secp256k1)
_P = SECP256k1.curve.p()
_ORDER = SECP256k1.order


def _message_to_bytes(message: bytes | str) -> bytes:
    if isinstance(message, str):
        message = h_to_b(message)
    if len(message) != CKB_HASH_LENGTH:
        raise ValueError("Message must be a 32 bytes digest.")
    return message


class PrivateKey:
    """Represents a secp256k1 private key.

    Attributes
    ----------
    key : SigningKey
        the ecdsa signing key

    Methods
    -------
    from_hex(hex_str)
        creates an object from a 32 bytes hex string (classmethod)
    from_bytes(b)
        creates an object from raw 32 bytes (classmethod)
    to_bytes()
        returns the key's raw bytes
    to_hex()
        returns the key as a 0x-prefixed hex string
    sign_recoverable(message)
        signs a 32 bytes digest and returns the 65 bytes recoverable signature
    get_public_key()
        returns the corresponding PublicKey object
    """

    def __init__(
        self,
        secret_exponent: Optional[int] = None,
        b: Optional[bytes] = None,
    ) -> None:
        """With no parameters a random key is created

        Parameters
        ----------
        secret_exponent : int, optional
            used to create a specific key deterministically (default None)
        b : bytes, optional
            used to create a key from raw bytes
        """

        if b is not None:
            if len(b) != 32:
                raise ValueError("Invalid key length: must be exactly 32 bytes.")
            self.key = SigningKey.from_string(b, curve=SECP256k1)
        elif secret_exponent:
            self.key = SigningKey.from_secret_exponent(secret_exponent, curve=SECP256k1)
        else:
            self.key = SigningKey.generate(curve=SECP256k1)

    @classmethod
    def from_bytes(cls, b: bytes) -> "PrivateKey":
        """Creates a key directly from 32 raw bytes"""

        return cls(b=b)

    @classmethod
    def from_hex(cls, hex_str: str) -> "PrivateKey":
        """Creates a key from a hex string (0x prefix optional)"""

        return cls(b=h_to_b(hex_str.strip()))

    def to_bytes(self) -> bytes:
        """Returns key's bytes"""

        return self.key.to_string()

    def to_hex(self) -> str:
        return b_to_h(self.to_bytes())

    def sign_recoverable(self, message: bytes | str) -> bytes:
        """Signs a 32 bytes digest (deterministically, RFC6979)

        The lock script verifies with libsecp256k1, which only accepts low S
        values, so S is replaced by (order - S) when needed. The recovery id
        is found by recovering the candidate public keys from the signature
        and picking ours.

        Returns 65 bytes: r (32) | s (32) | recovery id (1)
        """

        digest = _message_to_bytes(message)

        signature = self.key.sign_digest_deterministic(
            digest, sigencode=sigencode_string_canonize, hashfunc=hashlib.sha256
        )

        candidates = VerifyingKey.from_public_key_recovery_with_digest(
            signature,
            digest,
            curve=SECP256k1,
            hashfunc=hashlib.sha256,
            sigdecode=sigdecode_string,
        )
        own_key = self.key.get_verifying_key().to_string()
        for recovery_id, candidate in enumerate(candidates):
            if candidate.to_string() == own_key:
                return signature + bytes([recovery_id])

        raise ValueError("Could not determine the signature's recovery id")

    def get_public_key(self) -> "PublicKey":
        """Returns the corresponding PublicKey"""

        verifying_key = self.key.get_verifying_key().to_string()
        return PublicKey("04" + verifying_key.hex())


class PublicKey:
    """Represents a secp256k1 public key.

    Attributes
    ----------
    key : VerifyingKey
        the ecdsa verifying key (x, y coordinates of the curve point)

    Methods
    -------
    from_hex(hex_str)
        creates an object from a hex string in SEC format (classmethod)
    recover(message, signature)
        recovers the public key from a recoverable signature (classmethod)
    verify(signature, message)
        returns true if the message was signed with this public key's
        corresponding private key.
    to_hex(compressed=True)
        returns the key as hex string (in SEC format - compressed by default)
    to_bytes()
        returns the key's raw 64 bytes
    get_blake160()
        returns the lock args of the secp256k1/blake160 lock for this key
    """

    def __init__(self, hex_str: str) -> None:
        """
        Parameters
        ----------
        hex_str : str
            the public key in hex string (SEC format)

        Raises
        ------
        TypeError
            If first byte of public key (corresponding to SEC format) is
            invalid.
        """
        hex_str = hex_str.strip()
        if hex_str.lower().startswith("0x"):
            hex_str = hex_str[2:]

        first_byte_in_hex = hex_str[:2]
        hex_bytes = h_to_b(hex_str)

        if len(hex_bytes) == 65 and first_byte_in_hex == "04":
            # uncompressed - SEC format: 0x04 + x + y coordinates
            self.key = VerifyingKey.from_string(hex_bytes[1:], curve=SECP256k1)
        elif len(hex_bytes) == 33:
            # compressed - SEC FORMAT: 0x02|0x03 + x coordinate (if 02 then y
            # is even else y is odd). Calculate y and then instantiate the key
            x_coord = int(hex_str[2:], 16)

            # y = modulo_square_root( (x**3 + 7) mod p ) -- there will be 2 y values
            y_values = sqrt_mod((x_coord**3 + 7) % _P, _P, True)
            if not y_values:
                raise ValueError("Point is not on the secp256k1 curve")
            y_values = [int(y) for y in y_values]

            if first_byte_in_hex == "02":
                y_coord = y_values[0] if y_values[0] % 2 == 0 else y_values[1]
            elif first_byte_in_hex == "03":
                y_coord = y_values[1] if y_values[0] % 2 == 0 else y_values[0]
            else:
                raise TypeError("Invalid SEC compressed format")

            uncompressed = f"{x_coord:064x}{y_coord:064x}"
            self.key = VerifyingKey.from_string(h_to_b(uncompressed), curve=SECP256k1)
        else:
            raise TypeError("Invalid SEC public key format")

    @classmethod
    def from_hex(cls, hex_str: str) -> "PublicKey":
        """Creates a public key from a hex string (SEC format)"""

        return cls(hex_str)

    @classmethod
    def recover(cls, message: bytes | str, signature: bytes) -> "PublicKey":
        """Recovers the signer's public key from a 65 bytes recoverable
        signature (r | s | recovery id)

        Raises
        ------
        ValueError
            If the signature is not 65 bytes or the recovery id is invalid
        """
        digest = _message_to_bytes(message)
        if len(signature) != SIGNATURE_SIZE:
            raise ValueError("Invalid signature length, must be exactly 65 bytes")

        recovery_id = signature[64]
        # ids 2 and 3 (r overflowing the group order) practically never occur
        if recovery_id not in (0, 1):
            raise ValueError(f"Invalid recovery ID: expected 0 or 1, got {recovery_id}")

        candidates = VerifyingKey.from_public_key_recovery_with_digest(
            signature[:64],
            digest,
            curve=SECP256k1,
            hashfunc=hashlib.sha256,
            sigdecode=sigdecode_string,
        )
        return cls("04" + candidates[recovery_id].to_string().hex())

    def to_bytes(self) -> bytes:
        """Returns key's bytes"""

        return self.key.to_string()

    def to_hex(self, compressed: bool = True) -> str:
        """Returns public key as a hex string (SEC format - compressed by
        default)"""

        key_hex = self.key.to_string().hex()

        if compressed:
            # check if y is even or odd (02 even, 03 odd)
            if int(key_hex[-2:], 16) % 2 == 0:
                key_str = "02" + key_hex[:64]
            else:
                key_str = "03" + key_hex[:64]
        else:
            # uncompressed starts with 04
            key_str = "04" + key_hex

        return "0x" + key_str

    def get_blake160(self) -> str:
        """Returns blake160 of the compressed public key: the args of the
        secp256k1/blake160 lock script"""

        return b_to_h(blake160(self.to_hex(compressed=True)))

    def verify(self, signature: bytes, message: bytes | str) -> bool:
        """Verifies that the 32 bytes message was signed with this public
        key's corresponding private key.

        High S signatures are rejected, as the on-chain verifier does.
        """
        digest = _message_to_bytes(message)
        if len(signature) not in (64, SIGNATURE_SIZE):
            return False

        s = int.from_bytes(signature[32:64], "big")
        if s > _ORDER // 2:
            return False

        try:
            return self.key.verify_digest(
                signature[:64], digest, sigdecode=sigdecode_string
            )
        except BadSignatureError:
            return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __str__(self) -> str:
        return self.to_hex()

    def __repr__(self) -> str:
        return self.__str__()


class Signer(ABC):
    """Produces recoverable signatures over 32 bytes messages.

    Implementations may keep the key in process or forward the message to an
    external device. Whether signatures are deterministic is up to them.
    """

    @abstractmethod
    def sign(self, message: bytes) -> bytes:
        """Returns a 65 bytes recoverable signature of message"""


class PrivateKeySigner(Signer):
    """Signs with in-process key material"""

    def __init__(self, private_key: PrivateKey | str | bytes) -> None:
        if isinstance(private_key, str):
            private_key = PrivateKey.from_hex(private_key)
        elif isinstance(private_key, (bytes, bytearray)):
            private_key = PrivateKey.from_bytes(bytes(private_key))
        self._private_key = private_key

    def get_public_key(self) -> PublicKey:
        return self._private_key.get_public_key()

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign_recoverable(message)
