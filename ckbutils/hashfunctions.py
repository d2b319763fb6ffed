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

from ckbutils.constants import (
    CKB_HASH_PERSONALIZATION,
    CKB_HASH_LENGTH,
    BLAKE160_LENGTH,
)
from ckbutils.utils import h_to_b, b_to_h


class CKBHasher:
    """Incremental blake2b-256 hasher with the CKB personalization.

    Attributes
    ----------
    hasher : hashlib.blake2b
        the underlying hash state

    Methods
    -------
    update(data)
        appends bytes (or 0x-prefixed hex that is decoded first)
    digest()
        returns the 32 bytes digest
    hexdigest()
        returns the digest as a 0x-prefixed hex string
    copy()
        returns an independent clone of the current state
    """

    def __init__(self) -> None:
        self.hasher = hashlib.blake2b(
            digest_size=CKB_HASH_LENGTH, person=CKB_HASH_PERSONALIZATION
        )

    def update(self, data: bytes | str) -> "CKBHasher":
        """Feeds data into the hash state.

        Hex strings are treated as the raw bytes they encode so that a
        previously computed hash can be chained as ordinary input.
        """
        if isinstance(data, str):
            data = h_to_b(data)
        elif not isinstance(data, (bytes, bytearray)):
            raise TypeError("CKBHasher accepts bytes or hex strings only")
        self.hasher.update(data)
        return self

    def digest(self) -> bytes:
        # hashlib finalizes a copy, the state stays usable
        return self.hasher.digest()

    def hexdigest(self) -> str:
        return b_to_h(self.digest())

    def copy(self) -> "CKBHasher":
        clone = CKBHasher.__new__(CKBHasher)
        clone.hasher = self.hasher.copy()
        return clone


def ckb_hash(data: bytes | str) -> bytes:
    """Computes the CKB blake2b-256 hash of the given bytes."""
    return CKBHasher().update(data).digest()


def blake160(data: bytes | str) -> bytes:
    """First 20 bytes of the CKB hash (used for secp256k1 lock args)."""
    return ckb_hash(data)[:BLAKE160_LENGTH]
