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
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ckbutils.script import Script


class SigningError(Exception):
    """Base class of the errors raised while building signing messages,
    signing them or sealing the signatures into a transaction."""


class MissingWitnessError(SigningError):
    """An input that has to be signed has no witness at its position.

    Attributes:
        index -- the input index
        witness_count -- how many witnesses the transaction had
    """

    def __init__(self, index: int, witness_count: int):
        self.index = index
        self.witness_count = witness_count
        super().__init__(
            f"Can't find witness for input {index}, "
            f"the transaction has {witness_count} witnesses"
        )


class UnsupportedConditionShapeError(SigningError):
    """A lock script uses the scheme's code but its args cannot belong to it.

    Attributes:
        index -- the input index
        script -- the offending lock script
        reason -- what is wrong with it
    """

    def __init__(self, index: int, script: "Script", reason: str):
        self.index = index
        self.script = script
        self.reason = reason
        super().__init__(f"Unsupported lock script at input {index}: {reason}")


class SignerFailureError(SigningError):
    """The signer failed to produce a usable signature for a message.

    Attributes:
        index -- the position of the signing entry
        reason -- explanation of the failure
    """

    def __init__(self, index: int, reason: str):
        self.index = index
        self.reason = reason
        super().__init__(f"Signer failed for signing entry {index}: {reason}")


class SealMismatchError(SigningError):
    """Signatures cannot be placed into the transaction; nothing was written."""
