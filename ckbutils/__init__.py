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

__version__ = "0.3.0"

import logging

from ckbutils.setup import setup, get_network

from ckbutils.hashfunctions import CKBHasher, ckb_hash, blake160

from ckbutils.keys import PrivateKey, PublicKey, Signer, PrivateKeySigner

from ckbutils.script import Script, ScriptTemplate

from ckbutils.transactions import (
    OutPoint,
    CellDep,
    CellInput,
    CellOutput,
    Cell,
    WitnessArgs,
    Transaction,
    TransactionSkeleton,
)

from ckbutils.signing import (
    SigningEntry,
    generate_signing_entries,
    seal,
    Secp256k1Blake160SignableScript,
)

from ckbutils.errors import (
    SigningError,
    MissingWitnessError,
    UnsupportedConditionShapeError,
    SignerFailureError,
    SealMismatchError,
)

# the library never configures logging output itself
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'setup',
    'get_network',
    'CKBHasher',
    'ckb_hash',
    'blake160',
    'PrivateKey',
    'PublicKey',
    'Signer',
    'PrivateKeySigner',
    'Script',
    'ScriptTemplate',
    'OutPoint',
    'CellDep',
    'CellInput',
    'CellOutput',
    'Cell',
    'WitnessArgs',
    'Transaction',
    'TransactionSkeleton',
    'SigningEntry',
    'generate_signing_entries',
    'seal',
    'Secp256k1Blake160SignableScript',
    'SigningError',
    'MissingWitnessError',
    'UnsupportedConditionShapeError',
    'SignerFailureError',
    'SealMismatchError',
]
