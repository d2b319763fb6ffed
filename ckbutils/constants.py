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

# blake2b personalization used by every CKB hash (exactly 16 bytes)
CKB_HASH_PERSONALIZATION = b"ckb-default-hash"
CKB_HASH_LENGTH = 32
BLAKE160_LENGTH = 20


# Script hash types and their molecule byte values
HASH_TYPE_DATA = "data"
HASH_TYPE_TYPE = "type"
HASH_TYPE_DATA1 = "data1"
HASH_TYPE_DATA2 = "data2"

HASH_TYPES = {
    HASH_TYPE_DATA: 0,
    HASH_TYPE_TYPE: 1,
    HASH_TYPE_DATA1: 2,
    HASH_TYPE_DATA2: 4,
}


# Cell dep types and their molecule byte values
DEP_TYPE_CODE = "code"
DEP_TYPE_DEP_GROUP = "dep_group"

DEP_TYPES = {
    DEP_TYPE_CODE: 0,
    DEP_TYPE_DEP_GROUP: 1,
}


# Witness length prefix is a u64 little-endian value
WITNESS_LENGTH_PREFIX_SIZE = 8

# Recoverable secp256k1 signature: 64 bytes (r, s) + 1 byte recovery id
SIGNATURE_SIZE = 65
SIGNATURE_OFFSET = 0


DEFAULT_TX_VERSION = 0
DEFAULT_SINCE = 0


# System script deployments per network. Devnet deployments differ per local
# chain and have to be passed to setup().
SECP256K1_BLAKE160 = "SECP256K1_BLAKE160"

NETWORK_SCRIPTS = {
    "mainnet": {
        SECP256K1_BLAKE160: {
            "CODE_HASH": "0x9bd7e06f3ecf4be0f2fcd2188b23f1b9fcc88e5d4b65a8637b17723bbda3cce8",
            "HASH_TYPE": HASH_TYPE_TYPE,
            "TX_HASH": "0x71a7ba8fc96349fea0ed3a5c47992e3b4084b031a42264a018e0072e8172e46c",
            "INDEX": 0,
            "DEP_TYPE": DEP_TYPE_DEP_GROUP,
            "ARGS_LENGTH": BLAKE160_LENGTH,
        },
    },
    "testnet": {
        SECP256K1_BLAKE160: {
            "CODE_HASH": "0x9bd7e06f3ecf4be0f2fcd2188b23f1b9fcc88e5d4b65a8637b17723bbda3cce8",
            "HASH_TYPE": HASH_TYPE_TYPE,
            "TX_HASH": "0xf8de3bb47d055cdf460d93a2a6e1b05f7432f9777c8c474abf4eec1d4aee5d37",
            "INDEX": 0,
            "DEP_TYPE": DEP_TYPE_DEP_GROUP,
            "ARGS_LENGTH": BLAKE160_LENGTH,
        },
    },
    "devnet": {},
}
