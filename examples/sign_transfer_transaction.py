# Copyright (C) 2024-2025 The ckb-signing-utils developers
#
# This file is part of ckb-signing-utils
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of ckb-signing-utils, including this file, may be copied,
# modified, propagated, or distributed except according to the terms contained
# in the LICENSE file.

import logging

from ckbutils.setup import setup, get_script_config
from ckbutils.keys import PrivateKey, PrivateKeySigner
from ckbutils.script import Script
from ckbutils.transactions import (
    Cell,
    CellDep,
    CellOutput,
    OutPoint,
    TransactionSkeleton,
    WitnessArgs,
)
from ckbutils.signing import Secp256k1Blake160SignableScript

SHANNONS_PER_CKB = 100000000


def main():
    logging.basicConfig(level=logging.DEBUG)

    # always remember to setup the network
    setup("testnet")
    config = get_script_config("SECP256K1_BLAKE160")

    # the sender's key; never hardcode real key material
    priv = PrivateKey()
    signer = PrivateKeySigner(priv)

    sender_lock = Script(
        config["CODE_HASH"], config["HASH_TYPE"], priv.get_public_key().get_blake160()
    )
    receiver_lock = Script(
        config["CODE_HASH"], config["HASH_TYPE"], "0x521571da5d51794e3c7ed1d092eef6c652584a5a"
    )

    # live cells of the sender, as returned by an indexer
    inputs = [
        Cell(
            CellOutput(300 * SHANNONS_PER_CKB, sender_lock),
            "0x",
            OutPoint("0x" + "a1" * 32, 0),
        ),
        Cell(
            CellOutput(200 * SHANNONS_PER_CKB, sender_lock),
            "0x",
            OutPoint("0x" + "b2" * 32, 1),
        ),
    ]

    outputs = [
        Cell(CellOutput(100 * SHANNONS_PER_CKB, receiver_lock)),
        Cell(CellOutput(400 * SHANNONS_PER_CKB - 1000, sender_lock)),
    ]

    # the first input of the lock group carries a zero filled signature
    # placeholder; the second input of the same group gets an empty witness
    placeholder = WitnessArgs(lock="0x" + "00" * 65).to_hex()

    skeleton = TransactionSkeleton(
        inputs=inputs,
        outputs=outputs,
        witnesses=[placeholder, "0x"],
        cell_deps=[CellDep.from_config(config)],
    )

    signable = Secp256k1Blake160SignableScript(signer)

    for entry in signable.generate_signing_entries(skeleton):
        print("Signing entry:", entry)

    tx = signable.sign_transaction(skeleton)

    # print the signed transaction ready to be sent with send_transaction
    print("\nSigned transaction:\n", tx.to_dict())
    print("\nTx hash:", tx.get_tx_hash())


if __name__ == "__main__":
    main()
