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


import hashlib
import unittest

from ckbutils.setup import setup, get_script_config
from ckbutils.script import Script, ScriptTemplate
from ckbutils.keys import PrivateKey, PrivateKeySigner, PublicKey, Signer
from ckbutils.transactions import (
    OutPoint,
    CellDep,
    CellOutput,
    Cell,
    WitnessArgs,
    TransactionSkeleton,
)
from ckbutils.signing import (
    SigningEntry,
    hash_witness,
    compute_signing_entries,
    generate_signing_entries,
    seal,
    Secp256k1Blake160SignableScript,
)
from ckbutils.hashfunctions import CKBHasher
from ckbutils.errors import (
    MissingWitnessError,
    UnsupportedConditionShapeError,
    SignerFailureError,
    SealMismatchError,
)
from ckbutils.utils import h_to_b


PLACEHOLDER = WitnessArgs(lock="0x" + "00" * 65).to_hex()


def blake2b_ckb(*parts):
    h = hashlib.blake2b(digest_size=32, person=b"ckb-default-hash")
    for part in parts:
        h.update(part)
    return h.digest()


def prefixed(witness):
    data = h_to_b(witness)
    return len(data).to_bytes(8, "little") + data


class LockGroupTestCase(unittest.TestCase):
    maxDiff = None

    def setUp(self):
        setup("testnet")
        self.config = get_script_config("SECP256K1_BLAKE160")
        self.template = ScriptTemplate.from_config(self.config)
        self.lock_a = self.secp_lock("0x" + "11" * 20)
        self.lock_b = self.secp_lock("0x" + "22" * 20)
        self.lock_c = self.secp_lock("0x" + "33" * 20)
        self.other_lock = Script("0x" + "ab" * 32, "data1", "0x" + "11" * 20)

    def secp_lock(self, args):
        return Script(self.config["CODE_HASH"], self.config["HASH_TYPE"], args)

    def skeleton(self, locks, witnesses):
        inputs = [
            Cell(
                CellOutput(10000000000, lock),
                "0x",
                OutPoint("0x" + "%02x" % (i + 1) * 32, i),
            )
            for i, lock in enumerate(locks)
        ]
        outputs = [Cell(CellOutput(9999999000, self.lock_a), "0x")]
        return TransactionSkeleton(
            inputs=inputs,
            outputs=outputs,
            witnesses=list(witnesses),
            cell_deps=[CellDep.from_config(self.config)],
        )


class TestHashWitness(unittest.TestCase):
    def test_prefix_and_bytes(self):
        hasher = CKBHasher()
        hash_witness(hasher, "0x" + "00" * 85)
        self.assertEqual(
            hasher.digest(),
            blake2b_ckb((85).to_bytes(8, "little") + bytes(85)),
        )

    def test_empty_witness(self):
        hasher = CKBHasher()
        hash_witness(hasher, b"")
        self.assertEqual(hasher.digest(), blake2b_ckb(bytes(8)))


class TestGenerateSigningEntries(LockGroupTestCase):
    def test_single_input_vector(self):
        witness = "0x" + "00" * 85
        skeleton = self.skeleton([self.lock_a], [witness])
        tx_hash = skeleton.to_transaction().get_tx_hash_bytes()

        entries = generate_signing_entries(skeleton, self.template)

        self.assertEqual(len(entries), 1)
        self.assertEqual(
            entries[0].message,
            blake2b_ckb(tx_hash, (85).to_bytes(8, "little"), bytes(85)),
        )

    def test_fixed_digest_vector(self):
        tx_hash = bytes(range(32))
        witness = "0x" + "00" * 85
        entries = compute_signing_entries(tx_hash, [self.lock_a], [witness], self.template)
        self.assertEqual(
            entries[0].message,
            blake2b_ckb(tx_hash, bytes([85, 0, 0, 0, 0, 0, 0, 0]), bytes(85)),
        )
        self.assertEqual(entries[0].index, 0)
        self.assertEqual(entries[0].script, self.lock_a)
        self.assertEqual(entries[0].witness_base, witness)
        self.assertEqual(entries[0].signature_offset, 0)
        self.assertEqual(entries[0].signature_length, 65)

    def test_deterministic(self):
        witnesses = [PLACEHOLDER, PLACEHOLDER, "0x", "0x1234"]
        skeleton = self.skeleton([self.lock_a, self.lock_b, self.lock_a], witnesses)
        first = generate_signing_entries(skeleton, self.template)
        second = generate_signing_entries(
            self.skeleton([self.lock_a, self.lock_b, self.lock_a], witnesses),
            self.template,
        )
        self.assertEqual(first, second)
        self.assertEqual([e.message for e in first], [e.message for e in second])

    def test_grouping(self):
        w0, w1, w2, extra = PLACEHOLDER, PLACEHOLDER, "0xaabb", "0xdeadbeef"
        skeleton = self.skeleton([self.lock_a, self.lock_b, self.lock_a], [w0, w1, w2, extra])
        tx_hash = skeleton.to_transaction().get_tx_hash_bytes()

        entries = generate_signing_entries(skeleton, self.template)

        self.assertEqual(len(entries), 2)
        self.assertEqual([e.index for e in entries], [0, 1])
        self.assertEqual([e.script for e in entries], [self.lock_a, self.lock_b])
        self.assertEqual(
            entries[0].message,
            blake2b_ckb(tx_hash, prefixed(w0), prefixed(w2), prefixed(extra)),
        )
        self.assertEqual(
            entries[1].message,
            blake2b_ckb(tx_hash, prefixed(w1), prefixed(extra)),
        )

    def test_groups_are_logged(self):
        skeleton = self.skeleton([self.lock_a, self.lock_a], [PLACEHOLDER, "0x"])
        with self.assertLogs("ckbutils.signing", level="DEBUG") as logs:
            generate_signing_entries(skeleton, self.template)
        self.assertTrue(any("inputs [0, 1]" in line for line in logs.output))

    def test_extra_witnesses_go_into_every_group(self):
        witnesses = [PLACEHOLDER, PLACEHOLDER, PLACEHOLDER, "0x01", "0x0203"]
        tx_hash = bytes(32)
        entries = compute_signing_entries(
            tx_hash, [self.lock_a, self.lock_b, self.lock_c], witnesses, self.template
        )
        self.assertEqual(len(entries), 3)
        for entry in entries:
            self.assertEqual(
                entry.message,
                blake2b_ckb(
                    tx_hash,
                    prefixed(witnesses[entry.index]),
                    prefixed("0x01"),
                    prefixed("0x0203"),
                ),
            )

    def test_witness_order_matters(self):
        tx_hash = bytes(32)
        locks = [self.lock_a, self.lock_a]
        entries = compute_signing_entries(tx_hash, locks, ["0x01", "0x02"], self.template)
        swapped = compute_signing_entries(tx_hash, locks, ["0x02", "0x01"], self.template)
        self.assertNotEqual(entries[0].message, swapped[0].message)

    def test_other_schemes_are_skipped(self):
        w0, w1, w2 = "0x01", PLACEHOLDER, "0x02"
        skeleton = self.skeleton([self.other_lock, self.lock_a, self.other_lock], [w0, w1, w2])
        tx_hash = skeleton.to_transaction().get_tx_hash_bytes()

        entries = generate_signing_entries(skeleton, self.template)

        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].index, 1)
        self.assertEqual(entries[0].message, blake2b_ckb(tx_hash, prefixed(w1)))

    def test_empty_match_set(self):
        skeleton = self.skeleton([self.other_lock, self.other_lock], ["0x", "0x"])
        self.assertEqual(generate_signing_entries(skeleton, self.template), [])

    def test_no_inputs(self):
        skeleton = self.skeleton([], ["0x01"])
        self.assertEqual(generate_signing_entries(skeleton, self.template), [])

    def test_missing_witness(self):
        skeleton = self.skeleton([self.other_lock, self.lock_a], [PLACEHOLDER])
        with self.assertRaises(MissingWitnessError) as context:
            generate_signing_entries(skeleton, self.template)
        self.assertEqual(context.exception.index, 1)
        self.assertEqual(context.exception.witness_count, 1)

    def test_missing_witness_after_valid_group(self):
        skeleton = self.skeleton([self.lock_a, self.lock_b], [PLACEHOLDER])
        with self.assertRaises(MissingWitnessError):
            generate_signing_entries(skeleton, self.template)

    def test_group_member_beyond_witnesses(self):
        # only the first input of a group needs a witness
        tx_hash = bytes(32)
        entries = compute_signing_entries(
            tx_hash, [self.lock_a, self.lock_a], [PLACEHOLDER], self.template
        )
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].message, blake2b_ckb(tx_hash, prefixed(PLACEHOLDER)))

    def test_unsupported_args(self):
        bad_lock = self.secp_lock("0x1122")
        skeleton = self.skeleton([self.lock_a, bad_lock], [PLACEHOLDER, PLACEHOLDER])
        with self.assertRaises(UnsupportedConditionShapeError) as context:
            generate_signing_entries(skeleton, self.template)
        self.assertEqual(context.exception.index, 1)
        self.assertEqual(context.exception.script, bad_lock)

    def test_hex_case_does_not_split_groups(self):
        upper = Script(self.config["CODE_HASH"].upper().replace("0X", "0x"), "type", "0x" + "AA" * 20)
        lower = self.secp_lock("0x" + "aa" * 20)
        entries = compute_signing_entries(
            bytes(32), [upper, lower], [PLACEHOLDER, "0x"], self.template
        )
        self.assertEqual(len(entries), 1)

    def test_bytes_witnesses(self):
        locks = [self.lock_a, self.lock_b, self.lock_a]
        hex_witnesses = [PLACEHOLDER, PLACEHOLDER, "0x", "0xabcd"]
        raw_witnesses = [h_to_b(w) for w in hex_witnesses]

        from_hex = generate_signing_entries(
            self.skeleton(locks, hex_witnesses), self.template
        )
        from_bytes = generate_signing_entries(
            self.skeleton(locks, raw_witnesses), self.template
        )
        self.assertEqual(
            [e.message for e in from_bytes], [e.message for e in from_hex]
        )
        self.assertEqual(from_bytes[0].witness_base, PLACEHOLDER)

    def test_invalid_tx_hash(self):
        with self.assertRaises(ValueError):
            compute_signing_entries(bytes(31), [self.lock_a], [PLACEHOLDER], self.template)


class TestSigningEntry(unittest.TestCase):
    def test_read_only(self):
        entry = SigningEntry(
            Script("0x" + "00" * 32, "type", "0x"), 0, "0x", bytes(32)
        )
        with self.assertRaises(AttributeError):
            entry.message = bytes(32)

    def test_message_size(self):
        with self.assertRaises(ValueError):
            SigningEntry(Script("0x" + "00" * 32, "type", "0x"), 0, "0x", bytes(31))


class TestSeal(LockGroupTestCase):
    def setUp(self):
        super().setUp()
        self.signature_a = bytes([0xA1]) * 65
        self.signature_b = bytes([0xB2]) * 65
        self.witness_with_type = WitnessArgs(
            lock="0x" + "00" * 65, input_type="0x0102"
        ).to_hex()
        self.witnesses = [self.witness_with_type, PLACEHOLDER, "0x", "0xdeadbeef"]
        self.skeleton_ = self.skeleton(
            [self.lock_a, self.lock_b, self.lock_a], self.witnesses
        )
        self.entries = generate_signing_entries(self.skeleton_, self.template)

    def test_seal(self):
        tx = seal(self.skeleton_, self.entries, [self.signature_a, self.signature_b])

        first = WitnessArgs.from_hex(tx.witnesses[0])
        self.assertEqual(h_to_b(first.lock), self.signature_a)
        self.assertEqual(first.input_type, "0x0102")
        self.assertIsNone(first.output_type)
        self.assertEqual(h_to_b(WitnessArgs.from_hex(tx.witnesses[1]).lock), self.signature_b)
        self.assertEqual(tx.witnesses[2:], ["0x", "0xdeadbeef"])
        self.assertEqual(tx.witnesses, self.skeleton_.witnesses)

    def test_seal_keeps_tx_hash(self):
        tx_hash = self.skeleton_.to_transaction().get_tx_hash()
        tx = seal(self.skeleton_, self.entries, [self.signature_a, self.signature_b])
        self.assertEqual(tx.get_tx_hash(), tx_hash)

    def test_signature_offset(self):
        witness = WitnessArgs(lock="0x" + "ff" * 70).to_hex()
        entry = SigningEntry(self.lock_a, 0, witness, bytes(32), signature_offset=3)
        skeleton = self.skeleton([self.lock_a], [witness])
        tx = seal(skeleton, [entry], [self.signature_a])
        lock = h_to_b(WitnessArgs.from_hex(tx.witnesses[0]).lock)
        self.assertEqual(lock, b"\xff" * 3 + self.signature_a + b"\xff" * 2)

    def assertUntouched(self):
        self.assertEqual(self.skeleton_.witnesses, self.witnesses)

    def test_signature_count_mismatch(self):
        with self.assertRaises(SealMismatchError):
            seal(self.skeleton_, self.entries, [self.signature_a])
        self.assertUntouched()

    def test_signature_size_mismatch(self):
        with self.assertRaises(SealMismatchError):
            seal(self.skeleton_, self.entries, [self.signature_a, self.signature_b[:64]])
        self.assertUntouched()

    def test_witness_changed(self):
        self.skeleton_.witnesses[1] = WitnessArgs(lock="0x" + "01" * 65).to_hex()
        changed = list(self.skeleton_.witnesses)
        with self.assertRaises(SealMismatchError):
            seal(self.skeleton_, self.entries, [self.signature_a, self.signature_b])
        self.assertEqual(self.skeleton_.witnesses, changed)

    def test_witness_removed(self):
        self.skeleton_.witnesses = self.witnesses[:1]
        with self.assertRaises(SealMismatchError):
            seal(self.skeleton_, self.entries, [self.signature_a, self.signature_b])
        self.assertEqual(self.skeleton_.witnesses, self.witnesses[:1])

    def test_not_witness_args(self):
        skeleton = self.skeleton([self.lock_a], ["0x1234"])
        entries = generate_signing_entries(skeleton, self.template)
        with self.assertRaises(SealMismatchError):
            seal(skeleton, entries, [self.signature_a])
        self.assertEqual(skeleton.witnesses, ["0x1234"])

    def test_lock_field_too_short(self):
        short = WitnessArgs(lock="0x" + "00" * 10).to_hex()
        skeleton = self.skeleton([self.lock_a, self.lock_b], [PLACEHOLDER, short])
        entries = generate_signing_entries(skeleton, self.template)
        with self.assertRaises(SealMismatchError):
            seal(skeleton, entries, [self.signature_a, self.signature_b])
        # the valid first witness was not written either
        self.assertEqual(skeleton.witnesses, [PLACEHOLDER, short])

    def test_missing_lock_field(self):
        no_lock = WitnessArgs(input_type="0x01").to_hex()
        skeleton = self.skeleton([self.lock_a], [no_lock])
        entries = generate_signing_entries(skeleton, self.template)
        with self.assertRaises(SealMismatchError):
            seal(skeleton, entries, [self.signature_a])


class FailingSigner(Signer):
    def sign(self, message):
        raise RuntimeError("device disconnected")


class ShortSigner(Signer):
    def sign(self, message):
        return bytes(64)


class TestSecp256k1Blake160SignableScript(LockGroupTestCase):
    def setUp(self):
        super().setUp()
        self.key = PrivateKey.from_hex(
            "0xd00c06bfd800d27397002dca6fb0993d5ba6399b4238b2f29ee9deb97593d2bc"
        )
        self.lock = self.secp_lock(self.key.get_public_key().get_blake160())
        self.witnesses = [PLACEHOLDER, "0x", PLACEHOLDER]
        self.skeleton_ = self.skeleton(
            [self.lock, self.lock, self.other_lock], self.witnesses
        )

    def test_sign_transaction(self):
        signable = Secp256k1Blake160SignableScript(PrivateKeySigner(self.key))
        entries = signable.generate_signing_entries(self.skeleton_)
        self.assertEqual(len(entries), 1)

        tx = signable.sign_transaction(self.skeleton_)

        signature = h_to_b(WitnessArgs.from_hex(tx.witnesses[0]).lock)
        self.assertEqual(len(signature), 65)
        recovered = PublicKey.recover(entries[0].message, signature)
        self.assertEqual(recovered.get_blake160(), self.lock.args)
        self.assertTrue(recovered.verify(signature, entries[0].message))
        # the other scheme's witness is left alone
        self.assertEqual(tx.witnesses[1:], self.witnesses[1:])

    def test_sign(self):
        signable = Secp256k1Blake160SignableScript(PrivateKeySigner(self.key))
        message = bytes(32)
        self.assertEqual(signable.sign(message), self.key.sign_recoverable(message))

    def test_signer_failure(self):
        signable = Secp256k1Blake160SignableScript(FailingSigner())
        with self.assertRaises(SignerFailureError) as context:
            signable.sign_transaction(self.skeleton_)
        self.assertEqual(context.exception.index, 0)
        self.assertIsInstance(context.exception.__cause__, RuntimeError)
        self.assertEqual(self.skeleton_.witnesses, self.witnesses)

    def test_signer_wrong_size(self):
        signable = Secp256k1Blake160SignableScript(ShortSigner())
        with self.assertRaises(SignerFailureError):
            signable.sign_transaction(self.skeleton_)
        self.assertEqual(self.skeleton_.witnesses, self.witnesses)

    def test_requires_signer(self):
        with self.assertRaises(TypeError):
            Secp256k1Blake160SignableScript(self.key)

    def test_explicit_config(self):
        config = dict(self.config, CODE_HASH="0x" + "ab" * 32, HASH_TYPE="data1")
        signable = Secp256k1Blake160SignableScript(PrivateKeySigner(self.key), config)
        entries = signable.generate_signing_entries(self.skeleton_)
        self.assertEqual([e.index for e in entries], [2])

    def test_devnet_requires_config(self):
        self.addCleanup(setup, "testnet")
        setup("devnet")
        with self.assertRaises(ValueError):
            Secp256k1Blake160SignableScript(PrivateKeySigner(self.key))


if __name__ == "__main__":
    unittest.main()
