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

import logging
from typing import Optional

from ckbutils.constants import (
    SECP256K1_BLAKE160,
    SIGNATURE_OFFSET,
    SIGNATURE_SIZE,
    CKB_HASH_LENGTH,
)
from ckbutils.errors import (
    MissingWitnessError,
    UnsupportedConditionShapeError,
    SignerFailureError,
    SealMismatchError,
)
from ckbutils.hashfunctions import CKBHasher
from ckbutils.keys import Signer
from ckbutils.script import Script, ScriptTemplate
from ckbutils.setup import get_script_config
from ckbutils.transactions import Transaction, TransactionSkeleton, WitnessArgs
from ckbutils.utils import b_to_h, h_to_b, normalize_hex, encode_witness_length

log = logging.getLogger(__name__)


class SigningEntry:
    """One message that needs exactly one signature: it authorizes every
    input locked by the same script.

    Attributes
    ----------
    script : Script
        the lock script of the group
    index : int
        the representative index: first input of the group, whose witness
        receives the signature
    witness_base : str
        the witness at that index when the message was computed
    signature_offset : int
        where the signature goes inside the witness lock field
    signature_length : int
        the signature size
    message : bytes
        the 32 bytes digest to sign
    """

    __slots__ = (
        "_script",
        "_index",
        "_witness_base",
        "_signature_offset",
        "_signature_length",
        "_message",
    )

    def __init__(
        self,
        script: Script,
        index: int,
        witness_base: str,
        message: bytes,
        signature_offset: int = SIGNATURE_OFFSET,
        signature_length: int = SIGNATURE_SIZE,
    ) -> None:
        if len(message) != CKB_HASH_LENGTH:
            raise ValueError("Signing message must be a 32 bytes digest.")
        self._script = script
        self._index = index
        self._witness_base = normalize_hex(witness_base)
        self._message = bytes(message)
        self._signature_offset = signature_offset
        self._signature_length = signature_length

    @property
    def script(self) -> Script:
        return self._script

    @property
    def index(self) -> int:
        return self._index

    @property
    def witness_base(self) -> str:
        return self._witness_base

    @property
    def signature_offset(self) -> int:
        return self._signature_offset

    @property
    def signature_length(self) -> int:
        return self._signature_length

    @property
    def message(self) -> bytes:
        return self._message

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SigningEntry):
            return NotImplemented
        return (
            self.script == other.script
            and self.index == other.index
            and self.witness_base == other.witness_base
            and self.signature_offset == other.signature_offset
            and self.signature_length == other.signature_length
            and self.message == other.message
        )

    def __str__(self) -> str:
        return str(
            {
                "script": self.script,
                "index": self.index,
                "witness_base": self.witness_base,
                "signature_offset": self.signature_offset,
                "signature_length": self.signature_length,
                "message": b_to_h(self.message),
            }
        )

    def __repr__(self) -> str:
        return self.__str__()


def hash_witness(hasher: CKBHasher, witness: str | bytes) -> None:
    """Feeds a witness into the hasher: its length as 8 bytes little-endian
    followed by the witness bytes."""
    if isinstance(witness, str):
        witness = h_to_b(witness)
    hasher.update(encode_witness_length(len(witness)))
    hasher.update(witness)


def compute_signing_entries(
    tx_hash: bytes | str,
    locks: list[Script],
    witnesses: list[str],
    template: ScriptTemplate,
) -> list[SigningEntry]:
    """Computes one signing entry per distinct lock script that uses the
    template's code.

    The message of a group is the hash of:

    |      tx_hash
    |      len(witness[i]) | witness[i]         (first input of the group)
    |      len(witness[j]) | witness[j]         (every later input of the
    |                                            group that has a witness)
    |      len(witness[k]) | witness[k]         (every witness beyond the
    |                                            inputs, in every group)

    Parameters
    ----------
    tx_hash : bytes | str
        hash of the transaction's structural fields
    locks : list[Script]
        the lock script of every input, by position
    witnesses : list[str | bytes]
        the transaction witnesses (hex or raw bytes)
    template : ScriptTemplate
        selects the inputs signed by this scheme

    Raises
    ------
    MissingWitnessError
        if the first input of a group has no witness
    UnsupportedConditionShapeError
        if a matching lock has args the scheme cannot use
    """
    if isinstance(tx_hash, str):
        tx_hash = h_to_b(tx_hash)
    if len(tx_hash) != CKB_HASH_LENGTH:
        raise ValueError("Transaction hash must be exactly 32 bytes.")

    witness_bytes = [h_to_b(normalize_hex(w)) for w in witnesses]

    # lock script -> representative index, in first occurrence order
    groups: dict[Script, int] = {}
    for index, lock in enumerate(locks):
        if not template.matches(lock):
            continue
        if lock in groups:
            continue

        reason = template.shape_error(lock)
        if reason is not None:
            raise UnsupportedConditionShapeError(index, lock, reason)
        if index >= len(witness_bytes):
            raise MissingWitnessError(index, len(witness_bytes))
        groups[lock] = index

    extra_witnesses = witness_bytes[len(locks):]
    last_grouped = min(len(locks), len(witness_bytes))

    entries = []
    for lock, index in groups.items():
        hasher = CKBHasher()
        hasher.update(tx_hash)
        hash_witness(hasher, witness_bytes[index])

        members = [index]
        for j in range(index + 1, last_grouped):
            if locks[j] == lock:
                hash_witness(hasher, witness_bytes[j])
                members.append(j)

        for witness in extra_witnesses:
            hash_witness(hasher, witness)

        log.debug(
            "lock group %s: inputs %s, %d extra witnesses",
            lock,
            members,
            len(extra_witnesses),
        )
        entries.append(
            SigningEntry(
                script=lock,
                index=index,
                witness_base=normalize_hex(witnesses[index]),
                message=hasher.digest(),
            )
        )

    return entries


def generate_signing_entries(
    skeleton: TransactionSkeleton, template: ScriptTemplate
) -> list[SigningEntry]:
    """Computes the signing entries of a transaction skeleton for the inputs
    locked with the template's scheme (see compute_signing_entries)"""
    tx_hash = skeleton.to_transaction().get_tx_hash_bytes()
    log.debug("generating signing entries for tx %s", b_to_h(tx_hash))
    return compute_signing_entries(
        tx_hash, skeleton.get_input_locks(), skeleton.witnesses, template
    )


def seal(
    skeleton: TransactionSkeleton,
    entries: list[SigningEntry],
    signatures: list[bytes],
) -> Transaction:
    """Places every signature into the lock field of its entry's witness
    and returns the resulting transaction.

    Every entry is checked before anything is written, so on error the
    skeleton is left untouched. Signatures are not verified.

    Raises
    ------
    SealMismatchError
        if signatures and entries differ in number, or a witness no longer
        is the one the entry was computed from, or it has no room for the
        signature
    """
    if len(entries) != len(signatures):
        raise SealMismatchError(
            f"Got {len(signatures)} signatures for {len(entries)} signing entries"
        )

    sealed: dict[int, str] = {}
    for entry, signature in zip(entries, signatures):
        index = entry.index
        if index >= len(skeleton.witnesses):
            raise SealMismatchError(f"No witness at index {index}")
        if index in sealed:
            raise SealMismatchError(f"Witness {index} is targeted more than once")

        witness = normalize_hex(skeleton.witnesses[index])
        if witness != entry.witness_base:
            raise SealMismatchError(
                f"Witness {index} changed after its signing message was computed"
            )
        if len(signature) != entry.signature_length:
            raise SealMismatchError(
                f"Signature for witness {index} is {len(signature)} bytes, "
                f"expected {entry.signature_length}"
            )

        try:
            witness_args = WitnessArgs.from_hex(witness)
        except ValueError as e:
            raise SealMismatchError(f"Witness {index} is not a WitnessArgs: {e}") from e

        if witness_args.lock is None:
            raise SealMismatchError(f"Witness {index} has no lock field")
        lock = h_to_b(witness_args.lock)
        start = entry.signature_offset
        end = start + entry.signature_length
        if len(lock) < end:
            raise SealMismatchError(
                f"Lock field of witness {index} is {len(lock)} bytes, "
                f"the signature needs {end}"
            )

        witness_args.lock = b_to_h(lock[:start] + bytes(signature) + lock[end:])
        sealed[index] = witness_args.to_hex()

    witnesses = list(skeleton.witnesses)
    for index, witness in sealed.items():
        witnesses[index] = witness
    skeleton.witnesses = witnesses
    log.debug("sealed witnesses %s", sorted(sealed))

    return skeleton.to_transaction()


class Secp256k1Blake160SignableScript:
    """Signs the inputs locked by the default secp256k1/blake160 lock.

    Attributes
    ----------
    template : ScriptTemplate
        the code identity of the lock
    signer : Signer
        produces the signatures

    Methods
    -------
    generate_signing_entries(skeleton)
        returns the signing entries of the skeleton for this lock
    sign(message)
        signs a single message
    sign_transaction(skeleton)
        signs every lock group and returns the sealed transaction
    """

    def __init__(self, signer: Signer, config: Optional[dict] = None) -> None:
        """
        Parameters
        ----------
        signer : Signer
            the signing capability (key material is never built in)
        config : dict, optional
            the lock's deployment config; defaults to the configured
            network's SECP256K1_BLAKE160
        """
        if not isinstance(signer, Signer):
            raise TypeError("A Signer is required.")
        if config is None:
            config = get_script_config(SECP256K1_BLAKE160)
        self.template = ScriptTemplate.from_config(config)
        self.signer = signer

    def generate_signing_entries(self, skeleton: TransactionSkeleton) -> list[SigningEntry]:
        return generate_signing_entries(skeleton, self.template)

    def sign(self, message: bytes) -> bytes:
        return self.signer.sign(message)

    def sign_transaction(self, skeleton: TransactionSkeleton) -> Transaction:
        """Generates the signing entries, signs them one after the other and
        seals the signatures into the skeleton's witnesses.

        Raises
        ------
        SignerFailureError
            if the signer raises or returns a signature of the wrong size;
            the skeleton is not modified
        """
        entries = self.generate_signing_entries(skeleton)

        signatures = []
        for position, entry in enumerate(entries):
            try:
                signature = self.sign(entry.message)
            except Exception as e:
                raise SignerFailureError(position, str(e)) from e
            if len(signature) != entry.signature_length:
                raise SignerFailureError(
                    position,
                    f"signature is {len(signature)} bytes, "
                    f"expected {entry.signature_length}",
                )
            signatures.append(signature)

        return seal(skeleton, entries, signatures)
