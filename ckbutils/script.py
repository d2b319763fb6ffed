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

from typing import Optional

from ckbutils.constants import HASH_TYPES, CKB_HASH_LENGTH
from ckbutils.hashfunctions import ckb_hash
from ckbutils.utils import (
    b_to_h,
    h_to_b,
    normalize_hex,
    serialize_bytes,
    serialize_table,
    parse_table,
    parse_bytes,
)


_HASH_TYPES_BY_BYTE = {v: k for k, v in HASH_TYPES.items()}


class Script:
    """Represents a CKB script (a lock script is the spending condition of a
    cell).

    Two scripts are equal if code hash, hash type and args are all equal.
    Hex values are normalized to lowercase so the case in which they were
    provided does not matter.

    Attributes
    ----------
    code_hash : str
        the 32 bytes code identifier (0x-prefixed hex)
    hash_type : str
        how code_hash is matched: 'data', 'type', 'data1' or 'data2'
    args : str
        the script arguments (0x-prefixed hex)

    Methods
    -------
    to_bytes()
        serializes the script as a molecule table
    to_hex()
        converts result of to_bytes to hexadecimal string
    from_bytes(data)
        instantiates a Script from its molecule serialization (classmethod)
    compute_hash()
        returns the script hash
    to_dict()
        returns the script in the node's JSON format
    from_dict(d)
        instantiates a Script from the node's JSON format (classmethod)
    """

    def __init__(self, code_hash: str | bytes, hash_type: str, args: str | bytes = "0x") -> None:
        """See Script description

        Raises
        ------
        ValueError
            if code_hash is not 32 bytes or hash_type is unknown
        """
        code_hash = normalize_hex(code_hash)
        if len(h_to_b(code_hash)) != CKB_HASH_LENGTH:
            raise ValueError("Invalid code hash length: must be exactly 32 bytes.")
        if hash_type not in HASH_TYPES:
            raise ValueError(f"Invalid hash type '{hash_type}'")

        self._code_hash = code_hash
        self._hash_type = hash_type
        self._args = normalize_hex(args)

    @property
    def code_hash(self) -> str:
        return self._code_hash

    @property
    def hash_type(self) -> str:
        return self._hash_type

    @property
    def args(self) -> str:
        return self._args

    def to_bytes(self) -> bytes:
        """Serializes to bytes (molecule Script table)"""
        return serialize_table(
            [
                h_to_b(self.code_hash),
                bytes([HASH_TYPES[self.hash_type]]),
                serialize_bytes(h_to_b(self.args)),
            ]
        )

    def to_hex(self) -> str:
        return b_to_h(self.to_bytes())

    @classmethod
    def from_bytes(cls, data: bytes) -> "Script":
        code_hash, hash_type, args = parse_table(data, 3)
        if len(hash_type) != 1 or hash_type[0] not in _HASH_TYPES_BY_BYTE:
            raise ValueError("Invalid serialized hash type")
        return cls(code_hash, _HASH_TYPES_BY_BYTE[hash_type[0]], parse_bytes(args))

    def compute_hash(self) -> str:
        """Calculates the script hash (ckb hash of the serialized script)"""
        return b_to_h(ckb_hash(self.to_bytes()))

    def to_dict(self) -> dict:
        return {
            "code_hash": self.code_hash,
            "hash_type": self.hash_type,
            "args": self.args,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Script":
        return cls(d["code_hash"], d["hash_type"], d["args"])

    @classmethod
    def copy(cls, script: "Script") -> "Script":
        return cls(script.code_hash, script.hash_type, script.args)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Script):
            return NotImplemented
        return (
            self.code_hash == other.code_hash
            and self.hash_type == other.hash_type
            and self.args == other.args
        )

    def __hash__(self) -> int:
        return hash((self.code_hash, self.hash_type, self.args))

    def __str__(self) -> str:
        return str(self.to_dict())

    def __repr__(self) -> str:
        return self.__str__()


class ScriptTemplate:
    """The code identity of a signing scheme, used to pick out the inputs
    that a particular signer is responsible for.

    Attributes
    ----------
    code_hash : str
        the code hash of the scheme's lock script
    hash_type : str
        the hash type of the scheme's lock script
    args_length : int, optional
        the exact args size the scheme expects (None accepts any size)
    """

    def __init__(
        self, code_hash: str | bytes, hash_type: str, args_length: Optional[int] = None
    ) -> None:
        # reuse Script validation for code hash and hash type
        identity = Script(code_hash, hash_type)
        self.code_hash = identity.code_hash
        self.hash_type = identity.hash_type
        self.args_length = args_length

    @classmethod
    def from_config(cls, config: dict) -> "ScriptTemplate":
        """Creates a template from a script deployment config
        (see constants.NETWORK_SCRIPTS)"""
        return cls(config["CODE_HASH"], config["HASH_TYPE"], config.get("ARGS_LENGTH"))

    def matches(self, script: Script) -> bool:
        """True if the script uses this scheme's code (args are ignored)"""
        return (
            script.code_hash == self.code_hash and script.hash_type == self.hash_type
        )

    def shape_error(self, script: Script) -> Optional[str]:
        """Returns why a matching script's args are unusable, or None"""
        if self.args_length is None:
            return None
        args_length = len(h_to_b(script.args))
        if args_length != self.args_length:
            return "expected %d bytes of args, got %d" % (self.args_length, args_length)
        return None

    def __str__(self) -> str:
        return str(
            {
                "code_hash": self.code_hash,
                "hash_type": self.hash_type,
                "args_length": self.args_length,
            }
        )

    def __repr__(self) -> str:
        return self.__str__()
