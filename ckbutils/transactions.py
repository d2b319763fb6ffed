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

from ckbutils.constants import (
    DEP_TYPES,
    DEP_TYPE_DEP_GROUP,
    DEFAULT_SINCE,
    DEFAULT_TX_VERSION,
    CKB_HASH_LENGTH,
)
from ckbutils.hashfunctions import ckb_hash
from ckbutils.script import Script
from ckbutils.utils import (
    b_to_h,
    h_to_b,
    h_to_i,
    i_to_h,
    normalize_hex,
    pack_uint32,
    pack_uint64,
    serialize_bytes,
    serialize_fixvec,
    serialize_dynvec,
    serialize_table,
    serialize_option,
    parse_table,
    parse_bytes,
)


class OutPoint:
    """Points to an output of a committed transaction.

    Attributes
    ----------
    tx_hash : str
        the hash of the transaction that created the cell
    index : int
        the index of the output in that transaction
    """

    def __init__(self, tx_hash: str | bytes, index: int) -> None:
        tx_hash = normalize_hex(tx_hash)
        if len(h_to_b(tx_hash)) != CKB_HASH_LENGTH:
            raise ValueError("Invalid tx hash length: must be exactly 32 bytes.")
        self.tx_hash = tx_hash
        self.index = index

    def to_bytes(self) -> bytes:
        """Serializes to bytes (molecule struct: Byte32 + Uint32)"""
        return h_to_b(self.tx_hash) + pack_uint32(self.index)

    def to_dict(self) -> dict:
        return {"tx_hash": self.tx_hash, "index": i_to_h(self.index)}

    @classmethod
    def from_dict(cls, d: dict) -> "OutPoint":
        return cls(d["tx_hash"], h_to_i(d["index"]))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OutPoint):
            return NotImplemented
        return self.tx_hash == other.tx_hash and self.index == other.index

    def __hash__(self) -> int:
        return hash((self.tx_hash, self.index))

    def __str__(self) -> str:
        return str(self.to_dict())

    def __repr__(self) -> str:
        return self.__str__()


class CellDep:
    """A cell the transaction depends on (code or a group of code cells)"""

    def __init__(self, out_point: OutPoint, dep_type: str = DEP_TYPE_DEP_GROUP) -> None:
        if dep_type not in DEP_TYPES:
            raise ValueError(f"Invalid dep type '{dep_type}'")
        self.out_point = out_point
        self.dep_type = dep_type

    @classmethod
    def from_config(cls, config: dict) -> "CellDep":
        """Creates the cell dep of a script deployment config"""
        return cls(OutPoint(config["TX_HASH"], config["INDEX"]), config["DEP_TYPE"])

    def to_bytes(self) -> bytes:
        return self.out_point.to_bytes() + bytes([DEP_TYPES[self.dep_type]])

    def to_dict(self) -> dict:
        return {"out_point": self.out_point.to_dict(), "dep_type": self.dep_type}

    @classmethod
    def from_dict(cls, d: dict) -> "CellDep":
        return cls(OutPoint.from_dict(d["out_point"]), d["dep_type"])

    def __str__(self) -> str:
        return str(self.to_dict())

    def __repr__(self) -> str:
        return self.__str__()


class CellInput:
    """Represents a transaction input.

    Attributes
    ----------
    previous_output : OutPoint
        the cell that is consumed
    since : int
        the input's since value (relative/absolute time locks)
    """

    def __init__(self, previous_output: OutPoint, since: int = DEFAULT_SINCE) -> None:
        self.previous_output = previous_output
        self.since = since

    def to_bytes(self) -> bytes:
        """Serializes to bytes (molecule struct: Uint64 + OutPoint)"""
        return pack_uint64(self.since) + self.previous_output.to_bytes()

    def to_dict(self) -> dict:
        return {
            "since": i_to_h(self.since),
            "previous_output": self.previous_output.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "CellInput":
        return cls(OutPoint.from_dict(d["previous_output"]), h_to_i(d["since"]))

    def __str__(self) -> str:
        return str(self.to_dict())

    def __repr__(self) -> str:
        return self.__str__()


class CellOutput:
    """Represents a transaction output

    Attributes
    ----------
    capacity : int
        the cell capacity in shannons
    lock : Script
        the lock script (spending condition)
    type : Script, optional
        the type script
    """

    def __init__(self, capacity: int, lock: Script, type_: Optional[Script] = None) -> None:
        if not isinstance(lock, Script):
            raise TypeError("A Script class is required for the lock.")
        self.capacity = capacity
        self.lock = lock
        self.type = type_

    def to_bytes(self) -> bytes:
        """Serializes to bytes (molecule table: Uint64, Script, ScriptOpt)"""
        type_bytes = self.type.to_bytes() if self.type is not None else None
        return serialize_table(
            [
                pack_uint64(self.capacity),
                self.lock.to_bytes(),
                serialize_option(type_bytes),
            ]
        )

    def to_dict(self) -> dict:
        return {
            "capacity": i_to_h(self.capacity),
            "lock": self.lock.to_dict(),
            "type": self.type.to_dict() if self.type is not None else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "CellOutput":
        type_ = Script.from_dict(d["type"]) if d.get("type") else None
        return cls(h_to_i(d["capacity"]), Script.from_dict(d["lock"]), type_)

    def __str__(self) -> str:
        return str(self.to_dict())

    def __repr__(self) -> str:
        return self.__str__()


class Cell:
    """A cell with its output resolved: what a transaction skeleton spends
    (inputs) or creates (outputs).

    Attributes
    ----------
    cell_output : CellOutput
        capacity, lock and type of the cell
    data : str
        the cell data (0x-prefixed hex)
    out_point : OutPoint, optional
        where the cell lives; required for inputs only
    """

    def __init__(
        self,
        cell_output: CellOutput,
        data: str = "0x",
        out_point: Optional[OutPoint] = None,
    ) -> None:
        self.cell_output = cell_output
        self.data = normalize_hex(data)
        self.out_point = out_point

    def __str__(self) -> str:
        return str(
            {
                "cell_output": self.cell_output,
                "data": self.data,
                "out_point": self.out_point,
            }
        )

    def __repr__(self) -> str:
        return self.__str__()


class WitnessArgs:
    """The conventional witness structure: three optional byte strings.

    The secp256k1/blake160 lock expects its signature in the lock field.

    Attributes
    ----------
    lock : str, optional
        data used by the lock script (0x-prefixed hex)
    input_type : str, optional
        data used by type scripts of inputs
    output_type : str, optional
        data used by type scripts of outputs
    """

    def __init__(
        self,
        lock: Optional[str | bytes] = None,
        input_type: Optional[str | bytes] = None,
        output_type: Optional[str | bytes] = None,
    ) -> None:
        self.lock = normalize_hex(lock) if lock is not None else None
        self.input_type = normalize_hex(input_type) if input_type is not None else None
        self.output_type = normalize_hex(output_type) if output_type is not None else None

    def to_bytes(self) -> bytes:
        """Serializes to bytes (molecule table of three BytesOpt)"""
        fields = []
        for value in (self.lock, self.input_type, self.output_type):
            if value is None:
                fields.append(serialize_option(None))
            else:
                fields.append(serialize_bytes(h_to_b(value)))
        return serialize_table(fields)

    def to_hex(self) -> str:
        return b_to_h(self.to_bytes())

    @classmethod
    def from_bytes(cls, data: bytes) -> "WitnessArgs":
        """Parses a serialized WitnessArgs

        Raises
        ------
        ValueError
            if data is not a well formed WitnessArgs table
        """
        values = []
        for field in parse_table(data, 3):
            values.append(b_to_h(parse_bytes(field)) if field else None)
        return cls(*values)

    @classmethod
    def from_hex(cls, witness: str) -> "WitnessArgs":
        return cls.from_bytes(h_to_b(witness))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WitnessArgs):
            return NotImplemented
        return (
            self.lock == other.lock
            and self.input_type == other.input_type
            and self.output_type == other.output_type
        )

    def __str__(self) -> str:
        return str(
            {
                "lock": self.lock,
                "input_type": self.input_type,
                "output_type": self.output_type,
            }
        )

    def __repr__(self) -> str:
        return self.__str__()


class Transaction:
    """Represents a CKB transaction

    Attributes
    ----------
    version : int
        the transaction version
    cell_deps : list (CellDep)
        cells holding the code of the scripts that run
    header_deps : list (str)
        block hashes the scripts may read
    inputs : list (CellInput)
        the consumed cells
    outputs : list (CellOutput)
        the created cells
    outputs_data : list (str)
        the data of every created cell
    witnesses : list (str)
        signatures and other proofs; not covered by the tx hash

    Methods
    -------
    raw_to_bytes()
        serializes the structural fields (molecule RawTransaction)
    to_bytes()
        serializes the whole transaction (molecule Transaction)
    get_tx_hash()
        calculates the transaction hash and returns it as hex
    get_tx_hash_bytes()
        calculates the transaction hash and returns it as bytes
    to_dict()
        returns the transaction in the node's JSON format
    from_dict(d)
        instantiates a Transaction from the node's JSON format (classmethod)
    """

    def __init__(
        self,
        inputs: Optional[list[CellInput]] = None,
        outputs: Optional[list[CellOutput]] = None,
        outputs_data: Optional[list[str]] = None,
        witnesses: Optional[list[str]] = None,
        cell_deps: Optional[list[CellDep]] = None,
        header_deps: Optional[list[str]] = None,
        version: int = DEFAULT_TX_VERSION,
    ) -> None:
        """See Transaction description"""

        self.inputs = inputs if inputs is not None else []
        self.outputs = outputs if outputs is not None else []
        self.outputs_data = [normalize_hex(d) for d in (outputs_data or [])]
        self.witnesses = [normalize_hex(w) for w in (witnesses or [])]
        self.cell_deps = cell_deps if cell_deps is not None else []
        self.header_deps = [normalize_hex(h) for h in (header_deps or [])]
        self.version = version

    def raw_to_bytes(self) -> bytes:
        """Serializes every field except the witnesses

        Raises
        ------
        ValueError
            if outputs and outputs data are not of the same size
        """
        if len(self.outputs) != len(self.outputs_data):
            raise ValueError(
                "Outputs (%d) and outputs data (%d) must have the same size"
                % (len(self.outputs), len(self.outputs_data))
            )

        for header_dep in self.header_deps:
            if len(h_to_b(header_dep)) != CKB_HASH_LENGTH:
                raise ValueError("Invalid header dep length: must be exactly 32 bytes.")

        return serialize_table(
            [
                pack_uint32(self.version),
                serialize_fixvec([dep.to_bytes() for dep in self.cell_deps]),
                serialize_fixvec([h_to_b(h) for h in self.header_deps]),
                serialize_fixvec([txin.to_bytes() for txin in self.inputs]),
                serialize_dynvec([txout.to_bytes() for txout in self.outputs]),
                serialize_dynvec(
                    [serialize_bytes(h_to_b(d)) for d in self.outputs_data]
                ),
            ]
        )

    def to_bytes(self) -> bytes:
        """Serializes the raw transaction together with the witnesses"""
        return serialize_table(
            [
                self.raw_to_bytes(),
                serialize_dynvec([serialize_bytes(h_to_b(w)) for w in self.witnesses]),
            ]
        )

    def to_hex(self) -> str:
        return b_to_h(self.to_bytes())

    def get_tx_hash_bytes(self) -> bytes:
        # the witnesses are not part of the hash; they carry the signatures
        # that commit to it
        return ckb_hash(self.raw_to_bytes())

    def get_tx_hash(self) -> str:
        """Calculates the transaction hash and returns it"""
        return b_to_h(self.get_tx_hash_bytes())

    def to_dict(self) -> dict:
        return {
            "version": i_to_h(self.version),
            "cell_deps": [dep.to_dict() for dep in self.cell_deps],
            "header_deps": list(self.header_deps),
            "inputs": [txin.to_dict() for txin in self.inputs],
            "outputs": [txout.to_dict() for txout in self.outputs],
            "outputs_data": list(self.outputs_data),
            "witnesses": list(self.witnesses),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Transaction":
        return cls(
            inputs=[CellInput.from_dict(i) for i in d["inputs"]],
            outputs=[CellOutput.from_dict(o) for o in d["outputs"]],
            outputs_data=list(d["outputs_data"]),
            witnesses=list(d.get("witnesses", [])),
            cell_deps=[CellDep.from_dict(c) for c in d["cell_deps"]],
            header_deps=list(d["header_deps"]),
            version=h_to_i(d["version"]),
        )

    @classmethod
    def copy(cls, tx: "Transaction") -> "Transaction":
        return cls.from_dict(tx.to_dict())

    def __str__(self) -> str:
        return str(self.to_dict())

    def __repr__(self) -> str:
        return self.__str__()


class TransactionSkeleton:
    """An assembled but unsigned transaction, with the inputs resolved to the
    cells they consume.

    Attributes
    ----------
    inputs : list (Cell)
        the cells being consumed; each must have an out_point
    outputs : list (Cell)
        the cells being created
    witnesses : list (str)
        witnesses by position; may be shorter or longer than inputs
    cell_deps : list (CellDep)
    header_deps : list (str)
    input_sinces : dict (int -> int)
        since values by input index (inputs not listed use 0)
    version : int
    """

    def __init__(
        self,
        inputs: Optional[list[Cell]] = None,
        outputs: Optional[list[Cell]] = None,
        witnesses: Optional[list[str]] = None,
        cell_deps: Optional[list[CellDep]] = None,
        header_deps: Optional[list[str]] = None,
        input_sinces: Optional[dict[int, int]] = None,
        version: int = DEFAULT_TX_VERSION,
    ) -> None:
        self.inputs = inputs if inputs is not None else []
        self.outputs = outputs if outputs is not None else []
        self.witnesses = witnesses if witnesses is not None else []
        self.cell_deps = cell_deps if cell_deps is not None else []
        self.header_deps = header_deps if header_deps is not None else []
        self.input_sinces = input_sinces if input_sinces is not None else {}
        self.version = version

    def get_input_locks(self) -> list[Script]:
        """The lock script of every input, by position"""
        return [cell.cell_output.lock for cell in self.inputs]

    def to_transaction(self) -> Transaction:
        """Creates the transaction described by the skeleton

        Raises
        ------
        ValueError
            if an input cell has no out point
        """
        tx_inputs = []
        for index, cell in enumerate(self.inputs):
            if cell.out_point is None:
                raise ValueError(f"Input {index} has no out point")
            since = self.input_sinces.get(index, DEFAULT_SINCE)
            tx_inputs.append(CellInput(cell.out_point, since))

        return Transaction(
            inputs=tx_inputs,
            outputs=[cell.cell_output for cell in self.outputs],
            outputs_data=[cell.data for cell in self.outputs],
            witnesses=list(self.witnesses),
            cell_deps=list(self.cell_deps),
            header_deps=list(self.header_deps),
            version=self.version,
        )
