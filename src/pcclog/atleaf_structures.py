# Append-only transparency log leaf (ATLeaf) layout. All integers are big endian.
from construct import Struct, Array, Byte, Int16ub, Int32ub, Int64sb, Bytes, Rebuild, len_, this, ConstructError

from .errors import LeafDecodeError

TransparencyExtension = Struct(
    "Type" / Int32ub,
    "Size" / Rebuild(Int16ub, len_(this.Data)),
    "Data" / Bytes(this.Size)
)

ATLeaf = Struct(
    "Version"         / Byte,
    "Type"            / Byte,
    "DescriptionSize" / Rebuild(Byte, len_(this.Description)),
    "Description"     / Bytes(this.DescriptionSize),
    "HashSize"        / Rebuild(Byte, len_(this.Hash)),
    "Hash"            / Bytes(this.HashSize),
    "ExpiryMS"        / Int64sb,
    "ExtensionsSize"  / Rebuild(Int16ub, len_(this.Extensions)),
    "Extensions"      / Array(this.ExtensionsSize, TransparencyExtension)
)

# Enough of the leaf to classify it without decoding the rest
ATLeafHeader = Struct(
    "Version" / Byte,
    "Type"    / Byte
)


def _failed_field(e: ConstructError) -> str:
    # construct reports paths like "(parsing) -> Extensions -> Data"
    if not e.path:
        return "leaf"
    return e.path.split(" -> ")[-1]


def parse_at_leaf(data: bytes):
    try:
        return ATLeaf.parse(data)
    except ConstructError as e:
        raise LeafDecodeError(_failed_field(e), str(e).splitlines()[-1]) from e


def peek_leaf_type(data: bytes) -> int:
    try:
        return ATLeafHeader.parse(data).Type
    except ConstructError as e:
        raise LeafDecodeError("type", str(e).splitlines()[-1]) from e
