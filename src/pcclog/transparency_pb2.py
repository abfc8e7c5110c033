# Message classes for the key transparency research endpoints and the PCC release
# metadata attached to AT log leaves. The schema is kept here as a field table and
# registered with the default descriptor pool the same way protoc output is.
from google.protobuf import descriptor_pb2
from google.protobuf import descriptor_pool
from google.protobuf import struct_pb2  # noqa: F401 (registers google/protobuf/struct.proto)
from google.protobuf import timestamp_pb2  # noqa: F401 (registers google/protobuf/timestamp.proto)
from google.protobuf.internal import builder

_PACKAGE = "pcclog.transparency"

_ENUMS = [
    ("ProtocolVersion", [("UNKNOWN_VERSION", 0), ("V1", 1), ("V2", 2), ("V3", 3)]),
    ("Status", [("UNKNOWN_STATUS", 0), ("OK", 1), ("MUTATION_PENDING", 2), ("ALREADY_EXISTS", 3),
                ("INTERNAL_ERROR", 4), ("INVALID_REQUEST", 5), ("NOT_FOUND", 6)]),
    ("LogType", [("UNKNOWN_LOG", 0), ("PER_APPLICATION_CHANGE_LOG", 1), ("PER_APPLICATION_TREE", 2),
                 ("TOP_LEVEL_TREE", 3), ("CT_LOG", 4), ("WORLD_WITNESS", 5), ("AT_LOG", 6)]),
    ("Application", [("UNKNOWN_APPLICATION", 0), ("IDS_MESSAGING", 1), ("IDS_FACETIME", 2),
                     ("IDS_MULTIPLEX", 3), ("PRIVATE_CLOUD_COMPUTE", 5),
                     ("PRIVATE_CLOUD_COMPUTE_INTERNAL", 6)]),
    ("NodeType", [("ATL_NODE", 0), ("PTR_NODE", 1), ("CONFIG_NODE", 2), ("TREE_ROOT_NODE", 3)]),
    ("ATLogDataType", [("UNKNOWN", 0), ("RELEASE", 1), ("KEYBUNDLE_TGT", 2), ("KEYBUNDLE_OTT", 3),
                       ("KEYBUNDLE_OHTTP", 4)]),
    ("AssetType", [("ASSET_TYPE_UNSPECIFIED", 0), ("ASSET_TYPE_OS", 1), ("ASSET_TYPE_PCS", 2),
                   ("ASSET_TYPE_MODEL", 3), ("ASSET_TYPE_HOST_TOOLS", 4), ("ASSET_TYPE_DEBUG_SHELL", 5)]),
    ("DigestAlg", [("DIGEST_ALG_UNKNOWN", 0), ("DIGEST_ALG_SHA2_256", 1), ("DIGEST_ALG_SHA2_384", 2)]),
]

# (message name, [(field name, number, kind, type reference, repeated)], nested messages)
_MESSAGES = [
    ("ListTreesRequest", [
        ("version", 1, "enum", "ProtocolVersion", False),
        ("requestUuid", 2, "string", None, False),
    ], []),
    ("ListTreesResponse", [
        ("status", 1, "enum", "Status", False),
        ("trees", 2, "message", "ListTreesResponse.Tree", True),
    ], [
        ("Tree", [
            ("treeId", 1, "uint64", None, False),
            ("logType", 2, "enum", "LogType", False),
            ("application", 3, "enum", "Application", False),
            ("publicKey", 4, "bytes", None, False),
            ("mergeGroups", 5, "uint64", None, False),
        ], []),
    ]),
    ("SignedObject", [
        ("object", 1, "bytes", None, False),
        ("signature", 2, "bytes", None, False),
    ], []),
    ("LogHeadRequest", [
        ("version", 1, "enum", "ProtocolVersion", False),
        ("treeId", 2, "uint64", None, False),
        ("revision", 3, "int64", None, False),
        ("requestUuid", 4, "string", None, False),
    ], []),
    ("LogHeadResponse", [
        ("status", 1, "enum", "Status", False),
        ("logHead", 2, "message", "SignedObject", False),
    ], []),
    ("LogHead", [
        ("logBeginningMs", 1, "uint64", None, False),
        ("logSize", 2, "uint64", None, False),
        ("logHeadHash", 3, "bytes", None, False),
        ("revision", 4, "uint64", None, False),
        ("logType", 5, "enum", "LogType", False),
        ("application", 6, "enum", "Application", False),
        ("treeId", 7, "uint64", None, False),
    ], []),
    ("LogLeavesRequest", [
        ("version", 1, "enum", "ProtocolVersion", False),
        ("treeId", 2, "uint64", None, False),
        ("startIndex", 3, "uint64", None, False),
        ("endIndex", 4, "uint64", None, False),
        ("requestUuid", 5, "string", None, False),
        ("startMergeGroup", 6, "uint32", None, False),
        ("endMergeGroup", 7, "uint32", None, False),
    ], []),
    ("LogLeaf", [
        ("nodeType", 1, "enum", "NodeType", False),
        ("nodeBytes", 2, "bytes", None, False),
        ("index", 3, "uint64", None, False),
        ("rawData", 4, "bytes", None, False),
        ("metadata", 5, "bytes", None, False),
        ("mergeGroup", 6, "uint32", None, False),
    ], []),
    ("LogLeavesResponse", [
        ("status", 1, "enum", "Status", False),
        ("leaves", 2, "message", "LogLeaf", True),
        ("logHead", 3, "message", "SignedObject", False),
    ], []),
    ("ChangeLogNodeV2", [
        ("mutation", 1, "bytes", None, False),
        ("extensions", 2, "bytes", None, False),
    ], []),
    ("Digest", [
        ("digestAlg", 1, "enum", "DigestAlg", False),
        ("value", 2, "bytes", None, False),
    ], []),
    ("ReleaseAsset", [
        ("type", 1, "enum", "AssetType", False),
        ("digest", 2, "message", "Digest", False),
        ("url", 3, "string", None, False),
        ("variant", 4, "string", None, False),
    ], []),
    ("ReleaseMetadata", [
        ("timestamp", 1, "message", ".google.protobuf.Timestamp", False),
        ("releaseHash", 2, "bytes", None, False),
        ("assets", 3, "message", "ReleaseAsset", True),
        ("darwinInit", 4, "message", ".google.protobuf.Struct", False),
    ], []),
]

_FIELD_TYPES = {
    "uint32": descriptor_pb2.FieldDescriptorProto.TYPE_UINT32,
    "uint64": descriptor_pb2.FieldDescriptorProto.TYPE_UINT64,
    "int64": descriptor_pb2.FieldDescriptorProto.TYPE_INT64,
    "string": descriptor_pb2.FieldDescriptorProto.TYPE_STRING,
    "bytes": descriptor_pb2.FieldDescriptorProto.TYPE_BYTES,
    "enum": descriptor_pb2.FieldDescriptorProto.TYPE_ENUM,
    "message": descriptor_pb2.FieldDescriptorProto.TYPE_MESSAGE,
}


def _add_message(container, name, fields, nested):
    message = container.add(name=name)
    for field_name, number, kind, ref, repeated in fields:
        field = message.field.add(
            name=field_name,
            number=number,
            type=_FIELD_TYPES[kind],
            label=(descriptor_pb2.FieldDescriptorProto.LABEL_REPEATED if repeated
                   else descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL),
        )
        if ref is not None:
            field.type_name = ref if ref.startswith(".") else ".{}.{}".format(_PACKAGE, ref)
    for nested_name, nested_fields, nested_nested in nested:
        _add_message(message.nested_type, nested_name, nested_fields, nested_nested)


def _file_descriptor_proto() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="pcclog/transparency.proto",
        package=_PACKAGE,
        syntax="proto3",
        dependency=["google/protobuf/timestamp.proto", "google/protobuf/struct.proto"],
    )
    for name, values in _ENUMS:
        enum = file_proto.enum_type.add(name=name)
        for value_name, number in values:
            enum.value.add(name=value_name, number=number)
    for name, fields, nested in _MESSAGES:
        _add_message(file_proto.message_type, name, fields, nested)
    return file_proto


DESCRIPTOR = descriptor_pool.Default().AddSerializedFile(_file_descriptor_proto().SerializeToString())

_globals = globals()
builder.BuildMessageAndEnumDescriptors(DESCRIPTOR, _globals)
builder.BuildTopDescriptorsAndMessages(DESCRIPTOR, __name__, _globals)
