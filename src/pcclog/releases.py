import datetime
import hashlib
import io
import json
import threading
from typing import Iterable, List, NamedTuple, Optional

from construct import Container
from google.protobuf import json_format
from google.protobuf.message import DecodeError as ProtobufDecodeError

from . import transparency_pb2
from .atleaf_structures import parse_at_leaf, peek_leaf_type
from .bag import BAG_URL, fetch_bag
from .errors import FetchError, LeafDecodeError, TicketDecodeError
from .kt_client import KtClient, select_tree
from .ticket import Ticket, parse_ticket
from .transport import TransportConfig


class Release(NamedTuple):
    index: int
    metadata: transparency_pb2.ReleaseMetadata
    ticket: Ticket
    leaf: Container


def decode_release(leaf: transparency_pb2.LogLeaf,
                   data_type: int = transparency_pb2.RELEASE) -> Optional[Release]:
    """Decodes one log leaf, or returns None if it is not a leaf of data_type."""
    if leaf.nodeType != transparency_pb2.ATL_NODE:
        return None

    try:
        node = transparency_pb2.ChangeLogNodeV2.FromString(leaf.nodeBytes)
    except ProtobufDecodeError as e:
        raise FetchError("leaf-decode", "cannot unmarshal ChangeLogNodeV2 at index {}: {}".format(leaf.index, e)) from e

    try:
        if peek_leaf_type(node.mutation) != data_type:
            return None
        at_leaf = parse_at_leaf(node.mutation)
    except LeafDecodeError as e:
        raise FetchError("leaf-decode", "cannot parse ATLeaf at index {}: {}".format(leaf.index, e)) from e

    try:
        metadata = transparency_pb2.ReleaseMetadata.FromString(leaf.metadata)
    except ProtobufDecodeError as e:
        raise FetchError("metadata-decode", "cannot unmarshal ReleaseMetadata at index {}: {}".format(leaf.index, e)) from e

    try:
        ticket = parse_ticket(leaf.rawData)
    except TicketDecodeError as e:
        raise FetchError("ticket-decode", "cannot parse ticket at index {}: {}".format(leaf.index, e)) from e

    return Release(index=leaf.index, metadata=metadata, ticket=ticket, leaf=at_leaf)


def decode_releases(leaves: Iterable[transparency_pb2.LogLeaf],
                    data_type: int = transparency_pb2.RELEASE,
                    debug_file: io.IOBase = None) -> List[Release]:
    releases = []
    skipped = 0
    for leaf in leaves:
        release = decode_release(leaf, data_type=data_type)
        if release is None:
            skipped += 1
            continue
        releases.append(release)
    if debug_file is not None:
        print("Decoded {} releases, skipped {} other leaves".format(len(releases), skipped), file=debug_file)
    return releases


def get_releases(config: TransportConfig = None,
                 bag_url: str = BAG_URL,
                 page_size: Optional[int] = None,
                 save_bag: Optional[str] = None,
                 cancel_event: Optional[threading.Event] = None,
                 debug_file: io.IOBase = None) -> List[Release]:
    """Fetches every PCC release recorded in the AT log.

    Leaves are requested in one call unless page_size is given, in which case
    consecutive ranges of at most page_size leaves are requested in order.
    """
    if config is None:
        config = TransportConfig()
    if page_size is not None and page_size <= 0:
        raise ValueError("page_size must be positive")

    bag = fetch_bag(config, url=bag_url, save_path=save_bag, cancel_event=cancel_event, debug_file=debug_file)
    client = KtClient(bag, config, cancel_event=cancel_event, debug_file=debug_file)

    tree = select_tree(client.list_trees(), debug_file=debug_file)
    log_head = client.get_log_head(tree)
    if debug_file is not None:
        print("Tree {} has {} leaves at revision {}".format(tree.treeId, log_head.logSize, log_head.revision),
              file=debug_file)

    if page_size is None:
        leaves = client.get_log_leaves(tree, 0, log_head.logSize)
    else:
        leaves = []
        for start in range(0, log_head.logSize, page_size):
            leaves.extend(client.get_log_leaves(tree, start, min(start + page_size, log_head.logSize)))

    return decode_releases(leaves, debug_file=debug_file)


_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


def _format_time(millis: int) -> str:
    try:
        dt = _EPOCH + datetime.timedelta(milliseconds=millis)
    except OverflowError:
        # outside the years datetime can represent
        return "{}ms since epoch".format(millis)
    return "{:04d}-{:02d}-{:02d}T{:02d}:{:02d}:{:02d}Z".format(
        dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second)


def format_release(release: Release) -> str:
    metadata = release.metadata

    out = "Index:     {}\n".format(release.index)
    out += "Type:      {}\n".format(_enum_name(transparency_pb2.ATLogDataType, release.leaf.Type))
    out += "Timestamp: {}\n".format(_format_time(metadata.timestamp.seconds * 1000))
    out += "Expires:   {}\n".format(_format_time(release.leaf.ExpiryMS))
    out += "Hash:      {}\n".format(metadata.releaseHash.hex())
    out += "Assets:\n"
    for asset in metadata.assets:
        digest_alg = _enum_name(transparency_pb2.DigestAlg, asset.digest.digestAlg)
        if digest_alg.startswith("DIGEST_ALG_"):
            digest_alg = digest_alg[len("DIGEST_ALG_"):]
        out += "  Type:    {}\n".format(_enum_name(transparency_pb2.AssetType, asset.type))
        out += "    Variant: {}\n".format(asset.variant)
        out += "    Digest:  ({}) {}\n".format(digest_alg, asset.digest.value.hex())
        out += "    URL:     {}\n".format(asset.url)
    out += "Tickets:\n"
    out += "  ApTicket: {}\n".format(hashlib.sha256(release.ticket.ap_ticket).hexdigest())
    out += "  Cryptexes:\n"
    for i, cryptex_ticket in enumerate(release.ticket.cryptex_tickets):
        out += "    {}) {}\n".format(i, hashlib.sha256(cryptex_ticket).hexdigest())
    out += "DarwinInit:\n"
    out += json.dumps(json_format.MessageToDict(metadata.darwinInit), indent=2, sort_keys=True)
    return out


def _enum_name(enum_type, value: int) -> str:
    try:
        return enum_type.Name(value)
    except ValueError:
        return str(value)
