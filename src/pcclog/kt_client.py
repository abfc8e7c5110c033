import io
import threading
import uuid
from typing import List, Optional

from google.protobuf.message import DecodeError

from . import transparency_pb2
from .bag import Bag
from .errors import FetchError
from .transport import TransportConfig, http_request

REQUEST_UUID_HEADER = "X-Apple-Request-UUID"
PROTOBUF_CONTENT_TYPE = "application/protobuf"
LATEST_REVISION = -1


def select_tree(trees: List[transparency_pb2.ListTreesResponse.Tree],
                log_type: int = transparency_pb2.AT_LOG,
                application: int = transparency_pb2.PRIVATE_CLOUD_COMPUTE,
                debug_file: io.IOBase = None) -> transparency_pb2.ListTreesResponse.Tree:
    """Returns the last tree matching log_type and application."""
    tree = None
    matches = 0
    for t in trees:
        if t.logType == log_type and t.application == application:
            tree = t
            matches += 1
    if tree is None:
        raise FetchError("locate", "tree not found for {}/{}".format(
            transparency_pb2.LogType.Name(log_type), transparency_pb2.Application.Name(application)))
    if matches > 1 and debug_file is not None:
        print("{} trees match, using the last one (tree id {})".format(matches, tree.treeId), file=debug_file)
    return tree


class KtClient:
    """Client for the key transparency research endpoints named in a bag.

    One client is one fetch session: every request carries the same request UUID.
    """

    def __init__(self, bag: Bag, config: TransportConfig = None, request_uuid: Optional[str] = None,
                 cancel_event: Optional[threading.Event] = None, debug_file: io.IOBase = None):
        if config is None:
            config = TransportConfig()
        if request_uuid is None:
            request_uuid = str(uuid.uuid4())
        self._bag = bag
        self._config = config
        self._opener = config.build_opener()
        self._cancel_event = cancel_event
        self._debug_file = debug_file
        self.request_uuid = request_uuid

    def _post(self, stage: str, url: str, request, response_type):
        body = http_request(self._opener, self._config, stage, url,
                            data=request.SerializeToString(),
                            headers={
                                REQUEST_UUID_HEADER: self.request_uuid,
                                "Content-Type": PROTOBUF_CONTENT_TYPE,
                            },
                            cancel_event=self._cancel_event,
                            debug_file=self._debug_file)
        try:
            return response_type.FromString(body)
        except DecodeError as e:
            raise FetchError(stage, "cannot unmarshal {}: {}".format(response_type.DESCRIPTOR.name, e)) from e

    def list_trees(self) -> List[transparency_pb2.ListTreesResponse.Tree]:
        response = self._post("list-trees", self._bag.list_trees_url,
                              transparency_pb2.ListTreesRequest(
                                  version=transparency_pb2.V3,
                                  requestUuid=self.request_uuid
                              ),
                              transparency_pb2.ListTreesResponse)
        return list(response.trees)

    def get_log_head(self, tree: transparency_pb2.ListTreesResponse.Tree) -> transparency_pb2.LogHead:
        response = self._post("log-head", self._bag.log_head_url,
                              transparency_pb2.LogHeadRequest(
                                  version=transparency_pb2.V3,
                                  treeId=tree.treeId,
                                  revision=LATEST_REVISION,
                                  requestUuid=self.request_uuid
                              ),
                              transparency_pb2.LogHeadResponse)
        # The head is a signed object; the payload is itself a serialized LogHead
        try:
            return transparency_pb2.LogHead.FromString(response.logHead.object)
        except DecodeError as e:
            raise FetchError("log-head", "cannot unmarshal LogHead: {}".format(e)) from e

    def get_log_leaves(self, tree: transparency_pb2.ListTreesResponse.Tree,
                       start_index: int, end_index: int,
                       start_merge_group: int = 0,
                       end_merge_group: Optional[int] = None) -> List[transparency_pb2.LogLeaf]:
        """Fetches leaves in [start_index, end_index) across [start_merge_group, end_merge_group)."""
        if end_merge_group is None:
            end_merge_group = tree.mergeGroups
        if start_index < 0 or end_index < start_index:
            raise ValueError("invalid leaf range [{}, {})".format(start_index, end_index))
        response = self._post("log-leaves", self._bag.log_leaves_url,
                              transparency_pb2.LogLeavesRequest(
                                  version=transparency_pb2.V3,
                                  treeId=tree.treeId,
                                  startIndex=start_index,
                                  endIndex=end_index,
                                  requestUuid=self.request_uuid,
                                  startMergeGroup=start_merge_group,
                                  endMergeGroup=end_merge_group
                              ),
                              transparency_pb2.LogLeavesResponse)
        return list(response.leaves)
