import io
import threading
from unittest import TestCase

from pcclog import kt_client
from pcclog import transparency_pb2
from pcclog.bag import fetch_bag
from pcclog.errors import FetchError

import stub_kt_service
from leaf_fixtures import release_leaf


def _tree(tree_id, log_type=transparency_pb2.AT_LOG, application=transparency_pb2.PRIVATE_CLOUD_COMPUTE):
    return transparency_pb2.ListTreesResponse.Tree(treeId=tree_id, logType=log_type, application=application,
                                                   mergeGroups=2)


class TestSelectTree(TestCase):
    def test_last_match_wins(self):
        trees = [
            _tree(1),
            _tree(2, log_type=transparency_pb2.PER_APPLICATION_TREE),
            _tree(3),
            _tree(4, application=transparency_pb2.PRIVATE_CLOUD_COMPUTE_INTERNAL),
        ]
        debug = io.StringIO()
        self.assertEqual(3, kt_client.select_tree(trees, debug_file=debug).treeId)
        self.assertIn("2 trees match", debug.getvalue())

    def test_single_match(self):
        self.assertEqual(9, kt_client.select_tree([_tree(8, log_type=transparency_pb2.CT_LOG), _tree(9)]).treeId)

    def test_no_match(self):
        with self.assertRaises(FetchError) as cm:
            kt_client.select_tree([_tree(1, application=transparency_pb2.IDS_MESSAGING)])
        self.assertEqual("locate", cm.exception.stage)
        self.assertIn("tree not found", str(cm.exception))

    def test_empty_list(self):
        with self.assertRaises(FetchError):
            kt_client.select_tree([])


class TestKtClient(TestCase):
    def setUp(self):
        self.service = stub_kt_service.StubKtService()
        self.service.add_pcc_tree(42, merge_groups=3)
        self.bag = fetch_bag(url=self.service.bag_url())
        self.client = kt_client.KtClient(self.bag)

    def tearDown(self):
        self.service.stop()

    def test_list_trees(self):
        trees = self.client.list_trees()
        self.assertEqual([42], [t.treeId for t in trees])
        request = self.service.requests_to(stub_kt_service.LIST_TREES_PATH)[0]
        self.assertEqual(transparency_pb2.V3, request.message.version)
        self.assertEqual(self.client.request_uuid, request.message.requestUuid)

    def test_get_log_head(self):
        self.service.log_size = 10
        tree = self.client.list_trees()[0]
        head = self.client.get_log_head(tree)
        self.assertEqual(10, head.logSize)
        self.assertEqual(7, head.revision)
        request = self.service.requests_to(stub_kt_service.LOG_HEAD_PATH)[0]
        self.assertEqual(42, request.message.treeId)
        self.assertEqual(-1, request.message.revision)

    def test_get_log_leaves(self):
        self.service.leaves = [release_leaf(0), release_leaf(1), release_leaf(2)]
        tree = self.client.list_trees()[0]
        leaves = self.client.get_log_leaves(tree, 1, 3)
        self.assertEqual([1, 2], [leaf.index for leaf in leaves])
        request = self.service.requests_to(stub_kt_service.LOG_LEAVES_PATH)[0]
        self.assertEqual(1, request.message.startIndex)
        self.assertEqual(3, request.message.endIndex)
        self.assertEqual(0, request.message.startMergeGroup)
        self.assertEqual(3, request.message.endMergeGroup)

    def test_invalid_leaf_range(self):
        tree = self.client.list_trees()[0]
        with self.assertRaises(ValueError):
            self.client.get_log_leaves(tree, 5, 2)

    def test_headers(self):
        tree = self.client.list_trees()[0]
        self.client.get_log_head(tree)
        self.client.get_log_leaves(tree, 0, 0)
        posts = [r for r in self.service.requests if r.message is not None]
        self.assertEqual(3, len(posts))
        for request in posts:
            self.assertEqual(self.client.request_uuid, request.headers["X-Apple-Request-UUID"])
            self.assertEqual("application/protobuf", request.headers["Content-Type"])
            self.assertTrue(request.headers["User-Agent"].startswith("Mozilla/5.0"))

    def test_request_uuid_is_per_client(self):
        other = kt_client.KtClient(self.bag)
        self.assertNotEqual(self.client.request_uuid, other.request_uuid)

    def test_error_status(self):
        self.service.fail[stub_kt_service.LOG_HEAD_PATH] = 503
        tree = self.client.list_trees()[0]
        with self.assertRaises(FetchError) as cm:
            self.client.get_log_head(tree)
        self.assertEqual("log-head", cm.exception.stage)
        self.assertIn("503", str(cm.exception))

    def test_unknown_endpoint(self):
        self.bag.list_trees_url = self.service.url("/missing")
        with self.assertRaises(FetchError) as cm:
            self.client.list_trees()
        self.assertEqual("list-trees", cm.exception.stage)
        self.assertIn("404", str(cm.exception))

    def test_malformed_response(self):
        self.service.garbage.add(stub_kt_service.LIST_TREES_PATH)
        with self.assertRaises(FetchError) as cm:
            self.client.list_trees()
        self.assertEqual("list-trees", cm.exception.stage)

    def test_cancelled(self):
        cancel = threading.Event()
        cancel.set()
        client = kt_client.KtClient(self.bag, cancel_event=cancel)
        with self.assertRaises(FetchError) as cm:
            client.list_trees()
        self.assertEqual("list-trees", cm.exception.stage)
        self.assertEqual([], self.service.requests_to(stub_kt_service.LIST_TREES_PATH))
