import argparse
import sys
from typing import List

from .bag import BAG_URL, fetch_bag
from .errors import FetchError
from .releases import format_release, get_releases
from .transport import TransportConfig


def _parse_options(command: str, args: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pcclog " + command)
    parser.add_argument("--proxy", help="HTTP(S) proxy URL used for every request")
    parser.add_argument("--insecure", action="store_true",
                        help="do not verify TLS certificates of the transparency endpoints")
    parser.add_argument("--ca-file", help="PEM bundle of trusted CA certificates")
    parser.add_argument("--timeout", type=float, default=30.0, help="per request timeout in seconds")
    parser.add_argument("--bag-url", default=BAG_URL)
    parser.add_argument("--save-bag", metavar="PATH", help="write the raw bag plist to PATH")
    parser.add_argument("--verbose", action="store_true", help="print progress to stderr")
    if command == "releases":
        parser.add_argument("--page-size", type=int, help="request leaves in ranges of at most this many")
    return parser.parse_args(args)


def _transport_config(options: argparse.Namespace) -> TransportConfig:
    return TransportConfig(proxy=options.proxy, insecure=options.insecure, ca_file=options.ca_file,
                           timeout=options.timeout)


def releases(args: List[str]):
    options = _parse_options("releases", args)
    debug_file = sys.stderr if options.verbose else None
    found = get_releases(_transport_config(options), bag_url=options.bag_url, page_size=options.page_size,
                         save_bag=options.save_bag, debug_file=debug_file)
    for i, release in enumerate(found):
        if i > 0:
            print()
        print(format_release(release))
    if debug_file is not None:
        print("Found {} releases".format(len(found)), file=debug_file)


def bag(args: List[str]):
    options = _parse_options("bag", args)
    debug_file = sys.stderr if options.verbose else None
    b = fetch_bag(_transport_config(options), url=options.bag_url, save_path=options.save_bag,
                  debug_file=debug_file)
    print("UUID:             {}".format(b.uuid))
    print("Bag Type:         {}".format(b.bag_type))
    print("Expiry:           {}".format(b.bag_expiry_timestamp))
    print("Platform:         {}".format(b.platform))
    print("Build Version:    {}".format(b.build_version))
    print("TTR Enabled:      {}".format(b.ttr_enabled))
    print("List Trees:       {}".format(b.list_trees_url))
    print("Log Head:         {}".format(b.log_head_url))
    print("Log Leaves:       {}".format(b.log_leaves_url))
    print("Consistency:      {}".format(b.consistency_proof_url))
    print("Inclusion Proof:  {}".format(b.log_inclusion_proof_url))
    print("Public Keys:      {}".format(b.public_keys_url))


def main(args):
    if len(args) == 0:
        raise Exception("Expected a subcommand: releases or bag")
    if args[0] == 'releases':
        releases(args[1:])
    elif args[0] == 'bag':
        bag(args[1:])
    else:
        raise Exception("Unsupported subcommand: " + args[0])


def cli():
    try:
        main(sys.argv[1:])
    except FetchError as e:
        print("pcclog: {}".format(e), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main(sys.argv[1:])
