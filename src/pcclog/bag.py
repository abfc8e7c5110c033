import io
import plistlib
import threading
import urllib.request
from typing import Optional
from xml.parsers.expat import ExpatError

from .errors import FetchError
from .transport import TransportConfig, http_request

BAG_URL = "https://init-kt-prod.ess.apple.com/init/getBag?ix=5&p=atresearch"

# Endpoints every release fetch needs
REQUIRED_ENDPOINTS = [
    "at-researcher-list-trees",
    "at-researcher-log-head",
    "at-researcher-log-leaves",
]


class Bag:
    """Service directory for the AT research log, as published by the init service."""

    def __init__(self, properties: dict):
        self.uuid = properties.get("uuid")
        self.bag_type = properties.get("bag-type")
        self.bag_expiry_timestamp = properties.get("bag-expiry-timestamp")
        self.build_version = properties.get("build-version")
        self.platform = properties.get("platform")
        self.ttr_enabled = bool(properties.get("ttr-enabled", 0))
        self.list_trees_url = properties.get("at-researcher-list-trees")
        self.log_head_url = properties.get("at-researcher-log-head")
        self.log_leaves_url = properties.get("at-researcher-log-leaves")
        self.consistency_proof_url = properties.get("at-researcher-consistency-proof")
        self.log_inclusion_proof_url = properties.get("at-researcher-log-inclusion-proof")
        self.public_keys_url = properties.get("at-researcher-public-keys")

    @classmethod
    def from_plist(cls, data: bytes) -> "Bag":
        try:
            properties = plistlib.loads(data)
        except (ValueError, ExpatError) as e:
            raise FetchError("directory", "cannot parse bag plist: {}".format(e)) from e
        if not isinstance(properties, dict):
            raise FetchError("directory", "bag plist is not a dictionary")

        missing = [key for key in REQUIRED_ENDPOINTS if not properties.get(key)]
        if len(missing) > 0:
            raise FetchError("directory", "bag is missing endpoints: {}".format(", ".join(missing)))
        return cls(properties)


def fetch_bag(config: TransportConfig = None,
              url: str = BAG_URL,
              save_path: Optional[str] = None,
              opener: urllib.request.OpenerDirector = None,
              cancel_event: Optional[threading.Event] = None,
              debug_file: io.IOBase = None) -> Bag:
    if config is None:
        config = TransportConfig()
    if opener is None:
        opener = config.build_opener()

    body = http_request(opener, config, "directory", url, cancel_event=cancel_event, debug_file=debug_file)

    if save_path is not None:
        try:
            with open(save_path, "wb") as f:
                f.write(body)
        except OSError as e:
            raise FetchError("directory", "cannot save bag to {}: {}".format(save_path, e)) from e

    return Bag.from_plist(body)
