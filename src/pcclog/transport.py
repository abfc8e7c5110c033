import http
import http.client
import io
import random
import ssl
import threading
import time
import urllib.error
import urllib.request
from typing import Dict, Optional

from .errors import FetchError

USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_5) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.5 Safari/605.1.15",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:127.0) Gecko/20100101 Firefox/127.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:127.0) Gecko/20100101 Firefox/127.0",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_5 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.5 Mobile/15E148 Safari/604.1",
]


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


class TransportConfig:
    """Network settings shared by every request of one fetch session.

    proxy is used for both http and https URLs; None means no proxy, environment
    proxy variables are never consulted. insecure turns off certificate and host name
    verification. user_agent None picks a random browser user agent per request.
    """

    def __init__(self, proxy: Optional[str] = None, insecure: bool = False, ca_file: Optional[str] = None,
                 timeout: float = 30.0, user_agent: Optional[str] = None):
        if timeout is None or timeout <= 0:
            raise ValueError("timeout must be a positive number of seconds")
        self.proxy = proxy
        self.insecure = insecure
        self.ca_file = ca_file
        self.timeout = timeout
        self.user_agent = user_agent

    def ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context(cafile=self.ca_file)
        if self.insecure:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def build_opener(self) -> urllib.request.OpenerDirector:
        proxies = {}
        if self.proxy:
            proxies = {"http": self.proxy, "https": self.proxy}
        return urllib.request.build_opener(
            urllib.request.ProxyHandler(proxies),
            urllib.request.HTTPSHandler(context=self.ssl_context())
        )

    def get_user_agent(self) -> str:
        if self.user_agent is not None:
            return self.user_agent
        return random_user_agent()


def http_request(opener: urllib.request.OpenerDirector,
                 config: TransportConfig,
                 stage: str,
                 url: str,
                 data: Optional[bytes] = None,
                 headers: Optional[Dict[str, str]] = None,
                 cancel_event: Optional[threading.Event] = None,
                 debug_file: io.IOBase = None) -> bytes:
    if cancel_event is not None and cancel_event.is_set():
        raise FetchError(stage, "cancelled")
    if not url:
        raise FetchError(stage, "no endpoint URL")

    request = urllib.request.Request(url, data=data, method="GET" if data is None else "POST")
    for name, value in (headers or {}).items():
        request.add_header(name, value)
    request.add_header("User-Agent", config.get_user_agent())

    if debug_file is not None:
        print("Fetching {}".format(url), file=debug_file)

    deadline = time.monotonic() + config.timeout
    try:
        with opener.open(request, timeout=config.timeout) as response:
            if response.status != http.HTTPStatus.OK:
                raise FetchError(stage, "returned status: {} {}".format(response.status, response.reason))
            return _read_body(response, stage, config.timeout, deadline)
    except urllib.error.HTTPError as e:
        raise FetchError(stage, "returned status: {} {}".format(e.code, e.reason)) from e
    except urllib.error.URLError as e:
        raise FetchError(stage, "request to {} failed: {}".format(url, e.reason)) from e
    except http.client.HTTPException as e:
        # truncated bodies and malformed status or header lines
        raise FetchError(stage, "request to {} failed: {!r}".format(url, e)) from e
    except OSError as e:
        # socket timeouts and resets while reading the body
        raise FetchError(stage, "request to {} failed: {}".format(url, e)) from e


def _read_body(response: http.client.HTTPResponse, stage: str, timeout: float, deadline: float) -> bytes:
    # the socket timeout bounds each read, the deadline bounds the whole body
    chunks = []
    while True:
        if time.monotonic() > deadline:
            raise FetchError(stage, "no complete response within {}s".format(timeout))
        chunk = response.read1(65536)
        if not chunk:
            break
        chunks.append(chunk)
    body = b"".join(chunks)
    if response.length:
        raise http.client.IncompleteRead(body, response.length)
    return body
