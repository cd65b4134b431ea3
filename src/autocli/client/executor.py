"""Request executors -- send a prepared request and return the response.

An executor receives one :class:`RpcRequest` and returns the decoded
response.  It is called exactly once per invocation; retries, if any, are
the executor's own business.

* :class:`ConnectExecutor` -- unary JSON over HTTP: ``POST
  {endpoint}/{service}/{method}`` with the request in the proto3 JSON
  mapping, built on :class:`httpx.Client`.
* :class:`DryRunExecutor` -- prints the request instead of sending it.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from autocli.exceptions import ExecutionError
from autocli.models import RequestConfig
from autocli.output import get_output
from autocli.values.message import DynamicMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RpcRequest:
    """A request ready to be executed.

    ``signer`` and ``signature`` are set for transactions only.
    """

    service: str
    method: str
    message: DynamicMessage
    transactional: bool = False
    signer: Optional[str] = None
    signature: Optional[bytes] = None
    wrapped: bool = False

    @property
    def path(self) -> str:
        return f"/{self.service}/{self.method}"

    def body(self) -> dict[str, Any]:
        return self.message.to_dict()

    def sign_bytes(self) -> bytes:
        """Canonical bytes a keyring signs: compact JSON with sorted keys."""
        payload = {"method": self.path, "message": self.body()}
        return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")


@runtime_checkable
class Executor(Protocol):
    """Anything that can execute an :class:`RpcRequest`."""

    signs_transactions: bool

    def execute(self, request: RpcRequest) -> Any:
        ...


class ConnectExecutor:
    """Unary JSON-over-HTTP executor.

    Args:
        endpoint: Base URL of the node, e.g. ``http://localhost:1317``.
        config: Timeout and TLS settings.
        transport: Optional :class:`httpx.BaseTransport` (tests use
            :class:`httpx.MockTransport`).

    Example::

        executor = ConnectExecutor("http://localhost:1317")
        executor.execute(request)   # POST http://localhost:1317/cosmos.bank.v1beta1.Query/Balance
    """

    signs_transactions = True

    def __init__(
        self,
        endpoint: str,
        config: Optional[RequestConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._endpoint = endpoint.rstrip("/")
        self._config = config or RequestConfig()
        self._transport = transport

    def execute(self, request: RpcRequest) -> Any:
        """Send *request* and return the decoded JSON response.

        Raises:
            ExecutionError: On transport failures and non-2xx responses.  The
                underlying error text is passed through verbatim.
        """
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if request.signer:
            headers["X-Signer"] = request.signer
        if request.signature is not None:
            headers["X-Signature"] = base64.b64encode(request.signature).decode("ascii")

        url = f"{self._endpoint}{request.path}"
        logger.debug("POST %s", url)
        try:
            with httpx.Client(
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                transport=self._transport,
            ) as client:
                response = client.post(url, json=request.body(), headers=headers)
        except httpx.HTTPError as exc:
            raise ExecutionError(f"{request.path}: {exc}") from exc

        if response.status_code >= 400:
            raise ExecutionError(
                f"{request.path}: HTTP {response.status_code}: {_error_text(response)}"
            )
        get_output().debug(f"HTTP {response.status_code} {response.reason_phrase or ''}")
        return extract_response_data(response)


class DryRunExecutor:
    """Print the request that would be sent and return it as the response."""

    signs_transactions = False

    def execute(self, request: RpcRequest) -> Any:
        output = get_output()
        output.info(f"Dry run: {request.path}")
        if request.signer:
            output.info(f"  signer: {request.signer}")
        if request.wrapped:
            output.info("  wrapped in a governance proposal")
        return request.body()


def extract_response_data(response: httpx.Response) -> Any:
    """Decode the response body: JSON when possible, else text, ``None`` when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_text(response: httpx.Response) -> str:
    data = extract_response_data(response)
    if isinstance(data, dict):
        for key in ("message", "error", "detail"):
            if isinstance(data.get(key), str):
                return data[key]
        return json.dumps(data)
    return str(data or response.reason_phrase)
