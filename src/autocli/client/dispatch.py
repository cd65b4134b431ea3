"""Dispatch a prepared request and render the response.

:func:`dispatch` signs transactions through the keyring (when the executor
sends them for real) and forwards the request to the executor exactly once.
:func:`format_response` renders the decoded response with the global
:class:`~autocli.output.OutputManager`.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Optional

from autocli.client.executor import Executor, RpcRequest
from autocli.exceptions import NoKeyringError, SignerError
from autocli.keyring.base import Keyring
from autocli.output import get_output


def dispatch(request: RpcRequest, executor: Executor, keyring: Optional[Keyring] = None) -> Any:
    """Execute *request* with *executor* and return the decoded response.

    Queries are forwarded as is.  Transactions are signed with the key that
    owns ``request.signer`` first, unless the executor does not send
    anything (dry run).

    Raises:
        SignerError: If the transaction cannot be signed.
        ExecutionError: If the executor fails.
    """
    if request.transactional and executor.signs_transactions:
        if not request.signer:
            raise SignerError(f"{request.path}: transaction has no signer")
        if keyring is None:
            raise NoKeyringError(f"No keyring configured; cannot sign {request.path}")
        signature = keyring.sign(request.sign_bytes(), request.signer)
        request = dataclasses.replace(request, signature=signature)
    return executor.execute(request)


def format_response(data: Any) -> None:
    """Render a decoded response to stdout in the active output format."""
    if data is None:
        get_output().info("OK (empty response)")
        return
    get_output().format_response(data)
