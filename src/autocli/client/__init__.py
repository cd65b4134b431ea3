"""Request execution for autocli.

Classes:
    :class:`RpcRequest` -- a request ready to send.
    :class:`Executor` -- protocol implemented by every executor.
    :class:`ConnectExecutor` -- unary JSON over HTTP, backed by :class:`httpx.Client`.
    :class:`DryRunExecutor` -- prints the request instead of sending it.

Example::

    from autocli.client import ConnectExecutor

    executor = ConnectExecutor("http://localhost:1317")
    data = executor.execute(request)
"""

from autocli.client.executor import ConnectExecutor, DryRunExecutor, Executor, RpcRequest

__all__ = ["ConnectExecutor", "DryRunExecutor", "Executor", "RpcRequest"]
