"""Invocation runtime -- everything that happens when a generated command runs.

The flow for one invocation is strictly sequential:

1. **Coerce** every raw positional and flag value (nothing is assembled
   until all values coerced successfully).
2. **Assemble** the request at the bound field paths.
3. **Resolve the signer** (transactions only).
4. **Wrap** in a governance proposal (governance-wrappable transactions
   without ``--no-proposal``).
5. **Dispatch** to the executor and **render** the response.

Errors raised in steps 1-4 name the command and the offending flag or
argument; nothing reaches the executor after an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import click

from autocli.client.dispatch import dispatch, format_response
from autocli.client.executor import DryRunExecutor, Executor, RpcRequest
from autocli.exceptions import CoercionError, SignerError
from autocli.generator.bindings import GeneratedCommand
from autocli.keyring.base import Keyring
from autocli.proposal import ProposalFlags, maybe_wrap
from autocli.schema import wellknown as wk
from autocli.schema.registry import SchemaRegistry
from autocli.signer import AddressCodec, lenient_address_resolver, resolve_signer
from autocli.values.assembler import assemble_request
from autocli.values.coerce import ValueCoercer

logger = logging.getLogger(__name__)


@dataclass
class CommandRuntime:
    """Collaborators shared by every generated command of one application.

    Args:
        registry: The schema registry the commands were built from.
        executor: Executor used for real (non dry-run) invocations.  When
            ``None``, commands run as dry runs.
        keyring: Resolves key names and signs transactions; optional.
        codec: Address codec of the chain (bech32 prefix).
        gov_authority: Governance authority address; defaults to the ``gov``
            module account.
        dry_run: Force dry runs.  The root ``--dry-run`` flag is honoured too.
    """

    registry: SchemaRegistry
    executor: Optional[Executor] = None
    keyring: Optional[Keyring] = None
    codec: AddressCodec = field(default_factory=AddressCodec)
    gov_authority: Optional[str] = None
    dry_run: bool = False
    render: Callable[[Any], None] = format_response

    @property
    def authority(self) -> str:
        return self.gov_authority or self.codec.module_address("gov")

    def run(self, command: GeneratedCommand, raw: dict[str, Any]) -> Any:
        """Prepare, dispatch and render one invocation. Returns the response."""
        request = self.prepare(command, raw)
        executor = self._active_executor()
        response = dispatch(request, executor, self.keyring)
        self.render(response)
        return response

    def prepare(self, command: GeneratedCommand, raw: dict[str, Any]) -> RpcRequest:
        """Turn the raw parameter values of *command* into an :class:`RpcRequest`.

        Args:
            command: The generated command being invoked.
            raw: ``python parameter name -> raw value`` as parsed by Typer.

        Raises:
            CoercionError: If a value is malformed or a required one is missing.
            SignerError: If the signer cannot be resolved.
        """
        label = command.display_name
        coercer = ValueCoercer(
            self.registry,
            address_resolver=lenient_address_resolver(self.keyring, self.codec),
        )
        values = self._coerce_all(command, raw, coercer)

        try:
            message = assemble_request(self.registry, command.method, values, coercer)
        except CoercionError as exc:
            raise CoercionError(f"{label}: {exc}") from exc

        options = command.options
        service, method = options.service.name, command.method.name
        signer_address: Optional[str] = None
        wrapped = False

        if command.transactional and command.signer_path:
            try:
                message, signer_address = resolve_signer(
                    message, command.signer_path, self.keyring, self.codec,
                )
            except SignerError as exc:
                raise type(exc)(f"{label}: {exc}") from exc

            flags = self._proposal_flags(command, raw)
            try:
                wrapped_message = maybe_wrap(
                    message, options, flags, signer_address, self.authority, coercer,
                )
            except CoercionError as exc:
                raise CoercionError(f"{label}: invalid value for --deposit: {exc}") from exc
            if wrapped_message is not message:
                message, wrapped = wrapped_message, True
                service, method = wk.GOV_MSG_SERVICE, wk.GOV_SUBMIT_PROPOSAL_METHOD

        return RpcRequest(
            service=service,
            method=method,
            message=message,
            transactional=command.transactional,
            signer=signer_address,
            wrapped=wrapped,
        )

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _coerce_all(
        self,
        command: GeneratedCommand,
        raw: dict[str, Any],
        coercer: ValueCoercer,
    ) -> dict[str, Any]:
        label = command.display_name
        values: dict[str, Any] = {}

        for pos in command.positionals:
            value = raw.get(pos.param_name)
            if value is None or (pos.varargs and not value):
                continue
            if pos.signer:
                values[pos.path] = value
                continue
            try:
                values[pos.path] = coercer.coerce(value, pos.field, varargs=pos.varargs)
            except CoercionError as exc:
                raise CoercionError(
                    f"{label}: invalid value for argument {pos.metavar}: {exc}"
                ) from exc

        for flag in command.flags:
            value = raw.get(flag.param_name)
            if value is None or (flag.multiple and not value):
                value = flag.default_value
            if value is None:
                if flag.required:
                    raise CoercionError(f"{label}: missing required flag {flag.flag}")
                continue
            if flag.signer:
                values[flag.path] = value
                continue
            if flag.deprecated and raw.get(flag.param_name):
                logger.warning("%s: flag %s is deprecated: %s", label, flag.flag, flag.deprecated)
            try:
                values[flag.path] = coercer.coerce(value, flag.field)
            except CoercionError as exc:
                raise CoercionError(f"{label}: invalid value for {flag.flag}: {exc}") from exc

        return values

    def _proposal_flags(self, command: GeneratedCommand, raw: dict[str, Any]) -> ProposalFlags:
        params = command.proposal_params
        if not params:
            return ProposalFlags(opt_out=True)
        return ProposalFlags(
            opt_out=bool(raw.get(params["no-proposal"])),
            title=raw.get(params["title"]),
            summary=raw.get(params["summary"]),
            metadata=raw.get(params["metadata"]),
            deposit=tuple(raw.get(params["deposit"]) or ()),
            expedited=bool(raw.get(params["expedited"])),
        )

    def _active_executor(self) -> Executor:
        if self.dry_run or self.executor is None or current_context_obj().get("dry_run"):
            return DryRunExecutor()
        return self.executor


def current_context_obj() -> dict[str, Any]:
    """Return the root click context's ``obj`` dict, or ``{}`` outside a CLI run."""
    ctx = click.get_current_context(silent=True)
    if ctx is None:
        return {}
    obj = ctx.find_root().obj
    return obj if isinstance(obj, dict) else {}
