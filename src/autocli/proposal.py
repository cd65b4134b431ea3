"""Governance proposal wrapping.

Methods marked ``governance_wrappable`` can only be executed by the
governance module account.  Unless ``--no-proposal`` is given, their request
is submitted as the single message of a ``cosmos.gov.v1.MsgSubmitProposal``:

* the inner message's signer field is set to the governance authority;
* the inner message is packed as an ``Any`` into ``messages``;
* ``proposer`` is the resolved signer of the command;
* ``title``, ``summary``, ``metadata``, ``initial_deposit`` and
  ``expedited`` come from the proposal flags.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from autocli.generator.options import EffectiveOptions
from autocli.schema import wellknown as wk
from autocli.values.coerce import ValueCoercer
from autocli.values.message import DynamicMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProposalFlags:
    """Values of the proposal flags of one invocation."""

    opt_out: bool = False
    title: Optional[str] = None
    summary: Optional[str] = None
    metadata: Optional[str] = None
    deposit: tuple[str, ...] = ()
    expedited: bool = False


def should_wrap(options: EffectiveOptions, flags: ProposalFlags) -> bool:
    return options.governance_wrappable and not flags.opt_out


def maybe_wrap(
    request: DynamicMessage,
    options: EffectiveOptions,
    flags: ProposalFlags,
    proposer: str,
    authority: str,
    coercer: Optional[ValueCoercer] = None,
) -> DynamicMessage:
    """Wrap *request* in a governance proposal when the method requires it.

    Args:
        request: The assembled (and signer-resolved) request.
        options: Effective options of the method.
        flags: The invocation's proposal flags.
        proposer: Address of the resolved signer.
        authority: Address of the governance authority.
        coercer: Used to parse ``--deposit`` coins.

    Returns:
        *request* itself when no wrapping applies, otherwise a new
        ``MsgSubmitProposal`` message.  *request* is never modified.

    Raises:
        CoercionError: If ``--deposit`` is not a list of coins.
    """
    if not should_wrap(options, flags):
        return request

    registry = request.registry
    inner = request.copy()
    if options.signer is not None:
        inner.set(options.signer.name, authority)

    envelope_type = registry.message(wk.MSG_SUBMIT_PROPOSAL)
    envelope = DynamicMessage(envelope_type, registry)
    envelope.set("messages", [inner])
    envelope.set("proposer", proposer)
    if flags.title:
        envelope.set("title", flags.title)
    if flags.summary:
        envelope.set("summary", flags.summary)
    if flags.metadata:
        envelope.set("metadata", flags.metadata)
    if flags.deposit:
        deposit_field = envelope_type.field("initial_deposit")
        coercer = coercer or ValueCoercer(registry)
        envelope.set("initial_deposit", coercer.coerce(list(flags.deposit), deposit_field))
    if flags.expedited:
        envelope.set("expedited", True)

    logger.debug("Wrapped %s in a governance proposal", request.type_name)
    return envelope
