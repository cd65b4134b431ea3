"""Descriptors that every registry knows about.

These are the message types with dedicated textual encodings on the command
line (durations, timestamps, coins), the ``Any`` wrapper used to pack
messages, and the governance envelope used for proposal wrapping.
"""

from __future__ import annotations

from autocli.models import (
    Cardinality,
    FieldDescriptor,
    FieldKind,
    MessageDescriptor,
)

DURATION = "google.protobuf.Duration"
TIMESTAMP = "google.protobuf.Timestamp"
ANY = "google.protobuf.Any"
COIN = "cosmos.base.v1beta1.Coin"
DEC_COIN = "cosmos.base.v1beta1.DecCoin"
MSG_SUBMIT_PROPOSAL = "cosmos.gov.v1.MsgSubmitProposal"
GOV_MSG_SERVICE = "cosmos.gov.v1.Msg"
GOV_SUBMIT_PROPOSAL_METHOD = "SubmitProposal"

ADDRESS_SCALARS = frozenset({
    "cosmos.AddressString",
    "cosmos.ValidatorAddressString",
    "cosmos.ConsensusAddressString",
})


WELL_KNOWN_MESSAGES: list[MessageDescriptor] = [
    MessageDescriptor(
        name=DURATION,
        fields=[
            FieldDescriptor(name="seconds", kind=FieldKind.INT64),
            FieldDescriptor(name="nanos", kind=FieldKind.INT32),
        ],
    ),
    MessageDescriptor(
        name=TIMESTAMP,
        fields=[
            FieldDescriptor(name="seconds", kind=FieldKind.INT64),
            FieldDescriptor(name="nanos", kind=FieldKind.INT32),
        ],
    ),
    MessageDescriptor(
        name=ANY,
        fields=[
            FieldDescriptor(name="type_url", kind=FieldKind.STRING),
            FieldDescriptor(name="value", kind=FieldKind.BYTES),
        ],
    ),
    MessageDescriptor(
        name=COIN,
        fields=[
            FieldDescriptor(name="denom", kind=FieldKind.STRING),
            FieldDescriptor(name="amount", kind=FieldKind.STRING, scalar="cosmos.Int"),
        ],
    ),
    MessageDescriptor(
        name=DEC_COIN,
        fields=[
            FieldDescriptor(name="denom", kind=FieldKind.STRING),
            FieldDescriptor(name="amount", kind=FieldKind.STRING, scalar="cosmos.Dec"),
        ],
    ),
    MessageDescriptor(
        name=MSG_SUBMIT_PROPOSAL,
        signer=["proposer"],
        description="Submit a governance proposal carrying one or more messages.",
        fields=[
            FieldDescriptor(
                name="messages",
                kind=FieldKind.MESSAGE,
                type_name=ANY,
                cardinality=Cardinality.REPEATED,
            ),
            FieldDescriptor(
                name="initial_deposit",
                kind=FieldKind.MESSAGE,
                type_name=COIN,
                cardinality=Cardinality.REPEATED,
            ),
            FieldDescriptor(
                name="proposer", kind=FieldKind.STRING, scalar="cosmos.AddressString",
            ),
            FieldDescriptor(name="metadata", kind=FieldKind.STRING),
            FieldDescriptor(name="title", kind=FieldKind.STRING),
            FieldDescriptor(name="summary", kind=FieldKind.STRING),
            FieldDescriptor(name="expedited", kind=FieldKind.BOOL),
        ],
    ),
]
