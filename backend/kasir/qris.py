# Overview: Static-to-dynamic QRIS payload codec with CRC-16/CCITT-FALSE checksum.

"""
QRIS payload codec.

A QRIS payload is an ASCII string of EMV-style TAG(2) + LEN(2) + VALUE tuples.
Merchants configure a *static* payload (point of initiation "11", no amount).
At checkout we derive a *dynamic* payload for one sale:

- drop the trailing CRC value (the "6304" header stays in the payload)
- switch point of initiation 010211 -> 010212
- insert a tag 54 (transaction amount) tuple right before 5802ID
- append a fresh CRC over everything before it

The transform is literal substring work so the output is bit-exact with what
other QRIS tooling produces for the same input. Nothing here touches the
database or the network.
"""

from __future__ import annotations

from .errors import MalformedPayload, NotStaticQris, MissingCountryCode, InvalidAmount


MIN_PAYLOAD_LENGTH = 20

STATIC_INITIATION = "010211"
DYNAMIC_INITIATION = "010212"
COUNTRY_CODE = "5802ID"

TAG_INITIATION = "01"
TAG_AMOUNT = "54"
TAG_CRC = "63"

CRC_LENGTH = 4


def crc16(payload: str) -> str:
    """CRC-16/CCITT-FALSE of the payload, as 4 uppercase hex digits."""
    crc = 0xFFFF
    for byte in payload.encode("utf-8"):
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = (crc << 1) ^ 0x1021
            else:
                crc <<= 1
    return f"{crc & 0xFFFF:04X}"


def verify_checksum(payload: str) -> bool:
    if len(payload) <= CRC_LENGTH:
        return False
    return crc16(payload[:-CRC_LENGTH]) == payload[-CRC_LENGTH:].upper()


def parse(payload: str) -> list[tuple[str, str]]:
    """Split a payload into its top-level (tag, value) tuples."""
    fields = []
    pos = 0
    while pos < len(payload):
        header = payload[pos:pos + 4]
        if len(header) < 4 or not header.isdigit():
            raise MalformedPayload("QRIS payload has an invalid field header", details={"offset": pos})
        tag, length = header[:2], int(header[2:])
        value = payload[pos + 4:pos + 4 + length]
        if len(value) != length:
            raise MalformedPayload("QRIS payload is truncated", details={"tag": tag, "offset": pos})
        fields.append((tag, value))
        pos += 4 + length
    return fields


def serialize(fields: list[tuple[str, str]]) -> str:
    return "".join(f"{tag}{len(value):02d}{value}" for tag, value in fields)


def read_amount(payload: str) -> int | None:
    for tag, value in parse(payload):
        if tag == TAG_AMOUNT:
            return int(value)
    return None


def is_dynamic(payload: str) -> bool:
    try:
        fields = parse(payload)
    except MalformedPayload:
        return False
    return (TAG_INITIATION, "12") in fields


def validate_static(payload: str) -> None:
    """Run the ordered static-payload checks; raises the first failure."""
    if payload is None or len(payload) < MIN_PAYLOAD_LENGTH:
        raise MalformedPayload("Static QRIS format is invalid")
    if STATIC_INITIATION not in payload:
        raise NotStaticQris("QRIS is not a static QRIS (010211 not found)")
    if COUNTRY_CODE not in payload:
        raise MissingCountryCode("QRIS does not contain country code 5802ID")


def to_static(payload: str) -> str:
    """
    Rebuild the static payload a dynamic one was derived from.

    Point of initiation goes back to 11, the amount tuple is dropped and the
    CRC is recomputed.
    """
    fields = []
    for tag, value in parse(payload):
        if tag in (TAG_AMOUNT, TAG_CRC):
            continue
        if tag == TAG_INITIATION:
            value = "11"
        fields.append((tag, value))
    body = serialize(fields) + TAG_CRC + f"{CRC_LENGTH:02d}"
    return body + crc16(body)


def encode(payload: str, amount: int) -> str:
    """
    Derive the dynamic payload charging ``amount`` whole currency units.

    Re-encoding an already dynamic payload replaces its amount.
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount("QRIS amount must be a positive integer", details={"amount": amount})

    if payload and is_dynamic(payload):
        payload = to_static(payload)

    validate_static(payload)

    body = payload[:-CRC_LENGTH]
    body = body.replace(STATIC_INITIATION, DYNAMIC_INITIATION, 1)
    head, _, tail = body.partition(COUNTRY_CODE)

    value = str(amount)
    amount_field = f"{TAG_AMOUNT}{len(value):02d}{value}"

    result = head + amount_field + COUNTRY_CODE + tail
    return result + crc16(result)
