from typing import List, NamedTuple

from pyasn1.codec.der import decoder
from pyasn1.error import PyAsn1Error
from pyasn1.type import namedtype, univ

from .errors import TicketDecodeError


class CryptexTickets(univ.SetOf):
    componentType = univ.Any()


class TicketSequence(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.NamedType('version', univ.Integer()),
        namedtype.NamedType('apTicket', univ.Any()),
        # Accepted when absent and read as no cryptex tickets
        namedtype.OptionalNamedType('cryptexTickets', CryptexTickets())
    )


class Ticket(NamedTuple):
    version: int
    # Content octets (the value, without tag and length) of each ticket
    ap_ticket: bytes
    cryptex_tickets: List[bytes]
    raw: bytes


def der_contents(tlv: bytes) -> bytes:
    """Strips the identifier and definite length octets off a single DER element."""
    if len(tlv) < 2:
        raise TicketDecodeError("element too short")
    pos = 1
    if tlv[0] & 0x1f == 0x1f:
        # High tag number form
        while pos < len(tlv) and tlv[pos] & 0x80:
            pos += 1
        pos += 1
    if pos >= len(tlv):
        raise TicketDecodeError("truncated identifier")
    length = tlv[pos]
    pos += 1
    if length == 0x80:
        raise TicketDecodeError("indefinite length not allowed")
    if length & 0x80:
        num_octets = length & 0x7f
        if pos + num_octets > len(tlv):
            raise TicketDecodeError("truncated length")
        length = int.from_bytes(tlv[pos:pos + num_octets], "big")
        pos += num_octets
    if pos + length != len(tlv):
        raise TicketDecodeError("length {} does not match element size".format(length))
    return tlv[pos:]


def parse_ticket(data: bytes) -> Ticket:
    if not data:
        raise TicketDecodeError("empty ticket")
    try:
        decoded, rest = decoder.decode(data, asn1Spec=TicketSequence())
    except PyAsn1Error as e:
        raise TicketDecodeError("malformed ticket: {}".format(e)) from e
    if rest:
        raise TicketDecodeError("{} bytes of trailing data after ticket".format(len(rest)))

    cryptex_tickets = []
    for cryptex_ticket in decoded['cryptexTickets']:
        cryptex_tickets.append(der_contents(cryptex_ticket.asOctets()))
    return Ticket(
        version=int(decoded['version']),
        ap_ticket=der_contents(decoded['apTicket'].asOctets()),
        cryptex_tickets=cryptex_tickets,
        raw=bytes(data)
    )
