"""Parsing and classification of raw client addresses.

Proxy headers and connection metadata carry addresses in many shapes:
``203.0.113.7:51234``, ``[2001:db8::1]:443``, ``::ffff:192.0.2.1`` and so on.
``normalize`` turns any of them into a bare canonical address and
``classify`` decides whether that address is worth sending to an
IP-location provider.
"""

import re
from enum import Enum


class AddressClassification(str, Enum):
    """Result of classifying a normalized network address."""

    PUBLIC = "public"
    PRIVATE_OR_RESERVED = "private_or_reserved"
    INVALID = "invalid"


_NON_ADDRESS_TOKENS = frozenset({"", "unknown", "localhost"})

# Matched against the normalized (lower-case, port-free) form.
_RESERVED_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^127\."),  # 127.0.0.0/8 loopback
    re.compile(r"^10\."),  # 10.0.0.0/8
    re.compile(r"^172\.(1[6-9]|2[0-9]|3[0-1])\."),  # 172.16.0.0/12
    re.compile(r"^192\.168\."),  # 192.168.0.0/16
    re.compile(r"^169\.254\."),  # 169.254.0.0/16 link-local
    re.compile(r"^::$"),  # IPv6 unspecified
    re.compile(r"^::1$"),  # IPv6 loopback
    re.compile(r"^fe80:"),  # IPv6 link-local
    re.compile(r"^fc00:"),  # IPv6 unique local
    re.compile(r"^fd00:"),  # IPv6 unique local
)

_IPV4_RE = re.compile(r"^[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}$")
_IPV4_WITH_PORT_SUFFIX_RE = re.compile(r"([0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}):([0-9]+)$")
_IPV4_MAPPED_RE = re.compile(r"^::ffff:([0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3})$", re.IGNORECASE)
_IPV6_CHARS_RE = re.compile(r"^[0-9a-f:.]+$")
_HEX_GROUP_RE = re.compile(r"^[0-9a-f]{1,4}$")

MAX_IPV6_COLONS = 7


def strip_port(raw: str) -> str:
    """Remove a trailing port (and IPv6 brackets) from a raw address.

    Bare IPv6 addresses are left untouched: a ``::`` token or more than one
    colon means the colons belong to the address itself, not to a port.
    """
    address = raw.strip()
    if not address:
        return address

    if ":" in address:
        # [2001:db8::1]:8080
        if address.startswith("[") and "]:" in address:
            return address[1 : address.index("]:")]

        # 203.0.113.7:8080 or ::ffff:192.0.2.1:8080
        match = _IPV4_WITH_PORT_SUFFIX_RE.search(address)
        if match:
            return match.group(1)

        if "::" in address or address.count(":") > 1:
            return address

        host, _, _ = address.partition(":")
        if _IPV4_RE.match(host):
            return host
        return address

    return address


def normalize(raw: str) -> str:
    """Return the canonical form of a raw address string.

    The result carries no port and no brackets, IPv6 hex digits are
    lower-cased, and IPv4-mapped IPv6 addresses are rewritten to plain IPv4.
    """
    address = strip_port(raw)
    if ":" not in address:
        return address

    address = address.removeprefix("[").removesuffix("]").lower()
    mapped = _IPV4_MAPPED_RE.match(address)
    if mapped:
        return mapped.group(1)
    return address


def classify(address: str) -> AddressClassification:
    """Classify a normalized address as public, private/reserved or invalid."""
    if address.strip().lower() in _NON_ADDRESS_TOKENS:
        return AddressClassification.INVALID

    if any(pattern.match(address) for pattern in _RESERVED_PATTERNS):
        return AddressClassification.PRIVATE_OR_RESERVED

    if _IPV4_RE.match(address):
        if all(0 <= int(octet) <= 255 for octet in address.split(".")):
            return AddressClassification.PUBLIC
        return AddressClassification.INVALID

    if ":" in address and _looks_like_ipv6(address):
        return AddressClassification.PUBLIC

    return AddressClassification.INVALID

def _looks_like_ipv6(address: str) -> bool:
    """Shape check for IPv6 literals, tolerant of an IPv4-mapped suffix.

    Strings that are not a strictly valid full form but still carry between
    2 and 7 colons are accepted: availability of the location lookup matters
    more here than strict RFC 4291 conformance.
    """
    if not _IPV6_CHARS_RE.match(address):
        return False

    colons = address.count(":")
    if colons > MAX_IPV6_COLONS:
        return False

    if "::" in address:
        return address.count("::") == 1

    if colons == MAX_IPV6_COLONS:
        return all(_HEX_GROUP_RE.match(group) for group in address.split(":"))

    return 2 <= colons <= MAX_IPV6_COLONS
