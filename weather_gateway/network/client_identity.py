from collections.abc import Iterator, Mapping

from weather_gateway.logger import get_logger
from weather_gateway.network.address import AddressClassification, classify, normalize, strip_port

log = get_logger("identity")

# Most trusted first: CDN edge, reverse proxy, then generic forwarding headers.
CLIENT_ADDRESS_HEADERS: tuple[str, ...] = (
    "cf-connecting-ip",
    "x-real-ip",
    "x-forwarded-for",
    "x-client-ip",
    "true-client-ip",
    "x-forwarded",
    "forwarded-for",
    "forwarded",
    "x-cluster-client-ip",
)


def resolve_client_address(headers: Mapping[str, str], connection_address: str | None = None) -> str | None:
    """Find the caller's public address from proxy headers or the connection.

    Headers are looked up by their lower-case names, so either a
    case-insensitive mapping (Starlette ``Headers``) or a plain dict with
    lower-case keys works. Within a multi-valued header the first public
    candidate wins; a header with no public candidate is skipped entirely.

    Returns the normalized address, or None when nothing usable was found.
    """
    for header in CLIENT_ADDRESS_HEADERS:
        value = headers.get(header)
        if not value:
            continue
        for candidate in _split_candidates(header, value):
            address = _public_address(candidate)
            if address:
                log.debug(f"Resolved client address header={header} raw={candidate} address={address}")
                return address

    if connection_address:
        address = _public_address(connection_address)
        if address:
            log.debug(f"Resolved client address from connection raw={connection_address} address={address}")
            return address

    log.debug(f"No public client address found connection={connection_address}")
    return None


def _split_candidates(header: str, value: str) -> Iterator[str]:
    for part in value.split(","):
        candidate = part.strip()
        if header == "forwarded":
            candidate = _forwarded_for(candidate)
        if candidate:
            yield candidate


def _forwarded_for(element: str) -> str:
    """Extract the ``for=`` node from an RFC 7239 ``Forwarded`` element."""
    for pair in element.split(";"):
        name, sep, node = pair.strip().partition("=")
        if sep and name.strip().lower() == "for":
            return node.strip().strip('"')
    return ""


def _public_address(raw: str) -> str | None:
    address = normalize(strip_port(raw))
    if classify(address) is AddressClassification.PUBLIC:
        return address
    return None
