"""Service discovery over the private IPv6 network's internal DNS."""

from __future__ import annotations

import ipaddress
import os
import socket
from typing import List, Tuple, Union

import dns.resolver

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

DEFAULT_NAMESERVER = "fdaa::3"
LOCAL_6PN_HOST = "fly-local-6pn"
_DNS_PORT = 53
_QUERY_TIMEOUT = 1.0
_QUERY_LIFETIME = 5.0
_FALLBACK_ERRNOS = {
    socket.EAI_NONAME,
    socket.EAI_AGAIN,
    getattr(socket, "EAI_NODATA", socket.EAI_NONAME),
}


def nameserver_address() -> Tuple[str, int]:
    """Host and port of the internal nameserver (``FLY_NAMESERVER`` or the default)."""
    return os.environ.get("FLY_NAMESERVER") or DEFAULT_NAMESERVER, _DNS_PORT


def _resolver() -> dns.resolver.Resolver:
    host, port = nameserver_address()
    resolver = dns.resolver.Resolver(configure=False)
    resolver.nameservers = [host]
    resolver.port = port
    resolver.timeout = _QUERY_TIMEOUT
    resolver.lifetime = _QUERY_LIFETIME
    return resolver


def _lookup_ips(resolver: dns.resolver.Resolver, hostname: str) -> List[IPAddress]:
    """All IPv6 and IPv4 addresses of ``hostname``; raises if it has none."""
    addresses: List[IPAddress] = []
    last_error: Exception = dns.resolver.NoAnswer()
    for rdtype in ("AAAA", "A"):
        try:
            answer = resolver.resolve(hostname, rdtype)
        except (dns.resolver.NoAnswer, dns.resolver.NXDOMAIN) as exc:
            last_error = exc
            continue
        addresses.extend(ipaddress.ip_address(record.address) for record in answer)
    if not addresses:
        raise last_error
    return addresses


def get_regions(app_name: str) -> List[str]:
    """Regions the app runs in, from the ``regions.<app>.internal`` TXT records."""
    answer = _resolver().resolve(f"regions.{app_name}.internal", "TXT")
    regions: List[str] = []
    for record in answer:
        text = b"".join(record.strings).decode("utf-8", errors="replace")
        regions.extend(text.split(","))
    return regions


def get_6pn(hostname: str) -> List[IPAddress]:
    """Addresses of ``hostname``, always including this machine's own private address."""
    resolver = _resolver()
    addresses = _lookup_ips(resolver, hostname)
    # The local address may not be in service discovery yet.
    local = _lookup_ips(resolver, LOCAL_6PN_HOST)
    if local and local[0] not in addresses:
        addresses.append(local[0])
    return addresses


def all_peers(app_name: str) -> List[IPAddress]:
    """Addresses of every instance of ``app_name``."""
    return get_6pn(f"{app_name}.internal")


def private_ipv6() -> IPAddress:
    """This machine's private address, or the loopback address when it has none."""
    try:
        infos = socket.getaddrinfo(LOCAL_6PN_HOST, None)
    except socket.gaierror as exc:
        if exc.errno not in _FALLBACK_ERRNOS:
            raise
        infos = []
    if infos:
        host = str(infos[0][4][0]).split("%", 1)[0]
        return ipaddress.ip_address(host)
    return ipaddress.ip_address("127.0.0.1")