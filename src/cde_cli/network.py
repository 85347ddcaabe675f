from __future__ import annotations

import ipaddress
import logging
import re
import socket
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Sequence

import psutil

from cde_cli.host import HostEnvironment, run_probe


INTERFACE_PRIORITY_PREFIXES = ("eth", "en", "wlan", "wifi", "ethernet")
EXCLUDED_ADDRESS_PREFIXES = ("127.", "169.254.")
ADDRESS_PROBE_TIMEOUT_SECONDS = 3.0
WINDOWS_ADDRESS_PROBE_TIMEOUT_SECONDS = 5.0
PING_TIMEOUT_SECONDS = 3.0
ROUTE_PROBE_DESTINATION = "1.1.1.1"

_OCTET = r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)"
_IPV4_RE = re.compile(rf"(?:{_OCTET}\.){{3}}{_OCTET}")
_LOOSE_IPV4 = r"[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}"
_IPCONFIG_RE = re.compile(rf"IPv4[^:\n]*:\s*({_LOOSE_IPV4})")
_ROUTE_SRC_RE = re.compile(rf"\bsrc\s+({_LOOSE_IPV4})")
_INET_RE = re.compile(rf"inet\s+(?:addr:)?({_LOOSE_IPV4})")

LOGGER = logging.getLogger("cde_cli.network")
LOGGER.addHandler(logging.NullHandler())


def is_valid_ipv4(value: object) -> bool:
    """Strict dotted-quad check: exactly four octets, each 0-255."""
    if not isinstance(value, str):
        return False
    return _IPV4_RE.fullmatch(value) is not None


def _is_usable_address(value: str) -> bool:
    return is_valid_ipv4(value) and not value.startswith(EXCLUDED_ADDRESS_PREFIXES)


def _is_external_interface_address(value: str) -> bool:
    try:
        return not ipaddress.IPv4Address(value).is_loopback
    except ValueError:
        return False


def _first_external_address(addresses: Iterable[str]) -> str | None:
    for address in addresses:
        if _is_external_interface_address(address):
            return address
    return None


def interface_ipv4_addresses() -> dict[str, list[str]]:
    return {
        name: [entry.address for entry in entries if entry.family == socket.AF_INET]
        for name, entries in psutil.net_if_addrs().items()
    }


def address_from_interfaces(interfaces: Mapping[str, Sequence[str]]) -> str | None:
    """Pick an address, preferring physical and wireless interface names over enumeration order."""
    for prefix in INTERFACE_PRIORITY_PREFIXES:
        for name, addresses in interfaces.items():
            if not name.lower().startswith(prefix):
                continue
            found = _first_external_address(addresses)
            if found:
                return found

    for addresses in interfaces.values():
        found = _first_external_address(addresses)
        if found:
            return found
    return None


def _whitespace_tokens(output: str) -> list[str]:
    return output.split()


def _route_source_addresses(output: str) -> list[str]:
    return _ROUTE_SRC_RE.findall(output)


def _inet_addresses(output: str) -> list[str]:
    return _INET_RE.findall(output)


def _ipconfig_addresses(output: str) -> list[str]:
    return _IPCONFIG_RE.findall(output)


@dataclass(frozen=True)
class AddressProbe:
    command: tuple[str, ...]
    extract: Callable[[str], Iterable[str]]
    timeout: float = ADDRESS_PROBE_TIMEOUT_SECONDS

    def run(self) -> str | None:
        result = run_probe(self.command, timeout=self.timeout)
        if result is None or result.returncode != 0 or not result.stdout:
            return None
        for candidate in self.extract(result.stdout):
            if _is_usable_address(candidate):
                return candidate
        return None


WINDOWS_ADDRESS_PROBES = (
    AddressProbe(("ipconfig",), _ipconfig_addresses, timeout=WINDOWS_ADDRESS_PROBE_TIMEOUT_SECONDS),
)
POSIX_ADDRESS_PROBES = (
    AddressProbe(("hostname", "-I"), _whitespace_tokens),
    AddressProbe(("ip", "route", "get", ROUTE_PROBE_DESTINATION), _route_source_addresses),
    AddressProbe(("ifconfig",), _inet_addresses),
    AddressProbe(("route", "get", "default"), _inet_addresses),
)


def address_probes_for(host: HostEnvironment) -> tuple[AddressProbe, ...]:
    if host.is_windows:
        return WINDOWS_ADDRESS_PROBES
    return POSIX_ADDRESS_PROBES


def address_from_probes(probes: Iterable[AddressProbe]) -> str | None:
    for probe in probes:
        address = probe.run()
        if address:
            LOGGER.debug("Address %s found via %s", address, " ".join(probe.command))
            return address
        LOGGER.debug("No usable address from %s", " ".join(probe.command))
    return None


def discover_external_ip(host: HostEnvironment) -> str | None:
    try:
        interfaces = interface_ipv4_addresses()
    except (OSError, psutil.Error) as exc:
        LOGGER.debug("Interface enumeration failed: %s", exc)
        interfaces = {}

    address = address_from_interfaces(interfaces)
    if address:
        LOGGER.debug("Address %s found via interface enumeration", address)
        return address
    return address_from_probes(address_probes_for(host))


def ping_command(ip: str, host: HostEnvironment) -> list[str]:
    if host.is_windows:
        return ["ping", "-n", "1", "-w", "1000", ip]
    if host.is_darwin:
        return ["ping", "-c", "1", "-W", "1000", ip]
    return ["ping", "-c", "1", "-W", "1", ip]


def is_ip_available(ip: str, host: HostEnvironment) -> bool:
    """Return True when nothing answers an echo request at ``ip``.

    An answer means another host already holds the address, so it is not
    available for the container's reverse connections. Malformed addresses are
    never available.
    """
    if not is_valid_ipv4(ip):
        return False
    result = run_probe(ping_command(ip, host), timeout=PING_TIMEOUT_SECONDS)
    if result is not None and result.returncode == 0:
        LOGGER.debug("Address %s answered an echo request", ip)
        return False
    return True
