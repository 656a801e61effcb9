"""ScreenOS predefined services and the service catalog."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from ..defaults import PORT_MAX, PORT_MIN
from ..util import CyclicGroupError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceDefinition:
    protocol: str                           # "tcp", "udp", "icmp", "" or an IP protocol number
    src_port_start: int = PORT_MIN
    src_port_end: int = PORT_MAX
    dst_port_start: int = PORT_MIN
    dst_port_end: int = PORT_MAX
    icmp_type: Optional[int] = None
    icmp_code: Optional[int] = None

    @property
    def src_unconstrained(self) -> bool:
        return (self.src_port_start, self.src_port_end) == (PORT_MIN, PORT_MAX)

    @property
    def dst_unconstrained(self) -> bool:
        return (self.dst_port_start, self.dst_port_end) == (PORT_MIN, PORT_MAX)


def _tcp(start: int, end: Optional[int] = None) -> ServiceDefinition:
    return ServiceDefinition("tcp", dst_port_start=start, dst_port_end=end if end is not None else start)


def _udp(start: int, end: Optional[int] = None) -> ServiceDefinition:
    return ServiceDefinition("udp", dst_port_start=start, dst_port_end=end if end is not None else start)


# ScreenOS predefined services. Names mapped to an empty tuple exist on the
# appliance but carry no protocol/port semantics we translate.
SCREENOS_SERVICES: Dict[str, Tuple[ServiceDefinition, ...]] = {
    "ANY": (ServiceDefinition(""),),
    "HTTP": (_tcp(80),),
    "HTTPS": (_tcp(443),),
    "HTTP-EXT": (_tcp(8080),),
    "TELNET": (_tcp(23),),
    "SSH": (_tcp(22),),
    "SYSLOG": (_udp(514),),
    "FTP": (_tcp(20, 21),),
    "TFTP": (_udp(69), _udp(1024, 65535)),
    "CIFS": (_udp(137, 138), _tcp(139), _tcp(445)),
    "SMB": (_tcp(445),),
    "NBDS": (_udp(137),),
    "NBNAME": (_udp(138),),
    "MS-SQL": (_tcp(1433), _udp(1434)),
    "SQL Monitor": (_udp(1434),),
    "RADIUS": (_udp(1812, 1813),),
    "VNC": (_tcp(5900),),
    "PING": (ServiceDefinition("icmp", icmp_type=8),),
    "ICMP-ANY": (ServiceDefinition("icmp"),),
    "TCP-ANY": (ServiceDefinition("tcp"),),
    "UDP-ANY": (ServiceDefinition("udp"),),
    "MAIL": (_tcp(25), _tcp(465), _tcp(587)),
    "SMTP": (_tcp(25), _tcp(465), _tcp(587)),
    "IMAP": (_tcp(143),),
    "POP3": (_tcp(110),),
    "H.323": (_udp(1719), _tcp(1720), _tcp(1731), _tcp(1024, 65535)),
    "SCCP": (_tcp(2000),),
    "SIP": (_tcp(5060, 5061), _udp(5060, 5061)),
    "PPTP": (_tcp(1723), ServiceDefinition("47")),
    "DHCP-Relay": (_udp(67, 68),),
    "SNMP": (_udp(161),),
    "NFS": (_tcp(111), _udp(111), _tcp(2049), _udp(2049)),
    "DNS": (_tcp(53), _udp(53)),
    "LDAP": (_tcp(389),),
    "NTP": (_udp(123),),
    "MS-NETLOGON": (_udp(137, 138), _tcp(139), _tcp(445), _tcp(1024, 5000), _tcp(49152, 65535)),
    "MS-AD-BR": (),
    "MS-AD-DRSUAPI": (),
    "MS-AD-DSROLE": (),
    "MS-AD-DSSETUP": (),
    "MS-RPC-ANY": (),
    "MS-RPC-EPM": (),
    "MS-WIN-DNS": (),
    "MS-WINS": (),
    "MS-AD": (),
    "WHOIS": (),
}


def parse_service_spec(spec: str) -> ServiceDefinition:
    """Parse a short service notation used in settings files.

    Examples:
        'tcp/443'       -> tcp, dst port 443
        'udp/1812-1813' -> udp, dst ports 1812-1813
        'icmp/8'        -> icmp type 8
        '47'            -> IP protocol 47, no ports
    """
    proto, _, ports = spec.strip().lower().partition("/")
    if not proto:
        raise ValueError(f"Empty service spec '{spec}'")
    if proto == "icmp":
        return ServiceDefinition("icmp", icmp_type=int(ports) if ports else None)
    if not ports:
        return ServiceDefinition(proto)
    if proto not in ("tcp", "udp"):
        raise ValueError(f"Ports given for protocol '{proto}' in '{spec}'")
    start, _, end = ports.partition("-")
    return ServiceDefinition(proto, dst_port_start=int(start), dst_port_end=int(end or start))


class ServiceCatalog:
    """Service name -> ordered definitions, plus service groups.

    Built from the predefined table on every run; directives and settings
    add to the per-run copy only.
    """

    def __init__(self, services: Optional[Dict[str, List[ServiceDefinition]]] = None):
        self._services: Dict[str, List[ServiceDefinition]] = {
            name: list(defs) for name, defs in (services or {}).items()
        }
        self._groups: Dict[str, List[str]] = {}

    @classmethod
    def defaults(cls) -> "ServiceCatalog":
        return cls({name: list(defs) for name, defs in SCREENOS_SERVICES.items()})

    def __contains__(self, name: str) -> bool:
        return name in self._services or name in self._groups

    def __len__(self) -> int:
        return len(self._services) + len(self._groups)

    def define(self, name: str, definitions: List[ServiceDefinition]):
        """Create or replace a service."""
        if name in self._services:
            log.debug(f"Service '{name}' redefined")
        self._groups.pop(name, None)
        self._services[name] = list(definitions)

    def add(self, name: str, definition: ServiceDefinition):
        """Append a definition, creating the service if it does not exist."""
        self._services.setdefault(name, []).append(definition)

    def create_group(self, name: str):
        self._groups.setdefault(name, [])

    def add_group_member(self, name: str, member: str):
        self._groups.setdefault(name, []).append(member)

    def is_group(self, name: str) -> bool:
        return name in self._groups

    def definitions(self, name: str) -> List[ServiceDefinition]:
        """All definitions behind a name, expanding groups in member order.

        Raises KeyError for an unknown name or group member.
        """
        return self._expand(name, [], set())

    def _expand(self, name: str, chain: List[str], active: Set[str]) -> List[ServiceDefinition]:
        if name in self._services:
            return list(self._services[name])
        if name not in self._groups:
            raise KeyError(name)
        if name in active:
            raise CyclicGroupError("service", name, chain)

        active.add(name)
        chain.append(name)
        result: List[ServiceDefinition] = []
        for member in self._groups[name]:
            result.extend(self._expand(member, chain, active))
        chain.pop()
        active.discard(name)
        return result

    def protocols(self, name: str) -> List[str]:
        """Distinct protocols of a service in first-seen order."""
        seen: List[str] = []
        for svc in self.definitions(name):
            if svc.protocol not in seen:
                seen.append(svc.protocol)
        return seen
