"""Zone-scoped address objects and group resolution."""

import ipaddress
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..defaults import ANY_ADDRESS, INLINE_ADDRESS_PREFIXES
from ..util import CyclicGroupError, host_interface

log = logging.getLogger(__name__)

# Matches every address; the emitter leaves the constraint out
ANY_NETWORK = ipaddress.IPv4Interface("0.0.0.0/0")


@dataclass
class AddressObject:
    name: str
    address: Optional[ipaddress.IPv4Interface] = None
    members: List[str] = field(default_factory=list)
    description: str = ""

    @property
    def is_group(self) -> bool:
        return bool(self.members)


Resolution = Tuple[List[str], List[ipaddress.IPv4Interface]]


def is_any(name: str) -> bool:
    return name.lower() == ANY_ADDRESS


def _inline_address(name: str) -> Optional[ipaddress.IPv4Interface]:
    """Address embedded in a 'MIP(1.2.3.4)' or 'VIP(1.2.3.4)' name."""
    for prefix in INLINE_ADDRESS_PREFIXES:
        if name.startswith(prefix):
            try:
                return host_interface(name[len(prefix):].replace(")", ""))
            except ValueError:
                log.debug(f"Unparsable inline address '{name}'")
                return None
    return None


class ObjectStore:
    """zone -> object name -> AddressObject."""

    def __init__(self):
        self._zones: Dict[str, Dict[str, AddressObject]] = {}

    def __contains__(self, key: Tuple[str, str]) -> bool:
        zone, name = key
        return name in self._zones.get(zone, {})

    def __len__(self) -> int:
        return sum(len(objs) for objs in self._zones.values())

    def get(self, zone: str, name: str) -> Optional[AddressObject]:
        return self._zones.get(zone, {}).get(name)

    def add(self, zone: str, name: str, address: ipaddress.IPv4Interface,
            description: str = "") -> AddressObject:
        """Create or replace a plain address object."""
        obj = AddressObject(name=name, address=address, description=description)
        self._zones.setdefault(zone, {})[name] = obj
        return obj

    def add_to_group(self, zone: str, name: str, member: str) -> AddressObject:
        """Append a member to a group, creating zone table and group as needed."""
        objs = self._zones.setdefault(zone, {})
        grp = objs.get(name)
        if grp is None:
            grp = objs[name] = AddressObject(name=name)
        grp.members.append(member)
        return grp

    def resolve(self, zone: str, name: str) -> Resolution:
        """Resolve a name to parallel (names, addresses) lists.

        Both lists are empty when the zone or name is unknown. Groups
        expand recursively; entries with an equal address and mask are
        dropped after their first occurrence.
        """
        return self._resolve(zone, name, [], set())

    def _resolve(self, zone: str, name: str, chain: List[str], active: Set[str]) -> Resolution:
        if is_any(name):
            return [name], [ANY_NETWORK]

        inline = _inline_address(name)
        if inline is not None:
            return [name], [inline]

        obj = self.get(zone, name)
        if obj is None:
            return [], []

        if not obj.is_group:
            return [name], [obj.address]

        if name in active:
            raise CyclicGroupError(zone, name, chain)
        active.add(name)
        chain.append(name)

        names: List[str] = []
        addresses: List[ipaddress.IPv4Interface] = []
        for member in obj.members:
            n, a = self._resolve(zone, member, chain, active)
            names.extend(n)
            addresses.extend(a)

        chain.pop()
        active.discard(name)

        dedup_names: List[str] = []
        dedup: List[ipaddress.IPv4Interface] = []
        for n, addr in zip(names, addresses):
            if addr in dedup:
                continue
            dedup.append(addr)
            dedup_names.append(n)

        log.debug(f"Resolved group {zone}/{name} to {len(dedup)} address(es)")
        return dedup_names, dedup
