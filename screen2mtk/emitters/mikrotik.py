"""MikroTik RouterOS firewall script emitter."""

import ipaddress
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..defaults import (
    ADDRESS_LIST_HEADER, ANY_SERVICE, FILTER_HEADER, ICMP_ECHO_OPTIONS,
    LIST_SEPARATOR, SCREENOS_ACTION_TO_ROUTEROS,
)
from ..mappings.services import ServiceCatalog, ServiceDefinition
from ..model.config import ScreenConfig
from ..model.objects import ObjectStore, Resolution
from ..model.policy import Policy
from ..util import Diagnostic, UnknownServiceError, format_port_range

log = logging.getLogger(__name__)

_ZERO = ipaddress.IPv4Address("0.0.0.0")


@dataclass
class Endpoint:
    """One side of a rule: a single address or a whole address-list."""
    name: str = ""
    address: Optional[ipaddress.IPv4Interface] = None
    list_name: str = ""

    @property
    def is_list(self) -> bool:
        return bool(self.list_name)

    @property
    def label(self) -> str:
        return self.name or self.list_name


@dataclass
class RouterOSScript:
    text: str
    diagnostics: List[Diagnostic] = field(default_factory=list)
    rule_count: int = 0
    list_entry_count: int = 0


def list_name(zone: str, reference: str) -> str:
    return f"{zone}{LIST_SEPARATOR}{reference}"


def chain_name(policy: Policy) -> str:
    return f"{policy.from_zone}{LIST_SEPARATOR}{policy.to_zone}"


class _Emitter:
    def __init__(self, policies: List[Policy], objects: ObjectStore, services: ServiceCatalog):
        # Disabled and implicit zone-default policies are never materialized
        self.policies = [p for p in policies if not p.disabled and not p.is_zone_policy()]
        self.objects = objects
        self.services = services
        self.lines: List[str] = []
        self.diagnostics: List[Diagnostic] = []
        self.rule_count = 0
        self.list_entry_count = 0
        self._cache: Dict[Tuple[str, str], Resolution] = {}

    def resolve(self, zone: str, name: str) -> Resolution:
        key = (zone, name)
        if key not in self._cache:
            self._cache[key] = self.objects.resolve(zone, name)
        return self._cache[key]

    def emit(self) -> RouterOSScript:
        self.lines.append(ADDRESS_LIST_HEADER)
        self._emit_address_lists()
        self.lines.append("")
        self.lines.append("")
        self.lines.append(FILTER_HEADER)
        self._emit_filter_rules()

        log.info(f"Emitted {self.list_entry_count} address-list entries and {self.rule_count} filter rules "
                 f"for {len(self.policies)} policies")
        return RouterOSScript(
            text="\n".join(self.lines) + "\n",
            diagnostics=self.diagnostics,
            rule_count=self.rule_count,
            list_entry_count=self.list_entry_count,
        )

    # --- address lists ---

    def _emit_address_lists(self):
        emitted: Set[Tuple[str, str]] = set()
        owners: Dict[str, Tuple[str, str]] = {}
        for pol in self.policies:
            refs = [(pol.from_zone, s) for s in pol.sources] + [(pol.to_zone, d) for d in pol.destinations]
            for zone, ref in refs:
                names, addresses = self.resolve(zone, ref)
                if not addresses:
                    diag = Diagnostic(kind="not_found", message=f"{zone} {ref} not found")
                    log.warning(str(diag))
                    self.diagnostics.append(diag)
                    continue

                if len(addresses) < 2 or (zone, ref) in emitted:
                    continue
                emitted.add((zone, ref))
                lname = list_name(zone, ref)
                if owners.setdefault(lname, (zone, ref)) != (zone, ref):
                    other_zone, other_ref = owners[lname]
                    diag = Diagnostic(kind="list_name",
                                      message=f"{zone} {ref} shares list {lname} with {other_zone} {other_ref}")
                    log.warning(str(diag))
                    self.diagnostics.append(diag)
                for display, addr in zip(names, addresses):
                    self.lines.append(f'add list={lname} address={addr.with_prefixlen} comment="{display}"')
                    self.list_entry_count += 1

    # --- filter rules ---

    def _endpoints(self, zone: str, refs: List[str]) -> Tuple[List[Endpoint], List[Endpoint]]:
        """Split references into single addresses and address-lists."""
        singles: List[Endpoint] = []
        lists: List[Endpoint] = []
        for ref in refs:
            _, addresses = self.resolve(zone, ref)
            if len(addresses) > 1:
                lists.append(Endpoint(list_name=list_name(zone, ref)))
            elif len(addresses) == 1:
                singles.append(Endpoint(name=ref, address=addresses[0]))
        return singles, lists

    def _emit_filter_rules(self):
        for pol in self.policies:
            self.lines.append(f"# {pol.describe()}")
            src_singles, src_lists = self._endpoints(pol.from_zone, pol.sources)
            dst_singles, dst_lists = self._endpoints(pol.to_zone, pol.destinations)
            sources = src_singles + src_lists
            destinations = dst_singles + dst_lists

            for svc_name in pol.services:
                if svc_name == ANY_SERVICE:
                    protocols: List[str] = [""]
                    definitions: List[ServiceDefinition] = []
                else:
                    if svc_name not in self.services:
                        raise UnknownServiceError(pol.id, svc_name)
                    try:
                        definitions = self.services.definitions(svc_name)
                    except KeyError as e:
                        raise UnknownServiceError(pol.id, e.args[0])
                    protocols = self.services.protocols(svc_name) or [""]

                for proto in protocols:
                    for src in sources:
                        for dst in destinations:
                            self.lines.append(_rule(pol, src, dst, proto, definitions))
                            self.rule_count += 1
            self.lines.append("")


def _port_options(proto: str, definitions: List[ServiceDefinition]) -> List[str]:
    src_ports = []
    dst_ports = []
    for svc in definitions:
        if svc.protocol != proto:
            continue
        if not svc.src_unconstrained:
            src_ports.append(format_port_range(svc.src_port_start, svc.src_port_end))
        if not svc.dst_unconstrained:
            dst_ports.append(format_port_range(svc.dst_port_start, svc.dst_port_end))
    opts = []
    if src_ports:
        opts.append("src-port=" + ",".join(src_ports))
    if dst_ports:
        opts.append("dst-port=" + ",".join(dst_ports))
    return opts


def _address_option(prefix: str, endpoint: Endpoint) -> Optional[str]:
    if endpoint.is_list:
        return f"{prefix}-address-list={endpoint.list_name}"
    if endpoint.address.ip == _ZERO:
        # 'any': no constraint
        return None
    return f"{prefix}-address={endpoint.address.with_prefixlen}"


def _rule(pol: Policy, src: Endpoint, dst: Endpoint, proto: str,
          definitions: List[ServiceDefinition]) -> str:
    parts = ["add", f"chain={chain_name(pol)}"]

    for opt in (_address_option("src", src), _address_option("dst", dst)):
        if opt:
            parts.append(opt)

    if proto:
        parts.append(f"protocol={proto}")
    if proto in ("tcp", "udp"):
        parts.extend(_port_options(proto, definitions))
    elif proto == "icmp":
        parts.append(f"icmp-options={ICMP_ECHO_OPTIONS}")

    parts.append(f"action={SCREENOS_ACTION_TO_ROUTEROS[pol.action.value]}")
    if pol.log:
        parts.append("log=yes")

    comment = f"ID: {pol.id}"
    if pol.name:
        comment += " - " + pol.name.replace('"', "")
    comment += f" - {src.label} -> {dst.label}"
    parts.append(f'comment="{comment}"')
    return " ".join(parts)


def _emitter(config: ScreenConfig, policies: Optional[List[Policy]]) -> _Emitter:
    if policies is None:
        policies = config.policies
    return _Emitter(policies, config.objects, config.services)


def build_address_lists(config: ScreenConfig,
                        policies: Optional[List[Policy]] = None) -> Tuple[List[str], List[Diagnostic]]:
    """Address-list statements without the section header, plus not-found diagnostics."""
    emitter = _emitter(config, policies)
    emitter._emit_address_lists()
    return emitter.lines, emitter.diagnostics


def build_filter_rules(config: ScreenConfig, policies: Optional[List[Policy]] = None) -> List[str]:
    """Filter statements without the section header, one commented block per policy."""
    emitter = _emitter(config, policies)
    emitter._emit_filter_rules()
    return emitter.lines


def emit_script(config: ScreenConfig, policies: Optional[List[Policy]] = None) -> RouterOSScript:
    """Build the RouterOS address-list and filter sections.

    policies defaults to every parsed policy; pass a filtered list to
    restrict the output. Raises UnknownServiceError for a policy that
    references a service missing from the catalog.
    """
    return _emitter(config, policies).emit()


def emit_script_string(config: ScreenConfig, policies: Optional[List[Policy]] = None) -> str:
    return emit_script(config, policies).text
