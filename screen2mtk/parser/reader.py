"""Single-pass reader that turns ScreenOS directive lines into a ScreenConfig."""

import ipaddress
import logging
import socket
from typing import Callable, Iterable, Iterator, Optional, Tuple

from ..defaults import BLOCK_TERMINATOR, LOG_SESSION_INIT
from ..mappings.services import ServiceCatalog, ServiceDefinition
from ..model.config import ScreenConfig
from ..model.policy import Action, NATMode, Policy
from ..util import Diagnostic, ScreenParseError, host_interface, ip_mask_to_interface
from .directives import Directive, DirectiveKind, classify, classify_block_line

log = logging.getLogger(__name__)

Resolver = Callable[[str], str]


def _port_definition(directive: Directive) -> ServiceDefinition:
    """Build a definition from a tcp/udp/numeric service directive."""
    proto = directive.group(2)
    if directive.group(3) is None:
        return ServiceDefinition(protocol=proto)
    return ServiceDefinition(
        protocol=proto,
        src_port_start=int(directive.group(3)),
        src_port_end=int(directive.group(4)),
        dst_port_start=int(directive.group(5)),
        dst_port_end=int(directive.group(6)),
    )


def _icmp_definition(directive: Directive) -> ServiceDefinition:
    return ServiceDefinition(
        protocol="icmp",
        icmp_type=int(directive.group(2)),
        icmp_code=int(directive.group(3)),
    )


class DirectiveReader:
    """Line-oriented state machine over a ScreenOS 'set' export.

    Structural problems raise ScreenParseError. Host names that do not
    resolve are recorded as diagnostics and the address is left out.
    """

    def __init__(self, services: Optional[ServiceCatalog] = None,
                 resolver: Optional[Resolver] = socket.gethostbyname):
        self.config = ScreenConfig()
        if services is not None:
            self.config.services = services
        self.resolver = resolver
        self._last_service = ""
        # Names whose first definition line has been seen in this input
        self._defined_services = set()
        self._lines: Iterator[Tuple[int, str]] = iter(())
        self._line_num = 0

    def read(self, lines: Iterable[str]) -> ScreenConfig:
        self._lines = enumerate(lines, start=1)
        for line_num, raw_line in self._lines:
            self._line_num = line_num
            line = raw_line.strip()
            if not line:
                continue
            directive = classify(line, line_num)
            if directive is None:
                continue
            self._dispatch(directive)

        log.info(
            f"Read {self._line_num} lines: {len(self.config.policies)} policies, "
            f"{len(self.config.objects)} address objects, "
            f"{len(self.config.services)} services"
        )
        return self.config

    def _dispatch(self, directive: Directive):
        handler = {
            DirectiveKind.SERVICE_CONTINUE: self._service_continue,
            DirectiveKind.SERVICE_ICMP_CONTINUE: self._service_continue,
            DirectiveKind.SERVICE: self._service,
            DirectiveKind.SERVICE_ICMP: self._service,
            DirectiveKind.SERVICE_TIMEOUT: None,
            DirectiveKind.ADDRESS: self._address,
            DirectiveKind.GROUP_ADDRESS_ADD: self._group_address_add,
            DirectiveKind.GROUP_ADDRESS_CREATE: None,
            DirectiveKind.GROUP_SERVICE_ADD: self._group_service_add,
            DirectiveKind.GROUP_SERVICE_CREATE: self._group_service_create,
            DirectiveKind.POLICY_CREATE: self._policy_create,
            DirectiveKind.POLICY_BLOCK: self._policy_block,
            DirectiveKind.POLICY_FLAG: self._policy_flag,
        }[directive.kind]
        if handler is not None:
            handler(directive)

    # --- services ---

    def _definition(self, directive: Directive) -> ServiceDefinition:
        if directive.kind in (DirectiveKind.SERVICE_ICMP, DirectiveKind.SERVICE_ICMP_CONTINUE):
            return _icmp_definition(directive)
        return _port_definition(directive)

    def _service(self, directive: Directive):
        name = directive.group(1)
        definition = self._definition(directive)
        if name not in self._defined_services:
            # First definition in the input replaces any predefined entry
            self._defined_services.add(name)
            self.config.services.define(name, [definition])
        else:
            self.config.services.add(name, definition)
        self._last_service = name

    def _service_continue(self, directive: Directive):
        if not self._last_service:
            raise ScreenParseError(
                f"Service continuation for '{directive.group(1)}' without a preceding definition",
                directive.line_num,
            )
        self.config.services.add(self._last_service, self._definition(directive))

    def _group_service_create(self, directive: Directive):
        self.config.services.create_group(directive.group(1))

    def _group_service_add(self, directive: Directive):
        self.config.services.add_group_member(directive.group(1), directive.group(2))

    # --- addresses ---

    def _address(self, directive: Directive):
        zone, name, host, mask = directive.group(1), directive.group(2), directive.group(3), directive.group(4)
        description = directive.group(5) or ""

        if mask is None:
            address = self._resolve_host(zone, name, host, directive.line_num)
            if address is None:
                return
        else:
            try:
                address = ip_mask_to_interface(host, mask)
            except ValueError as e:
                raise ScreenParseError(f"Invalid address '{host} {mask}': {e}", directive.line_num)

        self.config.objects.add(zone, name, address, description)

    def _resolve_host(self, zone: str, name: str, host: str,
                      line_num: int) -> Optional[ipaddress.IPv4Interface]:
        if self.resolver is None:
            self._diagnostic("resolve", f"{zone} {name}: host name '{host}' not resolved (resolution disabled)",
                             line_num)
            return None
        try:
            return host_interface(self.resolver(host))
        except (OSError, ValueError) as e:
            self._diagnostic("resolve", f"{zone} {name}: cannot resolve '{host}': {e}", line_num)
            return None

    def _group_address_add(self, directive: Directive):
        self.config.objects.add_to_group(directive.group(1), directive.group(2), directive.group(3))

    # --- policies ---

    def _policy_create(self, directive: Directive):
        policy_id = int(directive.group(1))
        if self.config.get_policy(policy_id) is not None:
            raise ScreenParseError(f"Policy {policy_id} defined twice", directive.line_num)

        nat_port = directive.group(10)
        policy = Policy(
            id=policy_id,
            name=directive.group(2) or "",
            from_zone=directive.group(3),
            to_zone=directive.group(4),
            sources=[directive.group(5)],
            destinations=[directive.group(6)],
            services=[directive.group(7)],
            nat=NATMode(directive.group(8) or ""),
            nat_address=directive.group(9) or "",
            nat_port=int(nat_port) if nat_port else None,
            action=Action(directive.group(11)),
            log=directive.group(12) == "log",
        )
        if not policy.is_valid():
            raise ScreenParseError(f"Invalid policy: {policy.describe()}", directive.line_num)

        self.config.add_policy(policy)

    def _existing_policy(self, directive: Directive) -> Policy:
        policy_id = int(directive.group(1))
        policy = self.config.get_policy(policy_id)
        if policy is None:
            raise ScreenParseError(f"Policy {policy_id} not found", directive.line_num)
        return policy

    def _policy_flag(self, directive: Directive):
        policy = self._existing_policy(directive)
        if directive.group(2) == "disable":
            policy.disabled = True
        else:
            policy.application = directive.group(3) or ""

    def _policy_block(self, directive: Directive):
        policy = self._existing_policy(directive)
        for line_num, raw_line in self._lines:
            self._line_num = line_num
            line = raw_line.strip()
            if line == BLOCK_TERMINATOR:
                return
            if not line:
                continue

            sub = classify_block_line(line, line_num)
            if sub.kind == DirectiveKind.BLOCK_MEMBER:
                field_name, value = sub.group(1), sub.group(2)
                if field_name == "service":
                    policy.services.append(value)
                elif field_name == "src-address":
                    policy.sources.append(value)
                else:
                    policy.destinations.append(value)
            elif sub.group(1) == LOG_SESSION_INIT:
                policy.log_init = True
            else:
                raise ScreenParseError(f"Unsupported log option '{sub.group(1)}'", line_num)

        raise ScreenParseError(f"Policy {policy.id} block not closed by '{BLOCK_TERMINATOR}'", directive.line_num)

    def _diagnostic(self, kind: str, message: str, line_num: int = 0):
        diag = Diagnostic(kind=kind, message=message, line_num=line_num)
        log.warning(str(diag))
        self.config.diagnostics.append(diag)


def parse_lines(lines: Iterable[str], services: Optional[ServiceCatalog] = None,
                resolver: Optional[Resolver] = socket.gethostbyname) -> ScreenConfig:
    """Parse ScreenOS directive lines.

    services seeds the catalog (defaults to the predefined table);
    resolver maps a host name to an IPv4 address string, None disables
    host name lookups.
    """
    return DirectiveReader(services=services, resolver=resolver).read(lines)


def parse_text(text: str, services: Optional[ServiceCatalog] = None,
               resolver: Optional[Resolver] = socket.gethostbyname) -> ScreenConfig:
    return parse_lines(text.splitlines(), services=services, resolver=resolver)
