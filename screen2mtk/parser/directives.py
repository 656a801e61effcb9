"""Directive grammars for ScreenOS 'set' configuration lines."""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional, Pattern, Tuple

from ..util import ScreenParseError


class DirectiveKind(Enum):
    SERVICE_CONTINUE = auto()
    SERVICE_ICMP_CONTINUE = auto()
    SERVICE = auto()
    SERVICE_ICMP = auto()
    SERVICE_TIMEOUT = auto()
    ADDRESS = auto()
    GROUP_ADDRESS_ADD = auto()
    GROUP_ADDRESS_CREATE = auto()
    GROUP_SERVICE_ADD = auto()
    GROUP_SERVICE_CREATE = auto()
    POLICY_CREATE = auto()
    POLICY_BLOCK = auto()
    POLICY_FLAG = auto()
    # Only valid between 'set policy id N' and 'exit'
    BLOCK_MEMBER = auto()
    BLOCK_LOG = auto()


@dataclass
class Directive:
    kind: DirectiveKind
    line_num: int
    groups: Tuple[Optional[str], ...] = ()

    def group(self, idx: int) -> Optional[str]:
        """1-based access, like re.Match.group."""
        return self.groups[idx - 1]


_PORTS = r'(?: src-port (\d+)-(\d+) dst-port (\d+)-(\d+))?'
_TIMEOUT = r'(?: timeout \d+)?'

# (prefix, [(kind, regex), ...]). Within a family the first matching grammar
# wins; a line carrying the prefix that matches none of them is malformed.
GRAMMARS: List[Tuple[str, List[Tuple[DirectiveKind, Pattern]]]] = [
    ("set service", [
        (DirectiveKind.SERVICE_CONTINUE,
         re.compile(r'^set service "([^"]+)" \+ (tcp|udp|\d+)' + _PORTS + _TIMEOUT + r'$')),
        (DirectiveKind.SERVICE_ICMP_CONTINUE,
         re.compile(r'^set service "([^"]+)" \+ icmp type (\d+) code (\d+)' + _TIMEOUT + r'$')),
        (DirectiveKind.SERVICE,
         re.compile(r'^set service "([^"]+)" protocol (tcp|udp|\d+)' + _PORTS + _TIMEOUT + r'$')),
        (DirectiveKind.SERVICE_ICMP,
         re.compile(r'^set service "([^"]+)" protocol icmp type (\d+) code (\d+)' + _TIMEOUT + r'$')),
        (DirectiveKind.SERVICE_TIMEOUT,
         re.compile(r'^set service "([^"]+)" (timeout \d+|session-cache)$')),
    ]),
    ("set address", [
        (DirectiveKind.ADDRESS,
         re.compile(r'^set address "([^"]+)" "([^"]+)" ([^ "]+)(?: (\d+\.\d+\.\d+\.\d+))?(?: "([^"]*)")?$')),
    ]),
    ("set group address", [
        (DirectiveKind.GROUP_ADDRESS_ADD,
         re.compile(r'^set group address "([^"]+)" "([^"]+)" add "([^"]+)"$')),
        (DirectiveKind.GROUP_ADDRESS_CREATE,
         re.compile(r'^set group address "([^"]+)" "([^"]+)"( comment .*)?$')),
    ]),
    ("set group service", [
        (DirectiveKind.GROUP_SERVICE_ADD,
         re.compile(r'^set group service "([^"]+)" add "([^"]+)"$')),
        (DirectiveKind.GROUP_SERVICE_CREATE,
         re.compile(r'^set group service "([^"]+)"( comment .*)?$')),
    ]),
    ("set policy id", [
        # Trailing bandwidth and schedule clauses are accepted and dropped
        (DirectiveKind.POLICY_CREATE,
         re.compile(
             r'^set policy id (\d+) (?:name "([^"]+)" )?from "([^"]+)" to "([^"]+)" +'
             r'"([^"]+)" "([^"]+)" "([^"]+)" (nat src|nat dst)?(?: ip ([^ ]+))?(?: port (\d+))? ?'
             r'(permit|deny|reject) ?(log)?(?: traffic(?: [a-z]+ \d+)+)?(?: schedule "[^"]+")?'
         )),
        (DirectiveKind.POLICY_BLOCK,
         re.compile(r'^set policy id (\d+)$')),
        (DirectiveKind.POLICY_FLAG,
         re.compile(r'^set policy id (\d+) (disable|application) ?(?:"([^"]+)")?$')),
    ]),
]

BLOCK_GRAMMARS: List[Tuple[DirectiveKind, Pattern]] = [
    (DirectiveKind.BLOCK_MEMBER,
     re.compile(r'^set (service|dst-address|src-address) "([^"]+)"$')),
    (DirectiveKind.BLOCK_LOG,
     re.compile(r'^set log (.*)$')),
]


def classify(line: str, line_num: int = 0) -> Optional[Directive]:
    """Match a trimmed top-level line against the directive grammars.

    Returns None for lines outside every known family. Raises
    ScreenParseError for a known family whose full shape does not match.
    """
    for prefix, grammars in GRAMMARS:
        if not line.startswith(prefix):
            continue
        for kind, rx in grammars:
            m = rx.match(line)
            if m:
                return Directive(kind=kind, line_num=line_num, groups=m.groups())
        # 'set service-foo ...' is not part of the 'set service' family
        if line[len(prefix):len(prefix) + 1] not in ("", " "):
            continue
        raise ScreenParseError(f"Malformed '{prefix}' directive: {line}", line_num)
    return None


def classify_block_line(line: str, line_num: int = 0) -> Directive:
    """Match a line inside a policy block; anything unknown is fatal."""
    for kind, rx in BLOCK_GRAMMARS:
        m = rx.match(line)
        if m:
            return Directive(kind=kind, line_num=line_num, groups=m.groups())
    raise ScreenParseError(f"Unexpected line in policy block: {line}", line_num)
