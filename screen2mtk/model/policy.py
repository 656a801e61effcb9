"""Policy data model."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..defaults import ANY_ADDRESS


class Action(Enum):
    PERMIT = "permit"
    REJECT = "reject"
    DENY = "deny"


class NATMode(Enum):
    NONE = ""
    SOURCE = "nat src"
    DESTINATION = "nat dst"


@dataclass
class Policy:
    id: int
    from_zone: str
    to_zone: str
    name: str = ""
    disabled: bool = False
    # Object names, in directive order
    sources: List[str] = field(default_factory=list)
    destinations: List[str] = field(default_factory=list)
    services: List[str] = field(default_factory=list)
    application: str = ""
    nat: NATMode = NATMode.NONE
    nat_address: str = ""
    nat_port: Optional[int] = None
    action: Action = Action.PERMIT
    log: bool = False
    log_init: bool = False

    def is_valid(self) -> bool:
        return (
            self.id > 0
            and bool(self.from_zone)
            and bool(self.to_zone)
            and bool(self.sources)
            and bool(self.destinations)
            and bool(self.services)
            and isinstance(self.action, Action)
            and isinstance(self.nat, NATMode)
        )

    def is_zone_policy(self) -> bool:
        """True for an any -> any reject/deny rule, the implicit zone default."""
        return (
            [s.lower() for s in self.sources] == [ANY_ADDRESS]
            and [d.lower() for d in self.destinations] == [ANY_ADDRESS]
            and self.action in (Action.REJECT, Action.DENY)
        )

    def describe(self) -> str:
        """One-line dump of the whole record, used as a rule block header."""
        parts = [
            f"ID: {self.id}",
            f"Name: {self.name}",
            f"Disabled: {self.disabled}",
            f"From: {self.from_zone}",
            f"To: {self.to_zone}",
            f"Sources: [{' '.join(self.sources)}]",
            f"Destinations: [{' '.join(self.destinations)}]",
            f"Services: [{' '.join(self.services)}]",
            f"Application: {self.application}",
            f"NAT: {self.nat.value}",
            f"NATAddress: {self.nat_address}",
            f"NATPort: {self.nat_port or 0}",
            f"Action: {self.action.value}",
            f"Log: {self.log}",
            f"LogInit: {self.log_init}",
        ]
        return " ".join(parts)
