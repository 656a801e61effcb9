"""Top-level container for a parsed ScreenOS configuration."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..mappings.services import ServiceCatalog
from ..util import Diagnostic
from .objects import ObjectStore
from .policy import Policy


@dataclass
class ScreenConfig:
    """Holds everything parsed from a ScreenOS export, ready for emission."""

    # Policies in definition order, plus an index by ID
    policies: List[Policy] = field(default_factory=list)
    policy_index: Dict[int, Policy] = field(default_factory=dict)

    objects: ObjectStore = field(default_factory=ObjectStore)
    services: ServiceCatalog = field(default_factory=ServiceCatalog.defaults)

    # Recoverable problems met while parsing
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def add_policy(self, policy: Policy):
        self.policies.append(policy)
        self.policy_index[policy.id] = policy

    def get_policy(self, policy_id: int) -> Optional[Policy]:
        return self.policy_index.get(policy_id)

    def filter_zones(self, zones: Iterable[str]) -> List[Policy]:
        """Policies whose from-zone or to-zone is one of the given zones."""
        wanted = set(zones)
        return [p for p in self.policies if p.from_zone in wanted or p.to_zone in wanted]
