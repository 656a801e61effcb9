"""Converter settings file schema and serialization."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import yaml

from .defaults import DEFAULT_ZONE
from .mappings.services import ServiceCatalog, parse_service_spec

log = logging.getLogger(__name__)

YAML_HEADER = """\
# screen2mtk settings
#
#   zones:      only policies from or to one of these zones are converted
#   all_zones:  true converts every policy regardless of zone
#   services:   extra or replacement service definitions, merged into the
#               predefined table before the ScreenOS input is read.
#               Each entry is a list of 'tcp/443', 'udp/1812-1813',
#               'icmp/8' or a bare IP protocol number such as '47'.
#
#   Use with: screen2mtk -c <this_file> < config.txt
#
"""


@dataclass
class Settings:
    zones: List[str] = field(default_factory=lambda: [DEFAULT_ZONE])
    all_zones: bool = False
    services: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "zones": self.zones,
            "all_zones": self.all_zones,
            "services": self.services,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Settings":
        zones = d.get("zones") or [DEFAULT_ZONE]
        if isinstance(zones, str):
            zones = [zones]
        services = {}
        for name, specs in (d.get("services") or {}).items():
            if isinstance(specs, str):
                specs = [specs]
            services[str(name)] = [str(s) for s in specs or []]
            for spec in services[str(name)]:
                parse_service_spec(spec)        # raises ValueError
        return cls(
            zones=[str(z) for z in zones],
            all_zones=bool(d.get("all_zones", False)),
            services=services,
        )

    def to_yaml(self) -> str:
        yaml_body = yaml.dump(
            self.to_dict(),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            width=120,
        )
        return YAML_HEADER + yaml_body

    @classmethod
    def from_yaml(cls, yaml_text: str) -> "Settings":
        data = yaml.safe_load(yaml_text)
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("Settings file must contain a mapping")
        return cls.from_dict(data)

    def service_catalog(self) -> ServiceCatalog:
        """Predefined services with this file's definitions merged in."""
        catalog = ServiceCatalog.defaults()
        for name, specs in self.services.items():
            catalog.define(name, [parse_service_spec(s) for s in specs])
            log.debug(f"Service '{name}' set from settings: {', '.join(specs) or '(no ports)'}")
        return catalog


def default_template() -> str:
    """Commented settings file with one example service."""
    return Settings(services={"HTTP-ALT": ["tcp/8000-8001"]}).to_yaml()
