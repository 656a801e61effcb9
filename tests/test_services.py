import pytest

from screen2mtk.mappings.services import (
    SCREENOS_SERVICES, ServiceCatalog, ServiceDefinition, parse_service_spec,
)
from screen2mtk.util import CyclicGroupError


def test_defaults_are_a_fresh_copy():
    a = ServiceCatalog.defaults()
    a.add("HTTP", ServiceDefinition("udp", dst_port_start=80, dst_port_end=80))
    b = ServiceCatalog.defaults()
    assert len(b.definitions("HTTP")) == 1
    assert len(SCREENOS_SERVICES["HTTP"]) == 1


def test_protocols_in_first_seen_order():
    catalog = ServiceCatalog.defaults()
    assert catalog.protocols("CIFS") == ["udp", "tcp"]
    assert catalog.protocols("PPTP") == ["tcp", "47"]
    assert catalog.protocols("MS-AD") == []


def test_empty_service_still_exists():
    catalog = ServiceCatalog.defaults()
    assert "WHOIS" in catalog
    assert catalog.definitions("WHOIS") == []


def test_unknown_service_raises_keyerror():
    with pytest.raises(KeyError):
        ServiceCatalog.defaults().definitions("NOPE")


def test_define_replaces_and_add_appends():
    catalog = ServiceCatalog.defaults()
    catalog.define("HTTP", [ServiceDefinition("tcp", dst_port_start=81, dst_port_end=81)])
    catalog.add("HTTP", ServiceDefinition("tcp", dst_port_start=82, dst_port_end=82))
    assert [d.dst_port_start for d in catalog.definitions("HTTP")] == [81, 82]


def test_group_expands_members():
    catalog = ServiceCatalog.defaults()
    catalog.create_group("WEB")
    catalog.add_group_member("WEB", "HTTP")
    catalog.add_group_member("WEB", "HTTPS")
    assert "WEB" in catalog
    assert catalog.is_group("WEB")
    assert [d.dst_port_start for d in catalog.definitions("WEB")] == [80, 443]
    assert catalog.protocols("WEB") == ["tcp"]


def test_group_with_unknown_member_raises():
    catalog = ServiceCatalog()
    catalog.add_group_member("G", "MISSING")
    with pytest.raises(KeyError):
        catalog.definitions("G")


def test_group_cycle_raises():
    catalog = ServiceCatalog()
    catalog.add_group_member("A", "B")
    catalog.add_group_member("B", "A")
    with pytest.raises(CyclicGroupError):
        catalog.definitions("A")


def test_unconstrained_ranges():
    svc = ServiceDefinition("tcp", dst_port_start=443, dst_port_end=443)
    assert svc.src_unconstrained
    assert not svc.dst_unconstrained
    assert ServiceDefinition("tcp").dst_unconstrained


@pytest.mark.parametrize("spec, expected", [
    ("tcp/443", ServiceDefinition("tcp", dst_port_start=443, dst_port_end=443)),
    ("UDP/1812-1813", ServiceDefinition("udp", dst_port_start=1812, dst_port_end=1813)),
    ("icmp/8", ServiceDefinition("icmp", icmp_type=8)),
    ("47", ServiceDefinition("47")),
])
def test_parse_service_spec(spec, expected):
    assert parse_service_spec(spec) == expected


@pytest.mark.parametrize("spec", ["", "47/10", "tcp/abc"])
def test_parse_service_spec_rejects(spec):
    with pytest.raises(ValueError):
        parse_service_spec(spec)
