import socket

import pytest

from screen2mtk.parser.reader import parse_text


SAMPLE_EXPORT = """\
set service "WEB-ALT" protocol tcp src-port 0-65535 dst-port 8000-8001
set service "WEB-ALT" + udp src-port 0-65535 dst-port 9000-9000
set service "WEB-ALT" timeout 30
set address "Trust" "Server1" 10.0.0.1 255.255.255.255
set address "Trust" "Server2" 10.0.0.2 255.255.255.255
set address "Trust" "LAN" 10.0.0.0 255.255.255.0 "office lan"
set address "Clients" "Laptop" 192.168.1.10 255.255.255.255
set group address "Trust" "Servers"
set group address "Trust" "Servers" add "Server1"
set group address "Trust" "Servers" add "Server2"
set policy id 1 from "Clients" to "Trust"  "Laptop" "Servers" "HTTPS" permit log
set policy id 1
set service "SSH"
exit
set policy id 2 name "Web" from "Clients" to "Trust"  "any" "Server1" "WEB-ALT" permit
set policy id 3 from "Clients" to "Untrust"  "any" "any" "ANY" deny
set policy id 4 from "Trust" to "Untrust"  "Server1" "any" "HTTPS" permit
set policy id 4 disable
"""


def fake_resolver(hosts):
    """Resolver backed by a dict; unknown names fail like a DNS miss."""
    def resolve(host):
        try:
            return hosts[host]
        except KeyError:
            raise socket.gaierror(f"[Errno -2] Name or service not known: {host}")
    return resolve


@pytest.fixture
def sample_export():
    return SAMPLE_EXPORT


@pytest.fixture
def sample_config():
    return parse_text(SAMPLE_EXPORT, resolver=fake_resolver({}))
