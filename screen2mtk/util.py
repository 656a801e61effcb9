"""Exceptions, diagnostics, address helpers and logging setup."""

import ipaddress
import logging
from dataclasses import dataclass
from typing import List


class ConversionError(Exception):
    """Base class for errors that abort a conversion run."""


class ScreenParseError(ConversionError):
    """Raised for unrecoverable ScreenOS parsing errors."""

    def __init__(self, message: str, line_num: int = 0):
        self.line_num = line_num
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


class CyclicGroupError(ConversionError):
    """Raised when a group is re-entered while it is being resolved."""

    def __init__(self, scope: str, name: str, chain: List[str]):
        self.scope = scope
        self.name = name
        self.chain = list(chain)
        path = " -> ".join(self.chain + [name])
        super().__init__(f"Cyclic group reference in '{scope}': {path}")


class UnknownServiceError(ConversionError):
    """Raised when a policy references a service missing from the catalog."""

    def __init__(self, policy_id: int, service_name: str):
        self.policy_id = policy_id
        self.service_name = service_name
        super().__init__(f"Policy {policy_id}: service '{service_name}' not found")


@dataclass
class Diagnostic:
    """A recoverable problem reported alongside best-effort output."""
    kind: str                               # "resolve" or "not_found"
    message: str
    line_num: int = 0

    def __str__(self) -> str:
        if self.line_num:
            return f"Line {self.line_num}: {self.message}"
        return self.message


def ip_mask_to_interface(ip_str: str, mask_str: str) -> ipaddress.IPv4Interface:
    """Convert ScreenOS 'IP MASK' to an interface keeping the host bits.

    Example: ip_mask_to_interface('10.0.1.1', '255.255.255.0') -> 10.0.1.1/24
    """
    return ipaddress.IPv4Interface(f"{ip_str}/{mask_str}")


def host_interface(ip_str: str) -> ipaddress.IPv4Interface:
    """Single host entry: '10.0.0.1' -> 10.0.0.1/32."""
    return ipaddress.IPv4Interface(f"{ip_str}/32")


def format_port_range(start: int, end: int) -> str:
    """Render a port range the way RouterOS expects it: '443' or '8000-8100'."""
    if start == end:
        return str(start)
    return f"{start}-{end}"


def setup_logging(verbose: bool = False):
    """Configure logging for the converter."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )
