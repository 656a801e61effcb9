"""Convert a ScreenOS configuration export into MikroTik RouterOS firewall rules."""

__version__ = "0.1.0"
