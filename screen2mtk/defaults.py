"""Default values and constants for ScreenOS input and RouterOS output."""

# Zone of interest when none is configured
DEFAULT_ZONE = "Clients"

# ScreenOS reserved names
ANY_ADDRESS = "any"                 # matched case-insensitively
ANY_SERVICE = "ANY"
INLINE_ADDRESS_PREFIXES = ("MIP(", "VIP(")

# Line closing a 'set policy id N' block
BLOCK_TERMINATOR = "exit"

# Only log option accepted inside a policy block
LOG_SESSION_INIT = "session-init"

# Joins zone and object name into a RouterOS address-list name,
# and from-zone and to-zone into a chain name
LIST_SEPARATOR = "__"

# Port span treated as "no constraint"
PORT_MIN = 0
PORT_MAX = 65535

# ICMP match emitted for every icmp rule (echo-request, any code)
ICMP_ECHO_OPTIONS = "8:0-255"

# ScreenOS action to RouterOS action mapping
SCREENOS_ACTION_TO_ROUTEROS = {
    "permit": "accept",
    "reject": "reject",
    "deny": "drop",
}

# RouterOS section headers
ADDRESS_LIST_HEADER = "/ip firewall address-list"
FILTER_HEADER = "/ip firewall filter"
