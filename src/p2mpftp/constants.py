from __future__ import annotations

HEADER_FORMAT = "!iHH"  # seq, checksum, type

DATA_PKT = 0b0101010101010101
ACK_PKT = 0b1010101010101010

INVALID_SEQ_NO = -1

DEFAULT_PORT = 7735
DEFAULT_MSS = 500
MAX_MSS = 65507 - 8  # largest UDP/IPv4 payload minus our header
DEFAULT_TIMEOUT_MS = 120

PREFERRED_INTERFACES = ("en0", "ens160", "eth0")

EXIT_OK = 0
EXIT_FILE_ERROR = 1
EXIT_SHORT_READ = 3
EXIT_NETWORK_ERROR = 4
