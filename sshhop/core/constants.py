"""
Project constants definitions
"""

# ============================================================
# Connection Defaults
# ============================================================

DEFAULT_SSH_PORT = 22
DEFAULT_SSH_TIMEOUT = 10
LOCALHOST = "localhost"

# ============================================================
# Tunnel Defaults
# ============================================================

DEFAULT_TUNNEL_LOCAL_PORT = 2223
DEFAULT_TUNNEL_TARGET_PORT = 22
DEFAULT_TUNNEL_BIND_HOST = "127.0.0.1"
FORWARD_BUFFER_SIZE = 32768

# ============================================================
# Command Execution
# ============================================================

# Reserved: no real exit status was ever observed
EXIT_STATUS_UNSET = -100
# paramiko reports -1 when the server closed without an exit status
PARAMIKO_NO_EXIT_STATUS = -1
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_READ_CHUNK_SIZE = 1024

# ============================================================
# File Transfer
# ============================================================

DEFAULT_SOURCE_EXTENSIONS = (".sh", ".txt")
REMOTE_ROOT = "/"

# ============================================================
# Config Files
# ============================================================

SSH_CONFIG_PATH = "~/.ssh/config"
KNOWN_HOSTS_PATH = "~/.ssh/known_hosts"
ENV_PREFIX = "SSHHOP_"
