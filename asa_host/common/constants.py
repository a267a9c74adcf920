"""
Constants and exit codes for asa-host.
"""

DEFAULT_CONTAINER_NAME = "asa-server-1"
DEFAULT_CHECK_INTERVAL = 60
MIN_RECOMMENDED_CHECK_INTERVAL = 10

# Watchdog restart policy
MAX_RESTART_ATTEMPTS = 3
RESTART_WINDOW_SECONDS = 300
MAX_STARTUP_WAIT_SECONDS = 120
SAVE_SETTLE_SECONDS = 3

# Server management
START_WAIT_SECONDS = 30
STOP_TIMEOUT_SECONDS = 60
STOP_SAVE_SETTLE_SECONDS = 5
UPDATE_START_WAIT_SECONDS = 120
SCHEDULED_START_WAIT_SECONDS = 180

# Paths / names
DEFAULT_ASA_CTRL_BIN = "/usr/local/bin/asa-ctrl"
DEFAULT_BACKUP_DIR = "/var/lib/docker/volumes/backups"
DEFAULT_DOCKER_VOLUMES_DIR = "/var/lib/docker/volumes"
DEFAULT_VOLUME_PATTERN = r"asa-server_server-files-\d+"
DEFAULT_MAX_BACKUPS = 10
DEFAULT_SERVER_FILTER = "asa-server"

DEFAULT_RESTART_WARNING_MINUTES = 30
SUPPORTED_WARNING_MINUTES = (5, 10, 15, 30, 60)


class ExitCodes:
    """Exit codes for different error conditions."""
    OK = 0
    GENERAL_ERROR = 1
    INVALID_ARGUMENT = 2
    CONTAINER_NOT_FOUND = 3
    RESTART_LIMIT_EXCEEDED = 4
    RUNTIME_UNAVAILABLE = 5
    CONTAINER_NOT_RUNNING = 6
    RCON_COMMAND_FAILED = 7
    BACKUP_FAILED = 8
