"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    PARSE_ERROR = 2
    RESOLUTION_ERROR = 3
    INSTALL_ERROR = 4
    DISPATCH_ERROR = 5
    INTERRUPTED = 130


class Provenance(Enum):
    """Where an installed toolchain comes from.

    Args:
        Enum (string): Provenance of an installed toolchain.
    """

    MANAGED = "managed"
    DISCOVERED = "discovered"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    Values may be overridden from the user configuration file (see cli_config).
    """

    EXECUTABLE_NAME = "pyrig"
    VERSION = "0.4.0"
    ENV_HOME = "PYRIG_HOME"
    ENV_LOG_LEVEL = "PYRIG_LOG_LEVEL"
    DEFAULT_DOT_DIR = ".pyrig"
    CONFIG_FILE = "config.yml"

    TOOLCHAIN_FILE = ".python-version"
    INFO_FILE = "installed_by_pyrig.txt"
    BUILT_MARKER = ".pyrig-built"
    EXTRACTED_MARKER = ".pyrig-extracted"
    EXTRA_PACKAGES_FILENAME = "extra-packages-to-install.txt"
    AVAILABLE_TOOLCHAIN_CACHE = "available_toolchains.json"
    IMPLEMENTATION = "cpython"

    INDEX_URL = "https://www.python.org/api/v2/downloads/release_file/"
    CACHE_TTL_SEC = 7 * 24 * 60 * 60

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    HASH_CHUNK_SIZE = 1024 * 1024
    DEFAULT_CHECKSUM_ALGORITHM = "sha256"

    VERSION_PROBE_TIMEOUT = 5  # seconds, keeps shim dispatch responsive
    PROBE_EXECUTABLES = ["python", "python3", "python2"]
    PROBE_PATHS = None  # None means the PATH entries
    WALK_UP = True
