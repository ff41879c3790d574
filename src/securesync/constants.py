"""Constants for securesync."""

# Project marker / metadata directory
SECURESYNC_DIR = ".securesync"

# Files and directories inside SECURESYNC_DIR
CONFIG_FILE = "config.yaml"
HEAD_FILE = "HEAD"
WS_INDEX_FILE = "wsIndex.json"
LOCK_FILE = "sync.lock"
REMOTES_DIR = "remotes"

# Directories inside REMOTES_DIR
INDEXES_DIR = "indexes"
FILES_DIR = "files"
REFS_DIR = "refs"

# Shard prefix lengths
HASH_PREFIX_LEN = 2
ID_PREFIX_LEN = 6

# Project ignore file (gitignore syntax)
IGNORE_FILE = ".securesyncignore"

# Quarantine roots (workspace-relative)
CONFLICT_LOCAL_DIR = "conflict-local"
CONFLICT_REMOTE_DIR = "conflict-remote"
DELETED_DIR = "deleted"

# Encryption
IV_LENGTH = 16
KEY_HEX_LENGTH = 64
KEY_ENV_VAR = "SECURESYNC_KEY"

DEFAULT_BRANCH = "main"
HISTORY_LIMIT = 30

# Version
SECURESYNC_VERSION = "0.1.0"
