"""Folder/file hierarchy engine settings."""

from cloudbox.settings.components import config

# Path segment used for the root folder and for unresolvable ancestors
DRIVE_ROOT_PATH_SEGMENT = config('DRIVE_ROOT_PATH_SEGMENT', default='root')

# Extension used in storage keys for names without one
DRIVE_DEFAULT_EXTENSION = config('DRIVE_DEFAULT_EXTENSION', default='bin')

# Folder creation tries "name", "name (2)", ... up to this many names
DRIVE_FOLDER_NAME_MAX_ATTEMPTS = config(
    'DRIVE_FOLDER_NAME_MAX_ATTEMPTS',
    cast=int,
    default=20,
)

# Upper bound for parent-chain walks
DRIVE_MAX_TREE_DEPTH = config('DRIVE_MAX_TREE_DEPTH', cast=int, default=256)

# Trashed items older than this are purged by cleanup_trash
DRIVE_TRASH_RETENTION_DAYS = config(
    'DRIVE_TRASH_RETENTION_DAYS',
    cast=int,
    default=30,
)
