"""Business logic layer for drive app.

This package contains all business logic of the folder/file tree:
- Path resolution and storage key derivation
- Tree invariants (ownership, move targets, cycles)
- Folder and file operations, batch moves, trash and admin actions

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
