"""Release-note domain.

Pure logic with no network or process access:
- semver: tag parsing, ordering and previous-release selection
- lockfile: pinned dependency lookup in manifest snapshots
- changes: change records and cross-repository merge
- classify: label buckets and release priority
- context: the flat context handed to the template renderer
"""

from __future__ import annotations
