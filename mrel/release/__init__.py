"""Release bounded context.

- semver / build_number / commits: value types and parsing
- manifests / sync: per-format field rewriting and target synchronization
- changelog / history: commit feed grouping and rendering
- config: typed ``mrel.toml``
- planner: the bump pipeline (version, build, manifests, changelog, git)
"""

from __future__ import annotations
