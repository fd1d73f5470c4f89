"""devenv-installer: desktop development environment provisioning.

Core design goals:
- Declarative components, hardware profiles and package lists
- Deterministic dependency resolution (fail fast on cycles and conflicts)
- Hardware-aware package selection from detected facts
- State-driven and resumable steps
- Dry-run as a first-class executor
"""

__all__ = []
