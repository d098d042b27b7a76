"""Tab synchronization engine.

This package contains the components that keep workspaces and live tabs in
step:

- **debounce**: Keyed debouncer (notification bursts -> one deferred pass)
- **retry**: Bounded retry policy for transient tab edit failures
- **reconciler**: Live tabs vs saved tabs diff/merge, notification handlers
- **anchor**: Anchor tab enforcement (pinned, index 0)
- **coordinator**: Workspace switch transaction (guard -> snapshot -> close -> open -> release)
"""
