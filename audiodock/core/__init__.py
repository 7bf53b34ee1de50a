"""
Core backend engine.

This package contains the primary logic. The `DirectoryProvisioner` resolves
the runtime roots, the `ExecutableLocator` finds the sidecar binaries,
`SandboxedFiles` performs every UI-requested read and write, and the
`ExportOrchestrator` drives a single transcoder run.
"""
