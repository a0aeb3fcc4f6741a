"""Registry — item models, bundle loading, and dependency resolution.

The registry layer provides:
- Models: items, files, meta, and the built bundle
- Integrity: canonical serialization and digest of bundle content
- Loading: a cached, integrity-verified bundle reader
- Resolution: transitive closure over registryDependencies
"""
