"""
release_inventory

Works out which released version of a multi component Kubernetes product is
installed, when no component reports its own version.

We keep modules small and well separated:
core contains shared data structures, errors and semantic version helpers
manifest contains the normalizer and fingerprints
inventory contains the catalog file store
source contains release sources, git tags and http downloads or a local directory
compiler builds and updates the catalog from a release source
detect resolves observed resources against the catalog
cli wires compile and detect for the command line
"""
