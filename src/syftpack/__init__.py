"""syftpack - Syft provisioning and SBOM generation for builds.

syftpack resolves an Anchore Syft release for the build platform from a
declarative inventory, downloads and verifies it, caches it in a build
layer, and uses it to produce SBOM documents in several standard formats.
"""

__version__ = "0.1.0"
__author__ = "syftpack Contributors"
