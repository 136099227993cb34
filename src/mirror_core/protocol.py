"""Mirror Check repodata layout constants.

Single source of truth for file names, suffixes and XML namespaces.
Keep this file stable. Resolver, catalog builder and prune planner must agree.
"""

# Repodata layout
REPODATA_DIR = "repodata"
INDEX_FILE = "repomd.xml"
INDEX_SIGNATURE_FILE = "repomd.xml.asc"

# Index role that designates the primary package catalog
PRIMARY_ROLE = "primary"

# Extra package lists picked up by --multi (not covered by the index signature)
SUPPLEMENTARY_CATALOG_SUFFIX = "-primary.xml.gz"

# On-disk package files considered by the prune planner
PACKAGE_SUFFIX = ".rpm"

# Keyring directory members
KEY_FILE_SUFFIXES = (".gpg", ".asc")
DEFAULT_KEYRING = "keys/"

# XML namespaces (createrepo)
NS_REPO = "http://linux.duke.edu/metadata/repo"
NS_COMMON = "http://linux.duke.edu/metadata/common"

# I/O sizing
READ_CHUNK_SIZE = 1024 * 1024  # 1 MiB per read while hashing
DEFAULT_MAX_WORKERS = 8
