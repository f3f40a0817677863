# Ensure tests import the package from this checkout first, so
# `import camouflage.*` works without installing it.
import os
import sys

SERVICE_ROOT = os.path.dirname(__file__)

if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)
