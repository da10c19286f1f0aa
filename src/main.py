"""
collabsync - Realtime annotation sync over a GraphQL collaboration service.

Operator entry point: inspect the local annotation index, show settings and
watch the live change feed.
"""

import sys
from collabsync.interface.cli import main


if __name__ == "__main__":
    sys.exit(main())
