import sys

from connector_sync.cli import main

sys.exit(main())
