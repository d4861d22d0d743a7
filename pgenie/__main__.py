"""Allow ``python -m pgenie``."""

import sys

from pgenie.cli import main

sys.exit(main())
