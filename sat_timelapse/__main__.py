"""Allow ``python -m sat_timelapse``."""

import sys

from sat_timelapse.cli import main

sys.exit(main())
