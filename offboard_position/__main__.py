"""Run the flight script with ``python -m offboard_position``."""

import sys

from .cli import main

sys.exit(main())
