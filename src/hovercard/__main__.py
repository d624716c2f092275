"""Allow running as ``python -m hovercard``."""

import sys

from .main import main

sys.exit(main())
