"""Allow running as ``python -m nestaudit``."""

import sys

from .main import main

sys.exit(main())
