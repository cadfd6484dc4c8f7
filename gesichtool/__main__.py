"""Allow running as `python -m gesichtool`."""

import sys

from gesichtool.cli import main

sys.exit(main())
