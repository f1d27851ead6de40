"""Allow ``python -m cardto_image``."""

import sys

from cardto_image.cli import main

sys.exit(main())
