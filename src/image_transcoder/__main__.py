"""Allow ``python -m image_transcoder``."""

import sys

from image_transcoder.cli import main

sys.exit(main())
