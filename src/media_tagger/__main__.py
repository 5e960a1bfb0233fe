"""Entry point for python -m media_tagger."""

import sys

from media_tagger.cli import main

sys.exit(main())
