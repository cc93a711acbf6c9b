import sys

from tripbook.viewer.cli import main

sys.exit(main())
