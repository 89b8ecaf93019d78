import sys

from devtoolbox.cli import main

sys.exit(main())
