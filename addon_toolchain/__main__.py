import sys

from addon_toolchain.cli import main

sys.exit(main())
