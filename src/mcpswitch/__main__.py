import sys

from mcpswitch.cli import main

sys.exit(main())
