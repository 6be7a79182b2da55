import sys

from rolebridge.cli import main

sys.exit(main())
