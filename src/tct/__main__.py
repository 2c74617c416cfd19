import sys

from tct.cli import main

sys.exit(main())
