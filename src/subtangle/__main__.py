import sys

from subtangle.cli import main

sys.exit(main())
