import sys

from pyapsp.cli import main

sys.exit(main())
