import sys

from designgate.cli import main

sys.exit(main())
