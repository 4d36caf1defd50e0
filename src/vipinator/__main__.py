import sys

from vipinator.cli import main

sys.exit(main())
