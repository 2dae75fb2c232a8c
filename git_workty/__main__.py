"""Allow running git-workty with `python -m git_workty`."""

import sys

from git_workty.cli.main import main

sys.exit(main())
