import sys

from mdreader.api.cli.main import main

sys.exit(main())
