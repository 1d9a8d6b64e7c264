# episode_linker/__main__.py

import sys

from episode_linker.cli import main

if __name__ == "__main__":
    sys.exit(main())
