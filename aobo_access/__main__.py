import sys

from aobo_access.cli import main

if __name__ == "__main__":
    sys.exit(main())
