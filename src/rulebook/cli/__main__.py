import sys

from ._dispatcher import main

if __name__ == "__main__":
    sys.exit(main())
