import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "src")))

from price_relay.cli import main


if __name__ == "__main__":
    sys.exit(main())
